"""Authentication and account-flow models"""

import enum
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from volunteerverse.auth.errors import AccountIntegrityError

# Key under which the account role is stored in the provider's user metadata.
# Written at signup, read back by the confirmation callback and by login.
ROLE_METADATA_KEY = "role"


class UserRole(str, enum.Enum):
    VOLUNTEER = "volunteer"
    ORGANIZER = "organizer"


ROLE_HOME_PATHS = {
    UserRole.VOLUNTEER: "/volunteer",
    UserRole.ORGANIZER: "/organization",
}


def home_path_for(role: UserRole) -> str:
    """Dashboard path a user of the given role lands on"""
    return ROLE_HOME_PATHS[role]


def read_role(user_metadata: Optional[Dict[str, Any]]) -> UserRole:
    """
    Read the account role from provider user metadata.

    Args:
        user_metadata: Metadata blob attached to the account at signup

    Returns:
        The account's role

    Raises:
        AccountIntegrityError: If the role is missing or not a known role
    """
    raw_role = (user_metadata or {}).get(ROLE_METADATA_KEY)
    if not raw_role:
        raise AccountIntegrityError("Account metadata has no role")
    try:
        return UserRole(raw_role)
    except ValueError:
        raise AccountIntegrityError(f"Account metadata has unknown role: {raw_role}")


class UserMetadata(BaseModel):
    """Profile seed data attached to an account at signup.

    Field names here are the single naming contract for the metadata blob.
    """

    role: UserRole
    first_name: str
    last_name: str
    sex: str
    country: str
    phone: str
    organization_name: Optional[str] = None

    def to_provider_data(self) -> Dict[str, Any]:
        """Serialize for the provider's signup ``data`` option"""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_registration(cls, role: UserRole, form: "RegistrationForm") -> "UserMetadata":
        return cls(
            role=role,
            first_name=form.first_name.strip(),
            last_name=form.last_name.strip(),
            sex=form.sex,
            country=form.country.strip(),
            phone=form.phone.strip(),
            organization_name=(
                form.organization_name.strip()
                if role == UserRole.ORGANIZER
                else None
            ),
        )


def profile_fields_from_metadata(
    role: UserRole, user_metadata: Dict[str, Any], email: str
) -> Dict[str, str]:
    """Build profile column values from stored account metadata"""
    fields = {
        "first_name": user_metadata.get("first_name") or "",
        "last_name": user_metadata.get("last_name") or "",
        "sex": user_metadata.get("sex") or "",
        "email": email,
        "country": user_metadata.get("country") or "",
        "phone": user_metadata.get("phone") or "",
    }
    if role == UserRole.ORGANIZER:
        fields["organization_name"] = user_metadata.get("organization_name") or ""
    return fields


class RegistrationForm(BaseModel):
    """Registration form as submitted by the browser"""

    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    sex: Literal["Male", "Female", "Other", ""] = ""
    email: str = ""
    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")
    country: str = ""
    phone: str = ""
    agree_to_terms: bool = Field(default=False, alias="agreeToTerms")
    organization_name: str = Field(default="", alias="organizationName")

    def profile_fields(self, role: UserRole, email: str) -> Dict[str, str]:
        """Profile column values copied straight from the submitted form"""
        fields = {
            "first_name": self.first_name.strip(),
            "last_name": self.last_name.strip(),
            "sex": self.sex,
            "email": email,
            "country": self.country.strip(),
            "phone": self.phone.strip(),
        }
        if role == UserRole.ORGANIZER:
            fields["organization_name"] = self.organization_name.strip()
        return fields


class AuthUser(BaseModel):
    """Account as reported by the identity provider"""

    id: str
    email: Optional[str] = None
    email_confirmed_at: Optional[datetime] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    """Provider-issued session bound to one account"""

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: Optional[AuthUser] = None


class SignUpResult(BaseModel):
    user: Optional[AuthUser] = None
    # None when the provider requires email confirmation first
    session: Optional[AuthSession] = None
    code_verifier: Optional[str] = None


class FlowStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class FailureKind(str, enum.Enum):
    VALIDATION = "validation"
    DUPLICATE_EMAIL = "duplicate_email"
    WEAK_PASSWORD = "weak_password"
    PROVIDER_ERROR = "provider_error"
    PROFILE_CREATION = "profile_creation"
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    ROLE_NOT_SET = "role_not_set"
    PROFILE_NOT_FOUND = "profile_not_found"
    STORE_UNAVAILABLE = "store_unavailable"
    LINK_INVALID = "link_invalid"
    MISSING_CODE = "missing_code"
    EXCHANGE_FAILED = "exchange_failed"
    NO_SESSION = "no_session"


class RecoveryAction(str, enum.Enum):
    RETRY_REGISTRATION = "retry_registration"
    RESEND_CONFIRMATION = "resend_confirmation"
    LOGIN = "login"
    RESET_PASSWORD = "reset_password"
    CONTACT_SUPPORT = "contact_support"


RECOVERY_PATHS = {
    RecoveryAction.RETRY_REGISTRATION: "/register",
    RecoveryAction.RESEND_CONFIRMATION: "/auth/resend",
    RecoveryAction.LOGIN: "/login",
    RecoveryAction.RESET_PASSWORD: "/auth/reset-password",
    RecoveryAction.CONTACT_SUPPORT: "/contact",
}


class FlowOutcome(BaseModel):
    """Terminal result of one registration, confirmation or login attempt"""

    status: FlowStatus
    message: str
    redirect_path: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    reason: Optional[str] = None
    recovery_actions: List[RecoveryAction] = Field(default_factory=list)
    first_name: Optional[str] = None
    role: Optional[UserRole] = None
    # Handed to the router for the cookie session, never serialized
    session: Optional[AuthSession] = Field(default=None, exclude=True)
    code_verifier: Optional[str] = Field(default=None, exclude=True)
    # Account the PKCE verifier belongs to
    account_id: Optional[str] = Field(default=None, exclude=True)

    @property
    def ok(self) -> bool:
        return self.status != FlowStatus.FAILURE

    @classmethod
    def pending(cls, message: str, **kwargs) -> "FlowOutcome":
        return cls(status=FlowStatus.PENDING, message=message, **kwargs)

    @classmethod
    def success(cls, message: str, **kwargs) -> "FlowOutcome":
        return cls(status=FlowStatus.SUCCESS, message=message, **kwargs)

    @classmethod
    def failure(
        cls,
        kind: FailureKind,
        message: str,
        recovery_actions: List[RecoveryAction],
        **kwargs,
    ) -> "FlowOutcome":
        return cls(
            status=FlowStatus.FAILURE,
            failure_kind=kind,
            message=message,
            recovery_actions=recovery_actions,
            **kwargs,
        )

    def recovery_links(self) -> List[Dict[str, str]]:
        return [
            {"action": action.value, "path": RECOVERY_PATHS[action]}
            for action in self.recovery_actions
        ]

    def to_response(self) -> Dict[str, Any]:
        """JSON body returned by the auth routes"""
        body = self.model_dump(mode="json", exclude_none=True)
        body["success"] = self.ok
        body["recovery_actions"] = self.recovery_links()
        return body
