"""Login service - password sign in with profile re-verification"""

import logging

from volunteerverse.auth.errors import (
    AccountIntegrityError,
    IdentityProviderError,
    ProfileStoreError,
)
from volunteerverse.auth.models import (
    FailureKind,
    FlowOutcome,
    RecoveryAction,
    home_path_for,
    read_role,
)
from volunteerverse.services.profile_service import ProfileService
from volunteerverse.services.registration_validator import is_valid_email

logger = logging.getLogger(__name__)

# Provider messages replaced with friendlier text; anything else is shown as is
FRIENDLY_LOGIN_ERRORS = {
    "invalid login credentials": (
        FailureKind.INVALID_CREDENTIALS,
        "Incorrect email or password.",
    ),
    "email not confirmed": (
        FailureKind.EMAIL_NOT_CONFIRMED,
        "Please confirm your email before logging in. Check your inbox for the confirmation link.",
    ),
}

EMAIL_NOT_CONFIRMED_MESSAGE = FRIENDLY_LOGIN_ERRORS["email not confirmed"][1]


class LoginService:
    """Authenticates a user and decides where they land"""

    def __init__(self, identity_provider, profile_service: ProfileService):
        self.identity_provider = identity_provider
        self.profile_service = profile_service

    async def login(self, email: str, password: str) -> FlowOutcome:
        """
        Sign a user in.

        Every login checks that the account is confirmed, has a role and has
        a profile row for that role; an account missing any of these is
        refused even when the password is right.

        Args:
            email: Account email
            password: Account password

        Returns:
            FlowOutcome with the dashboard path and the profile's first name
            on success
        """
        email = (email or "").strip().lower()
        if not email or not password:
            return FlowOutcome.failure(
                FailureKind.VALIDATION,
                "Please enter your email and password.",
                [RecoveryAction.LOGIN],
                reason="missing_fields",
            )
        if not is_valid_email(email):
            return FlowOutcome.failure(
                FailureKind.VALIDATION,
                "Please enter a valid email address.",
                [RecoveryAction.LOGIN],
                reason="invalid_email",
            )

        try:
            session = await self.identity_provider.sign_in_with_password(email, password)
        except IdentityProviderError as e:
            kind, message = FRIENDLY_LOGIN_ERRORS.get(
                (e.message or "").strip().lower(),
                (FailureKind.INVALID_CREDENTIALS, e.message),
            )
            logger.warning(f"Login rejected ({kind.value}): {e.message}")
            return self._credentials_failure(kind, message)

        user = session.user
        if user is None:
            try:
                user = await self.identity_provider.get_user(session.access_token)
            except IdentityProviderError as e:
                logger.warning(f"Could not load account after sign in: {e.message}")
        if user is None:
            return self._credentials_failure(
                FailureKind.INVALID_CREDENTIALS, "Could not load your account."
            )

        if user.email_confirmed_at is None:
            return self._credentials_failure(
                FailureKind.EMAIL_NOT_CONFIRMED, EMAIL_NOT_CONFIRMED_MESSAGE
            )

        try:
            role = read_role(user.user_metadata)
        except AccountIntegrityError as e:
            logger.error(f"Account {user.id} cannot log in: {e}")
            return FlowOutcome.failure(
                FailureKind.ROLE_NOT_SET,
                "Your account role is not set. Please contact support.",
                [RecoveryAction.CONTACT_SUPPORT],
            )

        try:
            profile = self.profile_service.get_profile(role, user.id)
        except ProfileStoreError:
            return FlowOutcome.failure(
                FailureKind.STORE_UNAVAILABLE,
                "We could not load your profile right now. Please try again.",
                [RecoveryAction.LOGIN, RecoveryAction.CONTACT_SUPPORT],
            )

        if profile is None:
            logger.error(f"Account {user.id} is confirmed but has no {role.value} profile")
            return FlowOutcome.failure(
                FailureKind.PROFILE_NOT_FOUND,
                f"No {role.value} profile was found for this account. Please contact support.",
                [RecoveryAction.CONTACT_SUPPORT],
                role=role,
            )

        logger.info(f"{role.value} {user.id} logged in")
        return FlowOutcome.success(
            f"Welcome back, {profile.first_name}!",
            redirect_path=home_path_for(role),
            role=role,
            first_name=profile.first_name,
            session=session,
        )

    @staticmethod
    def _credentials_failure(kind: FailureKind, message: str) -> FlowOutcome:
        if kind == FailureKind.EMAIL_NOT_CONFIRMED:
            actions = [RecoveryAction.RESEND_CONFIRMATION, RecoveryAction.LOGIN]
        else:
            actions = [RecoveryAction.LOGIN, RecoveryAction.RESET_PASSWORD]
        return FlowOutcome.failure(kind, message, actions)
