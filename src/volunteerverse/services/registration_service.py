"""Registration service - account signup and profile provisioning"""

import logging

from volunteerverse.auth.errors import (
    IdentityProviderError,
    ProfileStoreError,
    RegistrationValidationError,
)
from volunteerverse.auth.models import (
    FailureKind,
    FlowOutcome,
    RecoveryAction,
    RegistrationForm,
    UserMetadata,
    UserRole,
    home_path_for,
)
from volunteerverse.services.profile_service import ProfileService
from volunteerverse.services.registration_validator import (
    is_valid_email,
    validate_registration,
)

logger = logging.getLogger(__name__)

CHECK_EMAIL_MESSAGE = "Please check your email to confirm your account"


def signup_failure_kind(error: IdentityProviderError) -> FailureKind:
    """Classify a signup rejection from the provider's error code or text"""
    error_code = (error.error_code or "").lower()
    message = (error.message or "").lower()

    if error_code in ("user_already_exists", "email_exists") or (
        "already registered" in message or "already exists" in message
    ):
        return FailureKind.DUPLICATE_EMAIL
    if error_code == "weak_password" or "password should" in message:
        return FailureKind.WEAK_PASSWORD
    return FailureKind.PROVIDER_ERROR


_SIGNUP_FAILURE_MESSAGES = {
    FailureKind.DUPLICATE_EMAIL: "An account with this email already exists. Try logging in instead.",
}

_SIGNUP_RECOVERY = {
    FailureKind.DUPLICATE_EMAIL: [RecoveryAction.LOGIN, RecoveryAction.RESET_PASSWORD],
    FailureKind.WEAK_PASSWORD: [RecoveryAction.RETRY_REGISTRATION],
    FailureKind.PROVIDER_ERROR: [RecoveryAction.RETRY_REGISTRATION],
}


class RegistrationService:
    """Drives signup through to profile creation for one role"""

    def __init__(
        self,
        identity_provider,
        profile_service: ProfileService,
        email_redirect_to: str,
    ):
        self.identity_provider = identity_provider
        self.profile_service = profile_service
        self.email_redirect_to = email_redirect_to

    async def register(self, role: UserRole, form: RegistrationForm) -> FlowOutcome:
        """
        Register a new account.

        Args:
            role: Role the account is registered for
            form: Submitted registration form

        Returns:
            FlowOutcome that is pending when the provider wants the email
            confirmed first, success with the role dashboard path when the
            profile was created right away, or failure
        """
        try:
            validate_registration(role, form)
        except RegistrationValidationError as e:
            return FlowOutcome.failure(
                FailureKind.VALIDATION,
                e.message,
                [RecoveryAction.RETRY_REGISTRATION],
                reason=e.reason,
            )

        email = form.email.strip().lower()
        metadata = UserMetadata.from_registration(role, form)

        try:
            result = await self.identity_provider.sign_up(
                email=email,
                password=form.password,
                metadata=metadata.to_provider_data(),
                email_redirect_to=self.email_redirect_to,
            )
        except IdentityProviderError as e:
            kind = signup_failure_kind(e)
            logger.warning(f"Signup rejected for {role.value} ({kind.value}): {e.message}")
            return FlowOutcome.failure(
                kind,
                _SIGNUP_FAILURE_MESSAGES.get(kind, e.message),
                _SIGNUP_RECOVERY[kind],
            )

        if result.session is None:
            # Profile creation waits for the confirmation callback
            logger.info(f"Signup for {role.value} pending email confirmation")
            return FlowOutcome.pending(
                CHECK_EMAIL_MESSAGE,
                role=role,
                code_verifier=result.code_verifier,
                account_id=result.user.id if result.user else None,
            )

        return await self._create_profile_now(role, form, email, result.session)

    async def _create_profile_now(self, role, form, email, session) -> FlowOutcome:
        """Provision the profile for an account the provider auto-confirmed"""
        orphaned = FlowOutcome.failure(
            FailureKind.PROFILE_CREATION,
            f"Your account was created but we could not set up your {role.value} "
            f"profile. Please contact support.",
            [RecoveryAction.CONTACT_SUPPORT, RecoveryAction.LOGIN],
        )

        try:
            user = await self.identity_provider.get_user(session.access_token)
        except IdentityProviderError as e:
            logger.error(f"Could not read back auto-confirmed account: {e.message}")
            return orphaned
        if user is None:
            logger.error("Auto-confirmed signup returned a session with no user")
            return orphaned

        try:
            self.profile_service.create_profile_if_absent(
                role, user.id, form.profile_fields(role, user.email or email)
            )
        except ProfileStoreError as e:
            logger.error(f"Account {user.id} has no {role.value} profile: {e}")
            return orphaned

        return FlowOutcome.success(
            "Account created successfully",
            redirect_path=home_path_for(role),
            role=role,
            first_name=form.first_name.strip(),
            session=session,
        )

    async def resend_confirmation(self, email: str) -> FlowOutcome:
        """Send the signup confirmation email again"""
        email = (email or "").strip().lower()
        if not is_valid_email(email):
            return FlowOutcome.failure(
                FailureKind.VALIDATION,
                "Please enter a valid email address.",
                [RecoveryAction.RESEND_CONFIRMATION],
                reason="invalid_email",
            )

        try:
            await self.identity_provider.resend_signup_confirmation(
                email, self.email_redirect_to
            )
        except IdentityProviderError as e:
            return FlowOutcome.failure(
                FailureKind.PROVIDER_ERROR,
                e.message,
                [RecoveryAction.RESEND_CONFIRMATION, RecoveryAction.LOGIN],
            )

        logger.info("Resent signup confirmation email")
        return FlowOutcome.success(
            "Verification email sent successfully. Please check your inbox."
        )
