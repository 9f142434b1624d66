"""Password reset service"""

import logging
from typing import Mapping, Optional

from volunteerverse.auth.errors import IdentityProviderError
from volunteerverse.auth.models import FailureKind, FlowOutcome, RecoveryAction
from volunteerverse.services.registration_validator import (
    MIN_PASSWORD_LENGTH,
    is_valid_email,
)

logger = logging.getLogger(__name__)


class PasswordResetService:
    """Sends reset emails and sets the new password once the link is opened"""

    def __init__(self, identity_provider, reset_redirect_to: str):
        self.identity_provider = identity_provider
        self.reset_redirect_to = reset_redirect_to

    async def request_reset(self, email: str) -> FlowOutcome:
        email = (email or "").strip().lower()
        if not is_valid_email(email):
            return FlowOutcome.failure(
                FailureKind.VALIDATION,
                "Please enter your email address.",
                [RecoveryAction.RESET_PASSWORD],
                reason="invalid_email",
            )

        try:
            code_verifier = await self.identity_provider.reset_password_for_email(
                email, self.reset_redirect_to
            )
        except IdentityProviderError as e:
            return FlowOutcome.failure(
                FailureKind.PROVIDER_ERROR, e.message, [RecoveryAction.RESET_PASSWORD]
            )

        logger.info("Password reset email requested")
        return FlowOutcome.success(
            "Password reset email sent successfully. Please check your inbox.",
            code_verifier=code_verifier,
        )

    async def begin_reset(
        self, query_params: Mapping[str, str], code_verifier: Optional[str] = None
    ) -> FlowOutcome:
        """Exchange the code from the reset link for a session"""
        if query_params.get("error"):
            return FlowOutcome.failure(
                FailureKind.LINK_INVALID,
                "Invalid or expired reset link. Please request a new one.",
                [RecoveryAction.RESET_PASSWORD],
            )

        code = query_params.get("code")
        token_hash = query_params.get("token_hash")
        if not code and not token_hash:
            return FlowOutcome.failure(
                FailureKind.MISSING_CODE,
                "Missing reset code. Please check your email link.",
                [RecoveryAction.RESET_PASSWORD],
            )

        try:
            if code:
                session = await self.identity_provider.exchange_code_for_session(
                    code, code_verifier
                )
            else:
                session = await self.identity_provider.verify_token_hash(
                    token_hash, "recovery"
                )
        except IdentityProviderError as e:
            logger.warning(f"Reset code exchange failed: {e.message}")
            return FlowOutcome.failure(
                FailureKind.EXCHANGE_FAILED,
                "Invalid reset link. Please request a new one.",
                [RecoveryAction.RESET_PASSWORD],
            )

        return FlowOutcome.success("Enter your new password", session=session)

    async def complete_reset(
        self, access_token: Optional[str], password: str, confirm_password: str
    ) -> FlowOutcome:
        """
        Set a new password for the account the reset link signed in.

        Args:
            access_token: Session token obtained by ``begin_reset``
            password: New password
            confirm_password: Repeated new password

        Returns:
            FlowOutcome redirecting to the login page on success
        """
        if not access_token:
            return FlowOutcome.failure(
                FailureKind.NO_SESSION,
                "Your reset session has expired. Please open the link from your email again.",
                [RecoveryAction.RESET_PASSWORD],
            )
        if password != confirm_password:
            return FlowOutcome.failure(
                FailureKind.VALIDATION,
                "Passwords do not match.",
                [RecoveryAction.RESET_PASSWORD],
                reason="password_mismatch",
            )
        if len(password or "") < MIN_PASSWORD_LENGTH:
            return FlowOutcome.failure(
                FailureKind.VALIDATION,
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
                [RecoveryAction.RESET_PASSWORD],
                reason="password_too_short",
            )

        try:
            await self.identity_provider.update_password(access_token, password)
        except IdentityProviderError as e:
            logger.error(f"Password update failed: {e.message}")
            return FlowOutcome.failure(
                FailureKind.PROVIDER_ERROR,
                "Failed to update password. Please try again.",
                [RecoveryAction.RESET_PASSWORD],
            )

        logger.info("Password updated")
        return FlowOutcome.success(
            "Password updated successfully. Please log in with your new password.",
            redirect_path="/login",
        )
