"""Confirmation callback handling for emailed signup links"""

import enum
import logging
from typing import Mapping, Optional

from volunteerverse.auth.errors import (
    AccountIntegrityError,
    IdentityProviderError,
    ProfileStoreError,
)
from volunteerverse.auth.models import (
    AuthSession,
    FailureKind,
    FlowOutcome,
    RecoveryAction,
    home_path_for,
    profile_fields_from_metadata,
    read_role,
)
from volunteerverse.services.profile_service import ProfileService

logger = logging.getLogger(__name__)


class ConfirmationState(str, enum.Enum):
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class ConfirmationService:
    """Finishes an account once the user follows the confirmation link.

    One instance handles one callback request. ``state`` starts at
    LOADING and ends at SUCCESS or ERROR.
    """

    def __init__(
        self,
        identity_provider,
        profile_service: ProfileService,
        redirect_delay_seconds: int = 2,
    ):
        self.identity_provider = identity_provider
        self.profile_service = profile_service
        self.redirect_delay_seconds = redirect_delay_seconds
        self.state = ConfirmationState.LOADING

    def _error(self, kind, message, recovery_actions) -> FlowOutcome:
        self.state = ConfirmationState.ERROR
        return FlowOutcome.failure(kind, message, recovery_actions)

    async def handle_callback(
        self,
        query_params: Mapping[str, str],
        code_verifier: Optional[str] = None,
        current_access_token: Optional[str] = None,
        signup_account_id: Optional[str] = None,
    ) -> FlowOutcome:
        """
        Run the confirmation callback.

        Args:
            query_params: Query string of the confirmation URL
            code_verifier: PKCE verifier saved when the account signed up
            current_access_token: Access token already held by this browser
            signup_account_id: Account that signed up in this browser. The held
                session is only reused for that account.

        Returns:
            FlowOutcome carrying the session and the dashboard path on success
        """
        if query_params.get("error"):
            logger.warning(
                f"Confirmation link returned an error: "
                f"{query_params.get('error')} {query_params.get('error_description', '')}"
            )
            return self._error(
                FailureKind.LINK_INVALID,
                "Link invalid or expired. Please request a new email.",
                [RecoveryAction.RESEND_CONFIRMATION, RecoveryAction.LOGIN],
            )

        code = query_params.get("code")
        token_hash = query_params.get("token_hash")
        if not code and not token_hash:
            return self._error(
                FailureKind.MISSING_CODE,
                "Missing confirmation code. Please use the link from your email.",
                [RecoveryAction.RESEND_CONFIRMATION],
            )

        session = await self._exchange(
            code,
            token_hash,
            query_params.get("type"),
            code_verifier,
            current_access_token,
            signup_account_id,
        )
        if session is None:
            return self._error(
                FailureKind.EXCHANGE_FAILED,
                "Could not finish sign-in. Please request a new link.",
                [RecoveryAction.RESEND_CONFIRMATION, RecoveryAction.LOGIN],
            )

        try:
            user = await self.identity_provider.get_user(session.access_token)
        except IdentityProviderError as e:
            logger.warning(f"Could not load the confirmed account: {e.message}")
            user = None
        if user is None:
            return self._error(
                FailureKind.NO_SESSION,
                "No session found. Please try again.",
                [RecoveryAction.LOGIN],
            )

        try:
            role = read_role(user.user_metadata)
        except AccountIntegrityError as e:
            logger.error(f"Confirmed account {user.id} cannot be provisioned: {e}")
            return self._error(
                FailureKind.ROLE_NOT_SET,
                "Your account role is not set. Please contact support.",
                [RecoveryAction.CONTACT_SUPPORT],
            )

        try:
            _, created = self.profile_service.create_profile_if_absent(
                role,
                user.id,
                profile_fields_from_metadata(role, user.user_metadata, user.email or ""),
            )
        except ProfileStoreError as e:
            logger.error(f"Account {user.id} has no {role.value} profile: {e}")
            return self._error(
                FailureKind.PROFILE_CREATION,
                "Failed to create your profile. Please contact support.",
                [RecoveryAction.CONTACT_SUPPORT, RecoveryAction.LOGIN],
            )

        if created:
            logger.info(f"Provisioned {role.value} profile for confirmed account {user.id}")

        self.state = ConfirmationState.SUCCESS
        return FlowOutcome.success(
            "Email confirmed! Redirecting to your dashboard...",
            redirect_path=home_path_for(role),
            role=role,
            first_name=user.user_metadata.get("first_name"),
            session=session,
        )

    async def _exchange(
        self,
        code,
        token_hash,
        otp_type,
        code_verifier,
        current_access_token,
        signup_account_id,
    ) -> Optional[AuthSession]:
        """Trade the link's code for a session.

        A code this browser already redeemed fails at the provider; the
        session it produced the first time is reused instead, but only when
        that session belongs to the account that signed up in this browser.
        """
        try:
            if code:
                return await self.identity_provider.exchange_code_for_session(
                    code, code_verifier
                )
            return await self.identity_provider.verify_token_hash(
                token_hash, otp_type or "signup"
            )
        except IdentityProviderError as e:
            logger.warning(f"Confirmation code exchange failed: {e.message}")

        if current_access_token and signup_account_id:
            try:
                user = await self.identity_provider.get_user(current_access_token)
            except IdentityProviderError:
                user = None
            if user is not None and user.id != signup_account_id:
                logger.warning(
                    f"Held session belongs to {user.id}, not the signup account "
                    f"{signup_account_id}; not reusing it"
                )
                user = None
            if user is not None:
                logger.info(f"Reusing existing session for account {user.id}")
                return AuthSession(access_token=current_access_token, user=user)
        return None
