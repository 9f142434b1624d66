"""Tests for the password reset flow"""

import pytest

from volunteerverse.auth.errors import IdentityProviderError
from volunteerverse.auth.models import FailureKind, FlowStatus
from volunteerverse.services.password_reset_service import PasswordResetService

RESET_URL = "https://volunteerverse.test/auth/reset-password/confirm"


@pytest.fixture
def reset_service(identity_provider):
    return PasswordResetService(identity_provider, RESET_URL)


@pytest.fixture
def account(identity_provider):
    return identity_provider.add_account("a@b.com", "password1", {"role": "volunteer"})


class TestRequestReset:
    @pytest.mark.asyncio
    async def test_sends_email_and_returns_verifier(
        self, reset_service, identity_provider, account
    ):
        outcome = await reset_service.request_reset(" A@B.com")

        assert outcome.status == FlowStatus.SUCCESS
        assert outcome.code_verifier == "reset-verifier"
        assert identity_provider.calls == [
            ("reset_password_for_email", {"email": "a@b.com", "redirect_to": RESET_URL})
        ]

    @pytest.mark.asyncio
    async def test_invalid_email(self, reset_service, identity_provider):
        outcome = await reset_service.request_reset("nope")

        assert outcome.failure_kind == FailureKind.VALIDATION
        assert identity_provider.calls == []


class TestBeginReset:
    @pytest.mark.asyncio
    async def test_code_is_exchanged(self, reset_service, identity_provider, account):
        await reset_service.request_reset("a@b.com")

        outcome = await reset_service.begin_reset(
            {"code": identity_provider.last_code}, code_verifier="reset-verifier"
        )

        assert outcome.ok
        assert outcome.session.user.id == account

    @pytest.mark.asyncio
    async def test_token_hash_uses_recovery_type(
        self, reset_service, identity_provider, account
    ):
        await reset_service.request_reset("a@b.com")

        outcome = await reset_service.begin_reset({"token_hash": identity_provider.last_code})

        assert outcome.ok
        assert identity_provider.calls[-1][1]["otp_type"] == "recovery"

    @pytest.mark.asyncio
    async def test_code_without_verifier_fails(
        self, reset_service, identity_provider, account
    ):
        await reset_service.request_reset("a@b.com")

        outcome = await reset_service.begin_reset({"code": identity_provider.last_code})

        assert outcome.failure_kind == FailureKind.EXCHANGE_FAILED

    @pytest.mark.asyncio
    async def test_error_link(self, reset_service):
        outcome = await reset_service.begin_reset({"error": "access_denied"})

        assert outcome.failure_kind == FailureKind.LINK_INVALID

    @pytest.mark.asyncio
    async def test_missing_code(self, reset_service):
        outcome = await reset_service.begin_reset({})

        assert outcome.failure_kind == FailureKind.MISSING_CODE

    @pytest.mark.asyncio
    async def test_unknown_code(self, reset_service):
        outcome = await reset_service.begin_reset({"code": "stale"})

        assert outcome.failure_kind == FailureKind.EXCHANGE_FAILED


class TestCompleteReset:
    @pytest.mark.asyncio
    async def test_updates_password(self, reset_service, identity_provider, account):
        await reset_service.request_reset("a@b.com")
        started = await reset_service.begin_reset(
            {"code": identity_provider.last_code}, code_verifier="reset-verifier"
        )

        outcome = await reset_service.complete_reset(
            started.session.access_token, "new-password", "new-password"
        )

        assert outcome.ok
        assert outcome.redirect_path == "/login"
        assert identity_provider.accounts["a@b.com"]["password"] == "new-password"

    @pytest.mark.asyncio
    async def test_without_session(self, reset_service, identity_provider):
        outcome = await reset_service.complete_reset(None, "new-password", "new-password")

        assert outcome.failure_kind == FailureKind.NO_SESSION
        assert identity_provider.calls == []

    @pytest.mark.asyncio
    async def test_mismatch(self, reset_service):
        outcome = await reset_service.complete_reset("token", "new-password", "other-password")

        assert outcome.reason == "password_mismatch"

    @pytest.mark.asyncio
    async def test_too_short(self, reset_service):
        outcome = await reset_service.complete_reset("token", "short", "short")

        assert outcome.reason == "password_too_short"

    @pytest.mark.asyncio
    async def test_provider_rejects_update(self, reset_service, identity_provider):
        identity_provider.fail["update_password"] = IdentityProviderError(
            "New password should be different from the old password.", status_code=422
        )

        outcome = await reset_service.complete_reset("token", "new-password", "new-password")

        assert outcome.failure_kind == FailureKind.PROVIDER_ERROR
