"""Tests for the Supabase Auth REST client, against a mocked transport"""

import base64
import hashlib
import json

import httpx
import pytest

from volunteerverse.auth.errors import IdentityProviderError
from volunteerverse.backends.supabase_auth_client import (
    SupabaseAuthClient,
    generate_pkce_pair,
)

CONFIG = {
    "supabase_url": "https://project.supabase.co/",
    "supabase_anon_key": "anon-key",
    "http_timeout_seconds": 5.0,
}

USER = {
    "id": "8d5c6a1e-1d5a-4a8e-9d57-0f1f2a3b4c5d",
    "email": "a@b.com",
    "email_confirmed_at": None,
    "user_metadata": {"role": "volunteer", "first_name": "Ada"},
    "aud": "authenticated",
}

SESSION = {
    "access_token": "access-token",
    "refresh_token": "refresh-token",
    "token_type": "bearer",
    "expires_in": 3600,
    "user": dict(USER, email_confirmed_at="2026-01-01T00:00:00Z"),
}


def _client(handler, requests=None):
    def recording_handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    return SupabaseAuthClient(CONFIG, transport=httpx.MockTransport(recording_handler))


class TestPkce:
    def test_challenge_is_s256_of_verifier(self):
        verifier, challenge = generate_pkce_pair()

        digest = hashlib.sha256(verifier.encode("ascii")).digest()
        expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        assert challenge == expected
        assert 43 <= len(verifier) <= 128


class TestSignUp:
    @pytest.mark.asyncio
    async def test_pending_signup_request_and_result(self):
        requests = []
        client = _client(lambda request: httpx.Response(200, json=USER), requests)

        result = await client.sign_up(
            "a@b.com", "password1", {"role": "volunteer"}, "https://app.test/auth/callback"
        )

        request = requests[0]
        assert request.method == "POST"
        assert request.url.path == "/auth/v1/signup"
        assert request.url.params["redirect_to"] == "https://app.test/auth/callback"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer anon-key"

        body = json.loads(request.content)
        assert body["email"] == "a@b.com"
        assert body["data"] == {"role": "volunteer"}
        assert body["code_challenge_method"] == "s256"

        digest = hashlib.sha256(result.code_verifier.encode("ascii")).digest()
        expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        assert body["code_challenge"] == expected

        assert result.session is None
        assert result.user.id == USER["id"]
        assert result.user.user_metadata["first_name"] == "Ada"

    @pytest.mark.asyncio
    async def test_auto_confirmed_signup_returns_session(self):
        client = _client(lambda request: httpx.Response(200, json=SESSION))

        result = await client.sign_up("a@b.com", "password1", {}, "https://app.test/cb")

        assert result.session.access_token == "access-token"
        assert result.user.email_confirmed_at is not None

    @pytest.mark.asyncio
    async def test_error_body_with_msg_and_code(self):
        client = _client(
            lambda request: httpx.Response(
                422, json={"code": 422, "error_code": "user_already_exists", "msg": "User already registered"}
            )
        )

        with pytest.raises(IdentityProviderError) as exc_info:
            await client.sign_up("a@b.com", "password1", {}, "https://app.test/cb")

        assert exc_info.value.message == "User already registered"
        assert exc_info.value.error_code == "user_already_exists"
        assert exc_info.value.status_code == 422


class TestTokens:
    @pytest.mark.asyncio
    async def test_exchange_code_for_session(self):
        requests = []
        client = _client(lambda request: httpx.Response(200, json=SESSION), requests)

        session = await client.exchange_code_for_session("auth-code", "verifier")

        assert requests[0].url.params["grant_type"] == "pkce"
        assert json.loads(requests[0].content) == {
            "auth_code": "auth-code",
            "code_verifier": "verifier",
        }
        assert session.user.id == USER["id"]

    @pytest.mark.asyncio
    async def test_oauth_style_error_body(self):
        client = _client(
            lambda request: httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
            )
        )

        with pytest.raises(IdentityProviderError) as exc_info:
            await client.sign_in_with_password("a@b.com", "wrong")

        assert exc_info.value.message == "Invalid login credentials"
        assert exc_info.value.error_code == "invalid_grant"

    @pytest.mark.asyncio
    async def test_verify_token_hash(self):
        requests = []
        client = _client(lambda request: httpx.Response(200, json=SESSION), requests)

        await client.verify_token_hash("hash", "email")

        assert requests[0].url.path == "/auth/v1/verify"
        assert json.loads(requests[0].content) == {"type": "email", "token_hash": "hash"}

    @pytest.mark.asyncio
    async def test_success_without_session_is_an_error(self):
        client = _client(lambda request: httpx.Response(200, json={}))

        with pytest.raises(IdentityProviderError):
            await client.exchange_code_for_session("auth-code", None)


class TestGetUser:
    @pytest.mark.asyncio
    async def test_bearer_token_is_sent(self):
        requests = []
        client = _client(lambda request: httpx.Response(200, json=USER), requests)

        user = await client.get_user("access-token")

        assert requests[0].headers["Authorization"] == "Bearer access-token"
        assert user.email == "a@b.com"

    @pytest.mark.asyncio
    async def test_expired_token_is_none(self):
        client = _client(lambda request: httpx.Response(401, json={"msg": "invalid JWT"}))

        assert await client.get_user("expired") is None

    @pytest.mark.asyncio
    async def test_no_token_makes_no_request(self):
        requests = []
        client = _client(lambda request: httpx.Response(200, json=USER), requests)

        assert await client.get_user(None) is None
        assert requests == []

    @pytest.mark.asyncio
    async def test_server_error_propagates(self):
        client = _client(lambda request: httpx.Response(500, text="upstream down"))

        with pytest.raises(IdentityProviderError) as exc_info:
            await client.get_user("access-token")

        assert exc_info.value.status_code == 500


class TestTransport:
    @pytest.mark.asyncio
    async def test_connection_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(refuse)

        with pytest.raises(IdentityProviderError) as exc_info:
            await client.sign_out("access-token")

        assert "unreachable" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_not_configured(self):
        client = SupabaseAuthClient({})

        assert client.is_configured is False
        with pytest.raises(IdentityProviderError):
            await client.resend_signup_confirmation("a@b.com", "https://app.test/cb")

    @pytest.mark.asyncio
    async def test_recover_returns_verifier(self):
        requests = []
        client = _client(lambda request: httpx.Response(200, json={}), requests)

        verifier = await client.reset_password_for_email("a@b.com", "https://app.test/reset")

        body = json.loads(requests[0].content)
        assert requests[0].url.path == "/auth/v1/recover"
        assert body["code_challenge_method"] == "s256"
        assert verifier
