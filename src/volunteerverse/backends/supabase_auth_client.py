"""Supabase Auth (GoTrue) REST client used as the identity provider"""

import logging
from typing import Any, Dict, Optional, Tuple

import httpx
from authlib.common.security import generate_token
from authlib.oauth2.rfc7636 import create_s256_code_challenge

from volunteerverse.auth.errors import IdentityProviderError
from volunteerverse.auth.models import AuthSession, AuthUser, SignUpResult

logger = logging.getLogger(__name__)


def generate_pkce_pair() -> Tuple[str, str]:
    """Return a (code_verifier, code_challenge) pair for the S256 method"""
    verifier = generate_token(64)
    return verifier, create_s256_code_challenge(verifier)


def _error_message(payload: Any, fallback: str) -> Tuple[str, Optional[str]]:
    """Pull a human readable message and error code out of a GoTrue error body"""
    if not isinstance(payload, dict):
        return fallback, None
    message = (
        payload.get("msg")
        or payload.get("error_description")
        or payload.get("message")
        or payload.get("error")
        or fallback
    )
    error_code = payload.get("error_code")
    if error_code is None and isinstance(payload.get("error"), str):
        error_code = payload["error"]
    return str(message), error_code


def _session_from_payload(payload: Dict[str, Any]) -> Optional[AuthSession]:
    if not payload.get("access_token"):
        return None
    return AuthSession.model_validate(payload)


class SupabaseAuthClient:
    """Identity provider backed by the Supabase Auth REST API"""

    def __init__(self, config: dict, transport: Optional[httpx.AsyncBaseTransport] = None):
        supabase_url = (config.get("supabase_url") or "").rstrip("/")
        self.anon_key = config.get("supabase_anon_key")
        self.timeout = config.get("http_timeout_seconds", 10.0)
        self.auth_url = f"{supabase_url}/auth/v1"
        self._transport = transport

        self.is_configured = bool(supabase_url and self.anon_key)
        if not self.is_configured:
            logger.warning(
                "Supabase credentials not configured. "
                "Signup, confirmation and login will fail."
            )

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.anon_key or "",
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        access_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send one request to the auth API.

        Returns:
            Decoded JSON body, empty dict for bodiless responses

        Raises:
            IdentityProviderError: On transport failure or a non-2xx response
        """
        if not self.is_configured:
            raise IdentityProviderError("Identity provider is not configured")

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.timeout
            ) as client:
                response = await client.request(
                    method,
                    f"{self.auth_url}{path}",
                    json=json,
                    params=params,
                    headers=self._headers(access_token),
                )
        except httpx.RequestError as e:
            logger.error(f"Supabase auth request {method} {path} failed: {e}")
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {}

        if response.is_error:
            message, error_code = _error_message(
                payload, response.text or response.reason_phrase
            )
            logger.warning(
                f"Supabase auth {method} {path} rejected "
                f"({response.status_code}, {error_code}): {message}"
            )
            raise IdentityProviderError(
                message, status_code=response.status_code, error_code=error_code
            )

        return payload if isinstance(payload, dict) else {}

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: Dict[str, Any],
        email_redirect_to: str,
    ) -> SignUpResult:
        """
        Create an account.

        Args:
            email: Account email
            password: Account password
            metadata: User metadata stored on the account
            email_redirect_to: Where the confirmation link sends the user

        Returns:
            SignUpResult with ``session`` set only when the provider
            auto-confirmed the account
        """
        code_verifier, code_challenge = generate_pkce_pair()
        payload = await self._request(
            "POST",
            "/signup",
            json={
                "email": email,
                "password": password,
                "data": metadata,
                "code_challenge": code_challenge,
                "code_challenge_method": "s256",
            },
            params={"redirect_to": email_redirect_to},
        )

        session = _session_from_payload(payload)
        user_data = payload.get("user") if session else payload.get("user", payload)
        user = AuthUser.model_validate(user_data) if user_data else None
        return SignUpResult(user=user, session=session, code_verifier=code_verifier)

    async def exchange_code_for_session(
        self, auth_code: str, code_verifier: Optional[str]
    ) -> AuthSession:
        """Trade an emailed PKCE code for a session"""
        payload = await self._request(
            "POST",
            "/token",
            json={"auth_code": auth_code, "code_verifier": code_verifier or ""},
            params={"grant_type": "pkce"},
        )
        session = _session_from_payload(payload)
        if session is None:
            raise IdentityProviderError("Code exchange returned no session")
        return session

    async def verify_token_hash(self, token_hash: str, otp_type: str) -> AuthSession:
        """Verify a ``token_hash`` style email link"""
        payload = await self._request(
            "POST", "/verify", json={"type": otp_type, "token_hash": token_hash}
        )
        session = _session_from_payload(payload)
        if session is None:
            raise IdentityProviderError("Link verification returned no session")
        return session

    async def get_user(self, access_token: Optional[str]) -> Optional[AuthUser]:
        """Return the account behind an access token, None if the token is not valid"""
        if not access_token:
            return None
        try:
            payload = await self._request("GET", "/user", access_token=access_token)
        except IdentityProviderError as e:
            if e.status_code in (401, 403):
                return None
            raise
        return AuthUser.model_validate(payload)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        payload = await self._request(
            "POST",
            "/token",
            json={"email": email, "password": password},
            params={"grant_type": "password"},
        )
        session = _session_from_payload(payload)
        if session is None:
            raise IdentityProviderError("Sign in returned no session")
        return session

    async def resend_signup_confirmation(self, email: str, email_redirect_to: str) -> None:
        await self._request(
            "POST",
            "/resend",
            json={"type": "signup", "email": email},
            params={"redirect_to": email_redirect_to},
        )

    async def reset_password_for_email(self, email: str, redirect_to: str) -> str:
        """
        Send a password reset email.

        Returns:
            PKCE code verifier the reset link's code must be exchanged with
        """
        code_verifier, code_challenge = generate_pkce_pair()
        await self._request(
            "POST",
            "/recover",
            json={
                "email": email,
                "code_challenge": code_challenge,
                "code_challenge_method": "s256",
            },
            params={"redirect_to": redirect_to},
        )
        return code_verifier

    async def update_password(self, access_token: str, password: str) -> AuthUser:
        payload = await self._request(
            "PUT", "/user", json={"password": password}, access_token=access_token
        )
        return AuthUser.model_validate(payload)

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/logout", access_token=access_token)
