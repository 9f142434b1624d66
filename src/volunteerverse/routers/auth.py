"""Account routes: registration, email confirmation, login and password reset"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from itsdangerous import BadSignature, URLSafeTimedSerializer
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session

from volunteerverse.auth.errors import AccountIntegrityError, IdentityProviderError
from volunteerverse.auth.models import (
    AuthSession,
    FailureKind,
    FlowOutcome,
    RegistrationForm,
    UserRole,
    read_role,
)
from volunteerverse.config import config
from volunteerverse.models.database import get_db
from volunteerverse.services.confirmation_service import ConfirmationService
from volunteerverse.services.identity_service import get_identity_provider
from volunteerverse.services.login_service import LoginService
from volunteerverse.services.password_reset_service import PasswordResetService
from volunteerverse.services.profile_service import ProfileService
from volunteerverse.services.registration_service import RegistrationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

template_dir = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(template_dir))

# Cookie session key for the provider tokens
SESSION_AUTH_KEY = "auth"

# PKCE verifiers outlive the 30 minute cookie session: they must still be
# readable when the emailed link is opened, up to the link's own expiry.
SIGNUP_FLOW_COOKIE = "signup_flow"
RESET_FLOW_COOKIE = "reset_flow"
flow_serializer = URLSafeTimedSerializer(
    config["session_secret_key"] or "", salt="volunteerverse-auth-flow"
)

FAILURE_STATUS_CODES = {
    FailureKind.VALIDATION: 400,
    FailureKind.DUPLICATE_EMAIL: 409,
    FailureKind.WEAK_PASSWORD: 400,
    FailureKind.PROVIDER_ERROR: 400,
    FailureKind.PROFILE_CREATION: 500,
    FailureKind.INVALID_CREDENTIALS: 401,
    FailureKind.EMAIL_NOT_CONFIRMED: 403,
    FailureKind.ROLE_NOT_SET: 403,
    FailureKind.PROFILE_NOT_FOUND: 404,
    FailureKind.STORE_UNAVAILABLE: 500,
    FailureKind.LINK_INVALID: 400,
    FailureKind.MISSING_CODE: 400,
    FailureKind.EXCHANGE_FAILED: 400,
    FailureKind.NO_SESSION: 401,
}


class RegisterRequest(RegistrationForm):
    role: UserRole


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class EmailRequest(BaseModel):
    email: str = ""


class NewPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")


def _public_url(request: Request, route_name: str) -> str:
    """Absolute URL for an emailed link, preferring the configured public origin"""
    base_url = config.get("app_base_url")
    if base_url:
        return f"{base_url.rstrip('/')}{request.app.url_path_for(route_name)}"
    return str(request.url_for(route_name))


def _store_session(request: Request, session: AuthSession, role: Optional[UserRole] = None):
    previous = request.session.get(SESSION_AUTH_KEY) or {}
    request.session[SESSION_AUTH_KEY] = {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token or previous.get("refresh_token"),
        "user_id": session.user.id if session.user else previous.get("user_id"),
        "role": role.value if role else previous.get("role"),
    }


def _access_token(request: Request) -> Optional[str]:
    return (request.session.get(SESSION_AUTH_KEY) or {}).get("access_token")


def _set_flow_cookie(
    response, name: str, code_verifier: str, account_id: Optional[str] = None
):
    value = flow_serializer.dumps(
        {"code_verifier": code_verifier, "account_id": account_id}
    )
    response.set_cookie(
        name,
        value,
        max_age=config["email_link_max_age_seconds"],
        path="/auth",
        secure=True,
        httponly=True,
        samesite="lax",
    )


def _read_flow_cookie(request: Request, name: str) -> dict:
    """Verifier data from a flow cookie, empty when absent, tampered or expired"""
    value = request.cookies.get(name)
    if not value:
        return {}
    try:
        return flow_serializer.loads(value, max_age=config["email_link_max_age_seconds"])
    except BadSignature:
        logger.warning(f"Ignoring invalid or expired {name} cookie")
        return {}


def _json_outcome(outcome: FlowOutcome) -> JSONResponse:
    status_code = 200
    if not outcome.ok:
        status_code = FAILURE_STATUS_CODES.get(outcome.failure_kind, 400)
    return JSONResponse(status_code=status_code, content=outcome.to_response())


def _render_status(request: Request, outcome: FlowOutcome, title: str, delay: int = 0):
    status_code = 200
    if not outcome.ok:
        status_code = FAILURE_STATUS_CODES.get(outcome.failure_kind, 400)
    return templates.TemplateResponse(
        request,
        "auth_status.html",
        {
            "title": title,
            "outcome": outcome,
            "recovery_links": outcome.recovery_links(),
            "redirect_delay_seconds": delay,
        },
        status_code=status_code,
    )


def _render_email_form(request: Request, title: str, action: str, submit_label: str):
    return templates.TemplateResponse(
        request,
        "auth_email_form.html",
        {"title": title, "action": action, "submit_label": submit_label},
    )


@router.post("/register")
async def register(
    request: Request,
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
):
    """Create an account and, when the provider allows it, its profile"""
    registration_service = RegistrationService(
        identity_provider, ProfileService(db), _public_url(request, "auth_callback")
    )
    outcome = await registration_service.register(payload.role, payload)

    if outcome.session:
        _store_session(request, outcome.session, outcome.role)

    response = _json_outcome(outcome)
    if outcome.code_verifier:
        _set_flow_cookie(
            response, SIGNUP_FLOW_COOKIE, outcome.code_verifier, outcome.account_id
        )
    return response


@router.get("/callback")
async def auth_callback(
    request: Request,
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
):
    """Landing page for the emailed confirmation link"""
    delay = config["confirmation_redirect_delay_seconds"]
    confirmation_service = ConfirmationService(
        identity_provider, ProfileService(db), redirect_delay_seconds=delay
    )
    signup_flow = _read_flow_cookie(request, SIGNUP_FLOW_COOKIE)
    outcome = await confirmation_service.handle_callback(
        request.query_params,
        code_verifier=signup_flow.get("code_verifier"),
        current_access_token=_access_token(request),
        signup_account_id=signup_flow.get("account_id"),
    )

    # The signup flow cookie stays until it expires so a reload of the link
    # can still be tied to this browser's account
    if outcome.session:
        _store_session(request, outcome.session, outcome.role)

    return _render_status(request, outcome, "Email confirmation", delay if outcome.ok else 0)


@router.post("/login")
async def login(
    request: Request,
    payload: LoginRequest,
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
):
    """Sign in with email and password"""
    login_service = LoginService(identity_provider, ProfileService(db))
    outcome = await login_service.login(payload.email, payload.password)

    if outcome.ok and outcome.session:
        _store_session(request, outcome.session, outcome.role)

    return _json_outcome(outcome)


@router.get("/resend")
async def resend_confirmation_page(request: Request):
    """Form asking for the email to resend the confirmation link to"""
    return _render_email_form(
        request,
        title="Resend confirmation email",
        action=request.app.url_path_for("resend_confirmation"),
        submit_label="Resend email",
    )


@router.post("/resend")
async def resend_confirmation(
    request: Request,
    payload: EmailRequest,
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
):
    """Send the signup confirmation email again"""
    registration_service = RegistrationService(
        identity_provider, ProfileService(db), _public_url(request, "auth_callback")
    )
    return _json_outcome(await registration_service.resend_confirmation(payload.email))


@router.get("/reset-password")
async def reset_password_page(request: Request):
    """Form asking for the email to send a password reset link to"""
    return _render_email_form(
        request,
        title="Reset password",
        action=request.app.url_path_for("request_password_reset"),
        submit_label="Send reset link",
    )


@router.post("/request-reset")
async def request_password_reset(
    request: Request,
    payload: EmailRequest,
    identity_provider=Depends(get_identity_provider),
):
    """Email a password reset link"""
    reset_service = PasswordResetService(
        identity_provider, _public_url(request, "reset_password_confirm_page")
    )
    outcome = await reset_service.request_reset(payload.email)
    response = _json_outcome(outcome)
    if outcome.code_verifier:
        _set_flow_cookie(response, RESET_FLOW_COOKIE, outcome.code_verifier)
    return response


@router.get("/reset-password/confirm")
async def reset_password_confirm_page(
    request: Request,
    identity_provider=Depends(get_identity_provider),
):
    """Landing page for the emailed reset link"""
    reset_service = PasswordResetService(identity_provider, str(request.url))
    outcome = await reset_service.begin_reset(
        request.query_params,
        code_verifier=_read_flow_cookie(request, RESET_FLOW_COOKIE).get("code_verifier"),
    )
    if outcome.session:
        _store_session(request, outcome.session)
    response = _render_status(request, outcome, "Reset password")
    if outcome.session:
        response.delete_cookie(
            RESET_FLOW_COOKIE, path="/auth", secure=True, httponly=True, samesite="lax"
        )
    return response


@router.post("/reset-password/confirm")
async def reset_password_confirm(
    request: Request,
    payload: NewPasswordRequest,
    identity_provider=Depends(get_identity_provider),
):
    """Set a new password for the account signed in by the reset link"""
    reset_service = PasswordResetService(identity_provider, str(request.url))
    outcome = await reset_service.complete_reset(
        _access_token(request), payload.password, payload.confirm_password
    )
    return _json_outcome(outcome)


@router.post("/logout")
async def logout(request: Request, identity_provider=Depends(get_identity_provider)):
    """Revoke the provider session and clear the cookie session"""
    access_token = _access_token(request)
    if access_token:
        try:
            await identity_provider.sign_out(access_token)
        except IdentityProviderError as e:
            logger.warning(f"Provider sign out failed, clearing local session anyway: {e}")
    request.session.clear()
    return RedirectResponse(url="/login", status_code=303)


@router.get("/session")
async def current_session(
    request: Request, identity_provider=Depends(get_identity_provider)
):
    """Return the signed-in account, 401 when there is none"""
    user = None
    access_token = _access_token(request)
    if access_token:
        try:
            user = await identity_provider.get_user(access_token)
        except IdentityProviderError as e:
            logger.warning(f"Could not load session user: {e}")
    if user is None:
        request.session.pop(SESSION_AUTH_KEY, None)
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        role = read_role(user.user_metadata).value
    except AccountIntegrityError:
        role = None

    return {
        "id": user.id,
        "email": user.email,
        "role": role,
        "email_confirmed": user.email_confirmed_at is not None,
    }
