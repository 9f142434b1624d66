#!/usr/bin/env python3
"""VolunteerVerse - account registration, confirmation and login service"""

import uvicorn
from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware
from starlette_csrf.middleware import CSRFMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from volunteerverse.config import config, validate_config
from volunteerverse.logging_config import get_logger, setup_logging
from volunteerverse.routers.auth import router as auth_router
from volunteerverse.routers.health import health

# Configure logging (INFO -> stdout, WARNING/ERROR -> stderr)
setup_logging()
logger = get_logger(__name__)

missing_config = validate_config(config)
if missing_config:
    raise RuntimeError(
        "Missing required environment variables: "
        + ", ".join(key.upper() for key in missing_config)
    )

app = FastAPI(
    title="VolunteerVerse",
    description="Volunteer and organizer accounts: registration, email confirmation and login",
    version="1.0.0",
)

# Trust proxy headers so request.url reflects the original HTTPS origin
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

# The cookie session holds the provider tokens; PKCE verifiers live in their
# own longer-lived cookies (routers/auth.py)
session_secret_key = config["session_secret_key"]
if len(session_secret_key) < 32:
    raise RuntimeError(
        "SESSION_SECRET_KEY must be set to a secure random string (>=32 characters)."
    )

app.add_middleware(
    SessionMiddleware,
    secret_key=session_secret_key,
    max_age=1800,  # 30 minutes
    https_only=True,
    same_site="lax",  # Sent along when the user follows an emailed link
)

app.add_middleware(
    CSRFMiddleware,
    secret=session_secret_key,
    sensitive_cookies={"session"},
    cookie_secure=True,
    cookie_samesite="lax",
    header_name="X-CSRFToken",
)

app.include_router(health)
app.include_router(auth_router)


if __name__ == "__main__":
    port = config.get("port")
    logger.info(f"Starting VolunteerVerse on 0.0.0.0:{port}")

    try:
        uvicorn.run(
            app, host="0.0.0.0", port=port, log_level=config["log_level"].lower()
        )
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        raise
