"""Configuration loader for VolunteerVerse with environment-specific support"""

import os
from pathlib import Path

from dotenv import load_dotenv

project_dir = Path(__file__).parent.parent.parent
env_path = project_dir / ".env"

# Load .env file if it exists. For local development only.
if env_path.exists():
    load_dotenv(env_path)

REQUIRED_KEYS = (
    "supabase_url",
    "supabase_anon_key",
    "database_url",
    "session_secret_key",
)

# Configuration dictionary - set once at initialization
config = {
    "supabase_url": os.getenv("SUPABASE_URL"),
    "supabase_anon_key": os.getenv("SUPABASE_ANON_KEY"),
    "database_url": os.getenv("DATABASE_URL"),
    "session_secret_key": os.getenv("SESSION_SECRET_KEY"),
    # Public origin used in emailed links. Falls back to the request URL.
    "app_base_url": os.getenv("APP_BASE_URL"),
    "port": int(os.getenv("PORT", "8000")),
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
    "environment": os.getenv("ENVIRONMENT", "development"),
    "confirmation_redirect_delay_seconds": int(
        os.getenv("CONFIRMATION_REDIRECT_DELAY_SECONDS", "2")
    ),
    "http_timeout_seconds": float(os.getenv("HTTP_TIMEOUT_SECONDS", "10")),
    # Lifetime of the cookie holding a PKCE verifier. Match the provider's
    # email link expiry (Supabase default: 24 hours).
    "email_link_max_age_seconds": int(
        os.getenv("EMAIL_LINK_MAX_AGE_SECONDS", "86400")
    ),
}


def validate_config(cfg: dict) -> list[str]:
    """
    Return the required configuration keys that are missing or empty.

    Args:
        cfg: Configuration dictionary to check

    Returns:
        Names of the missing keys, empty when the configuration is usable
    """
    return [key for key in REQUIRED_KEYS if not cfg.get(key)]
