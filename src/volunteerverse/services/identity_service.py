"""Centralized identity provider for the application"""

import logging
import threading

from volunteerverse.backends.supabase_auth_client import SupabaseAuthClient
from volunteerverse.config import config

_identity_lock = threading.Lock()
_identity_provider = None

logger = logging.getLogger(__name__)


def get_identity_provider() -> SupabaseAuthClient:
    """Get or create the global identity provider client"""
    global _identity_provider
    if _identity_provider is None:
        with _identity_lock:
            if _identity_provider is None:
                _identity_provider = SupabaseAuthClient(config)
                logger.info("Initialized global Supabase auth client")
    return _identity_provider
