"""Error taxonomy for the account flows.

Lower layers raise these; the flow services catch them and turn them into
user-facing outcomes.
"""

from typing import Optional


class RegistrationValidationError(ValueError):
    """A submitted form was rejected locally, before any network call."""

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


class IdentityProviderError(RuntimeError):
    """The identity provider rejected a request or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code


class AccountIntegrityError(RuntimeError):
    """An authenticated account is missing its role metadata or its profile."""


class ProfileStoreError(RuntimeError):
    """Reading or writing a profile row failed for infrastructure reasons."""
