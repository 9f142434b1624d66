"""Registration form validation, run before any call to the identity provider"""

import re

from volunteerverse.auth.errors import RegistrationValidationError
from volunteerverse.auth.models import RegistrationForm, UserRole

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

BASE_REQUIRED_FIELDS = (
    "first_name",
    "last_name",
    "sex",
    "email",
    "password",
    "confirm_password",
    "country",
    "phone",
)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def validate_registration(role: UserRole, form: RegistrationForm) -> None:
    """
    Validate a registration form, stopping at the first failed check.

    Checks run in order: required fields, email shape, password
    confirmation, password length, terms acceptance.

    Args:
        role: Role the account is being registered for
        form: Submitted form

    Raises:
        RegistrationValidationError: With the ``reason`` of the failed check
    """
    required = list(BASE_REQUIRED_FIELDS)
    if role == UserRole.ORGANIZER:
        required.append("organization_name")

    missing = [name for name in required if not str(getattr(form, name)).strip()]
    if missing:
        if missing == ["organization_name"]:
            message = "Organization name is required."
        else:
            message = "Please fill in all required fields."
        raise RegistrationValidationError("missing_fields", message)

    if not is_valid_email(form.email.strip()):
        raise RegistrationValidationError(
            "invalid_email", "Please enter a valid email address."
        )

    if form.password != form.confirm_password:
        raise RegistrationValidationError(
            "password_mismatch", "Passwords do not match."
        )

    if len(form.password) < MIN_PASSWORD_LENGTH:
        raise RegistrationValidationError(
            "password_too_short",
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
        )

    if not form.agree_to_terms:
        raise RegistrationValidationError(
            "terms_not_accepted", "You must agree to the terms & policy."
        )
