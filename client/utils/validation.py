"""Local validation for form input, applied before anything is sent to the backend."""

from typing import Optional

import config
from errors import ValidationError


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def is_complete_invite_code(code: Optional[str]) -> bool:
    """Invite codes shorter than the minimum never trigger a members lookup."""
    return code is not None and len(code.strip()) >= config.MIN_INVITE_CODE_LENGTH


def validate_trip_form(trip_name: Optional[str], members: list[str]) -> dict[str, str]:
    """
    Validate the create-trip form.

    Returns:
        Mapping of field name to error message; empty when the form is valid.
    """
    errors = {}

    if is_blank(trip_name):
        errors["tripName"] = "Trip name is required"
    elif len(trip_name.strip()) < config.MIN_TRIP_NAME_LENGTH:
        errors["tripName"] = f"Trip name must be at least {config.MIN_TRIP_NAME_LENGTH} characters"

    if len(members) > config.MAX_TRIP_MEMBERS:
        errors["members"] = f"Maximum {config.MAX_TRIP_MEMBERS} members allowed"

    return errors


def validate_credentials(email: Optional[str], password: Optional[str]) -> Optional[ValidationError]:
    if is_blank(email):
        return ValidationError("Please enter your email")
    if password is None or len(password) < config.MIN_PASSWORD_LENGTH:
        return ValidationError(f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters")
    return None
