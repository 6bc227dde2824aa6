"""
Input validation for account and deck forms.

Every check here runs before any store access and raises ValidationError.
"""

import re

from manatomb.config import MAX_DECK_NAME_LENGTH, MIN_PASSWORD_LENGTH
from manatomb.models.failure import ValidationError

DISPLAY_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9 .,_'-]{1,32}$")


def normalize_email(email: str) -> str:
    """Trim and lower-case an email address."""
    email = email.strip().lower()
    if not email:
        raise ValidationError("Email is required.", field="email")
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError("Please enter a valid email address.", field="email")
    return email


def validate_password(password: str, field: str = "password") -> str:
    if not password:
        raise ValidationError("Password is required.", field=field)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.",
            field=field,
        )
    return password


def validate_display_name(display_name: str) -> str:
    display_name = display_name.strip()
    if not display_name:
        raise ValidationError("Display name is required.", field="display_name")
    if not DISPLAY_NAME_PATTERN.match(display_name):
        raise ValidationError(
            "Please choose a simpler display name (letters, numbers, spaces, basic punctuation).",
            field="display_name",
        )
    return display_name


def validate_deck_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("Deck name is required.", field="name")
    if len(name) > MAX_DECK_NAME_LENGTH:
        raise ValidationError(
            f"Deck name must be at most {MAX_DECK_NAME_LENGTH} characters.",
            field="name",
        )
    return name
