"""
Input validation and sanitization for contact form submissions.
Protects stored messages against HTML injection when shown in the dashboard.
"""

import re
from typing import Any, Mapping

REQUIRED_FIELDS = ("name", "email", "subject", "message")

EMAIL_PATTERN = re.compile(r'^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$', re.IGNORECASE)

# Ampersand must be escaped first so the other entities are not escaped twice
_ESCAPES = (
    ("&", "&amp;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
)


def validate_required(fields: Mapping[str, Any]) -> bool:
    """
    Check that name, email, subject and message are all present.

    Args:
        fields: Parsed request body

    Returns:
        True if every required field is a string that is non-empty after trimming
    """
    for field in REQUIRED_FIELDS:
        value = fields.get(field)
        if not isinstance(value, str) or not value.strip():
            return False
    return True


def validate_email(email: str) -> bool:
    """Basic local@domain.tld shape check, case-insensitive."""
    if not isinstance(email, str):
        return False
    return EMAIL_PATTERN.match(email.strip()) is not None


def sanitize(text: str) -> str:
    """
    Sanitize text input to prevent HTML injection.

    Trims whitespace, drops angle brackets entirely and escapes the remaining
    characters with markup significance.

    Args:
        text: Input text to sanitize

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    text = text.strip()
    text = text.replace("<", "").replace(">", "")
    for char, entity in _ESCAPES:
        text = text.replace(char, entity)
    return text


def sanitize_fields(fields: Mapping[str, str]) -> dict:
    """Sanitize each required field independently."""
    return {field: sanitize(fields[field]) for field in REQUIRED_FIELDS}
