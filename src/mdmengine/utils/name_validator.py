"""Name validation utilities for MDM entities.

Attribute codes become keys in record payloads and exports, so they are
restricted to identifier-like strings. Data model names are free text; the
URL-safe slug is derived from them.
"""

import re
from typing import Optional

from mdmengine.errors import ValidationError


# Attribute codes: letters, digits and underscore, starting with a letter
VALID_CODE_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")
_SLUG_DASHES = re.compile(r"-{2,}")

MAX_CODE_LENGTH = 63
MAX_NAME_LENGTH = 255


class InvalidNameError(ValidationError):
    """Raised when a name or code doesn't meet validation requirements."""

    def __init__(self, message: str, attribute: Optional[str] = None):
        super().__init__(message, attribute=attribute, reason="name")


def validate_code(code: str) -> None:
    """Validate an attribute code.

    Valid codes must:
    - Start with a letter
    - Contain only letters, numbers and underscore (_)
    - Not exceed 63 characters

    Raises:
        InvalidNameError: If the code is invalid
    """
    if not code:
        raise InvalidNameError("Attribute code cannot be empty")

    if len(code) > MAX_CODE_LENGTH:
        raise InvalidNameError(
            f"Attribute code cannot exceed {MAX_CODE_LENGTH} characters",
            attribute=code,
        )

    if not VALID_CODE_PATTERN.match(code):
        raise InvalidNameError(
            f"Invalid attribute code '{code}'. "
            f"Codes must start with a letter and contain only letters, "
            f"numbers, and underscore (_).",
            attribute=code,
        )


def validate_model_name(name: Optional[str]) -> str:
    """Validate a data model name and return it stripped of surrounding whitespace.

    Raises:
        InvalidNameError: If the name is empty, too long, or has control characters
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidNameError("Data model name cannot be empty")

    if len(cleaned) > MAX_NAME_LENGTH:
        raise InvalidNameError(
            f"Data model name cannot exceed {MAX_NAME_LENGTH} characters"
        )

    if any(ord(c) < 32 for c in cleaned):
        raise InvalidNameError("Data model name contains invalid control characters")

    return cleaned


def slugify(name: str) -> str:
    """Derive a URL-safe slug from a name.

    Lowercases, replaces every run of characters outside [a-z0-9] with a
    dash, collapses repeated dashes and strips dashes from both ends.
    """
    slug = _SLUG_INVALID.sub("-", name.lower())
    slug = _SLUG_DASHES.sub("-", slug)
    return slug.strip("-")


def validate_slug(slug: str) -> str:
    """Normalize a user supplied slug; an empty result is an error."""
    normalized = slugify(slug or "")
    if not normalized:
        raise InvalidNameError(f"Slug '{slug}' contains no usable characters")
    return normalized

