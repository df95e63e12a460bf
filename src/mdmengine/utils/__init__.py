"""Utility modules for the MDM engine."""

from mdmengine.utils.name_validator import (
    validate_code,
    validate_model_name,
    validate_slug,
    slugify,
    InvalidNameError,
)
from mdmengine.utils.type_utils import (
    normalize_type,
    is_multi_valued,
    requires_options,
)

__all__ = [
    "validate_code",
    "validate_model_name",
    "validate_slug",
    "slugify",
    "InvalidNameError",
    "normalize_type",
    "is_multi_valued",
    "requires_options",
]
