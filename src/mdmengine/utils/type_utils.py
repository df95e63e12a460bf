"""Type utilities for normalizing attribute type names."""

from mdmengine.errors import ValidationError
from mdmengine.models.attribute import AttributeType

# Map various type spellings to canonical attribute types. Lookup is done
# on the upper-cased input, so only upper-case keys are listed.
TYPE_MAPPING = {
    # Canonical names
    "TEXT": AttributeType.TEXT,
    "TEXTAREA": AttributeType.TEXTAREA,
    "NUMBER": AttributeType.NUMBER,
    "BOOLEAN": AttributeType.BOOLEAN,
    "DATE": AttributeType.DATE,
    "EMAIL": AttributeType.EMAIL,
    "URL": AttributeType.URL,
    "PHONE": AttributeType.PHONE,
    "SELECT": AttributeType.SELECT,
    "MULTI_SELECT": AttributeType.MULTI_SELECT,
    "USER": AttributeType.USER,
    "MULTI_USER": AttributeType.MULTI_USER,
    "ATTACHMENT": AttributeType.ATTACHMENT,
    "COMBO": AttributeType.COMBO,

    # Common aliases
    "STRING": AttributeType.TEXT,
    "STR": AttributeType.TEXT,
    "VARCHAR": AttributeType.TEXT,
    "LONG_TEXT": AttributeType.TEXTAREA,
    "LONGTEXT": AttributeType.TEXTAREA,
    "INT": AttributeType.NUMBER,
    "INTEGER": AttributeType.NUMBER,
    "FLOAT": AttributeType.NUMBER,
    "DECIMAL": AttributeType.NUMBER,
    "NUMERIC": AttributeType.NUMBER,
    "BOOL": AttributeType.BOOLEAN,
    "CHECKBOX": AttributeType.BOOLEAN,
    "DATETIME": AttributeType.DATE,
    "LINK": AttributeType.URL,
    "TEL": AttributeType.PHONE,
    "ENUM": AttributeType.SELECT,
    "MULTISELECT": AttributeType.MULTI_SELECT,
    "MULTI-SELECT": AttributeType.MULTI_SELECT,
    "USER_MULTI": AttributeType.MULTI_USER,
    "MULTIUSER": AttributeType.MULTI_USER,
    "FILE": AttributeType.ATTACHMENT,
    "COMBINATION": AttributeType.COMBO,
}

# Types whose stored value is a JSON array
MULTI_VALUED_TYPES = frozenset(
    t.value
    for t in (AttributeType.MULTI_SELECT, AttributeType.MULTI_USER, AttributeType.ATTACHMENT)
)

# Types that need a non-empty option list
OPTION_TYPES = frozenset((AttributeType.SELECT.value, AttributeType.MULTI_SELECT.value))


def normalize_type(type_str: str) -> AttributeType:
    """
    Normalize a type string to its canonical attribute type.

    Args:
        type_str: The type string to normalize (case-insensitive, supports aliases)

    Returns:
        The canonical AttributeType

    Raises:
        ValidationError: If the type string is not recognized
    """
    if not type_str:
        raise ValidationError("Type cannot be empty", reason="type")

    normalized = TYPE_MAPPING.get(str(type_str).strip().upper())
    if not normalized:
        valid_types = sorted(t.value for t in AttributeType)
        raise ValidationError(
            f"Invalid type: '{type_str}'. "
            f"Valid types: {', '.join(valid_types)}",
            reason="type",
        )
    return normalized


def is_multi_valued(attr_type: str) -> bool:
    """Whether values of this type are stored as a JSON array."""
    return attr_type in MULTI_VALUED_TYPES


def requires_options(attr_type: str) -> bool:
    return attr_type in OPTION_TYPES
