"""Per-type coercion and validation of attribute values.

Every attribute type has one coercer that turns caller input into the text
stored in ``data_record_values``. Coercers only see non-empty input; empty
input (None, "" or an empty list) means "no value" and is handled by
:func:`coerce_value` before dispatch. TEXT and TEXTAREA keep whitespace-only
input as written; for every other type it counts as empty.
"""

import json
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from mdmengine.errors import (
    AttributeTypeError,
    ImmutableAttributeError,
    ValidationError,
)
from mdmengine.models.attribute import Attribute, AttributeType
from mdmengine.utils.type_utils import is_multi_valued

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-().]{7,20}$")

DISPLAY_SEPARATOR = ", "

# Largest decimal exponent a NUMBER may carry
MAX_NUMBER_EXPONENT = 1000

VERBATIM_TYPES = {AttributeType.TEXT.value, AttributeType.TEXTAREA.value}


def is_empty(raw: Any) -> bool:
    """Whether raw input means "no value"."""
    if raw is None:
        return True
    if isinstance(raw, str):
        return raw == ""
    if isinstance(raw, (list, tuple, set)):
        return len(raw) == 0
    return False


def _as_text(attr: Attribute, raw: Any) -> str:
    if isinstance(raw, (list, tuple, set, dict)):
        raise AttributeTypeError(
            f"Attribute '{attr.code}' expects a single value, got {type(raw).__name__}",
            attribute=attr.code,
        )
    if isinstance(raw, bool):
        return "true" if raw else "false"
    return str(raw)


def _as_list(attr: Attribute, raw: Any) -> List[str]:
    """Split multi-valued input into its members.

    Accepts a list, a JSON array string or a comma separated string.
    """
    if isinstance(raw, (list, tuple, set)):
        items = list(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if text.startswith("["):
            try:
                items = json.loads(text)
            except json.JSONDecodeError:
                raise AttributeTypeError(
                    f"Attribute '{attr.code}' got a malformed JSON list",
                    attribute=attr.code,
                )
            if not isinstance(items, list):
                raise AttributeTypeError(
                    f"Attribute '{attr.code}' expects a list", attribute=attr.code
                )
        else:
            items = text.split(",")
    else:
        raise AttributeTypeError(
            f"Attribute '{attr.code}' expects a list, got {type(raw).__name__}",
            attribute=attr.code,
        )

    members: List[str] = []
    for item in items:
        if isinstance(item, (list, tuple, set, dict)):
            raise AttributeTypeError(
                f"Attribute '{attr.code}' does not accept nested lists",
                attribute=attr.code,
            )
        if item is None:
            continue
        text = str(item).strip()
        if text and text not in members:
            members.append(text)
    return members


def _coerce_text(attr: Attribute, raw: Any) -> str:
    return _as_text(attr, raw)


def _coerce_number(attr: Attribute, raw: Any) -> str:
    if isinstance(raw, bool):
        raise AttributeTypeError(
            f"Attribute '{attr.code}' expects a number, got a boolean",
            attribute=attr.code,
        )
    if isinstance(raw, float):
        raw = repr(raw)
    try:
        number = Decimal(str(raw).strip())
    except (ArithmeticError, ValueError):
        raise AttributeTypeError(
            f"Attribute '{attr.code}' expects a number, got '{raw}'",
            attribute=attr.code,
        )
    if not number.is_finite():
        raise AttributeTypeError(
            f"Attribute '{attr.code}' expects a finite number, got '{raw}'",
            attribute=attr.code,
        )
    if number and abs(number.adjusted()) > MAX_NUMBER_EXPONENT:
        raise AttributeTypeError(
            f"Attribute '{attr.code}' got a number out of range: '{raw}'",
            attribute=attr.code,
        )
    try:
        canonical = format(number.normalize(), "f")
    except ArithmeticError:
        raise AttributeTypeError(
            f"Attribute '{attr.code}' got a number out of range: '{raw}'",
            attribute=attr.code,
        )
    return "0" if canonical == "-0" else canonical


def _coerce_boolean(attr: Attribute, raw: Any) -> str:
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower()
    raise AttributeTypeError(
        f"Attribute '{attr.code}' expects 'true' or 'false', got '{raw}'",
        attribute=attr.code,
    )


def _coerce_date(attr: Attribute, raw: Any) -> str:
    if isinstance(raw, (date, datetime)):
        return raw.isoformat()
    text = _as_text(attr, raw).strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).isoformat()
    except ValueError:
        raise AttributeTypeError(
            f"Attribute '{attr.code}' expects an ISO-8601 date, got '{text}'",
            attribute=attr.code,
        )


def _format_checker(pattern: "re.Pattern", label: str) -> Callable[[Attribute, Any], str]:
    def check(attr: Attribute, raw: Any) -> str:
        text = _as_text(attr, raw).strip()
        if not pattern.match(text):
            raise ValidationError(
                f"Attribute '{attr.code}' is not a valid {label}: '{text}'",
                attribute=attr.code,
                reason="format",
            )
        return text

    return check


def _check_option(attr: Attribute, value: str) -> str:
    if value not in attr.option_values():
        raise ValidationError(
            f"'{value}' is not an option of attribute '{attr.code}'",
            attribute=attr.code,
            reason="option",
        )
    return value


def _coerce_select(attr: Attribute, raw: Any) -> str:
    return _check_option(attr, _as_text(attr, raw).strip())


def _coerce_multi_select(attr: Attribute, raw: Any) -> str:
    members = [_check_option(attr, m) for m in _as_list(attr, raw)]
    return json.dumps(members)


def _coerce_user(attr: Attribute, raw: Any) -> str:
    return _as_text(attr, raw).strip()


def _coerce_reference_list(attr: Attribute, raw: Any) -> str:
    return json.dumps(_as_list(attr, raw))


def _reject_combo(attr: Attribute, raw: Any) -> str:
    raise ImmutableAttributeError(
        f"Attribute '{attr.code}' is a combination column and cannot be written",
        attribute=attr.code,
        reason="computed",
    )


COERCERS: Dict[str, Callable[[Attribute, Any], str]] = {
    AttributeType.TEXT.value: _coerce_text,
    AttributeType.TEXTAREA.value: _coerce_text,
    AttributeType.NUMBER.value: _coerce_number,
    AttributeType.BOOLEAN.value: _coerce_boolean,
    AttributeType.DATE.value: _coerce_date,
    AttributeType.EMAIL.value: _format_checker(EMAIL_PATTERN, "email address"),
    AttributeType.URL.value: _format_checker(URL_PATTERN, "URL"),
    AttributeType.PHONE.value: _format_checker(PHONE_PATTERN, "phone number"),
    AttributeType.SELECT.value: _coerce_select,
    AttributeType.MULTI_SELECT.value: _coerce_multi_select,
    AttributeType.USER.value: _coerce_user,
    AttributeType.MULTI_USER.value: _coerce_reference_list,
    AttributeType.ATTACHMENT.value: _coerce_reference_list,
    AttributeType.COMBO.value: _reject_combo,
}


def coerce_value(attr: Attribute, raw: Any) -> Optional[str]:
    """Coerce raw input to the text stored for ``attr``.

    Returns None for empty input. COMBO attributes are rejected even when
    the input is empty.

    Raises:
        ImmutableAttributeError: ``attr`` is a combination column
        AttributeTypeError: input does not coerce to the attribute's type
        ValidationError: input fails a format or option check
    """
    if attr.is_combo:
        _reject_combo(attr, raw)
    if is_empty(raw):
        return None
    attr_type = getattr(attr.type, "value", attr.type)
    if isinstance(raw, str) and attr_type not in VERBATIM_TYPES and not raw.strip():
        return None
    coercer = COERCERS[attr_type]
    stored = coercer(attr, raw)
    if is_multi_valued(attr.type) and stored == "[]":
        return None
    return stored


def stored_members(stored: Optional[str]) -> List[str]:
    """Decode a stored multi-valued value into its members."""
    if not stored:
        return []
    try:
        members = json.loads(stored)
    except json.JSONDecodeError:
        return [stored]
    return [str(m) for m in members] if isinstance(members, list) else [str(members)]


def display_value(attr: Attribute, stored: Optional[str]) -> str:
    """Render a stored value for display; list types join with ", "."""
    if stored is None:
        return ""
    if is_multi_valued(attr.type):
        return DISPLAY_SEPARATOR.join(stored_members(stored))
    return stored
