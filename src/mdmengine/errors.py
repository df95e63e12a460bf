"""Error taxonomy for the MDM engine.

Every error carries enough structure for a caller to render field-level
feedback: the attribute code it concerns (if any), a machine-readable kind,
an optional reason and a human message.
"""

from typing import Any, Dict, Optional


class EngineError(Exception):
    """Base class for all engine errors."""

    kind = "error"

    def __init__(
        self,
        message: str,
        attribute: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.attribute = attribute
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for API responses."""
        return {
            "kind": self.kind,
            "attribute": self.attribute,
            "reason": self.reason,
            "message": self.message,
        }


class ValidationError(EngineError, ValueError):
    """Missing required value, duplicate unique value, duplicate code/name."""

    kind = "validation"


class AttributeTypeError(EngineError, TypeError):
    """A value does not coerce to the attribute's declared type."""

    kind = "type"


class ImmutableAttributeError(EngineError, ValueError):
    """Attempted direct write to a computed (COMBO) attribute."""

    kind = "immutable"


class CyclicReferenceError(EngineError, ValueError):
    """A combination column would reference itself transitively."""

    kind = "cyclic_reference"

    def __init__(self, message: str, attribute: Optional[str] = None, path=None):
        super().__init__(message, attribute=attribute, reason="cycle")
        self.path = list(path or [])


class UnknownAttributeError(EngineError, ValueError):
    """A write references an attribute that is not defined on the model."""

    kind = "unknown_attribute"


class DanglingReferenceError(EngineError):
    """A combination column member points at a deleted attribute.

    Never raised by the engine: instances are collected as diagnostics
    while rendering so that a stale definition cannot break a table.
    """

    kind = "dangling_reference"

    def __init__(self, message: str, attribute: Optional[str] = None, member_id: Optional[str] = None):
        super().__init__(message, attribute=attribute, reason="missing_member")
        self.member_id = member_id


class NotFoundError(EngineError, ValueError):
    """A data model, attribute, record or view does not exist."""

    kind = "not_found"


class AccessDeniedError(EngineError, PermissionError):
    """The caller is not allowed to touch the requested space."""

    kind = "access_denied"
