"""Base models for the MDM engine.

Persisted models serialize their timestamps as ISO-8601 text, so the output
of ``model_dump`` can go straight to the store or into a JSON response.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict, field_serializer


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class TimestampedModel(BaseModel):
    """A persisted row with creation and last-change times."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last change, if any")

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, dt: Optional[datetime], _info: Any) -> Optional[str]:
        return dt.isoformat() if dt else None

    def touch(self, when: Optional[datetime] = None) -> None:
        """Record a change at ``when`` (now by default)."""
        self.updated_at = when or utcnow()


class MDMEntityModel(TimestampedModel):
    """A persisted row addressed by its own generated id."""

    id: str = Field(default_factory=new_id, description="Unique identifier")


class MDMBaseModel(BaseModel):
    """Caller input and other values that are never stored on their own.

    Unknown fields are rejected so a misspelt key fails instead of being
    dropped.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        extra="forbid",
    )
