"""Record and EAV value models."""

from typing import Dict, List, Optional
from pydantic import Field

from .base import MDMBaseModel, MDMEntityModel, TimestampedModel


class DataRecord(MDMEntityModel):
    """One instance of a data model."""

    data_model_id: str = Field(description="Owning data model id")
    name: Optional[str] = Field(default=None, description="Display label")
    created_by: Optional[str] = Field(default=None, description="Caller that created the record")


class DataRecordValue(TimestampedModel):
    """One EAV cell, keyed by record and attribute; the value is always text."""

    record_id: str
    attribute_id: str
    value: str


class Diagnostic(MDMBaseModel):
    """Non-fatal finding surfaced while rendering a record."""

    kind: str
    attribute: Optional[str] = None
    message: str


class ResolvedRecord(DataRecord):
    """A record with its stored values and its derived combination columns."""

    values: Dict[str, str] = Field(
        default_factory=dict, description="Attribute code to stored text"
    )
    derived: Dict[str, str] = Field(
        default_factory=dict, description="COMBO attribute code to rendered value"
    )
    diagnostics: List[Diagnostic] = Field(default_factory=list)
