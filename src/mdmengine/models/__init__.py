"""Core data models for the MDM engine."""

from .base import MDMBaseModel, MDMEntityModel, TimestampedModel
from .data_model import DataModel, DataModelPatch, SourceType, SlugSource
from .attribute import (
    Attribute,
    AttributeOption,
    AttributePatch,
    AttributeSpec,
    AttributeType,
    ComboSpec,
    ComboStrategy,
    MemberRef,
    OptionSpec,
)
from .record import DataRecord, DataRecordValue, Diagnostic, ResolvedRecord
from .view import ViewConfig, ComboColumnSpec

__all__ = [
    "MDMBaseModel",
    "MDMEntityModel",
    "TimestampedModel",
    "DataModel",
    "DataModelPatch",
    "SourceType",
    "SlugSource",
    "Attribute",
    "AttributeOption",
    "AttributePatch",
    "AttributeSpec",
    "AttributeType",
    "ComboSpec",
    "ComboStrategy",
    "MemberRef",
    "OptionSpec",
    "DataRecord",
    "DataRecordValue",
    "Diagnostic",
    "ResolvedRecord",
    "ViewConfig",
    "ComboColumnSpec",
]
