"""Data model (entity type) models."""

from enum import Enum
from typing import List, Optional
from pydantic import Field

from .base import MDMEntityModel, MDMBaseModel


class SourceType(str, Enum):
    """Where the records of a data model originate."""

    INTERNAL = "INTERNAL"
    EXTERNAL = "EXTERNAL"


class SlugSource(str, Enum):
    """Provenance of a data model's slug.

    Only an ``auto`` slug follows later renames of the model.
    """

    AUTO = "auto"
    SUPPLIED = "supplied"
    EDITED = "edited"


class DataModel(MDMEntityModel):
    """Represents one entity type with a runtime-defined attribute set."""

    tenant: str = Field(default="default", description="Owning tenant")
    name: str = Field(description="Internal name, unique within the tenant")
    display_name: str = Field(description="Human readable name")
    description: Optional[str] = Field(default=None, description="Model description")
    slug: str = Field(description="URL-safe identifier")
    slug_source: SlugSource = Field(
        default=SlugSource.AUTO, description="Whether the slug was derived or set by a user"
    )
    source_type: SourceType = Field(default=SourceType.INTERNAL)
    is_active: bool = Field(default=True)
    space_ids: List[str] = Field(
        default_factory=list, description="Spaces this model is visible in"
    )


class DataModelPatch(MDMBaseModel):
    """Partial update for a data model; unset fields are left untouched."""

    name: Optional[str] = None
    display_name: Optional[str] = None
    description: Optional[str] = None
    slug: Optional[str] = None
    source_type: Optional[SourceType] = None
    is_active: Optional[bool] = None
