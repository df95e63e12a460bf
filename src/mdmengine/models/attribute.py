"""Attribute, option and combination column models."""

from enum import Enum
from typing import List, Optional, Any
from pydantic import BaseModel, Field, ConfigDict, field_validator

from .base import MDMEntityModel, MDMBaseModel


class AttributeType(str, Enum):
    """Closed set of attribute kinds."""

    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    EMAIL = "EMAIL"
    URL = "URL"
    PHONE = "PHONE"
    SELECT = "SELECT"
    MULTI_SELECT = "MULTI_SELECT"
    USER = "USER"
    MULTI_USER = "MULTI_USER"
    ATTACHMENT = "ATTACHMENT"
    COMBO = "COMBO"


class ComboStrategy(str, Enum):
    """How a combination column joins its members."""

    LEFT_RIGHT = "LEFT_RIGHT"
    GROUPING = "GROUPING"


class MemberRef(BaseModel):
    """Reference from a combination column to another attribute of the same model.

    Persisted specs always carry ``attribute_id``; ``code`` is kept as the
    label used in diagnostics once the member has been deleted.
    """

    model_config = ConfigDict(extra="forbid")

    attribute_id: Optional[str] = Field(default=None, description="Referenced attribute id")
    code: Optional[str] = Field(default=None, description="Referenced attribute code")


class ComboSpec(MDMBaseModel):
    """Declarative definition of a combination column."""

    strategy: ComboStrategy = Field(default=ComboStrategy.LEFT_RIGHT)
    separator: str = Field(default=" ", description="Inserted between member values")
    members: List[MemberRef] = Field(default_factory=list)

    @field_validator("strategy", mode="before")
    @classmethod
    def normalize_strategy(cls, v: Any) -> Any:
        """Accept 'left-right' / 'grouping' spellings."""
        if isinstance(v, str):
            return v.strip().upper().replace("-", "_")
        return v

    @field_validator("members", mode="before")
    @classmethod
    def coerce_members(cls, v: Any) -> Any:
        """Allow bare codes in place of member objects."""
        if isinstance(v, list):
            return [{"code": m} if isinstance(m, str) else m for m in v]
        return v


class AttributeOption(MDMEntityModel):
    """One selectable value of an enumerated attribute."""

    attribute_id: str = Field(description="Owning attribute id")
    value: str = Field(description="Stored value")
    label: str = Field(description="Display label")
    color: Optional[str] = Field(default=None)
    display_order: int = Field(default=0)


class OptionSpec(BaseModel):
    """Option as supplied when creating or updating an attribute."""

    model_config = ConfigDict(extra="forbid")

    value: str
    label: Optional[str] = None
    color: Optional[str] = None
    display_order: Optional[int] = None


def _coerce_options(v: Any) -> Any:
    if isinstance(v, list):
        return [{"value": o} if isinstance(o, str) else o for o in v]
    return v


class Attribute(MDMEntityModel):
    """A field definition owned by exactly one data model."""

    data_model_id: str = Field(description="Owning data model id")
    code: str = Field(description="Machine key, unique within the model")
    display_name: str = Field(description="Column header")
    description: Optional[str] = Field(default=None)
    type: AttributeType = Field(description="Attribute kind")
    is_required: bool = Field(default=False)
    is_unique: bool = Field(default=False)
    display_order: int = Field(default=0, description="Default column position")
    default_value: Optional[str] = Field(default=None)
    options: List[AttributeOption] = Field(default_factory=list)
    allowed_file_types: Optional[List[str]] = Field(default=None)
    max_file_size: Optional[int] = Field(default=None, description="Bytes")
    combo: Optional[ComboSpec] = Field(default=None, description="COMBO definition")

    @property
    def is_combo(self) -> bool:
        return self.type == AttributeType.COMBO

    def option_values(self) -> List[str]:
        return [o.value for o in self.options]


class AttributeSpec(MDMBaseModel):
    """Input for creating an attribute."""

    code: str
    type: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    is_required: bool = False
    is_unique: bool = False
    display_order: Optional[int] = None
    default_value: Optional[str] = None
    options: Optional[List[OptionSpec]] = None
    allowed_file_types: Optional[List[str]] = None
    max_file_size: Optional[int] = None
    combo: Optional[ComboSpec] = None

    @field_validator("options", mode="before")
    @classmethod
    def coerce_options(cls, v: Any) -> Any:
        """Allow bare strings in place of option objects."""
        return _coerce_options(v)


class AttributePatch(MDMBaseModel):
    """Partial update for an attribute; unset fields are left untouched."""

    code: Optional[str] = None
    type: Optional[str] = None
    display_name: Optional[str] = None
    description: Optional[str] = None
    is_required: Optional[bool] = None
    is_unique: Optional[bool] = None
    display_order: Optional[int] = None
    default_value: Optional[str] = None
    options: Optional[List[OptionSpec]] = None
    allowed_file_types: Optional[List[str]] = None
    max_file_size: Optional[int] = None
    combo: Optional[ComboSpec] = None

    @field_validator("options", mode="before")
    @classmethod
    def coerce_options(cls, v: Any) -> Any:
        """Allow bare strings in place of option objects."""
        return _coerce_options(v)
