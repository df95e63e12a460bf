"""Table view configuration model."""

from typing import List, Optional
from pydantic import Field

from .base import MDMEntityModel, MDMBaseModel
from .attribute import ComboSpec


class ViewConfig(MDMEntityModel):
    """Per-viewer table presentation layered over a data model."""

    data_model_id: str = Field(description="Data model the view renders")
    owner: Optional[str] = Field(default=None, description="Viewer the config belongs to")
    name: str = Field(default="default", description="View name")
    column_order: List[str] = Field(default_factory=list, description="Attribute ids")
    hidden_columns: List[str] = Field(default_factory=list, description="Attribute ids")
    combo_columns: List[str] = Field(
        default_factory=list, description="COMBO attribute ids authored in this view"
    )


class ComboColumnSpec(ComboSpec):
    """A combination column as authored from a table view.

    Without ``attribute_id`` a new COMBO attribute is created; with it the
    existing one is updated.
    """

    attribute_id: Optional[str] = None
    code: str
    display_name: Optional[str] = None
