"""Table views router for the MDM engine API."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from mdmengine.api.auth import AuthContext, require_write_permission, require_read_permission
from mdmengine.models import Attribute, ComboColumnSpec, ViewConfig


router = APIRouter()


class CreateViewRequest(BaseModel):
    """Request to create a view; the owner defaults to the API key."""
    name: str = "default"
    owner: Optional[str] = None


class ColumnOrderRequest(BaseModel):
    """New column order as attribute ids."""
    attribute_ids: List[str]


class HiddenColumnRequest(BaseModel):
    """Hide or show one column."""
    attribute_id: str
    hidden: bool = True


@router.post("/data-models/{model_id}/views", response_model=ViewConfig, status_code=201)
async def create_view(
    model_id: str,
    request: CreateViewRequest,
    auth: AuthContext = Depends(require_write_permission)
):
    """Create a view of a data model."""
    return auth.engine().views.create_view(model_id, owner=request.owner, name=request.name)


@router.get("/data-models/{model_id}/views", response_model=List[ViewConfig])
async def list_views(
    model_id: str,
    owner: Optional[str] = Query(None, description="Only views of this owner"),
    auth: AuthContext = Depends(require_read_permission)
):
    return auth.engine().views.list_views(model_id, owner=owner)


@router.get("/views/{view_id}", response_model=ViewConfig)
async def get_view(
    view_id: str,
    auth: AuthContext = Depends(require_read_permission)
):
    return auth.engine().views.get_view(view_id)


@router.get("/views/{view_id}/columns", response_model=List[Attribute])
async def visible_columns(
    view_id: str,
    auth: AuthContext = Depends(require_read_permission)
):
    """Attributes in the view's column order, without hidden columns."""
    return auth.engine().views.visible_columns(view_id)


@router.put("/views/{view_id}/columns", response_model=ViewConfig)
async def reorder_columns(
    view_id: str,
    request: ColumnOrderRequest,
    auth: AuthContext = Depends(require_write_permission)
):
    """Replace the column order; unknown ids are dropped."""
    return auth.engine().views.reorder_columns(view_id, request.attribute_ids)


@router.put("/views/{view_id}/hidden", response_model=ViewConfig)
async def set_column_hidden(
    view_id: str,
    request: HiddenColumnRequest,
    auth: AuthContext = Depends(require_write_permission)
):
    return auth.engine().views.set_column_hidden(view_id, request.attribute_id, request.hidden)


@router.post("/views/{view_id}/combos", response_model=Attribute)
async def upsert_combo_column(
    view_id: str,
    spec: ComboColumnSpec,
    auth: AuthContext = Depends(require_write_permission)
):
    """Create or update a combination column from a view."""
    return auth.engine().views.upsert_combo_spec(view_id, spec)


@router.delete("/views/{view_id}/combos/{attribute_id}", response_model=ViewConfig)
async def remove_combo_column(
    view_id: str,
    attribute_id: str,
    auth: AuthContext = Depends(require_write_permission)
):
    """Delete a combination column and drop it from the view."""
    return auth.engine().views.remove_combo_column(view_id, attribute_id)


@router.delete("/views/{view_id}")
async def delete_view(
    view_id: str,
    auth: AuthContext = Depends(require_write_permission)
):
    auth.engine().views.delete_view(view_id)
    return {"message": f"Deleted view '{view_id}'"}
