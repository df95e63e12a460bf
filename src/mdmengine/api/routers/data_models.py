"""Data models router for the MDM engine API."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from mdmengine.api.auth import AuthContext, require_write_permission, require_read_permission
from mdmengine.models import DataModel, DataModelPatch, SourceType


router = APIRouter()


class CreateDataModelRequest(BaseModel):
    """Request to create a data model."""
    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    source_type: str = SourceType.INTERNAL.value
    space_ids: List[str] = []
    slug: Optional[str] = None


class SpacesRequest(BaseModel):
    """Request to replace a data model's spaces."""
    space_ids: List[str]


@router.get("/data-models", response_model=List[DataModel])
async def list_data_models(
    space_id: Optional[str] = Query(None, description="Only models linked to this space"),
    auth: AuthContext = Depends(require_read_permission)
):
    """List the data models visible to the caller."""
    return auth.engine().data_models.list_data_models(space_id=space_id)


@router.post("/data-models", response_model=DataModel, status_code=201)
async def create_data_model(
    request: CreateDataModelRequest,
    auth: AuthContext = Depends(require_write_permission)
):
    """Create a data model linked to the given spaces."""
    return auth.engine().data_models.create_data_model(
        request.name,
        display_name=request.display_name,
        description=request.description,
        source_type=request.source_type,
        space_ids=request.space_ids,
        slug=request.slug,
    )


@router.get("/data-models/{model_id}", response_model=DataModel)
async def get_data_model(
    model_id: str,
    auth: AuthContext = Depends(require_read_permission)
):
    return auth.engine().data_models.get_data_model(model_id)


@router.patch("/data-models/{model_id}", response_model=DataModel)
async def update_data_model(
    model_id: str,
    patch: DataModelPatch,
    auth: AuthContext = Depends(require_write_permission)
):
    """Partially update a data model."""
    return auth.engine().data_models.update_data_model(model_id, patch)


@router.delete("/data-models/{model_id}")
async def delete_data_model(
    model_id: str,
    auth: AuthContext = Depends(require_write_permission)
):
    """Delete a data model with its attributes, records and views."""
    auth.engine().data_models.delete_data_model(model_id)
    return {"message": f"Deleted data model '{model_id}'"}


@router.put("/data-models/{model_id}/spaces", response_model=DataModel)
async def replace_spaces(
    model_id: str,
    request: SpacesRequest,
    auth: AuthContext = Depends(require_write_permission)
):
    """Replace the spaces a data model is linked to."""
    return auth.engine().data_models.replace_spaces(model_id, request.space_ids)
