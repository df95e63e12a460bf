"""Attributes router for the MDM engine API."""

from typing import Any, Dict, List
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from mdmengine.api.auth import AuthContext, require_write_permission, require_read_permission
from mdmengine.models import Attribute, AttributePatch, AttributeSpec


router = APIRouter()


class ReorderRequest(BaseModel):
    """Request to reorder a data model's attributes."""
    attribute_ids: List[str]


@router.get("/data-models/{model_id}/attributes", response_model=List[Attribute])
async def list_attributes(
    model_id: str,
    auth: AuthContext = Depends(require_read_permission)
):
    """List attributes in display order."""
    return auth.engine().attributes.list_attributes(model_id)


@router.post("/data-models/{model_id}/attributes", response_model=Attribute, status_code=201)
async def add_attribute(
    model_id: str,
    spec: AttributeSpec,
    auth: AuthContext = Depends(require_write_permission)
):
    """Add an attribute; COMBO members may be given as codes or ids."""
    return auth.engine().attributes.add_attribute(model_id, spec)


@router.put("/data-models/{model_id}/attributes/reorder", response_model=List[Attribute])
async def reorder_attributes(
    model_id: str,
    request: ReorderRequest,
    auth: AuthContext = Depends(require_write_permission)
):
    return auth.engine().attributes.reorder_attributes(model_id, request.attribute_ids)


@router.get("/data-models/{model_id}/attributes/export")
async def export_attributes(
    model_id: str,
    auth: AuthContext = Depends(require_read_permission)
):
    """Export attribute definitions in a portable form."""
    return auth.engine().attributes.export_attributes(model_id)


@router.post(
    "/data-models/{model_id}/attributes/import",
    response_model=List[Attribute],
    status_code=201,
)
async def import_attributes(
    model_id: str,
    document: Dict[str, Any],
    auth: AuthContext = Depends(require_write_permission)
):
    """Create attributes from an exported document in one transaction."""
    return auth.engine().attributes.import_attributes(model_id, document)


@router.get("/attributes/{attribute_id}", response_model=Attribute)
async def get_attribute(
    attribute_id: str,
    auth: AuthContext = Depends(require_read_permission)
):
    return auth.engine().attributes.get_attribute(attribute_id)


@router.patch("/attributes/{attribute_id}", response_model=Attribute)
async def update_attribute(
    attribute_id: str,
    patch: AttributePatch,
    auth: AuthContext = Depends(require_write_permission)
):
    """Partially update an attribute."""
    return auth.engine().attributes.update_attribute(attribute_id, patch)


@router.delete("/attributes/{attribute_id}")
async def delete_attribute(
    attribute_id: str,
    auth: AuthContext = Depends(require_write_permission)
):
    """Delete an attribute with its options and stored values."""
    auth.engine().attributes.delete_attribute(attribute_id)
    return {"message": f"Deleted attribute '{attribute_id}'"}
