"""Records router for the MDM engine API."""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from mdmengine.api.auth import AuthContext, require_write_permission, require_read_permission
from mdmengine.models import ResolvedRecord


router = APIRouter()


class RecordRequest(BaseModel):
    """Record values keyed by attribute code."""
    name: Optional[str] = None
    values: Dict[str, Any] = {}


class RecordListResponse(BaseModel):
    """A page of records."""
    total: int
    records: List[ResolvedRecord]


@router.post("/data-models/{model_id}/records", response_model=ResolvedRecord, status_code=201)
async def create_record(
    model_id: str,
    request: RecordRequest,
    auth: AuthContext = Depends(require_write_permission)
):
    """Create a record with its values."""
    return auth.engine().records.create_record(model_id, name=request.name, values=request.values)


@router.get("/data-models/{model_id}/records", response_model=RecordListResponse)
async def list_records(
    model_id: str,
    limit: Optional[int] = Query(None, ge=1, description="Maximum records to return"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    auth: AuthContext = Depends(require_read_permission)
):
    """List records in creation order with combination columns rendered."""
    records = auth.engine().records
    return RecordListResponse(
        total=records.count_records(model_id),
        records=records.list_records(model_id, limit=limit, offset=offset),
    )


@router.get("/records/{record_id}", response_model=ResolvedRecord)
async def get_record(
    record_id: str,
    auth: AuthContext = Depends(require_read_permission)
):
    return auth.engine().records.get_record(record_id)


@router.put("/records/{record_id}", response_model=ResolvedRecord)
async def update_record(
    record_id: str,
    request: RecordRequest,
    auth: AuthContext = Depends(require_write_permission)
):
    """Update the supplied values; empty values clear an attribute."""
    return auth.engine().records.update_record(record_id, values=request.values, name=request.name)


@router.delete("/records/{record_id}")
async def delete_record(
    record_id: str,
    auth: AuthContext = Depends(require_write_permission)
):
    auth.engine().records.delete_record(record_id)
    return {"message": f"Deleted record '{record_id}'"}
