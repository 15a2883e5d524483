"""
Master data endpoints.

Reference tables are addressed by name; only the names in MasterTable
are accepted, anything else is a 400. Filing statuses are read-only.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, status

from hkidash.api.deps import AdminUser, CurrentUser, DbSession
from hkidash.schemas.record import ReferenceResponse
from hkidash.services.master_data import MasterDataService, resolve_table

router = APIRouter()

master_service = MasterDataService()

Payload = Annotated[dict[str, Any], Body()]


@router.get("/statuses", response_model=list[ReferenceResponse])
async def list_statuses(db: DbSession, current_user: CurrentUser) -> list[ReferenceResponse]:
    statuses = await master_service.list_statuses(db)
    return [ReferenceResponse.model_validate(s) for s in statuses]


@router.get("/{table}")
async def list_master_rows(
    table: str,
    db: DbSession,
    current_user: CurrentUser,
) -> list[dict[str, Any]]:
    """List every row of a reference table."""
    master_table = resolve_table(table)
    rows = await master_service.list_rows(db, master_table)
    return [master_service.serialize(master_table, row) for row in rows]


@router.post("/{table}", status_code=status.HTTP_201_CREATED)
async def create_master_row(
    table: str,
    payload: Payload,
    db: DbSession,
    current_user: AdminUser,
) -> dict[str, Any]:
    master_table = resolve_table(table)
    row = await master_service.create_row(db, master_table, payload)
    return master_service.serialize(master_table, row)


@router.patch("/{table}/{row_id}")
async def update_master_row(
    table: str,
    row_id: int,
    db: DbSession,
    current_user: AdminUser,
    payload: Annotated[dict[str, Any] | None, Body()] = None,
) -> dict[str, Any]:
    """Partially update a row. Id fields in the body are ignored."""
    master_table = resolve_table(table)
    row = await master_service.update_row(db, master_table, row_id, payload)
    return master_service.serialize(master_table, row)


@router.delete("/{table}/{row_id}")
async def delete_master_row(
    table: str,
    row_id: int,
    db: DbSession,
    current_user: AdminUser,
) -> dict[str, Any]:
    """Delete a row that no filing record references."""
    master_table = resolve_table(table)
    await master_service.delete_row(db, master_table, row_id)
    return {"id": row_id, "message": "Data berhasil dihapus."}
