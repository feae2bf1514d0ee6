from datetime import datetime

from fastapi import APIRouter, Depends, Query, status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from invenflow.core.db import get_db
from invenflow.utils.check_roles import require_role
from invenflow.utils.response import success_response, APIResponse
from invenflow.models.enums.bulk_movement_status import BulkMovementStatus

from invenflow.schemas.inventory.bulk_movement_schemas import (
    BulkMovementCreateSchema,
    BulkMovementUpdateSchema,
    BulkMovementOutSchema,
    BulkMovementListData,
    ExpirySweepResult,
)

from invenflow.services.inventory.bulk_movement_service import (
    create_bulk_movement,
    get_bulk_movement,
    list_bulk_movements,
    update_bulk_movement,
    cancel_bulk_movement,
)
from invenflow.services.inventory.bulk_movement_expiry_service import auto_expire_bulk_movements

router = APIRouter(
    prefix="/bulk-movements",
    tags=["Bulk Movements"],
)


# =========================
# CREATE
# =========================
@router.post(
    "",
    response_model=APIResponse[BulkMovementOutSchema],
    status_code=http_status.HTTP_201_CREATED,
)
async def create_bulk_movement_api(
    payload: BulkMovementCreateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "inventory"])),
):
    movement = await create_bulk_movement(db, payload, user)
    return success_response("Bulk movement created successfully", movement)


# =========================
# LIST
# =========================
@router.get("", response_model=APIResponse[BulkMovementListData])
async def list_bulk_movements_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "inventory"])),

    status: list[BulkMovementStatus] | None = Query(None),
    from_location_id: int | None = Query(None, alias="fromLocationId"),
    to_location_id: int | None = Query(None, alias="toLocationId"),
    created_by: str | None = Query(None, alias="createdBy"),
    date_from: datetime | None = Query(None, alias="dateFrom"),
    date_to: datetime | None = Query(None, alias="dateTo"),

    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
):
    data = await list_bulk_movements(
        db,
        status=status,
        from_location_id=from_location_id,
        to_location_id=to_location_id,
        created_by=created_by,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return success_response("Bulk movements fetched successfully", data)


# =========================
# EXPIRY SWEEP
# =========================
@router.post("/check-expired", response_model=APIResponse[ExpirySweepResult])
async def check_expired_bulk_movements_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "inventory"])),
):
    expired = await auto_expire_bulk_movements(db)
    return success_response(
        "Expired bulk movements checked",
        ExpirySweepResult(expired_count=expired),
    )


# =========================
# GET BY ID
# =========================
@router.get("/{movement_id}", response_model=APIResponse[BulkMovementOutSchema])
async def get_bulk_movement_api(
    movement_id: str,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "inventory"])),
):
    movement = await get_bulk_movement(db, movement_id)
    return success_response("Bulk movement fetched successfully", movement)


# =========================
# UPDATE
# =========================
@router.put("/{movement_id}", response_model=APIResponse[BulkMovementOutSchema])
async def update_bulk_movement_api(
    movement_id: str,
    payload: BulkMovementUpdateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "inventory"])),
):
    movement = await update_bulk_movement(db, movement_id, payload, user)
    return success_response("Bulk movement updated successfully", movement)


# =========================
# CANCEL
# =========================
@router.post("/{movement_id}/cancel", response_model=APIResponse[BulkMovementOutSchema])
async def cancel_bulk_movement_api(
    movement_id: str,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "inventory"])),
):
    movement = await cancel_bulk_movement(db, movement_id, user)
    return success_response("Bulk movement cancelled successfully", movement)
