# No auth: possession of the token is the credential.
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from invenflow.core.db import get_db
from invenflow.utils.response import success_response, APIResponse

from invenflow.schemas.inventory.bulk_movement_schemas import BulkMovementConfirmSchema
from invenflow.schemas.inventory.public_bulk_movement_schemas import PublicBulkMovementSchema

from invenflow.services.inventory.public_bulk_movement_service import get_public_bulk_movement
from invenflow.services.inventory.bulk_movement_confirmation_service import confirm_bulk_movement

router = APIRouter(
    prefix="/public/bulk-movements",
    tags=["Public Bulk Movements"],
)


@router.get("/{token}", response_model=APIResponse[PublicBulkMovementSchema])
async def get_public_bulk_movement_api(
    token: str,
    db: AsyncSession = Depends(get_db),
):
    movement = await get_public_bulk_movement(db, token)
    return success_response("Bulk movement fetched successfully", movement)


@router.post("/{token}/confirm", response_model=APIResponse[PublicBulkMovementSchema])
async def confirm_bulk_movement_api(
    token: str,
    payload: BulkMovementConfirmSchema,
    db: AsyncSession = Depends(get_db),
):
    movement = await confirm_bulk_movement(db, token, payload)
    return success_response("Bulk movement confirmed successfully", movement)
