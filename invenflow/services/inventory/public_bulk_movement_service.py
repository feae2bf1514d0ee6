from sqlalchemy.ext.asyncio import AsyncSession

from invenflow.core.exceptions import NotFoundError
from invenflow.constants.error_codes import ErrorCode
from invenflow.models.inventory.bulk_movement_models import BulkMovement
from invenflow.models.enums.bulk_movement_status import BulkMovementStatus
from invenflow.services.inventory.bulk_movement_service import get_bulk_movement_by_token
from invenflow.services.inventory.bulk_movement_expiry_service import expire_if_stale
from invenflow.services.inventory.bulk_movement_token_service import is_token_expired
from invenflow.utils import time_utils

from invenflow.schemas.inventory.public_bulk_movement_schemas import (
    PublicBulkMovementSchema,
    PublicBulkMovementItemSchema,
    PublicLocationSchema,
)


def map_public_bulk_movement(m: BulkMovement) -> PublicBulkMovementSchema:
    return PublicBulkMovementSchema(
        from_location=PublicLocationSchema(
            name=m.from_location.name,
            code=m.from_location.code,
            area=m.from_location.area,
        ),
        to_location=PublicLocationSchema(
            name=m.to_location.name,
            code=m.to_location.code,
            area=m.to_location.area,
        ),
        status=m.status,
        items=[
            PublicBulkMovementItemSchema(
                id=i.id,
                sku=i.sku,
                product_details=i.product_details,
                product_image=i.product_image,
                unit=i.unit,
                quantity_sent=i.quantity_sent,
                quantity_received=i.quantity_received,
            )
            for i in m.items
        ],
        sender_notes=m.sender_notes,
        recipient_notes=m.recipient_notes,
        created_at=time_utils.as_utc(m.created_at),
        token_expires_at=time_utils.as_utc(m.token_expires_at),
        is_expired=(
            m.status == BulkMovementStatus.expired
            or (m.status == BulkMovementStatus.pending and is_token_expired(m.token_expires_at))
        ),
        confirmed_by=m.confirmed_by,
        confirmed_at=time_utils.as_utc(m.confirmed_at),
    )


async def get_public_bulk_movement(
    db: AsyncSession,
    token: str,
) -> PublicBulkMovementSchema:
    movement = await get_bulk_movement_by_token(db, token)

    if movement.status == BulkMovementStatus.cancelled:
        raise NotFoundError("Bulk movement not found", ErrorCode.BULK_MOVEMENT_NOT_FOUND)

    await expire_if_stale(db, movement)
    return map_public_bulk_movement(movement)
