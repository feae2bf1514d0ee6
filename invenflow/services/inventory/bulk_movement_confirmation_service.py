"""Recipient confirmation of a bulk movement.

Validation runs in a fixed order and writes nothing, except the lazy expiry
of a stale token. The apply step (status CAS, received quantities, ledger
rows, stock balances) is one transaction: it commits whole or rolls back
whole, leaving the movement pending and retryable.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from invenflow.core.exceptions import ValidationError, ExpiredError
from invenflow.constants.error_codes import ErrorCode
from invenflow.constants.activity_codes import ActivityCode

from invenflow.models.inventory.bulk_movement_models import BulkMovement, BulkMovementItem
from invenflow.models.inventory.movement_log_models import MovementLog
from invenflow.models.enums.bulk_movement_status import BulkMovementStatus
from invenflow.models.enums.movement_type import MovementType

from invenflow.services.inventory.bulk_movement_service import (
    get_bulk_movement_by_token,
    get_bulk_movement_model,
)
from invenflow.services.inventory.bulk_movement_state import transition_status, raise_for_status
from invenflow.services.inventory.bulk_movement_expiry_service import expire_if_stale
from invenflow.services.inventory.bulk_movement_token_service import is_token_expired
from invenflow.services.inventory.inventory_record_service import (
    lock_inventory_balances,
    apply_stock_transfer,
)
from invenflow.services.inventory.public_bulk_movement_service import map_public_bulk_movement
from invenflow.utils.activity_helpers import emit_activity
from invenflow.utils import time_utils

from invenflow.schemas.inventory.bulk_movement_schemas import (
    BulkMovementConfirmSchema,
    BulkMovementConfirmItemSchema,
)
from invenflow.schemas.inventory.public_bulk_movement_schemas import PublicBulkMovementSchema

logger = logging.getLogger(__name__)

RECIPIENT_ROLE = "Recipient"
MAX_CONFIRMER_LENGTH = 255


def _match_items(
    items: list[BulkMovementItem],
    submitted: list[BulkMovementConfirmItemSchema],
) -> dict[str, int]:
    """Submitted lines must cover every item exactly once."""
    received: dict[str, int] = {}
    duplicates = set()
    for line in submitted:
        if line.item_id in received:
            duplicates.add(line.item_id)
        received[line.item_id] = line.quantity_received

    if duplicates:
        raise ValidationError(
            "Each item may be confirmed only once",
            ErrorCode.BULK_MOVEMENT_ITEM_MISMATCH,
            {"duplicateItemIds": sorted(duplicates)},
        )

    expected = {i.id for i in items}
    missing = expected - set(received)
    unknown = set(received) - expected
    if missing or unknown:
        raise ValidationError(
            "Confirmation must list every item of the bulk movement, and only those",
            ErrorCode.BULK_MOVEMENT_ITEM_MISMATCH,
            {"missingItemIds": sorted(missing), "unknownItemIds": sorted(unknown)},
        )

    return received


def _check_received_quantities(items: list[BulkMovementItem], received: dict[str, int]):
    for item in items:
        quantity = received[item.id]
        if quantity < 0 or quantity > item.quantity_sent:
            raise ValidationError(
                f"Quantity received for {item.product_details} must be between 0 and {item.quantity_sent}",
                ErrorCode.BULK_MOVEMENT_INVALID_QUANTITY,
                {
                    "itemId": item.id,
                    "sku": item.sku,
                    "quantitySent": item.quantity_sent,
                    "quantityReceived": quantity,
                },
            )


async def _apply_confirmation(
    db: AsyncSession,
    movement: BulkMovement,
    received: dict[str, int],
    *,
    confirmed_by: str,
    notes: str | None,
    now,
):
    # ------------------------------------
    # 1. Claim the movement (CAS on status)
    # ------------------------------------
    won = await transition_status(
        db,
        movement.id,
        BulkMovementStatus.confirmed,
        extra_where=[BulkMovement.token_expires_at >= now],
        confirmed_by=confirmed_by,
        confirmed_at=now,
        recipient_notes=notes,
        updated_at=now,
    )
    if not won:
        current = await get_bulk_movement_model(db, movement.id)
        await expire_if_stale(db, current, now)
        raise_for_status(current, public=True)

    # ------------------------------------
    # 2. Received quantities
    # ------------------------------------
    for item in movement.items:
        item.quantity_received = received[item.id]

    moving = [i for i in movement.items if i.quantity_received > 0]

    # ------------------------------------
    # 3. Lock balances, move stock, append ledger
    # ------------------------------------
    balances = await lock_inventory_balances(
        db,
        [(i.product_id, movement.from_location_id) for i in moving]
        + [(i.product_id, movement.to_location_id) for i in moving],
    )

    from_area = movement.from_location.area if movement.from_location else None
    to_area = movement.to_location.area if movement.to_location else None
    ledger_notes = f"Bulk movement confirmation. {notes or ''}".strip()

    for item in sorted(moving, key=lambda i: i.product_id):
        from_stock_level = await apply_stock_transfer(
            db,
            balances,
            product_id=item.product_id,
            from_location_id=movement.from_location_id,
            to_location_id=movement.to_location_id,
            quantity=item.quantity_received,
            reference_type="BULK_MOVEMENT",
            reference_id=movement.id,
            actor_name=confirmed_by,
            actor_role=RECIPIENT_ROLE,
        )

        db.add(
            MovementLog(
                product_id=item.product_id,
                bulk_movement_id=movement.id,
                from_location_id=movement.from_location_id,
                to_location_id=movement.to_location_id,
                from_area=from_area,
                to_area=to_area,
                quantity_moved=item.quantity_received,
                from_stock_level=from_stock_level,
                moved_by=confirmed_by,
                movement_type=MovementType.bulk,
                notes=ledger_notes,
                created_at=now,
            )
        )

    await emit_activity(
        db,
        user_id=None,
        username=confirmed_by,
        code=ActivityCode.CONFIRM_BULK_MOVEMENT,
        actor_role=RECIPIENT_ROLE,
        actor_email=confirmed_by,
        target_name=movement.id,
        quantity_received=sum(received.values()),
        quantity_sent=sum(i.quantity_sent for i in movement.items),
    )

    await db.flush()
    return len(moving)


async def confirm_bulk_movement(
    db: AsyncSession,
    token: str,
    payload: BulkMovementConfirmSchema,
) -> PublicBulkMovementSchema:

    # 1. token
    movement = await get_bulk_movement_by_token(db, token)
    movement_id = movement.id

    # 2. state
    if movement.status != BulkMovementStatus.pending:
        raise_for_status(movement, public=True)

    # 3. expiry (side-effecting)
    now = time_utils.utc_now()
    if is_token_expired(movement.token_expires_at, now):
        await expire_if_stale(db, movement, now)
        raise ExpiredError()

    # 4. confirmer
    confirmed_by = (payload.confirmed_by or "").strip()
    if not confirmed_by:
        raise ValidationError(
            "Receiver name is required",
            ErrorCode.BULK_MOVEMENT_CONFIRMER_REQUIRED,
        )
    if len(confirmed_by) > MAX_CONFIRMER_LENGTH:
        raise ValidationError(
            f"Receiver name must be at most {MAX_CONFIRMER_LENGTH} characters",
            ErrorCode.BULK_MOVEMENT_CONFIRMER_TOO_LONG,
        )

    # 5. item set
    received = _match_items(movement.items, payload.items)

    # 6. quantities
    _check_received_quantities(movement.items, received)

    # ------------------------------------
    # APPLY (ALL OR NOTHING)
    # ------------------------------------
    try:
        moved_lines = await _apply_confirmation(
            db,
            movement,
            received,
            confirmed_by=confirmed_by,
            notes=payload.notes,
            now=now,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.warning("Confirmation of bulk movement %s rolled back", movement_id)
        raise

    logger.info(
        "Bulk movement %s confirmed by %s (%s of %s line(s) moved stock)",
        movement_id,
        confirmed_by,
        moved_lines,
        len(received),
    )

    confirmed = await get_bulk_movement_model(db, movement_id)
    return map_public_bulk_movement(confirmed)
