"""Lifecycle of a bulk movement.

pending -> confirmed | expired | cancelled. Every transition leaves ``pending``
through one conditional UPDATE, so of two racing writers exactly one sees its
row come back and the other observes the terminal state.
"""

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from invenflow.constants.error_codes import ErrorCode
from invenflow.core.exceptions import InvalidStateError, ExpiredError
from invenflow.models.enums.bulk_movement_status import BulkMovementStatus
from invenflow.models.inventory.bulk_movement_models import BulkMovement
from invenflow.utils import time_utils

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    BulkMovementStatus.pending: {
        BulkMovementStatus.confirmed,
        BulkMovementStatus.expired,
        BulkMovementStatus.cancelled,
    },
}


async def transition_status(
    db: AsyncSession,
    movement_id: str,
    target: BulkMovementStatus,
    *,
    extra_where=None,
    **values,
) -> bool:
    """Compare-and-swap ``pending -> target``. Returns False if the row was no longer pending."""
    if target not in ALLOWED_TRANSITIONS[BulkMovementStatus.pending]:
        raise ValueError(f"Illegal bulk movement transition pending -> {target}")

    where_clause = [
        BulkMovement.id == movement_id,
        BulkMovement.status == BulkMovementStatus.pending,
    ]
    if extra_where is not None:
        where_clause.extend(extra_where)

    result = await db.execute(
        update(BulkMovement)
        .where(*where_clause)
        .values(status=target, **values)
        .returning(BulkMovement.id)
        .execution_options(synchronize_session=False)
    )
    won = result.scalar_one_or_none() is not None

    if not won:
        logger.warning(
            "Bulk movement %s was no longer pending; %s transition skipped",
            movement_id,
            target.value,
        )
    return won


async def guarded_update(
    db: AsyncSession,
    movement_id: str,
    **values,
) -> bool:
    """Write non-status fields only while the movement is still pending."""
    result = await db.execute(
        update(BulkMovement)
        .where(
            BulkMovement.id == movement_id,
            BulkMovement.status == BulkMovementStatus.pending,
        )
        .values(**values)
        .returning(BulkMovement.id)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none() is not None


def raise_for_status(movement: BulkMovement, *, public: bool = False):
    """Raise the error a recipient should see for a movement that is not pending."""
    status = movement.status

    if status == BulkMovementStatus.confirmed:
        confirmed_at = time_utils.as_utc(movement.confirmed_at)
        raise InvalidStateError(
            "Bulk movement has already been confirmed",
            reason="already_confirmed",
            error_code=ErrorCode.BULK_MOVEMENT_ALREADY_CONFIRMED,
            details={
                "confirmedBy": movement.confirmed_by,
                "confirmedAt": confirmed_at.isoformat() if confirmed_at else None,
            },
        )

    if status == BulkMovementStatus.expired:
        raise ExpiredError()

    if status == BulkMovementStatus.cancelled:
        if public:
            # recipients must not learn that the sender withdrew the transfer
            raise InvalidStateError(
                "Bulk movement not found",
                reason="cancelled",
                error_code=ErrorCode.BULK_MOVEMENT_NOT_FOUND,
                status_code=404,
                hide_reason=True,
            )
        raise InvalidStateError(
            "Bulk movement has been cancelled",
            reason="cancelled",
            error_code=ErrorCode.BULK_MOVEMENT_CANCELLED,
        )

    raise InvalidStateError(
        f"Bulk movement is {status.value}",
        reason=status.value,
    )


def ensure_pending(movement: BulkMovement, action: str):
    """Sender-side guard: anything but pending is a 409."""
    if movement.status != BulkMovementStatus.pending:
        raise InvalidStateError(
            f"Only pending bulk movements can be {action}",
            reason=movement.status.value,
            details={"status": movement.status.value},
        )
