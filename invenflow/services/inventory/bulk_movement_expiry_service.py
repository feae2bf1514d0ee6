import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from invenflow.models.inventory.bulk_movement_models import BulkMovement
from invenflow.models.enums.bulk_movement_status import BulkMovementStatus
from invenflow.utils import time_utils
from invenflow.services.inventory.bulk_movement_expiry_core import _expire_bulk_movement_stmt
from invenflow.services.inventory.bulk_movement_token_service import is_token_expired

logger = logging.getLogger(__name__)


# Expiry writes the status and nothing else: no activity rows, no ledger.
async def auto_expire_bulk_movements(db: AsyncSession) -> int:
    """Sweep every pending movement past its token expiry. Safe to re-run."""
    now = time_utils.utc_now()

    result = await db.execute(_expire_bulk_movement_stmt(now))
    expired = result.all()
    await db.commit()

    for row in expired:
        logger.info(
            "Bulk movement %s expired by sweep (link expired at %s)",
            row.id,
            time_utils.as_utc(row.token_expires_at).isoformat(),
        )
    if expired:
        logger.info("Expired %s stale bulk movement(s)", len(expired))
    return len(expired)


async def expire_if_stale(
    db: AsyncSession,
    movement: BulkMovement,
    now=None,
) -> bool:
    """Lazy expiry on access. Returns True when this call moved the row to expired."""
    now = now or time_utils.utc_now()

    if movement.status != BulkMovementStatus.pending:
        return False
    if not is_token_expired(movement.token_expires_at, now):
        return False

    result = await db.execute(
        _expire_bulk_movement_stmt(now, extra_where=[BulkMovement.id == movement.id])
    )
    row = result.first()
    await db.commit()

    if row is not None:
        logger.info("Bulk movement %s expired on access", row.id)

    # reload in place, eager relationships included
    await db.execute(
        select(BulkMovement)
        .where(BulkMovement.id == movement.id)
        .execution_options(populate_existing=True)
    )
    return row is not None
