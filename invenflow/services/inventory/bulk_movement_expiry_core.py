from datetime import datetime

from sqlalchemy import update
from invenflow.models.inventory.bulk_movement_models import BulkMovement
from invenflow.models.enums.bulk_movement_status import BulkMovementStatus


def _expire_bulk_movement_stmt(now: datetime, extra_where=None):
    where_clause = [
        BulkMovement.status == BulkMovementStatus.pending,
        BulkMovement.token_expires_at < now,
    ]

    if extra_where is not None:
        where_clause.extend(extra_where)

    return (
        update(BulkMovement)
        .where(*where_clause)
        .values(
            status=BulkMovementStatus.expired,
            updated_at=now,
        )
        .returning(BulkMovement.id, BulkMovement.token_expires_at)
        .execution_options(synchronize_session=False)
    )
