import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from invenflow.core.config import EXPIRY_SWEEP_INTERVAL_MINUTES
from invenflow.core.db import AsyncSessionLocal
from invenflow.services.inventory.bulk_movement_expiry_service import auto_expire_bulk_movements

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


@scheduler.scheduled_job(
    "interval",
    minutes=EXPIRY_SWEEP_INTERVAL_MINUTES,
    id="expire_bulk_movements",
    max_instances=1,
    coalesce=True,
)
async def expire_bulk_movements_job():
    async with AsyncSessionLocal() as db:
        expired = await auto_expire_bulk_movements(db)
    if expired:
        logger.info("Expiry sweep expired %s bulk movement(s)", expired)
