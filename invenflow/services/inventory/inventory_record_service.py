from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_
from sqlalchemy.exc import IntegrityError

from invenflow.core.exceptions import AppException, InsufficientStockError
from invenflow.constants.error_codes import ErrorCode
from invenflow.constants.activity_codes import ActivityCode
from invenflow.models.inventory.inventory_balance_models import InventoryBalance
from invenflow.utils.activity_helpers import emit_activity
from invenflow.utils import time_utils


ALLOWED_REFERENCE_TYPES = {"BULK_MOVEMENT"}

BalanceKey = tuple[int, int]  # (product_id, location_id)


async def get_stock_levels(
    db: AsyncSession,
    product_ids: Iterable[int],
    location_id: int,
) -> dict[int, int]:
    product_ids = list(product_ids)
    rows = await db.execute(
        select(InventoryBalance.product_id, InventoryBalance.quantity).where(
            InventoryBalance.product_id.in_(product_ids),
            InventoryBalance.location_id == location_id,
        )
    )
    levels = {pid: 0 for pid in product_ids}
    levels.update({pid: qty for pid, qty in rows.all()})
    return levels


async def lock_inventory_balances(
    db: AsyncSession,
    keys: Iterable[BalanceKey],
) -> dict[BalanceKey, InventoryBalance]:
    """Row-lock every (product, location) balance, creating missing rows at zero.

    Locks are taken in (product_id, location_id) order so that two writers
    touching overlapping products cannot deadlock.
    """
    keys = sorted(set(keys))
    if not keys:
        return {}

    try:
        # ------------------------------------
        # 1. Lock existing rows (NO JOINS)
        # ------------------------------------
        result = await db.execute(
            select(InventoryBalance)
            .where(
                or_(
                    *[
                        and_(
                            InventoryBalance.product_id == product_id,
                            InventoryBalance.location_id == location_id,
                        )
                        for product_id, location_id in keys
                    ]
                )
            )
            .order_by(InventoryBalance.product_id, InventoryBalance.location_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        balances = {
            (b.product_id, b.location_id): b for b in result.scalars().all()
        }

        # ------------------------------------
        # 2. Create balance rows if missing
        # ------------------------------------
        now = time_utils.utc_now()
        missing = [k for k in keys if k not in balances]
        for product_id, location_id in missing:
            balance = InventoryBalance(
                product_id=product_id,
                location_id=location_id,
                quantity=0,
                created_at=now,
            )
            db.add(balance)
            balances[(product_id, location_id)] = balance

        if missing:
            await db.flush()

    except IntegrityError:
        raise AppException(
            409,
            "Concurrent inventory update detected",
            ErrorCode.CONCURRENT_INVENTORY_UPDATE,
        )

    return balances


async def apply_stock_transfer(
    db: AsyncSession,
    balances: dict[BalanceKey, InventoryBalance],
    *,
    product_id: int,
    from_location_id: int,
    to_location_id: int,
    quantity: int,
    reference_type: str,
    reference_id: str,
    actor_name: str,
    actor_role: str,
    actor_user_id: int | None = None,
) -> int:
    """Move stock between two locked balances. Returns the source level before the move."""
    # ------------------------------------
    # 0. Basic validations
    # ------------------------------------
    if quantity <= 0:
        raise ValueError("Stock transfer quantity must be positive")

    if reference_type not in ALLOWED_REFERENCE_TYPES:
        raise ValueError(f"Invalid inventory reference type {reference_type}")

    source = balances.get((product_id, from_location_id))
    target = balances.get((product_id, to_location_id))
    if source is None or target is None:
        raise ValueError("Balances must be locked before a stock transfer")

    # ------------------------------------
    # 1. Validate non-negative stock
    # ------------------------------------
    from_stock_level = source.quantity
    if from_stock_level < quantity:
        raise InsufficientStockError(
            "Insufficient stock at source location",
            details={
                "productId": product_id,
                "locationId": from_location_id,
                "available": from_stock_level,
                "requested": quantity,
            },
        )

    # ------------------------------------
    # 2. Update balances (derived)
    # ------------------------------------
    now = time_utils.utc_now()
    source.quantity = from_stock_level - quantity
    source.updated_at = now
    target.quantity = target.quantity + quantity
    target.updated_at = now

    await db.flush()

    # ------------------------------------
    # 3. Activity log (NO COMMIT HERE)
    # ------------------------------------
    await emit_activity(
        db,
        user_id=actor_user_id,
        username=actor_name,
        code=ActivityCode.INVENTORY_MOVEMENT,
        actor_role=actor_role,
        actor_email=actor_name,
        quantity=quantity,
        product_id=product_id,
        from_location_id=from_location_id,
        to_location_id=to_location_id,
        reference_type=reference_type,
        reference_id=reference_id,
    )

    return from_stock_level
