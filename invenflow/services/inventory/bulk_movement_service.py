import logging
import math
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from invenflow.core.exceptions import AppException, ValidationError, NotFoundError, InsufficientStockError
from invenflow.constants.error_codes import ErrorCode
from invenflow.constants.activity_codes import ActivityCode

from invenflow.models.inventory.bulk_movement_models import BulkMovement, BulkMovementItem
from invenflow.models.inventory.inventory_location_models import InventoryLocation
from invenflow.models.masters.product_models import Product
from invenflow.models.users.user_models import User
from invenflow.models.enums.bulk_movement_status import BulkMovementStatus

from invenflow.services.inventory.bulk_movement_state import (
    transition_status,
    guarded_update,
    ensure_pending,
)
from invenflow.services.inventory.bulk_movement_token_service import (
    mint_unique_token,
    compute_token_expiry,
    is_token_expired,
    build_public_url,
    mask_token,
)
from invenflow.services.inventory.bulk_movement_expiry_service import expire_if_stale
from invenflow.services.inventory.inventory_record_service import get_stock_levels
from invenflow.utils.activity_helpers import emit_activity
from invenflow.utils import time_utils

from invenflow.schemas.inventory.bulk_movement_schemas import (
    BulkMovementCreateSchema,
    BulkMovementUpdateSchema,
    BulkMovementOutSchema,
    BulkMovementItemOutSchema,
    BulkMovementListData,
    LocationMini,
)

logger = logging.getLogger(__name__)


# =====================================================
# PENDING COMMITMENTS
# =====================================================
async def get_committed_quantities(
    db: AsyncSession,
    product_ids: list[int],
    location_id: int,
    now: datetime,
) -> dict[int, int]:
    """Quantity already promised out of a location by live pending movements."""
    rows = await db.execute(
        select(BulkMovementItem.product_id, func.sum(BulkMovementItem.quantity_sent))
        .join(BulkMovement, BulkMovement.id == BulkMovementItem.bulk_movement_id)
        .where(
            BulkMovement.from_location_id == location_id,
            BulkMovement.status == BulkMovementStatus.pending,
            BulkMovement.token_expires_at >= now,
            BulkMovementItem.product_id.in_(product_ids),
        )
        .group_by(BulkMovementItem.product_id)
    )
    return {pid: int(qty or 0) for pid, qty in rows.all()}


# =====================================================
# SHARED FETCH
# =====================================================
async def _fetch_bulk_movement(db: AsyncSession, *conditions) -> BulkMovement | None:
    result = await db.execute(
        select(BulkMovement)
        .where(*conditions)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_bulk_movement_model(db: AsyncSession, movement_id: str) -> BulkMovement:
    movement = await _fetch_bulk_movement(db, BulkMovement.id == movement_id)
    if not movement:
        raise NotFoundError("Bulk movement not found", ErrorCode.BULK_MOVEMENT_NOT_FOUND)
    return movement


async def get_bulk_movement_by_token(db: AsyncSession, token: str) -> BulkMovement:
    movement = await _fetch_bulk_movement(db, BulkMovement.public_token == token)
    if not movement:
        logger.info("Bulk movement lookup failed for token %s", mask_token(token))
        raise NotFoundError("Bulk movement not found", ErrorCode.BULK_MOVEMENT_NOT_FOUND)
    return movement


# =====================================================
# SHARED RESPONSE BUILDER
# =====================================================
def _location_mini(location: InventoryLocation) -> LocationMini:
    return LocationMini(
        id=location.id,
        code=location.code,
        name=location.name,
        area=location.area,
        location_type=location.location_type,
    )


def _map_bulk_movement(m: BulkMovement) -> BulkMovementOutSchema:
    return BulkMovementOutSchema(
        id=m.id,
        from_location_id=m.from_location_id,
        to_location_id=m.to_location_id,
        from_location=_location_mini(m.from_location),
        to_location=_location_mini(m.to_location),
        status=m.status,
        token_expires_at=time_utils.as_utc(m.token_expires_at),
        is_expired=(
            m.status == BulkMovementStatus.expired
            or (m.status == BulkMovementStatus.pending and is_token_expired(m.token_expires_at))
        ),
        public_url=build_public_url(m.public_token),
        created_by=m.created_by_username,
        updated_by=m.updated_by_username,
        confirmed_by=m.confirmed_by,
        confirmed_at=time_utils.as_utc(m.confirmed_at),
        cancelled_at=time_utils.as_utc(m.cancelled_at),
        sender_notes=m.sender_notes,
        recipient_notes=m.recipient_notes,
        created_at=time_utils.as_utc(m.created_at),
        updated_at=time_utils.as_utc(m.updated_at),
        items=[
            BulkMovementItemOutSchema(
                id=i.id,
                product_id=i.product_id,
                sku=i.sku,
                product_details=i.product_details,
                product_image=i.product_image,
                unit=i.unit,
                quantity_sent=i.quantity_sent,
                quantity_received=i.quantity_received,
                created_at=time_utils.as_utc(i.created_at),
            )
            for i in m.items
        ],
    )


async def _validate_destination(db: AsyncSession, location_id: int) -> InventoryLocation:
    location = await db.scalar(
        select(InventoryLocation).where(
            InventoryLocation.id == location_id,
            InventoryLocation.is_active.is_(True),
            InventoryLocation.is_deleted.is_(False),
        )
    )
    if not location:
        raise ValidationError(
            "Invalid or inactive location",
            ErrorCode.BULK_MOVEMENT_INVALID_LOCATION,
            {"locationId": location_id},
        )
    return location


# =====================================================
# CREATE
# =====================================================
async def create_bulk_movement(
    db: AsyncSession,
    payload: BulkMovementCreateSchema,
    user: User,
) -> BulkMovementOutSchema:

    # -------------------------
    # SHAPE CHECKS (NO DB)
    # -------------------------
    if payload.from_location_id == payload.to_location_id:
        raise ValidationError(
            "Source and destination locations must differ",
            ErrorCode.BULK_MOVEMENT_INVALID_LOCATION,
        )

    if not payload.items:
        raise ValidationError(
            "Bulk movement must contain at least one item",
            ErrorCode.BULK_MOVEMENT_EMPTY_ITEMS,
        )

    negative = [i.product_id for i in payload.items if i.quantity_sent < 0]
    if negative:
        raise ValidationError(
            f"Quantity sent cannot be negative for product(s): {sorted(negative)}",
            ErrorCode.BULK_MOVEMENT_INVALID_QUANTITY,
            {"productIds": sorted(negative)},
        )

    product_ids = [i.product_id for i in payload.items]
    if len(set(product_ids)) != len(product_ids):
        raise ValidationError(
            "Each product may appear only once in a bulk movement",
            ErrorCode.BULK_MOVEMENT_INVALID_PRODUCT,
        )

    # -------------------------
    # LOCATION VALIDATION
    # -------------------------
    rows = await db.execute(
        select(InventoryLocation).where(
            InventoryLocation.id.in_([payload.from_location_id, payload.to_location_id]),
            InventoryLocation.is_active.is_(True),
            InventoryLocation.is_deleted.is_(False),
        )
    )
    locations = {loc.id: loc for loc in rows.scalars().all()}

    if len(locations) != 2:
        raise ValidationError(
            "Invalid or inactive location",
            ErrorCode.BULK_MOVEMENT_INVALID_LOCATION,
        )

    # -------------------------
    # BULK PRODUCT VALIDATION
    # -------------------------
    rows = await db.execute(
        select(Product).where(
            Product.id.in_(product_ids),
            Product.is_deleted.is_(False),
        )
    )
    products = {p.id: p for p in rows.scalars().all()}

    invalid_products = set(product_ids) - set(products)
    if invalid_products:
        raise ValidationError(
            f"Invalid product(s): {sorted(invalid_products)}",
            ErrorCode.BULK_MOVEMENT_INVALID_PRODUCT,
            {"productIds": sorted(invalid_products)},
        )

    # -------------------------
    # SOURCE STOCK CHECK (NET OF PENDING)
    # -------------------------
    now = time_utils.utc_now()
    levels = await get_stock_levels(db, product_ids, payload.from_location_id)
    committed = await get_committed_quantities(db, product_ids, payload.from_location_id, now)
    levels = {pid: max(qty - committed.get(pid, 0), 0) for pid, qty in levels.items()}
    short = [
        {
            "productId": i.product_id,
            "available": levels[i.product_id],
            "requested": i.quantity_sent,
        }
        for i in payload.items
        if i.quantity_sent > levels[i.product_id]
    ]
    if short:
        raise InsufficientStockError(
            "Insufficient stock at source location",
            {"items": short},
        )

    # -------------------------
    # CREATE MOVEMENT + ITEMS + TOKEN
    # -------------------------
    token = await mint_unique_token(db)

    movement = BulkMovement(
        from_location_id=payload.from_location_id,
        to_location_id=payload.to_location_id,
        status=BulkMovementStatus.pending,
        public_token=token,
        token_expires_at=compute_token_expiry(now),
        sender_notes=payload.notes,
        created_at=now,
        updated_at=now,
        created_by_id=user.id,
    )
    movement.items = [
        BulkMovementItem(
            product_id=item.product_id,
            position=position,
            quantity_sent=item.quantity_sent,
            sku=products[item.product_id].sku,
            product_details=products[item.product_id].name,
            product_image=products[item.product_id].image_url,
            unit=products[item.product_id].unit,
            created_at=now,
        )
        for position, item in enumerate(payload.items)
    ]

    try:
        db.add(movement)
        await db.flush()

        await emit_activity(
            db=db,
            user_id=user.id,
            username=user.username,
            code=ActivityCode.CREATE_BULK_MOVEMENT,
            actor_role=user.role.capitalize(),
            actor_email=user.username,
            target_name=movement.id,
            item_count=len(movement.items),
            from_location=locations[payload.from_location_id].code,
            to_location=locations[payload.to_location_id].code,
        )

        await db.commit()

    except IntegrityError:
        await db.rollback()
        raise AppException(
            409,
            "Bulk movement could not be created, please retry",
            ErrorCode.CONFLICT,
        )

    logger.info(
        "Bulk movement %s created by %s with %s item(s), token %s",
        movement.id,
        user.username,
        len(payload.items),
        mask_token(token),
    )

    return await get_bulk_movement(db, movement.id)


# =====================================================
# GET
# =====================================================
async def get_bulk_movement(
    db: AsyncSession,
    movement_id: str,
) -> BulkMovementOutSchema:
    movement = await get_bulk_movement_model(db, movement_id)
    await expire_if_stale(db, movement)
    return _map_bulk_movement(movement)


# =====================================================
# LIST
# =====================================================
async def list_bulk_movements(
    db: AsyncSession,
    *,
    status: list[BulkMovementStatus] | None,
    from_location_id: int | None,
    to_location_id: int | None,
    created_by: str | None,
    date_from: datetime | None,
    date_to: datetime | None,
    page: int,
    page_size: int,
) -> BulkMovementListData:

    filters = []

    if status:
        filters.append(BulkMovement.status.in_(status))
    if from_location_id:
        filters.append(BulkMovement.from_location_id == from_location_id)
    if to_location_id:
        filters.append(BulkMovement.to_location_id == to_location_id)
    if created_by:
        filters.append(
            BulkMovement.created_by_id.in_(
                select(User.id).where(User.username == created_by)
            )
        )
    if date_from:
        filters.append(BulkMovement.created_at >= date_from)
    if date_to:
        filters.append(BulkMovement.created_at <= date_to)

    total = await db.scalar(
        select(func.count()).select_from(BulkMovement).where(*filters)
    ) or 0

    rows = await db.execute(
        select(BulkMovement)
        .where(*filters)
        .order_by(BulkMovement.created_at.desc(), BulkMovement.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )

    return BulkMovementListData(
        items=[_map_bulk_movement(m) for m in rows.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


# =====================================================
# LOST RACE
# =====================================================
async def _raise_lost_transition(db: AsyncSession, movement_id: str, action: str):
    movement = await get_bulk_movement_model(db, movement_id)
    await expire_if_stale(db, movement)
    ensure_pending(movement, action)
    raise AppException(
        409,
        "Bulk movement was modified concurrently, please retry",
        ErrorCode.CONFLICT,
        {"id": movement_id},
    )


# =====================================================
# UPDATE (PENDING ONLY)
# =====================================================
async def update_bulk_movement(
    db: AsyncSession,
    movement_id: str,
    payload: BulkMovementUpdateSchema,
    user: User,
) -> BulkMovementOutSchema:

    movement = await get_bulk_movement_model(db, movement_id)
    await expire_if_stale(db, movement)
    ensure_pending(movement, "updated")

    values = {}
    changes: list[str] = []

    # -------- notes --------
    if "sender_notes" in payload.model_fields_set and payload.sender_notes != movement.sender_notes:
        values["sender_notes"] = payload.sender_notes
        changes.append("sender_notes")

    # -------- destination --------
    if payload.to_location_id is not None and payload.to_location_id != movement.to_location_id:
        if payload.to_location_id == movement.from_location_id:
            raise ValidationError(
                "Source and destination locations must differ",
                ErrorCode.BULK_MOVEMENT_INVALID_LOCATION,
            )
        await _validate_destination(db, payload.to_location_id)
        values["to_location_id"] = payload.to_location_id
        changes.append("to_location_id")

    if not values:
        raise ValidationError("No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    now = time_utils.utc_now()
    updated = await guarded_update(
        db,
        movement.id,
        updated_at=now,
        updated_by_id=user.id,
        **values,
    )
    if not updated:
        await _raise_lost_transition(db, movement.id, "updated")

    await emit_activity(
        db=db,
        user_id=user.id,
        username=user.username,
        code=ActivityCode.UPDATE_BULK_MOVEMENT,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
        target_name=movement.id,
        changes=", ".join(changes),
    )

    await db.commit()
    logger.info("Bulk movement %s updated by %s: %s", movement.id, user.username, ", ".join(changes))

    return await get_bulk_movement(db, movement.id)


# =====================================================
# CANCEL (PENDING ONLY)
# =====================================================
async def cancel_bulk_movement(
    db: AsyncSession,
    movement_id: str,
    user: User,
) -> BulkMovementOutSchema:

    movement = await get_bulk_movement_model(db, movement_id)
    await expire_if_stale(db, movement)
    ensure_pending(movement, "cancelled")

    now = time_utils.utc_now()
    cancelled = await transition_status(
        db,
        movement.id,
        BulkMovementStatus.cancelled,
        extra_where=[BulkMovement.token_expires_at >= now],
        cancelled_at=now,
        updated_at=now,
        updated_by_id=user.id,
    )
    if not cancelled:
        await _raise_lost_transition(db, movement.id, "cancelled")

    await emit_activity(
        db=db,
        user_id=user.id,
        username=user.username,
        code=ActivityCode.CANCEL_BULK_MOVEMENT,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
        target_name=movement.id,
    )

    await db.commit()
    logger.info("Bulk movement %s cancelled by %s", movement.id, user.username)

    return await get_bulk_movement(db, movement.id)
