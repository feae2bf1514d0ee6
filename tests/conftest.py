import logging
import os

# configuration is read at import time
os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["JWT_ACCESS_SECRET_KEY"] = "test-access-secret"
os.environ["PUBLIC_APP_URL"] = "http://frontend.test"
os.environ["BULK_MOVEMENT_TOKEN_TTL_HOURS"] = "72"

from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from main import app
from invenflow.core.db import Base, get_db, enable_sqlite_foreign_keys
from invenflow.core.security import create_access_token
from invenflow.models.users.user_models import User
from invenflow.models.inventory.inventory_location_models import InventoryLocation
from invenflow.models.inventory.inventory_balance_models import InventoryBalance
from invenflow.models.masters.product_models import Product
from invenflow.models.enums.location_type import LocationType
from invenflow.schemas.inventory.bulk_movement_schemas import (
    BulkMovementCreateSchema,
    BulkMovementItemCreateSchema,
)
from invenflow.services.inventory.bulk_movement_service import create_bulk_movement


@pytest.fixture
async def engine(tmp_path):
    """One SQLite file per test; NullPool so every session gets its own connection."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 5},
        poolclass=NullPool,
    )
    event.listen(test_engine.sync_engine, "connect", enable_sqlite_foreign_keys)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seed(session_factory):
    """Users, locations, products and opening stock shared by every test."""
    async with session_factory() as session:
        admin = User(username="admin@invenflow.test", role="admin", token_version=0)
        clerk = User(username="clerk@invenflow.test", role="inventory", token_version=0)
        sales = User(username="sales@invenflow.test", role="sales", token_version=0)

        warehouse = InventoryLocation(
            code="WH-01", name="Main Warehouse", area="North Wing",
            location_type=LocationType.physical,
        )
        showroom = InventoryLocation(
            code="SR-01", name="City Showroom", area="Ground Floor",
            location_type=LocationType.physical,
        )
        closed = InventoryLocation(
            code="OLD-01", name="Closed Store", area="Annex",
            location_type=LocationType.physical, is_active=False,
        )

        chair = Product(sku="CH-001", name="Oak Dining Chair", image_url="https://img.test/chair.png", unit="pcs")
        table = Product(sku="TB-002", name="Teak Coffee Table", unit="pcs")
        lamp = Product(sku="LP-003", name="Brass Floor Lamp", unit="pcs")
        retired = Product(sku="RT-004", name="Retired Stool", unit="pcs", is_deleted=True)

        session.add_all([admin, clerk, sales, warehouse, showroom, closed, chair, table, lamp, retired])
        await session.flush()

        session.add_all([
            InventoryBalance(product_id=chair.id, location_id=warehouse.id, quantity=50),
            InventoryBalance(product_id=table.id, location_id=warehouse.id, quantity=10),
            InventoryBalance(product_id=lamp.id, location_id=warehouse.id, quantity=5),
            InventoryBalance(product_id=chair.id, location_id=showroom.id, quantity=2),
        ])
        await session.commit()

        return SimpleNamespace(
            admin_id=admin.id,
            admin_username=admin.username,
            clerk_id=clerk.id,
            clerk_username=clerk.username,
            sales_username=sales.username,
            warehouse_id=warehouse.id,
            showroom_id=showroom.id,
            closed_id=closed.id,
            chair_id=chair.id,
            table_id=table.id,
            lamp_id=lamp.id,
            retired_id=retired.id,
        )


@pytest.fixture
def stock(session_factory):
    """Current balance of a product at a location, read through a fresh session."""
    async def _stock(product_id: int, location_id: int) -> int:
        async with session_factory() as session:
            quantity = await session.scalar(
                select(InventoryBalance.quantity).where(
                    InventoryBalance.product_id == product_id,
                    InventoryBalance.location_id == location_id,
                )
            )
            return quantity or 0
    return _stock


@pytest.fixture
def make_movement(session_factory, seed):
    """Create a pending movement from the warehouse through the service layer."""
    async def _make(items, *, to_location_id=None, notes=None):
        async with session_factory() as session:
            user = await session.get(User, seed.admin_id)
            payload = BulkMovementCreateSchema(
                from_location_id=seed.warehouse_id,
                to_location_id=to_location_id or seed.showroom_id,
                items=[
                    BulkMovementItemCreateSchema(product_id=product_id, quantity_sent=quantity)
                    for product_id, quantity in items
                ],
                notes=notes,
            )
            return await create_bulk_movement(session, payload, user)
    return _make


@pytest.fixture
async def client(session_factory, seed) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    # the test client's own request log prints full URLs, public tokens included
    httpx_logger = logging.getLogger("httpx")
    previous_level = httpx_logger.level
    httpx_logger.setLevel(logging.WARNING)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    httpx_logger.setLevel(previous_level)


def _bearer(username: str) -> dict:
    token = create_access_token(subject=username, token_version=0)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(seed) -> dict:
    return _bearer(seed.admin_username)


@pytest.fixture
def clerk_headers(seed) -> dict:
    return _bearer(seed.clerk_username)


@pytest.fixture
def sales_headers(seed) -> dict:
    return _bearer(seed.sales_username)
