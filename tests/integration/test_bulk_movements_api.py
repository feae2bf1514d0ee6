import pytest
from datetime import datetime, timedelta
from httpx import AsyncClient
from fastapi import status
from sqlalchemy import select, func

from invenflow.models.support.activity_models import UserActivity
from invenflow.models.inventory.movement_log_models import MovementLog
from invenflow.models.inventory.inventory_location_models import InventoryLocation
from invenflow.utils import time_utils


def _create_payload(seed, items=None, **overrides):
    payload = {
        "fromLocationId": seed.warehouse_id,
        "toLocationId": seed.showroom_id,
        "items": items if items is not None else [
            {"productId": seed.chair_id, "quantitySent": 5},
            {"productId": seed.table_id, "quantitySent": 2},
        ],
        "notes": "Weekend restock",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
class TestCreateBulkMovement:
    """POST /bulk-movements"""

    async def test_create_returns_pending_movement_with_public_url(
        self, client: AsyncClient, seed, admin_headers, stock
    ):
        response = await client.post("/bulk-movements", json=_create_payload(seed), headers=admin_headers)
        assert response.status_code == status.HTTP_201_CREATED

        body = response.json()
        assert body["success"] is True
        data = body["data"]

        assert data["status"] == "pending"
        assert data["isExpired"] is False
        assert data["publicUrl"].startswith("http://frontend.test/bulk-movement/confirm/")
        assert data["createdBy"] == seed.admin_username
        assert data["senderNotes"] == "Weekend restock"
        assert data["fromLocation"]["code"] == "WH-01"
        assert data["toLocation"]["area"] == "Ground Floor"
        assert data["confirmedAt"] is None

        assert [i["sku"] for i in data["items"]] == ["CH-001", "TB-002"]
        assert data["items"][0]["productDetails"] == "Oak Dining Chair"
        assert data["items"][0]["productImage"] == "https://img.test/chair.png"
        assert all(i["quantityReceived"] is None for i in data["items"])

        # stock only moves at confirmation
        assert await stock(seed.chair_id, seed.warehouse_id) == 50
        assert await stock(seed.chair_id, seed.showroom_id) == 2

    async def test_token_expiry_defaults_to_seventy_two_hours(self, client: AsyncClient, seed, admin_headers):
        response = await client.post("/bulk-movements", json=_create_payload(seed), headers=admin_headers)
        data = response.json()["data"]

        created_at = datetime.fromisoformat(data["createdAt"])
        expires_at = datetime.fromisoformat(data["tokenExpiresAt"])
        assert expires_at - created_at == timedelta(hours=72)

    async def test_create_writes_activity(self, client: AsyncClient, seed, clerk_headers, db):
        response = await client.post("/bulk-movements", json=_create_payload(seed), headers=clerk_headers)
        assert response.status_code == status.HTTP_201_CREATED

        messages = (await db.execute(select(UserActivity.message))).scalars().all()
        assert any("created bulk movement" in m and "WH-01" in m for m in messages)

    async def test_same_source_and_destination_rejected(self, client: AsyncClient, seed, admin_headers):
        payload = _create_payload(seed, toLocationId=seed.warehouse_id)
        response = await client.post("/bulk-movements", json=payload, headers=admin_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "BULK_MOVEMENT_INVALID_LOCATION"

    async def test_empty_items_rejected(self, client: AsyncClient, seed, admin_headers):
        response = await client.post("/bulk-movements", json=_create_payload(seed, items=[]), headers=admin_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "BULK_MOVEMENT_EMPTY_ITEMS"

    async def test_negative_quantity_rejected(self, client: AsyncClient, seed, admin_headers):
        items = [{"productId": seed.chair_id, "quantitySent": -1}]
        response = await client.post("/bulk-movements", json=_create_payload(seed, items=items), headers=admin_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "BULK_MOVEMENT_INVALID_QUANTITY"

    async def test_duplicate_product_rejected(self, client: AsyncClient, seed, admin_headers):
        items = [
            {"productId": seed.chair_id, "quantitySent": 1},
            {"productId": seed.chair_id, "quantitySent": 2},
        ]
        response = await client.post("/bulk-movements", json=_create_payload(seed, items=items), headers=admin_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "BULK_MOVEMENT_INVALID_PRODUCT"

    async def test_inactive_location_rejected(self, client: AsyncClient, seed, admin_headers):
        payload = _create_payload(seed, toLocationId=seed.closed_id)
        response = await client.post("/bulk-movements", json=payload, headers=admin_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "BULK_MOVEMENT_INVALID_LOCATION"

    async def test_deleted_product_rejected(self, client: AsyncClient, seed, admin_headers):
        items = [{"productId": seed.retired_id, "quantitySent": 1}]
        response = await client.post("/bulk-movements", json=_create_payload(seed, items=items), headers=admin_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["error_code"] == "BULK_MOVEMENT_INVALID_PRODUCT"
        assert body["details"]["productIds"] == [seed.retired_id]

    async def test_insufficient_source_stock_rejected(self, client: AsyncClient, seed, admin_headers):
        items = [{"productId": seed.lamp_id, "quantitySent": 6}]
        response = await client.post("/bulk-movements", json=_create_payload(seed, items=items), headers=admin_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        body = response.json()
        assert body["error_code"] == "INSUFFICIENT_STOCK"
        assert body["details"]["items"] == [
            {"productId": seed.lamp_id, "available": 5, "requested": 6}
        ]

    async def test_stock_promised_to_pending_movement_is_reserved(
        self, client: AsyncClient, seed, admin_headers, make_movement
    ):
        await make_movement([(seed.chair_id, 30)])

        items = [{"productId": seed.chair_id, "quantitySent": 30}]
        response = await client.post("/bulk-movements", json=_create_payload(seed, items=items), headers=admin_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        body = response.json()
        assert body["error_code"] == "INSUFFICIENT_STOCK"
        assert body["details"]["items"] == [
            {"productId": seed.chair_id, "available": 20, "requested": 30}
        ]

    async def test_cancel_releases_reserved_stock(self, client: AsyncClient, seed, admin_headers, make_movement):
        first = await make_movement([(seed.chair_id, 30)])
        await client.post(f"/bulk-movements/{first.id}/cancel", headers=admin_headers)

        items = [{"productId": seed.chair_id, "quantitySent": 30}]
        response = await client.post("/bulk-movements", json=_create_payload(seed, items=items), headers=admin_headers)

        assert response.status_code == status.HTTP_201_CREATED

    async def test_stale_pending_movement_reserves_nothing(
        self, client: AsyncClient, seed, admin_headers, make_movement, monkeypatch
    ):
        await make_movement([(seed.chair_id, 30)])
        later = time_utils.utc_now() + timedelta(hours=73)
        monkeypatch.setattr(time_utils, "utc_now", lambda: later)

        items = [{"productId": seed.chair_id, "quantitySent": 30}]
        response = await client.post("/bulk-movements", json=_create_payload(seed, items=items), headers=admin_headers)

        assert response.status_code == status.HTTP_201_CREATED

    async def test_zero_quantity_line_allowed(self, client: AsyncClient, seed, admin_headers):
        items = [{"productId": seed.lamp_id, "quantitySent": 0}]
        response = await client.post("/bulk-movements", json=_create_payload(seed, items=items), headers=admin_headers)

        assert response.status_code == status.HTTP_201_CREATED


@pytest.mark.asyncio
class TestSenderAccess:
    """Role gate on the sender surface"""

    async def test_role_without_inventory_access_forbidden(self, client: AsyncClient, seed, sales_headers):
        response = await client.post("/bulk-movements", json=_create_payload(seed), headers=sales_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error_code"] == "PERMISSION_DENIED"

    async def test_invalid_token_unauthorized(self, client: AsyncClient):
        response = await client.get("/bulk-movements", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
class TestListAndGetBulkMovements:
    """GET /bulk-movements and GET /bulk-movements/{id}"""

    async def test_get_by_id(self, client: AsyncClient, seed, admin_headers, make_movement):
        movement = await make_movement([(seed.chair_id, 3)])

        response = await client.get(f"/bulk-movements/{movement.id}", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["id"] == movement.id

    async def test_unknown_id_not_found(self, client: AsyncClient, admin_headers):
        response = await client.get("/bulk-movements/00000000-0000-0000-0000-000000000000", headers=admin_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error_code"] == "BULK_MOVEMENT_NOT_FOUND"

    async def test_list_filters_and_pagination(self, client: AsyncClient, seed, admin_headers, make_movement):
        first = await make_movement([(seed.chair_id, 1)])
        await make_movement([(seed.table_id, 1)])
        await client.post(f"/bulk-movements/{first.id}/cancel", headers=admin_headers)

        response = await client.get("/bulk-movements", params={"status": "pending"}, headers=admin_headers)
        data = response.json()["data"]
        assert data["total"] == 1
        assert data["items"][0]["status"] == "pending"

        response = await client.get(
            "/bulk-movements",
            params=[("status", "pending"), ("status", "cancelled")],
            headers=admin_headers,
        )
        assert response.json()["data"]["total"] == 2

        response = await client.get("/bulk-movements", params={"pageSize": 1, "page": 2}, headers=admin_headers)
        data = response.json()["data"]
        assert data["total"] == 2
        assert data["totalPages"] == 2
        assert data["page"] == 2
        assert len(data["items"]) == 1

        response = await client.get(
            "/bulk-movements",
            params={"createdBy": seed.admin_username, "toLocationId": seed.showroom_id},
            headers=admin_headers,
        )
        assert response.json()["data"]["total"] == 2

        response = await client.get("/bulk-movements", params={"createdBy": "nobody"}, headers=admin_headers)
        assert response.json()["data"]["total"] == 0

    async def test_page_size_bounded(self, client: AsyncClient, admin_headers):
        response = await client.get("/bulk-movements", params={"pageSize": 500}, headers=admin_headers)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_get_promotes_stale_movement_to_expired(
        self, client: AsyncClient, seed, admin_headers, make_movement, monkeypatch
    ):
        movement = await make_movement([(seed.chair_id, 1)])
        later = time_utils.utc_now() + timedelta(hours=73)
        monkeypatch.setattr(time_utils, "utc_now", lambda: later)

        response = await client.get(f"/bulk-movements/{movement.id}", headers=admin_headers)
        data = response.json()["data"]
        assert data["status"] == "expired"
        assert data["isExpired"] is True


@pytest.mark.asyncio
class TestUpdateBulkMovement:
    """PUT /bulk-movements/{id}"""

    async def test_update_sender_notes(self, client: AsyncClient, seed, admin_headers, make_movement):
        movement = await make_movement([(seed.chair_id, 1)], notes="first")

        response = await client.put(
            f"/bulk-movements/{movement.id}",
            json={"senderNotes": "Handle with care"},
            headers=admin_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["senderNotes"] == "Handle with care"

    async def test_update_destination(self, client: AsyncClient, seed, admin_headers, make_movement, session_factory):
        async with session_factory() as session:
            depot = InventoryLocation(code="DP-01", name="East Depot", area="Dock 3")
            session.add(depot)
            await session.commit()
            depot_id = depot.id

        movement = await make_movement([(seed.chair_id, 1)])
        response = await client.put(
            f"/bulk-movements/{movement.id}",
            json={"toLocationId": depot_id},
            headers=admin_headers,
        )
        data = response.json()["data"]
        assert data["toLocationId"] == depot_id
        assert data["toLocation"]["code"] == "DP-01"

    async def test_update_without_changes_rejected(self, client: AsyncClient, seed, admin_headers, make_movement):
        movement = await make_movement([(seed.chair_id, 1)])

        response = await client.put(f"/bulk-movements/{movement.id}", json={}, headers=admin_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "NO_CHANGES_DETECTED"

    async def test_destination_equal_to_source_rejected(self, client: AsyncClient, seed, admin_headers, make_movement):
        movement = await make_movement([(seed.chair_id, 1)])

        response = await client.put(
            f"/bulk-movements/{movement.id}",
            json={"toLocationId": seed.warehouse_id},
            headers=admin_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "BULK_MOVEMENT_INVALID_LOCATION"

    async def test_cancelled_movement_cannot_be_updated(self, client: AsyncClient, seed, admin_headers, make_movement):
        movement = await make_movement([(seed.chair_id, 1)])
        await client.post(f"/bulk-movements/{movement.id}/cancel", headers=admin_headers)

        response = await client.put(
            f"/bulk-movements/{movement.id}",
            json={"senderNotes": "too late"},
            headers=admin_headers,
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["details"]["reason"] == "cancelled"


@pytest.mark.asyncio
class TestCancelBulkMovement:
    """POST /bulk-movements/{id}/cancel"""

    async def test_cancel_pending(self, client: AsyncClient, seed, admin_headers, make_movement, stock):
        movement = await make_movement([(seed.chair_id, 4)])

        response = await client.post(f"/bulk-movements/{movement.id}/cancel", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["status"] == "cancelled"
        assert data["cancelledAt"] is not None
        assert data["updatedBy"] == seed.admin_username
        assert await stock(seed.chair_id, seed.warehouse_id) == 50

    async def test_cancel_twice_conflicts(self, client: AsyncClient, seed, admin_headers, make_movement):
        movement = await make_movement([(seed.chair_id, 1)])
        await client.post(f"/bulk-movements/{movement.id}/cancel", headers=admin_headers)

        response = await client.post(f"/bulk-movements/{movement.id}/cancel", headers=admin_headers)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error_code"] == "BULK_MOVEMENT_INVALID_STATUS"

    async def test_cancel_confirmed_conflicts(self, client: AsyncClient, seed, admin_headers, make_movement, db):
        movement = await make_movement([(seed.chair_id, 2)])
        token = movement.public_url.rsplit("/", 1)[-1]

        confirm = await client.post(
            f"/public/bulk-movements/{token}/confirm",
            json={
                "confirmedBy": "Meera",
                "items": [{"itemId": movement.items[0].id, "quantityReceived": 2}],
            },
        )
        assert confirm.status_code == status.HTTP_200_OK

        response = await client.post(f"/bulk-movements/{movement.id}/cancel", headers=admin_headers)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["details"]["reason"] == "confirmed"

        ledger = await db.scalar(select(func.count()).select_from(MovementLog))
        assert ledger == 1

    async def test_cancel_expired_conflicts(self, client: AsyncClient, seed, admin_headers, make_movement, monkeypatch):
        movement = await make_movement([(seed.chair_id, 1)])
        later = time_utils.utc_now() + timedelta(hours=80)
        monkeypatch.setattr(time_utils, "utc_now", lambda: later)

        response = await client.post(f"/bulk-movements/{movement.id}/cancel", headers=admin_headers)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["details"]["reason"] == "expired"


@pytest.mark.asyncio
class TestExpirySweepEndpoint:
    """POST /bulk-movements/check-expired"""

    async def test_check_expired_reports_count(self, client: AsyncClient, seed, admin_headers, make_movement, monkeypatch):
        await make_movement([(seed.chair_id, 1)])
        await make_movement([(seed.table_id, 1)])

        response = await client.post("/bulk-movements/check-expired", headers=admin_headers)
        assert response.json()["data"] == {"expiredCount": 0}

        later = time_utils.utc_now() + timedelta(hours=73)
        monkeypatch.setattr(time_utils, "utc_now", lambda: later)

        response = await client.post("/bulk-movements/check-expired", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"] == {"expiredCount": 2}

        response = await client.post("/bulk-movements/check-expired", headers=admin_headers)
        assert response.json()["data"] == {"expiredCount": 0}
