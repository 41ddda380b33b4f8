"""
API tests for the blood inventory endpoints.
"""

import uuid
from datetime import date, timedelta

import pytest

from bloodnet.services.notification_service import city_topic, facility_topic
from tests.conftest import TestDataFactory, assert_response_error, assert_response_success

BASE = "/api/blood-inventory"


async def _set_quantity(client, headers, facility_id, blood_type, quantity, **extra):
    return await client.put(
        f"{BASE}/blood-bank/{facility_id}/{blood_type}",
        json={"quantity": quantity, **extra},
        headers=headers,
    )


class TestInventoryWrites:
    """Setting stock through the API"""

    async def test_set_quantity_derives_status(self, client, admin_headers, blood_bank):
        response = await _set_quantity(client, admin_headers, blood_bank.id, "O_POSITIVE", 12)

        data = assert_response_success(response)
        assert data["quantity"] == 12
        assert data["availability_status"] == "AVAILABLE"
        assert data["updated_by"] == "bank-admin-1"

        response = await _set_quantity(client, admin_headers, blood_bank.id, "O_POSITIVE", 2)
        second = assert_response_success(response)
        assert second["id"] == data["id"]
        assert second["availability_status"] == "CRITICAL"

    async def test_short_blood_type_in_path(self, client, admin_headers, blood_bank):
        response = await _set_quantity(client, admin_headers, blood_bank.id, "ab-", 4)

        data = assert_response_success(response)
        assert data["blood_type"] == "AB_NEGATIVE"
        assert data["availability_status"] == "LIMITED"

    async def test_update_is_broadcast(self, client, admin_headers, broker, city, blood_bank):
        city_queue = await broker.subscribe([city_topic(city.id)])
        facility_queue = await broker.subscribe([facility_topic(blood_bank.id)])

        await _set_quantity(client, admin_headers, blood_bank.id, "B_POSITIVE", 0)

        payload = city_queue.get_nowait()["data"]
        assert payload["type"] == "blood_inventory_update"
        assert payload["quantity"] == 0
        assert payload["availability_status"] == "UNAVAILABLE"
        assert facility_queue.get_nowait()["data"] == payload

    async def test_requires_authentication(self, client, blood_bank):
        response = await _set_quantity(client, {}, blood_bank.id, "O_POSITIVE", 5)
        assert_response_error(response, 401, "unauthorized")

    async def test_rejects_invalid_token(self, client, blood_bank):
        headers = {"Authorization": "Bearer not-a-token"}
        response = await _set_quantity(client, headers, blood_bank.id, "O_POSITIVE", 5)
        assert_response_error(response, 401, "unauthorized")

    async def test_requires_admin_role(self, client, user_headers, blood_bank):
        response = await _set_quantity(client, user_headers, blood_bank.id, "O_POSITIVE", 5)
        assert_response_error(response, 403, "forbidden")

    async def test_status_cannot_be_supplied(self, client, admin_headers, blood_bank):
        response = await _set_quantity(
            client, admin_headers, blood_bank.id, "O_POSITIVE", 5, availability_status="AVAILABLE"
        )

        data = assert_response_error(response, 422, "validation_error")
        assert data["details"][0]["field"] == "availability_status"

    async def test_negative_quantity(self, client, admin_headers, blood_bank):
        response = await _set_quantity(client, admin_headers, blood_bank.id, "O_POSITIVE", -3)
        assert_response_error(response, 400, "invalid_quantity")

        listing = await client.get(f"{BASE}/blood-bank/{blood_bank.id}", headers=admin_headers)
        assert assert_response_success(listing) == []

    async def test_unknown_blood_bank(self, client, admin_headers):
        response = await _set_quantity(client, admin_headers, uuid.uuid4(), "O_POSITIVE", 5)
        assert_response_error(response, 404, "not_found")

    async def test_unknown_blood_type(self, client, admin_headers, blood_bank):
        response = await _set_quantity(client, admin_headers, blood_bank.id, "Q_POSITIVE", 5)
        assert_response_error(response, 400, "validation_error")

    async def test_free_stock_with_price_is_rejected(self, client, admin_headers, blood_bank):
        response = await _set_quantity(
            client, admin_headers, blood_bank.id, "O_POSITIVE", 5, is_free=True, cost_per_unit="120.00"
        )
        assert_response_error(response, 400, "validation_error")


class TestInventoryEntries:
    async def test_create_then_duplicate(self, client, admin_headers, blood_bank):
        payload = {"facility_id": str(blood_bank.id), "blood_type": "O-", "quantity": 7}

        response = await client.post(f"{BASE}/", json=payload, headers=admin_headers)
        data = assert_response_success(response, 201)
        assert data["blood_type"] == "O_NEGATIVE"
        assert data["availability_status"] == "LIMITED"

        response = await client.post(f"{BASE}/", json=payload, headers=admin_headers)
        assert_response_error(response, 409, "already_exists")

    async def test_update_and_delete_by_id(self, client, admin_headers, broker, blood_bank):
        created = assert_response_success(
            await client.post(
                f"{BASE}/",
                json={"facility_id": str(blood_bank.id), "blood_type": "A_POSITIVE", "quantity": 3},
                headers=admin_headers,
            ),
            201,
        )

        response = await client.put(
            f"{BASE}/{created['id']}", json={"quantity": 30}, headers=admin_headers
        )
        assert assert_response_success(response)["availability_status"] == "AVAILABLE"

        queue = await broker.subscribe([facility_topic(blood_bank.id)])
        response = await client.delete(f"{BASE}/{created['id']}", headers=admin_headers)
        assert assert_response_success(response)["id"] == created["id"]
        assert queue.get_nowait()["data"]["availability_status"] == "UNAVAILABLE"

        response = await client.delete(f"{BASE}/{created['id']}", headers=admin_headers)
        assert_response_error(response, 404, "not_found")


class TestAvailabilityEndpoints:
    async def test_public_availability(self, client, admin_headers, city, blood_bank):
        await _set_quantity(client, admin_headers, blood_bank.id, "O_POSITIVE", 12)

        response = await client.get(
            f"{BASE}/availability", params={"city_id": str(city.id), "blood_type": "O_POSITIVE"}
        )

        data = assert_response_success(response)
        assert len(data) == 1
        assert data[0]["name"] == blood_bank.name
        assert data[0]["city"]["name"] == "Accra"
        assert data[0]["hospital"]["name"] == "Korle Bu Teaching Hospital"
        assert data[0]["blood_inventory"][0]["availability_status"] == "AVAILABLE"

    async def test_availability_by_location(self, client, admin_headers, city, blood_bank):
        await _set_quantity(client, admin_headers, blood_bank.id, "O_POSITIVE", 12)

        response = await client.get(
            f"{BASE}/availability",
            params={"latitude": 5.6037, "longitude": -0.1870, "radius": 10},
        )

        data = assert_response_success(response)
        assert data[0]["distance_km"] == 0

    async def test_half_coordinates_rejected(self, client):
        response = await client.get(f"{BASE}/availability", params={"latitude": 5.6})
        assert_response_error(response, 400, "validation_error")

    async def test_emergency_search(self, client, db_session, admin_headers, city, blood_bank):
        other = await TestDataFactory.create_blood_bank(db_session, city, "Ridge Blood Bank")
        await _set_quantity(client, admin_headers, blood_bank.id, "O_NEGATIVE", 5)
        await _set_quantity(client, admin_headers, other.id, "O_NEGATIVE", 15)

        response = await client.get(
            f"{BASE}/emergency/availability",
            params={"city_id": str(city.id), "blood_type": "O_NEGATIVE"},
        )

        data = assert_response_success(response)
        body = response.json()
        assert body["emergency"] is True
        assert "timestamp" in body
        assert [f["id"] for f in data] == [str(other.id), str(blood_bank.id)]

    @pytest.mark.parametrize(
        "params",
        [{"blood_type": "O_NEGATIVE"}, {"city_id": str(uuid.UUID(int=1))}],
    )
    async def test_emergency_search_requires_city_and_type(self, client, params):
        response = await client.get(f"{BASE}/emergency/availability", params=params)
        assert_response_error(response, 400, "validation_error")

    async def test_city_summary(self, client, admin_headers, city, blood_bank):
        await _set_quantity(client, admin_headers, blood_bank.id, "O_POSITIVE", 12)
        await _set_quantity(client, admin_headers, blood_bank.id, "B_POSITIVE", 0)

        response = await client.get(f"{BASE}/city/{city.id}/summary")

        data = assert_response_success(response)
        assert "timestamp" in response.json()
        assert data["total_blood_banks"] == 1
        assert data["blood_types_summary"]["O_POSITIVE"]["total_quantity"] == 12
        assert data["blood_types_summary"]["B_POSITIVE"]["available_count"] == 0


class TestInventoryReports:
    async def test_facility_inventory_requires_login(self, client, blood_bank):
        response = await client.get(f"{BASE}/blood-bank/{blood_bank.id}")
        assert_response_error(response, 401)

    async def test_facility_stats(self, client, admin_headers, user_headers, blood_bank):
        await _set_quantity(client, admin_headers, blood_bank.id, "O_POSITIVE", 12)
        await _set_quantity(client, admin_headers, blood_bank.id, "A_POSITIVE", 3)

        response = await client.get(f"{BASE}/blood-bank/{blood_bank.id}/stats", headers=user_headers)

        data = assert_response_success(response)
        assert data["total_blood_types"] == 2
        assert data["inventory_by_type"]["A_POSITIVE"] == {"quantity": 3, "status": "CRITICAL"}

    async def test_expired_and_low_stock(self, client, admin_headers, user_headers, blood_bank):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        await _set_quantity(client, admin_headers, blood_bank.id, "O_POSITIVE", 2, expiry_date=yesterday)
        await _set_quantity(client, admin_headers, blood_bank.id, "A_POSITIVE", 40)

        expired = assert_response_success(await client.get(f"{BASE}/expired", headers=admin_headers))
        assert [r["blood_type"] for r in expired] == ["O_POSITIVE"]

        low = assert_response_success(
            await client.get(f"{BASE}/low-stock", params={"threshold": 5}, headers=admin_headers)
        )
        assert [r["blood_type"] for r in low] == ["O_POSITIVE"]

        response = await client.get(f"{BASE}/expired", headers=user_headers)
        assert_response_error(response, 403)


class TestServiceEndpoints:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "connected"}

    async def test_stream_requires_a_topic(self, client):
        response = await client.get("/api/notifications/stream")
        assert_response_error(response, 400, "validation_error")

    async def test_stream_stats(self, client, broker):
        await broker.subscribe(["city:1"])

        response = await client.get("/api/notifications/stats")

        data = assert_response_success(response)
        assert data["total_subscribers"] == 1

    async def test_request_id_header(self, client):
        response = await client.get("/", headers={"X-Request-ID": "req-123"})

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "req-123"
