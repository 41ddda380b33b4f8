"""
Tests for the SQLAlchemy inventory store against SQLite.
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest

from bloodnet.db.base import utcnow
from bloodnet.schemas.inventory import InventoryFilter
from bloodnet.services.facility_directory import SqlFacilityDirectory
from bloodnet.services.inventory_store import SqlInventoryStore
from bloodnet.utils.availability import classify
from bloodnet.utils.exceptions import AlreadyExistsError, InvalidQuantityError, NotFoundError
from tests.conftest import TestDataFactory


@pytest.fixture
def store(db_session):
    return SqlInventoryStore(db_session)


async def _put(store, facility_id, blood_type, quantity, **kwargs):
    return await store.upsert(
        facility_id=facility_id,
        blood_type=blood_type,
        quantity=quantity,
        last_updated=utcnow(),
        **kwargs,
    )


class TestUpsert:
    """Single-statement insert-or-update keyed by (facility, blood type)"""

    async def test_insert_then_update_keeps_one_row(self, store, blood_bank):
        first = await _put(store, blood_bank.id, "O_POSITIVE", 12, cost_per_unit=Decimal("150.00"))
        second = await _put(store, blood_bank.id, "O_POSITIVE", 3, updated_by="admin-1")

        assert first.id == second.id
        assert second.quantity == 3
        assert second.availability_status == "CRITICAL"
        assert second.updated_by == "admin-1"
        assert second.cost_per_unit == Decimal("150.00")

        rows = await store.list(InventoryFilter(facility_id=blood_bank.id))
        assert len(rows) == 1

    async def test_supplied_pricing_overwrites(self, store, blood_bank):
        await _put(store, blood_bank.id, "A_NEGATIVE", 5, cost_per_unit=Decimal("150.00"))
        record = await _put(
            store, blood_bank.id, "A_NEGATIVE", 5,
            cost_per_unit=Decimal("0"), is_free=True, expiry_date=date(2030, 6, 1),
        )

        assert record.is_free is True
        assert record.cost_per_unit == Decimal("0")
        assert record.expiry_date == date(2030, 6, 1)

    async def test_negative_quantity_rejected_before_write(self, store, blood_bank):
        with pytest.raises(InvalidQuantityError):
            await _put(store, blood_bank.id, "O_POSITIVE", -5)

        assert await store.get(blood_bank.id, "O_POSITIVE") is None

    @pytest.mark.parametrize("quantity", [0, 3, 4, 10, 11])
    async def test_status_follows_quantity(self, store, blood_bank, quantity):
        await _put(store, blood_bank.id, "O_POSITIVE", 50)

        record = await _put(store, blood_bank.id, "O_POSITIVE", quantity)

        assert record.availability_status == classify(quantity).value
        stored = await store.get(blood_bank.id, "O_POSITIVE")
        assert stored.availability_status == classify(quantity).value


class TestCreateAndDelete:
    async def test_create(self, store, blood_bank):
        record = await store.create(
            facility_id=blood_bank.id,
            blood_type="B_POSITIVE",
            quantity=7,
            last_updated=utcnow(),
        )

        assert record.id is not None
        assert record.cost_per_unit == Decimal("0")
        assert record.is_free is False
        assert (await store.get_by_id(record.id)).quantity == 7

    @pytest.mark.parametrize("quantity", [0, 3, 4, 10, 11])
    async def test_create_derives_status(self, store, blood_bank, quantity):
        record = await store.create(
            facility_id=blood_bank.id,
            blood_type="B_POSITIVE",
            quantity=quantity,
            last_updated=utcnow(),
        )

        assert record.availability_status == classify(quantity).value
        assert (await store.get_by_id(record.id)).availability_status == classify(quantity).value

    async def test_create_duplicate_key(self, store, blood_bank):
        await _put(store, blood_bank.id, "B_POSITIVE", 7)

        with pytest.raises(AlreadyExistsError):
            await store.create(
                facility_id=blood_bank.id,
                blood_type="B_POSITIVE",
                quantity=1,
                last_updated=utcnow(),
            )

    async def test_delete(self, store, blood_bank):
        record = await _put(store, blood_bank.id, "AB_NEGATIVE", 2)

        deleted = await store.delete(record.id)

        assert deleted.id == record.id
        assert await store.get_by_id(record.id) is None

    async def test_delete_missing(self, store):
        with pytest.raises(NotFoundError):
            await store.delete(uuid.uuid4())


class TestQueries:
    async def test_list_filters(self, store, db_session, city, blood_bank):
        other_city = await TestDataFactory.create_city(db_session, "Kumasi", "Ashanti")
        other_bank = await TestDataFactory.create_blood_bank(db_session, other_city, "Kumasi Bank")

        await _put(store, blood_bank.id, "O_POSITIVE", 12)
        await _put(store, blood_bank.id, "A_POSITIVE", 2, expiry_date=date(2020, 1, 1))
        await _put(store, other_bank.id, "O_POSITIVE", 0)

        in_city = await store.list(InventoryFilter(city_id=city.id))
        assert {r.blood_type for r in in_city} == {"O_POSITIVE", "A_POSITIVE"}

        o_positive = await store.list(InventoryFilter(blood_type="O_POSITIVE"))
        assert {r.facility_id for r in o_positive} == {blood_bank.id, other_bank.id}

        stocked = await store.list(InventoryFilter(min_quantity=1, max_quantity=5))
        assert [r.blood_type for r in stocked] == ["A_POSITIVE"]

        expired = await store.list(InventoryFilter(expired_before=date(2021, 1, 1)))
        assert [r.blood_type for r in expired] == ["A_POSITIVE"]

    async def test_group_by_type_for_city(self, store, db_session, city, blood_bank):
        second = await TestDataFactory.create_blood_bank(db_session, city, "Second Bank")
        closed = await TestDataFactory.create_blood_bank(db_session, city, "Closed Bank", is_active=False)

        await _put(store, blood_bank.id, "O_POSITIVE", 12)
        await _put(store, second.id, "O_POSITIVE", 0)
        await _put(store, closed.id, "O_POSITIVE", 40)
        await _put(store, second.id, "B_NEGATIVE", 3)

        rollups = await store.group_by_type_and_status(city_id=city.id)

        assert set(rollups) == {"O_POSITIVE", "B_NEGATIVE"}
        assert rollups["O_POSITIVE"].total_quantity == 12
        assert rollups["O_POSITIVE"].record_count == 2
        assert rollups["O_POSITIVE"].available_count == 1
        assert rollups["B_NEGATIVE"].available_count == 1


class TestFacilityDirectory:
    async def test_lists_active_banks_with_relations(self, db_session, city, blood_bank):
        await TestDataFactory.create_blood_bank(db_session, city, "Closed Bank", is_active=False)
        directory = SqlFacilityDirectory(db_session)

        banks = await directory.list_facilities(city_id=city.id)

        assert [b.id for b in banks] == [blood_bank.id]
        assert banks[0].city.name == "Accra"
        assert banks[0].hospital is not None
        assert await directory.count_facilities(city.id) == 1

    async def test_get_unknown_bank(self, db_session):
        assert await SqlFacilityDirectory(db_session).get_facility(uuid.uuid4()) is None
