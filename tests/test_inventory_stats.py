"""
Tests for per-facility and per-city inventory rollups.
"""

import uuid

import pytest

from bloodnet.schemas.base_schema import AvailabilityStatus
from bloodnet.services.inventory_coordinator import InventoryUpdateCoordinator
from bloodnet.services.inventory_stats_service import InventoryStatsService
from bloodnet.utils.exceptions import NotFoundError
from tests.fakes import (
    FakeFacilityDirectory,
    InMemoryInventoryStore,
    RecordingPublisher,
    make_city,
    make_facility,
)


@pytest.fixture
def city():
    return make_city()


@pytest.fixture
def directory():
    return FakeFacilityDirectory()


@pytest.fixture
def store(directory):
    return InMemoryInventoryStore(directory)


@pytest.fixture
def coordinator(store, directory):
    return InventoryUpdateCoordinator(store, directory, RecordingPublisher())


@pytest.fixture
def stats(store, directory):
    return InventoryStatsService(store, directory)


class TestFacilityStats:
    async def test_inventory_by_type(self, stats, coordinator, directory, city):
        facility = directory.add(make_facility(city, "Bank"))
        await coordinator.update_quantity(facility.id, "O+", 12)
        await coordinator.update_quantity(facility.id, "A-", 0)

        result = await stats.facility_stats(facility.id)

        assert result.total_blood_types == 2
        assert result.inventory_by_type["O_POSITIVE"].quantity == 12
        assert result.inventory_by_type["O_POSITIVE"].status == AvailabilityStatus.AVAILABLE
        assert result.inventory_by_type["A_NEGATIVE"].status == AvailabilityStatus.UNAVAILABLE

    async def test_unknown_facility(self, stats):
        with pytest.raises(NotFoundError):
            await stats.facility_stats(uuid.uuid4())


class TestCitySummary:
    async def test_totals_across_active_banks(self, stats, coordinator, directory, city):
        first = directory.add(make_facility(city, "First"))
        second = directory.add(make_facility(city, "Second"))
        closed = directory.add(make_facility(city, "Closed", is_active=False))
        await coordinator.update_quantity(first.id, "O+", 12)
        await coordinator.update_quantity(second.id, "O+", 0)
        await coordinator.update_quantity(closed.id, "O+", 30)
        await coordinator.update_quantity(second.id, "B+", 2)

        summary = await stats.city_summary(city.id)

        assert summary.total_blood_banks == 2
        assert list(summary.blood_types_summary) == ["B_POSITIVE", "O_POSITIVE"]
        o_positive = summary.blood_types_summary["O_POSITIVE"]
        assert o_positive.total_quantity == 12
        assert o_positive.blood_banks == 2
        assert o_positive.available_count == 1

    async def test_empty_city(self, stats, city):
        summary = await stats.city_summary(city.id)

        assert summary.total_blood_banks == 0
        assert summary.blood_types_summary == {}
