from uuid import UUID

from bloodnet.db.base import utcnow
from bloodnet.schemas.base_schema import AvailabilityStatus
from bloodnet.schemas.inventory import InventoryFilter
from bloodnet.schemas.stats_schema import (
    BloodTypeStat,
    CityBloodTypeSummary,
    CitySummary,
    FacilityStats,
)
from bloodnet.services.ports import FacilityDirectory, InventoryStore
from bloodnet.utils.exceptions import NotFoundError
from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)


class InventoryStatsService:
    """Per-facility and per-city rollups, recomputed on every call"""

    def __init__(self, store: InventoryStore, directory: FacilityDirectory):
        self.store = store
        self.directory = directory

    async def facility_stats(self, facility_id: UUID) -> FacilityStats:
        facility = await self.directory.get_facility(facility_id)
        if facility is None:
            raise NotFoundError("Blood bank", facility_id)

        records = await self.store.list(InventoryFilter(facility_id=facility_id))

        inventory_by_type = {
            record.blood_type: BloodTypeStat(
                quantity=record.quantity,
                status=AvailabilityStatus(record.availability_status),
            )
            for record in sorted(records, key=lambda r: r.blood_type)
        }

        return FacilityStats(
            facility_id=facility_id,
            total_blood_types=len(inventory_by_type),
            inventory_by_type=inventory_by_type,
            last_updated=utcnow(),
        )

    async def city_summary(self, city_id: UUID) -> CitySummary:
        """
        Blood type totals across the active blood banks of a city.

        ``blood_banks`` counts facilities holding a record for the type,
        ``available_count`` those whose record is not UNAVAILABLE.
        """
        total_blood_banks = await self.directory.count_facilities(city_id)
        rollups = await self.store.group_by_type_and_status(city_id=city_id)

        summary = {
            blood_type: CityBloodTypeSummary(
                total_quantity=rollup.total_quantity,
                blood_banks=rollup.record_count,
                available_count=rollup.available_count,
            )
            for blood_type, rollup in sorted(rollups.items())
        }

        logger.debug(
            f"City summary computed for {city_id}",
            extra={'extra_fields': {'city_id': str(city_id), 'blood_types': len(summary)}}
        )

        return CitySummary(
            city_id=city_id,
            total_blood_banks=total_blood_banks,
            blood_types_summary=summary,
            last_updated=utcnow(),
        )
