import time
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from bloodnet.config import settings
from bloodnet.models import BloodBank, BloodInventory
from bloodnet.schemas.base_schema import AvailabilityStatus, BloodType
from bloodnet.schemas.inventory import (
    AvailabilityQuery,
    CityReference,
    FacilityAvailability,
    HospitalSummary,
    InventoryFilter,
    InventorySnapshot,
)
from bloodnet.services.ports import FacilityDirectory, InventoryStore
from bloodnet.utils.availability import STATUS_RANK
from bloodnet.utils.exceptions import NotFoundError, ValidationError
from bloodnet.utils.geo import distance_to
from bloodnet.utils.logging_config import get_logger, log_performance_metric

logger = get_logger(__name__)


def coerce_blood_type(value) -> BloodType:
    """Accept enum members, canonical names and short forms like ``O+``"""
    if isinstance(value, BloodType):
        return value
    try:
        return BloodType(BloodType.normalize(str(value)))
    except ValueError as e:
        raise ValidationError(
            f"Invalid blood type '{value}'. Must be one of: {', '.join(BloodType.get_values())}",
            field="blood_type",
        ) from e


class BloodAvailabilityService:
    """Read side of the inventory: availability search, emergency search and listings"""

    def __init__(
        self,
        store: InventoryStore,
        directory: FacilityDirectory,
        default_radius_km: float = settings.DEFAULT_SEARCH_RADIUS_KM,
        emergency_limit: int = settings.EMERGENCY_RESULT_LIMIT,
    ):
        self.store = store
        self.directory = directory
        self.default_radius_km = default_radius_km
        self.emergency_limit = emergency_limit

    @staticmethod
    def _build_result(
        facility: BloodBank,
        records: List[BloodInventory],
        distance_km: Optional[float] = None,
    ) -> FacilityAvailability:
        return FacilityAvailability(
            id=facility.id,
            name=facility.name,
            address=facility.address,
            phone=facility.phone,
            emergency_phone=facility.emergency_phone,
            is_24x7=facility.is_24x7,
            distance_km=distance_km,
            blood_inventory=[
                InventorySnapshot.model_validate(record)
                for record in sorted(records, key=lambda r: r.blood_type)
            ],
            hospital=HospitalSummary.model_validate(facility.hospital) if facility.hospital else None,
            city=CityReference.model_validate(facility.city),
        )

    async def query_availability(self, query: AvailabilityQuery) -> List[FacilityAvailability]:
        """
        Facilities with their current stock.

        With coordinates the results are limited to the search radius and
        ordered nearest first (facilities without coordinates last); otherwise
        they are ordered by name then id.
        """
        facilities = await self.directory.list_facilities(
            city_id=query.city_id, facility_id=query.facility_id
        )
        if not facilities:
            return []

        records = await self.store.list(
            InventoryFilter(
                city_id=query.city_id,
                facility_id=query.facility_id,
                blood_type=query.blood_type,
                min_quantity=1 if query.only_available else None,
            )
        )
        by_facility: Dict[UUID, List[BloodInventory]] = defaultdict(list)
        for record in records:
            by_facility[record.facility_id].append(record)

        require_stock = query.blood_type is not None or query.only_available
        radius = query.radius if query.radius is not None else self.default_radius_km

        results = []
        for facility in facilities:
            inventory = by_facility.get(facility.id, [])
            if require_stock and not inventory:
                continue

            distance_km = None
            if query.has_coordinates:
                distance_km = distance_to(
                    query.latitude, query.longitude, facility.latitude, facility.longitude
                )
                if distance_km is not None and distance_km > radius:
                    continue

            results.append(self._build_result(facility, inventory, distance_km))

        if query.has_coordinates:
            results.sort(
                key=lambda r: (
                    r.distance_km is None,
                    r.distance_km if r.distance_km is not None else 0.0,
                    r.name,
                    str(r.id),
                )
            )
        else:
            results.sort(key=lambda r: (r.name, str(r.id)))

        logger.info(
            f"Availability query returned {len(results)} blood banks",
            extra={'extra_fields': {
                'city_id': str(query.city_id) if query.city_id else None,
                'blood_type': query.blood_type.value if query.blood_type else None,
                'only_available': query.only_available,
                'result_count': len(results),
            }}
        )
        return results

    async def query_emergency_availability(
        self,
        city_id: Optional[UUID],
        blood_type,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> List[FacilityAvailability]:
        """
        Best stocked facilities for one blood type in a city.

        Ranked by availability tier, then quantity (highest first), then name
        and id, and capped at ``emergency_limit``. Distance is informational.
        """
        if city_id is None:
            raise ValidationError("city_id is required for emergency search", field="city_id")
        if blood_type is None or blood_type == "":
            raise ValidationError("blood_type is required for emergency search", field="blood_type")
        if (latitude is None) != (longitude is None):
            raise ValidationError(
                "latitude and longitude must be provided together", field="latitude"
            )
        blood_type = coerce_blood_type(blood_type)

        started = time.perf_counter()

        facilities = {
            facility.id: facility
            for facility in await self.directory.list_facilities(city_id=city_id)
        }
        records = await self.store.list(
            InventoryFilter(city_id=city_id, blood_type=blood_type, min_quantity=1)
        )

        candidates = [
            (facilities[record.facility_id], record)
            for record in records
            if record.facility_id in facilities
            and record.quantity > 0
            and record.availability_status != AvailabilityStatus.UNAVAILABLE.value
        ]
        candidates.sort(
            key=lambda pair: (
                STATUS_RANK[AvailabilityStatus(pair[1].availability_status)],
                -pair[1].quantity,
                pair[0].name,
                str(pair[0].id),
            )
        )

        results = []
        for facility, record in candidates[: self.emergency_limit]:
            distance_km = None
            if latitude is not None:
                distance_km = distance_to(latitude, longitude, facility.latitude, facility.longitude)
            results.append(self._build_result(facility, [record], distance_km))

        log_performance_metric(
            "emergency_availability",
            time.perf_counter() - started,
            {
                'city_id': str(city_id),
                'blood_type': blood_type.value,
                'candidate_count': len(candidates),
                'result_count': len(results),
            },
        )
        return results

    async def list_facility_inventory(
        self, facility_id: UUID, blood_type=None
    ) -> List[BloodInventory]:
        facility = await self.directory.get_facility(facility_id)
        if facility is None:
            raise NotFoundError("Blood bank", facility_id)

        records = await self.store.list(
            InventoryFilter(
                facility_id=facility_id,
                blood_type=coerce_blood_type(blood_type) if blood_type else None,
            )
        )
        return sorted(records, key=lambda r: r.blood_type)

    async def list_expired(
        self, facility_id: Optional[UUID] = None, today: Optional[date] = None
    ) -> List[BloodInventory]:
        """Stock still on hand past its expiry date, oldest first"""
        records = await self.store.list(
            InventoryFilter(
                facility_id=facility_id,
                expired_before=today or date.today(),
                min_quantity=1,
            )
        )
        return sorted(records, key=lambda r: (r.expiry_date, r.blood_type, str(r.facility_id)))

    async def list_low_stock(
        self, threshold: Optional[int] = None, facility_id: Optional[UUID] = None
    ) -> List[BloodInventory]:
        """Records holding between one unit and ``threshold`` units, scarcest first"""
        threshold = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
        if threshold < 1:
            raise ValidationError("threshold must be at least 1", field="threshold")

        records = await self.store.list(
            InventoryFilter(facility_id=facility_id, min_quantity=1, max_quantity=threshold)
        )
        return sorted(records, key=lambda r: (r.quantity, r.blood_type, str(r.facility_id)))
