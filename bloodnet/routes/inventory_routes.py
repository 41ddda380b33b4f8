from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import ValidationError as PydanticValidationError

from bloodnet.dependencies import (
    get_availability_service,
    get_inventory_coordinator,
    get_stats_service,
)
from bloodnet.schemas.inventory import (
    AvailabilityQuery,
    BloodInventoryCreate,
    BloodInventoryResponse,
    BloodInventoryUpdate,
    FacilityAvailability,
)
from bloodnet.schemas.stats_schema import CitySummary, FacilityStats
from bloodnet.services.availability_service import BloodAvailabilityService
from bloodnet.services.inventory_coordinator import InventoryUpdateCoordinator
from bloodnet.services.inventory_stats_service import InventoryStatsService
from bloodnet.utils.data_wrapper import EmergencyResponse, ResponseWrapper, TimestampedResponse
from bloodnet.utils.exceptions import ValidationError
from bloodnet.utils.logging_config import get_logger
from bloodnet.utils.security import ADMIN_ROLES, Identity, get_identity, require_roles

logger = get_logger(__name__)

router = APIRouter(
    prefix="/blood-inventory",
    tags=["blood inventory"]
)


def get_availability_query(
    city_id: Optional[UUID] = Query(None, description="Filter by city"),
    facility_id: Optional[UUID] = Query(None, description="Filter by blood bank"),
    blood_type: Optional[str] = Query(None, description="Blood type, e.g. O_POSITIVE"),
    latitude: Optional[float] = Query(None, description="Caller latitude"),
    longitude: Optional[float] = Query(None, description="Caller longitude"),
    radius: Optional[float] = Query(None, description="Search radius in km"),
    only_available: bool = Query(False, description="Only stock with at least one unit"),
) -> AvailabilityQuery:
    try:
        return AvailabilityQuery(
            city_id=city_id,
            facility_id=facility_id,
            blood_type=blood_type,
            latitude=latitude,
            longitude=longitude,
            radius=radius,
            only_available=only_available,
        )
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error.get("loc", ())) or None
        raise ValidationError(error.get("msg", "Invalid search parameters"), field=field) from e


@router.get("/availability", response_model=ResponseWrapper[List[FacilityAvailability]])
async def get_blood_availability(
    query: AvailabilityQuery = Depends(get_availability_query),
    service: BloodAvailabilityService = Depends(get_availability_service),
):
    """
    Search blood availability across active blood banks.

    With latitude/longitude the search is limited to `radius` km (default 50)
    and sorted nearest first.
    """
    results = await service.query_availability(query)
    return ResponseWrapper(
        data=results,
        message=f"Found {len(results)} blood banks",
    )


@router.get("/emergency/availability", response_model=EmergencyResponse[List[FacilityAvailability]])
async def get_emergency_availability(
    city_id: Optional[UUID] = Query(None, description="City to search"),
    blood_type: Optional[str] = Query(None, description="Blood type required"),
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    service: BloodAvailabilityService = Depends(get_availability_service),
):
    """
    Emergency search: best stocked blood banks first, at most 20 results.
    """
    results = await service.query_emergency_availability(
        city_id=city_id,
        blood_type=blood_type,
        latitude=latitude,
        longitude=longitude,
    )
    logger.info(
        f"Emergency availability search returned {len(results)} blood banks",
        extra={'extra_fields': {'city_id': str(city_id), 'blood_type': blood_type}}
    )
    return EmergencyResponse(
        data=results,
        message=f"Found {len(results)} blood banks with {blood_type} available",
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/city/{city_id}/summary", response_model=TimestampedResponse[CitySummary])
async def get_city_blood_summary(
    city_id: UUID = Path(..., description="City ID"),
    stats: InventoryStatsService = Depends(get_stats_service),
):
    summary = await stats.city_summary(city_id)
    return TimestampedResponse(data=summary, timestamp=datetime.now(timezone.utc))


@router.get("/expired", response_model=ResponseWrapper[List[BloodInventoryResponse]])
async def get_expired_inventory(
    facility_id: Optional[UUID] = Query(None),
    service: BloodAvailabilityService = Depends(get_availability_service),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    """Stock still on hand past its expiry date"""
    records = await service.list_expired(facility_id=facility_id)
    return ResponseWrapper(
        data=[BloodInventoryResponse.model_validate(r) for r in records],
        message=f"Found {len(records)} expired inventory records",
    )


@router.get("/low-stock", response_model=ResponseWrapper[List[BloodInventoryResponse]])
async def get_low_stock_inventory(
    threshold: Optional[int] = Query(None, ge=1, description="Defaults to LOW_STOCK_THRESHOLD"),
    facility_id: Optional[UUID] = Query(None),
    service: BloodAvailabilityService = Depends(get_availability_service),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    records = await service.list_low_stock(threshold=threshold, facility_id=facility_id)
    return ResponseWrapper(
        data=[BloodInventoryResponse.model_validate(r) for r in records],
        message=f"Found {len(records)} low stock records",
    )


@router.get("/blood-bank/{facility_id}", response_model=ResponseWrapper[List[BloodInventoryResponse]])
async def get_blood_bank_inventory(
    facility_id: UUID = Path(...),
    blood_type: Optional[str] = Query(None),
    service: BloodAvailabilityService = Depends(get_availability_service),
    identity: Identity = Depends(get_identity),
):
    records = await service.list_facility_inventory(facility_id, blood_type=blood_type)
    return ResponseWrapper(data=[BloodInventoryResponse.model_validate(r) for r in records])


@router.get("/blood-bank/{facility_id}/stats", response_model=ResponseWrapper[FacilityStats])
async def get_blood_bank_stats(
    facility_id: UUID = Path(...),
    stats: InventoryStatsService = Depends(get_stats_service),
    identity: Identity = Depends(get_identity),
):
    return ResponseWrapper(data=await stats.facility_stats(facility_id))


@router.post(
    "/",
    response_model=ResponseWrapper[BloodInventoryResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_inventory_entry(
    payload: BloodInventoryCreate,
    coordinator: InventoryUpdateCoordinator = Depends(get_inventory_coordinator),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    """Add stock for a blood type the blood bank does not hold yet"""
    record = await coordinator.create_entry(
        facility_id=payload.facility_id,
        blood_type=payload.blood_type,
        quantity=payload.quantity,
        actor_id=identity.user_id,
        cost_per_unit=payload.cost_per_unit,
        is_free=payload.is_free,
        expiry_date=payload.expiry_date,
    )
    return ResponseWrapper(
        data=BloodInventoryResponse.model_validate(record),
        message="Blood inventory created successfully",
    )


@router.put("/blood-bank/{facility_id}/{blood_type}", response_model=ResponseWrapper[BloodInventoryResponse])
async def set_blood_bank_quantity(
    payload: BloodInventoryUpdate,
    facility_id: UUID = Path(...),
    blood_type: str = Path(...),
    coordinator: InventoryUpdateCoordinator = Depends(get_inventory_coordinator),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    """Set the quantity for a blood type, creating the record if needed"""
    record = await coordinator.update_quantity(
        facility_id=facility_id,
        blood_type=blood_type,
        quantity=payload.quantity,
        actor_id=identity.user_id,
        cost_per_unit=payload.cost_per_unit,
        is_free=payload.is_free,
        expiry_date=payload.expiry_date,
    )
    return ResponseWrapper(
        data=BloodInventoryResponse.model_validate(record),
        message="Blood inventory updated successfully",
    )


@router.put("/{record_id}", response_model=ResponseWrapper[BloodInventoryResponse])
async def update_inventory_entry(
    payload: BloodInventoryUpdate,
    record_id: UUID = Path(...),
    coordinator: InventoryUpdateCoordinator = Depends(get_inventory_coordinator),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    record = await coordinator.update_entry(
        record_id=record_id,
        quantity=payload.quantity,
        actor_id=identity.user_id,
        cost_per_unit=payload.cost_per_unit,
        is_free=payload.is_free,
        expiry_date=payload.expiry_date,
    )
    return ResponseWrapper(
        data=BloodInventoryResponse.model_validate(record),
        message="Blood inventory updated successfully",
    )


@router.delete("/{record_id}", response_model=ResponseWrapper[BloodInventoryResponse])
async def delete_inventory_entry(
    record_id: UUID = Path(...),
    coordinator: InventoryUpdateCoordinator = Depends(get_inventory_coordinator),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    record = await coordinator.delete_entry(record_id, actor_id=identity.user_id)
    return ResponseWrapper(
        data=BloodInventoryResponse.model_validate(record),
        message="Blood inventory deleted successfully",
    )
