from datetime import datetime
from typing import Dict
from uuid import UUID

from pydantic import BaseModel, Field

from bloodnet.schemas.base_schema import AvailabilityStatus


class TypeRollup(BaseModel):
    """Aggregated inventory for one blood type within a scope"""

    total_quantity: int = 0
    record_count: int = 0
    available_count: int = 0


class BloodTypeStat(BaseModel):
    quantity: int
    status: AvailabilityStatus


class FacilityStats(BaseModel):
    facility_id: UUID
    total_blood_types: int = Field(..., description="Distinct blood types stocked")
    inventory_by_type: Dict[str, BloodTypeStat]
    last_updated: datetime


class CityBloodTypeSummary(BaseModel):
    total_quantity: int
    blood_banks: int = Field(..., description="Facilities contributing stock records")
    available_count: int = Field(..., description="Records whose status is not UNAVAILABLE")


class CitySummary(BaseModel):
    city_id: UUID
    total_blood_banks: int
    blood_types_summary: Dict[str, CityBloodTypeSummary]
    last_updated: datetime
