from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from uuid import UUID
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List

from bloodnet.schemas.base_schema import AvailabilityStatus, BloodType


def _normalize_blood_type(v):
    if isinstance(v, str):
        return BloodType.normalize(v)
    return v


class BloodInventoryCreate(BaseModel):
    # availability_status is derived, never accepted from callers
    model_config = ConfigDict(extra="forbid")

    facility_id: UUID = Field(..., description="Blood bank owning the stock")
    blood_type: BloodType = Field(..., description="Blood type (e.g. O_POSITIVE or O+)")
    quantity: int = Field(..., description="Units on hand, must not be negative")
    cost_per_unit: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_free: Optional[bool] = Field(None)
    expiry_date: Optional[date] = Field(None, description="Expiration date of the stock")

    @field_validator("blood_type", mode="before")
    @classmethod
    def normalize_blood_type(cls, v):
        return _normalize_blood_type(v)


class BloodInventoryUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(..., description="New on-hand quantity, must not be negative")
    cost_per_unit: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_free: Optional[bool] = None
    expiry_date: Optional[date] = None


class BloodInventoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    facility_id: UUID
    blood_type: BloodType
    quantity: int
    cost_per_unit: Decimal
    is_free: bool
    expiry_date: Optional[date] = None
    availability_status: AvailabilityStatus
    last_updated: datetime
    updated_by: Optional[str] = None


class InventoryFilter(BaseModel):
    """Criteria understood by the inventory store's ``list``"""

    facility_id: Optional[UUID] = None
    city_id: Optional[UUID] = None
    blood_type: Optional[BloodType] = None
    min_quantity: Optional[int] = Field(None, ge=0)
    max_quantity: Optional[int] = Field(None, ge=0)
    expired_before: Optional[date] = None


# --- Availability query results ---


class InventorySnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    blood_type: BloodType
    quantity: int
    cost_per_unit: Decimal
    is_free: bool
    availability_status: AvailabilityStatus
    last_updated: datetime


class HospitalSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    phone: str
    is_government: bool


class CityReference(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    state: str


class FacilityAvailability(BaseModel):
    id: UUID
    name: str
    address: str
    phone: str
    emergency_phone: Optional[str] = None
    is_24x7: bool
    distance_km: Optional[float] = None
    blood_inventory: List[InventorySnapshot]
    hospital: Optional[HospitalSummary] = None
    city: CityReference


class AvailabilityQuery(BaseModel):
    city_id: Optional[UUID] = None
    facility_id: Optional[UUID] = None
    blood_type: Optional[BloodType] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    radius: Optional[float] = Field(None, gt=0, le=1000, description="Search radius in km")
    only_available: bool = False

    @field_validator("blood_type", mode="before")
    @classmethod
    def normalize_blood_type(cls, v):
        return _normalize_blood_type(v)

    @model_validator(mode="after")
    def check_coordinates(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


# --- Change notification ---


class InventoryChangeEvent(BaseModel):
    type: str = "blood_inventory_update"
    facility_id: UUID
    city_id: UUID
    blood_type: BloodType
    quantity: int
    availability_status: AvailabilityStatus
    last_updated: datetime

    def to_payload(self) -> dict:
        return self.model_dump(mode="json")
