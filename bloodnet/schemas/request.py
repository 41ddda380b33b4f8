from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bloodnet.schemas.base_schema import BloodType, RequestStatus, UrgencyLevel


class BloodRequestCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    patient_name: str = Field(..., min_length=2, max_length=200)
    hospital_id: UUID
    blood_type: BloodType
    units_required: int = Field(..., ge=1, le=100)
    urgency: UrgencyLevel = UrgencyLevel.MEDIUM
    required_by: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("blood_type", mode="before")
    @classmethod
    def normalize_blood_type(cls, v):
        if isinstance(v, str):
            return BloodType.normalize(v)
        return v

    @field_validator("patient_name")
    @classmethod
    def strip_patient_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Patient name must be at least 2 characters")
        return v


class BloodRequestStatusUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: RequestStatus
    notes: Optional[str] = Field(None, max_length=1000)


class BloodRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    patient_name: str
    hospital_id: UUID
    blood_type: BloodType
    units_required: int
    urgency: UrgencyLevel
    status: RequestStatus
    required_by: Optional[datetime] = None
    notes: Optional[str] = None
    requested_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BloodRequestEvent(BaseModel):
    type: str
    request_id: UUID
    hospital_id: UUID
    city_id: UUID
    blood_type: BloodType
    units_required: int
    urgency: UrgencyLevel
    status: RequestStatus
    timestamp: datetime

    def to_payload(self) -> dict:
        return self.model_dump(mode="json")
