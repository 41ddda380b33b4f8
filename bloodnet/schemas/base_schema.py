from enum import Enum
from typing import List


class BloodType(str, Enum):
    """Enum for valid blood types (ABO x Rh)"""

    A_POSITIVE = "A_POSITIVE"
    A_NEGATIVE = "A_NEGATIVE"
    B_POSITIVE = "B_POSITIVE"
    B_NEGATIVE = "B_NEGATIVE"
    AB_POSITIVE = "AB_POSITIVE"
    AB_NEGATIVE = "AB_NEGATIVE"
    O_POSITIVE = "O_POSITIVE"
    O_NEGATIVE = "O_NEGATIVE"

    @classmethod
    def get_values(cls) -> List[str]:
        """Get all valid blood type values"""
        return [item.value for item in cls]

    @classmethod
    def normalize(cls, value: str) -> str:
        """Normalize short notation (e.g. "AB-") to the enum value"""
        if value in cls.get_values():
            return value

        short_forms = {
            "A+": cls.A_POSITIVE.value,
            "A-": cls.A_NEGATIVE.value,
            "B+": cls.B_POSITIVE.value,
            "B-": cls.B_NEGATIVE.value,
            "AB+": cls.AB_POSITIVE.value,
            "AB-": cls.AB_NEGATIVE.value,
            "O+": cls.O_POSITIVE.value,
            "O-": cls.O_NEGATIVE.value,
        }
        cleaned = value.strip().upper()
        return short_forms.get(cleaned, cleaned)


class AvailabilityStatus(str, Enum):
    """Availability tier derived from on-hand quantity"""

    AVAILABLE = "AVAILABLE"
    LIMITED = "LIMITED"
    CRITICAL = "CRITICAL"
    UNAVAILABLE = "UNAVAILABLE"


class UrgencyLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    FULFILLED = "FULFILLED"
    CANCELLED = "CANCELLED"


class UserRole(str, Enum):
    USER = "USER"
    DOCTOR = "DOCTOR"
    HOSPITAL_ADMIN = "HOSPITAL_ADMIN"
    BLOOD_BANK_ADMIN = "BLOOD_BANK_ADMIN"
    SYSTEM_ADMIN = "SYSTEM_ADMIN"
