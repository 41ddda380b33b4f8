import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Integer, Text, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bloodnet.db.base import Base, UUID, utcnow


class BloodRequest(Base):
    __tablename__ = "blood_requests"

    # --- Columns ---
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
    )
    patient_name: Mapped[str] = mapped_column(String(200), nullable=False)
    blood_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    units_required: Mapped[int] = mapped_column(Integer, nullable=False)
    urgency: Mapped[str] = mapped_column(String(20), nullable=False, default="MEDIUM")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="PENDING", index=True
    )
    required_by: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    requested_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # --- Relationships ---
    hospital_id: Mapped[uuid.UUID] = mapped_column(
        UUID(),
        ForeignKey("hospitals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    hospital = relationship("Hospital", back_populates="blood_requests")

    # --- Methods ---
    def __str__(self) -> str:
        return f"{self.blood_type} x{self.units_required} for {self.patient_name}"

    __table_args__ = (
        Index("idx_request_hospital_status", "hospital_id", "status"),
    )
