import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Boolean, Float, ForeignKey, func, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bloodnet.db.base import Base, UUID, utcnow


class BloodBank(Base):
    __tablename__ = "blood_banks"

    # --- Columns ---
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    address: Mapped[str] = mapped_column(String(300), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    emergency_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    is_24x7: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # --- Relationships ---
    city_id: Mapped[uuid.UUID] = mapped_column(
        UUID(),
        ForeignKey("cities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    hospital_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(),
        ForeignKey("hospitals.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    city = relationship("City", back_populates="blood_banks")
    hospital = relationship("Hospital", back_populates="blood_banks")
    blood_inventory = relationship(
        "BloodInventory",
        back_populates="blood_bank",
        cascade="all, delete-orphan",
    )

    # --- Methods ---
    def __str__(self) -> str:
        return f"{self.name} ({self.id})"

    __table_args__ = (
        Index("idx_blood_bank_city_active", "city_id", "is_active"),
    )
