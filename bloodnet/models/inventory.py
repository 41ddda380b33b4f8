import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import (
    String,
    DateTime,
    Integer,
    Date,
    Boolean,
    Numeric,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bloodnet.db.base import Base, UUID, utcnow


class BloodInventory(Base):
    __tablename__ = "blood_inventory"

    # --- Columns ---
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
    )
    blood_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost_per_unit: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    is_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    # Always written together with quantity, see bloodnet.utils.availability.classify
    availability_status: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )
    last_updated: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now()
    )

    # --- Relationships ---
    facility_id: Mapped[uuid.UUID] = mapped_column(
        UUID(),
        ForeignKey("blood_banks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    blood_bank = relationship("BloodBank", back_populates="blood_inventory")

    # --- Methods ---
    def __str__(self) -> str:
        return f"{self.blood_type} x{self.quantity} ({self.availability_status})"

    __table_args__ = (
        UniqueConstraint("facility_id", "blood_type", name="uq_inventory_facility_type"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        CheckConstraint("cost_per_unit >= 0", name="ck_inventory_cost_non_negative"),
        Index("idx_inventory_type_quantity", "blood_type", "quantity"),
        Index("idx_inventory_expiry_facility", "expiry_date", "facility_id"),
    )
