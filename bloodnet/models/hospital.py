import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Boolean, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bloodnet.db.base import Base, UUID, utcnow


class Hospital(Base):
    __tablename__ = "hospitals"

    # --- Columns ---
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    is_government: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now()
    )

    # --- Relationships ---
    city_id: Mapped[uuid.UUID] = mapped_column(
        UUID(),
        ForeignKey("cities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    city = relationship("City", back_populates="hospitals")
    blood_banks = relationship("BloodBank", back_populates="hospital")
    blood_requests = relationship(
        "BloodRequest",
        back_populates="hospital",
        cascade="all, delete-orphan",
    )

    # --- Methods ---
    def __str__(self) -> str:
        return self.name
