import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Boolean, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bloodnet.db.base import Base, UUID, utcnow


class City(Base):
    __tablename__ = "cities"

    # --- Columns ---
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now()
    )

    # --- Relationships ---
    blood_banks = relationship("BloodBank", back_populates="city")
    hospitals = relationship("Hospital", back_populates="city")

    # --- Methods ---
    def __str__(self) -> str:
        return f"{self.name}, {self.state}"
