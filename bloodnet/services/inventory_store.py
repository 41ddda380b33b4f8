import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from bloodnet.models import BloodBank, BloodInventory
from bloodnet.schemas.base_schema import AvailabilityStatus
from bloodnet.schemas.inventory import InventoryFilter
from bloodnet.schemas.stats_schema import TypeRollup
from bloodnet.utils.availability import classify, validate_quantity
from bloodnet.utils.exceptions import AlreadyExistsError, NotFoundError, PersistenceError
from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)


def _value(enum_or_str) -> str:
    return getattr(enum_or_str, "value", enum_or_str)


class SqlInventoryStore:
    """Inventory records keyed by (facility_id, blood_type), backed by SQLAlchemy"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(BloodInventory)
        if dialect == "sqlite":
            return sqlite.insert(BloodInventory)
        raise PersistenceError(f"write inventory on unsupported backend {dialect}")

    async def _rollback(self, operation: str, error: Exception):
        logger.error(
            f"Inventory store failed to {operation}: {type(error).__name__}: {error}",
            extra={'extra_fields': {'operation': operation}},
        )
        await self.db.rollback()

    async def get(self, facility_id: UUID, blood_type: str) -> Optional[BloodInventory]:
        try:
            result = await self.db.execute(
                select(BloodInventory).where(
                    BloodInventory.facility_id == facility_id,
                    BloodInventory.blood_type == _value(blood_type),
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self._rollback("load inventory", e)
            raise PersistenceError("load inventory") from e

    async def get_by_id(self, record_id: UUID) -> Optional[BloodInventory]:
        try:
            result = await self.db.execute(
                select(BloodInventory).where(BloodInventory.id == record_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self._rollback("load inventory", e)
            raise PersistenceError("load inventory") from e

    async def list(self, criteria: InventoryFilter) -> List[BloodInventory]:
        query = select(BloodInventory)

        if criteria.city_id is not None:
            query = query.join(BloodBank, BloodBank.id == BloodInventory.facility_id).where(
                BloodBank.city_id == criteria.city_id
            )
        if criteria.facility_id is not None:
            query = query.where(BloodInventory.facility_id == criteria.facility_id)
        if criteria.blood_type is not None:
            query = query.where(BloodInventory.blood_type == _value(criteria.blood_type))
        if criteria.min_quantity is not None:
            query = query.where(BloodInventory.quantity >= criteria.min_quantity)
        if criteria.max_quantity is not None:
            query = query.where(BloodInventory.quantity <= criteria.max_quantity)
        if criteria.expired_before is not None:
            query = query.where(
                BloodInventory.expiry_date.is_not(None),
                BloodInventory.expiry_date < criteria.expired_before,
            )

        query = query.order_by(BloodInventory.blood_type, BloodInventory.facility_id)

        try:
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await self._rollback("list inventory", e)
            raise PersistenceError("list inventory") from e

    async def upsert(
        self,
        facility_id: UUID,
        blood_type: str,
        quantity: int,
        last_updated: datetime,
        updated_by: Optional[str] = None,
        cost_per_unit: Optional[Decimal] = None,
        is_free: Optional[bool] = None,
        expiry_date: Optional[date] = None,
    ) -> BloodInventory:
        """
        Insert or update the record for a key in a single statement.

        The availability status is always derived here from ``quantity``.
        Quantity, status, timestamp and updater are always overwritten; pricing
        and expiry only when supplied.
        """
        validate_quantity(quantity)

        values = {
            "id": uuid.uuid4(),
            "facility_id": facility_id,
            "blood_type": _value(blood_type),
            "quantity": quantity,
            "availability_status": classify(quantity).value,
            "last_updated": last_updated,
            "updated_by": updated_by,
            "cost_per_unit": cost_per_unit if cost_per_unit is not None else Decimal("0"),
            "is_free": bool(is_free),
            "expiry_date": expiry_date,
        }

        stmt = self._insert().values(**values)
        update_set = {
            "quantity": stmt.excluded.quantity,
            "availability_status": stmt.excluded.availability_status,
            "last_updated": stmt.excluded.last_updated,
            "updated_by": stmt.excluded.updated_by,
        }
        if cost_per_unit is not None:
            update_set["cost_per_unit"] = stmt.excluded.cost_per_unit
        if is_free is not None:
            update_set["is_free"] = stmt.excluded.is_free
        if expiry_date is not None:
            update_set["expiry_date"] = stmt.excluded.expiry_date

        stmt = stmt.on_conflict_do_update(
            index_elements=["facility_id", "blood_type"],
            set_=update_set,
        ).returning(BloodInventory)

        try:
            result = await self.db.execute(
                stmt, execution_options={"populate_existing": True}
            )
            record = result.scalar_one()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._rollback("save inventory", e)
            raise PersistenceError("save inventory") from e

        return record

    async def create(
        self,
        facility_id: UUID,
        blood_type: str,
        quantity: int,
        last_updated: datetime,
        updated_by: Optional[str] = None,
        cost_per_unit: Optional[Decimal] = None,
        is_free: Optional[bool] = None,
        expiry_date: Optional[date] = None,
    ) -> BloodInventory:
        validate_quantity(quantity)
        blood_type = _value(blood_type)

        if await self.get(facility_id, blood_type) is not None:
            raise AlreadyExistsError(
                f"Inventory for {blood_type} already exists at blood bank {facility_id}"
            )

        record = BloodInventory(
            facility_id=facility_id,
            blood_type=blood_type,
            quantity=quantity,
            availability_status=classify(quantity).value,
            last_updated=last_updated,
            updated_by=updated_by,
            cost_per_unit=cost_per_unit if cost_per_unit is not None else Decimal("0"),
            is_free=bool(is_free),
            expiry_date=expiry_date,
        )

        self.db.add(record)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent writer for the same key
            await self.db.rollback()
            raise AlreadyExistsError(
                f"Inventory for {blood_type} already exists at blood bank {facility_id}"
            ) from e
        except SQLAlchemyError as e:
            await self._rollback("create inventory", e)
            raise PersistenceError("create inventory") from e

        return record

    async def delete(self, record_id: UUID) -> BloodInventory:
        record = await self.get_by_id(record_id)
        if record is None:
            raise NotFoundError("Blood inventory", record_id)

        try:
            await self.db.delete(record)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._rollback("delete inventory", e)
            raise PersistenceError("delete inventory") from e

        return record

    async def group_by_type_and_status(
        self,
        facility_id: Optional[UUID] = None,
        city_id: Optional[UUID] = None,
    ) -> Dict[str, TypeRollup]:
        """Per blood type totals for one facility or all active facilities of a city"""
        query = select(
            BloodInventory.blood_type,
            func.coalesce(func.sum(BloodInventory.quantity), 0).label("total_quantity"),
            func.count(BloodInventory.id).label("record_count"),
            func.coalesce(
                func.sum(
                    case(
                        (BloodInventory.availability_status != AvailabilityStatus.UNAVAILABLE.value, 1),
                        else_=0,
                    )
                ),
                0,
            ).label("available_count"),
        )

        if city_id is not None:
            query = query.join(BloodBank, BloodBank.id == BloodInventory.facility_id).where(
                BloodBank.city_id == city_id,
                BloodBank.is_active.is_(True),
            )
        if facility_id is not None:
            query = query.where(BloodInventory.facility_id == facility_id)

        query = query.group_by(BloodInventory.blood_type).order_by(BloodInventory.blood_type)

        try:
            result = await self.db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            await self._rollback("aggregate inventory", e)
            raise PersistenceError("aggregate inventory") from e

        return {
            row.blood_type: TypeRollup(
                total_quantity=int(row.total_quantity),
                record_count=int(row.record_count),
                available_count=int(row.available_count),
            )
            for row in rows
        }
