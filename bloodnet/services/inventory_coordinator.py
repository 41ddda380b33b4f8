"""
Inventory write path.

Every change to a blood bank's stock goes through InventoryUpdateCoordinator:
the quantity is validated, the record written in one atomic statement (the
store derives its availability tier) and the change broadcast on the
facility's city and facility topics.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import AsyncIterator, Dict, Hashable, Optional
from uuid import UUID

from bloodnet.db.base import utcnow
from bloodnet.models import BloodBank, BloodInventory
from bloodnet.schemas.base_schema import AvailabilityStatus
from bloodnet.schemas.inventory import InventoryChangeEvent
from bloodnet.services.availability_service import coerce_blood_type
from bloodnet.services.notification_service import NotificationService
from bloodnet.services.ports import EventPublisher, FacilityDirectory, InventoryStore
from bloodnet.utils.availability import reconcile_pricing, validate_quantity
from bloodnet.utils.exceptions import NotFoundError
from bloodnet.utils.logging_config import get_logger, log_audit_event

logger = get_logger(__name__)


class KeyedLocks:
    """
    One asyncio.Lock per (facility_id, blood_type).

    A key's lock is dropped once no writer holds or waits on it.
    """

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._holders: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


def _snapshot(record: Optional[BloodInventory]) -> Optional[dict]:
    if record is None:
        return None
    return {
        "quantity": record.quantity,
        "availability_status": record.availability_status,
        "cost_per_unit": str(record.cost_per_unit),
        "is_free": record.is_free,
    }


class InventoryUpdateCoordinator:
    def __init__(
        self,
        store: InventoryStore,
        directory: FacilityDirectory,
        publisher: EventPublisher,
        locks: Optional[KeyedLocks] = None,
    ):
        self.store = store
        self.directory = directory
        self.notifier = NotificationService(publisher)
        # Shared across coordinators so per-key ordering holds process-wide
        self.locks = locks if locks is not None else KeyedLocks()

    async def _resolve_facility(self, facility_id: UUID) -> BloodBank:
        facility = await self.directory.get_facility(facility_id)
        if facility is None:
            raise NotFoundError("Blood bank", facility_id)
        return facility

    async def _announce(
        self,
        facility: BloodBank,
        blood_type: str,
        quantity: int,
        availability_status: str,
        last_updated,
    ) -> None:
        event = InventoryChangeEvent(
            facility_id=facility.id,
            city_id=facility.city_id,
            blood_type=blood_type,
            quantity=quantity,
            availability_status=availability_status,
            last_updated=last_updated,
        )
        await self.notifier.inventory_changed(event)

    async def update_quantity(
        self,
        facility_id: UUID,
        blood_type,
        quantity: int,
        actor_id: Optional[str] = None,
        cost_per_unit: Optional[Decimal] = None,
        is_free: Optional[bool] = None,
        expiry_date: Optional[date] = None,
    ) -> BloodInventory:
        """
        Set the on-hand quantity for a (facility, blood type), creating the
        record when it does not exist yet.

        Raises:
            InvalidQuantityError: quantity is negative or not an integer
            ValidationError: unknown blood type or conflicting pricing
            NotFoundError: the blood bank does not exist
            PersistenceError: the write failed
        """
        validate_quantity(quantity)
        blood_type = coerce_blood_type(blood_type)
        cost_per_unit, is_free = reconcile_pricing(cost_per_unit, is_free)
        facility = await self._resolve_facility(facility_id)

        async with self.locks.hold((facility_id, blood_type.value)):
            previous = _snapshot(await self.store.get(facility_id, blood_type.value))

            record = await self.store.upsert(
                facility_id=facility_id,
                blood_type=blood_type.value,
                quantity=quantity,
                last_updated=utcnow(),
                updated_by=actor_id,
                cost_per_unit=cost_per_unit,
                is_free=is_free,
                expiry_date=expiry_date,
            )

            log_audit_event(
                action="update" if previous else "create",
                resource_type="blood_inventory",
                resource_id=str(record.id),
                old_values=previous,
                new_values=_snapshot(record),
                user_id=actor_id,
            )

            await self._announce(
                facility,
                record.blood_type,
                record.quantity,
                record.availability_status,
                record.last_updated,
            )

        logger.info(
            f"Blood bank {facility_id} now holds {quantity} units of {blood_type.value}",
            extra={'extra_fields': {
                'facility_id': str(facility_id),
                'blood_type': blood_type.value,
                'quantity': quantity,
                'availability_status': record.availability_status,
            }}
        )
        return record

    async def create_entry(
        self,
        facility_id: UUID,
        blood_type,
        quantity: int,
        actor_id: Optional[str] = None,
        cost_per_unit: Optional[Decimal] = None,
        is_free: Optional[bool] = None,
        expiry_date: Optional[date] = None,
    ) -> BloodInventory:
        """Create the record for a new key; AlreadyExistsError if it is taken"""
        validate_quantity(quantity)
        blood_type = coerce_blood_type(blood_type)
        cost_per_unit, is_free = reconcile_pricing(cost_per_unit, is_free)
        facility = await self._resolve_facility(facility_id)

        async with self.locks.hold((facility_id, blood_type.value)):
            record = await self.store.create(
                facility_id=facility_id,
                blood_type=blood_type.value,
                quantity=quantity,
                last_updated=utcnow(),
                updated_by=actor_id,
                cost_per_unit=cost_per_unit,
                is_free=is_free,
                expiry_date=expiry_date,
            )

            log_audit_event(
                action="create",
                resource_type="blood_inventory",
                resource_id=str(record.id),
                new_values=_snapshot(record),
                user_id=actor_id,
            )

            await self._announce(
                facility,
                record.blood_type,
                record.quantity,
                record.availability_status,
                record.last_updated,
            )

        return record

    async def update_entry(
        self,
        record_id: UUID,
        quantity: int,
        actor_id: Optional[str] = None,
        cost_per_unit: Optional[Decimal] = None,
        is_free: Optional[bool] = None,
        expiry_date: Optional[date] = None,
    ) -> BloodInventory:
        validate_quantity(quantity)
        existing = await self.store.get_by_id(record_id)
        if existing is None:
            raise NotFoundError("Blood inventory", record_id)

        return await self.update_quantity(
            facility_id=existing.facility_id,
            blood_type=existing.blood_type,
            quantity=quantity,
            actor_id=actor_id,
            cost_per_unit=cost_per_unit,
            is_free=is_free,
            expiry_date=expiry_date,
        )

    async def delete_entry(
        self, record_id: UUID, actor_id: Optional[str] = None
    ) -> BloodInventory:
        """Remove a record and announce the key as empty"""
        existing = await self.store.get_by_id(record_id)
        if existing is None:
            raise NotFoundError("Blood inventory", record_id)

        facility_id = existing.facility_id
        blood_type = existing.blood_type
        facility = await self._resolve_facility(facility_id)

        async with self.locks.hold((facility_id, blood_type)):
            previous = _snapshot(existing)
            deleted = await self.store.delete(record_id)

            log_audit_event(
                action="delete",
                resource_type="blood_inventory",
                resource_id=str(record_id),
                old_values=previous,
                user_id=actor_id,
            )

            await self._announce(
                facility,
                blood_type,
                0,
                AvailabilityStatus.UNAVAILABLE.value,
                utcnow(),
            )

        return deleted
