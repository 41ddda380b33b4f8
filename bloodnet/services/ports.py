"""
Seams between the inventory core and its collaborators.

The query engine, update coordinator and stats service only talk to these
protocols, so the SQL implementations can be swapped for in-memory ones.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol
from uuid import UUID

from bloodnet.models import BloodBank, BloodInventory
from bloodnet.schemas.inventory import InventoryFilter
from bloodnet.schemas.stats_schema import TypeRollup


class InventoryStore(Protocol):
    async def get(self, facility_id: UUID, blood_type: str) -> Optional[BloodInventory]:
        ...

    async def get_by_id(self, record_id: UUID) -> Optional[BloodInventory]:
        ...

    async def list(self, criteria: InventoryFilter) -> List[BloodInventory]:
        ...

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
        ...

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
        ...

    async def delete(self, record_id: UUID) -> BloodInventory:
        ...

    async def group_by_type_and_status(
        self,
        facility_id: Optional[UUID] = None,
        city_id: Optional[UUID] = None,
    ) -> Dict[str, TypeRollup]:
        ...


class FacilityDirectory(Protocol):
    async def get_facility(self, facility_id: UUID) -> Optional[BloodBank]:
        ...

    async def list_facilities(
        self,
        city_id: Optional[UUID] = None,
        facility_id: Optional[UUID] = None,
    ) -> List[BloodBank]:
        ...

    async def count_facilities(self, city_id: UUID) -> int:
        ...


class EventPublisher(Protocol):
    async def publish(self, topic: str, payload: Dict[str, Any]) -> int:
        ...
