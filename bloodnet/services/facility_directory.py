from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from bloodnet.models import BloodBank
from bloodnet.utils.exceptions import PersistenceError
from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)


class SqlFacilityDirectory:
    """Read-only view of blood banks with their city and hospital loaded"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_facility(self, facility_id: UUID) -> Optional[BloodBank]:
        try:
            result = await self.db.execute(
                select(BloodBank)
                .options(selectinload(BloodBank.city), selectinload(BloodBank.hospital))
                .where(BloodBank.id == facility_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load blood bank {facility_id}: {e}")
            raise PersistenceError("load blood bank") from e

    async def list_facilities(
        self,
        city_id: Optional[UUID] = None,
        facility_id: Optional[UUID] = None,
    ) -> List[BloodBank]:
        """Active blood banks, optionally narrowed to a city and/or a single bank"""
        query = (
            select(BloodBank)
            .options(selectinload(BloodBank.city), selectinload(BloodBank.hospital))
            .where(BloodBank.is_active.is_(True))
        )
        if city_id is not None:
            query = query.where(BloodBank.city_id == city_id)
        if facility_id is not None:
            query = query.where(BloodBank.id == facility_id)

        try:
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to list blood banks: {e}")
            raise PersistenceError("list blood banks") from e

    async def count_facilities(self, city_id: UUID) -> int:
        try:
            result = await self.db.execute(
                select(func.count(BloodBank.id)).where(
                    BloodBank.city_id == city_id,
                    BloodBank.is_active.is_(True),
                )
            )
            return result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Failed to count blood banks in city {city_id}: {e}")
            raise PersistenceError("count blood banks") from e
