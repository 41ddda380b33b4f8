from typing import AsyncGenerator
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from bloodnet.database import async_session
from bloodnet.services.availability_service import BloodAvailabilityService
from bloodnet.services.facility_directory import SqlFacilityDirectory
from bloodnet.services.inventory_coordinator import InventoryUpdateCoordinator, KeyedLocks
from bloodnet.services.inventory_stats_service import InventoryStatsService
from bloodnet.services.inventory_store import SqlInventoryStore
from bloodnet.services.notification_sse import TopicBroker
from bloodnet.services.request_service import BloodRequestService
from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.
    Services commit their own writes; anything left open is rolled back.
    """
    session = async_session()
    logger.debug("Database session created")
    try:
        yield session
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_db: {type(e).__name__}: {e}")
        raise
    finally:
        if session.in_transaction():
            await session.rollback()
        await session.close()
        logger.debug("Database session closed")


def get_broker(request: Request) -> TopicBroker:
    return request.app.state.broker


def get_inventory_locks(request: Request) -> KeyedLocks:
    return request.app.state.inventory_locks


def get_inventory_store(db: AsyncSession = Depends(get_db)) -> SqlInventoryStore:
    return SqlInventoryStore(db)


def get_facility_directory(db: AsyncSession = Depends(get_db)) -> SqlFacilityDirectory:
    return SqlFacilityDirectory(db)


def get_availability_service(
    store: SqlInventoryStore = Depends(get_inventory_store),
    directory: SqlFacilityDirectory = Depends(get_facility_directory),
) -> BloodAvailabilityService:
    return BloodAvailabilityService(store, directory)


def get_inventory_coordinator(
    store: SqlInventoryStore = Depends(get_inventory_store),
    directory: SqlFacilityDirectory = Depends(get_facility_directory),
    broker: TopicBroker = Depends(get_broker),
    locks: KeyedLocks = Depends(get_inventory_locks),
) -> InventoryUpdateCoordinator:
    return InventoryUpdateCoordinator(store, directory, broker, locks=locks)


def get_stats_service(
    store: SqlInventoryStore = Depends(get_inventory_store),
    directory: SqlFacilityDirectory = Depends(get_facility_directory),
) -> InventoryStatsService:
    return InventoryStatsService(store, directory)


def get_request_service(
    db: AsyncSession = Depends(get_db),
    broker: TopicBroker = Depends(get_broker),
) -> BloodRequestService:
    return BloodRequestService(db, broker)
