from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from bloodnet.db.base import Base
from bloodnet.config import settings
from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)

DATABASE_URL = settings.DATABASE_URL

url = make_url(DATABASE_URL)
IS_SQLITE = url.get_backend_name() == "sqlite"

logger.info(f"Database backend: {url.get_backend_name()}")

# --- Async engine (FastAPI runtime) ---
if IS_SQLITE:
    # sqlite picks its own pool class; pool sizing arguments are rejected
    engine = create_async_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )
else:
    engine = create_async_engine(
        DATABASE_URL,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        pool_recycle=1800,
        pool_pre_ping=True,
        echo=(settings.ENVIRONMENT == "development" and settings.DEBUG),
    )

async_session = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Import models so metadata (and Alembic) see every table
from bloodnet.models import City, Hospital, BloodBank, BloodInventory, BloodRequest  # noqa


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully.")


async def close_db():
    """Close database connections gracefully"""
    try:
        await engine.dispose()
        logger.info("Database connections closed.")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")
