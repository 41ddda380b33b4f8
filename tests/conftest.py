"""
Test configuration and fixtures for the blood availability service.
Provides an isolated database per test, an API client, identity tokens and
data factories.
"""

import os
import sys
from pathlib import Path
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Test database configuration (in-memory SQLite for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Override environment variables for testing, before bloodnet.config is imported
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["SECRET_KEY"] = "test-secret-key-for-jwt-tokens"
os.environ["ALGORITHM"] = "HS256"
os.environ["ENABLE_ADMIN"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS_PER_MINUTE"] = "100000"
os.environ["EMERGENCY_RATE_LIMIT_PER_MINUTE"] = "100000"

from bloodnet.db.base import Base
from bloodnet.dependencies import get_db
from bloodnet.main import app
from bloodnet.models import BloodBank, City, Hospital
from bloodnet.schemas.base_schema import UserRole
from bloodnet.services.inventory_coordinator import KeyedLocks
from bloodnet.services.notification_sse import TopicBroker
from bloodnet.utils.security import TokenManager


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,  # Set to True for SQL debugging
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def broker() -> TopicBroker:
    """The app's notification broker, reset for each test."""
    app.state.broker = TopicBroker(queue_size=10)
    app.state.inventory_locks = KeyedLocks()
    return app.state.broker


@pytest.fixture
async def client(db_session: AsyncSession, broker: TopicBroker) -> AsyncGenerator[AsyncClient, None]:
    """API client with the database dependency pointed at the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


# --- Data Factories ---


class TestDataFactory:
    """Factory for creating directory rows used by inventory tests."""

    __test__ = False

    @staticmethod
    async def create_city(db: AsyncSession, name: str = "Accra", state: str = "Greater Accra") -> City:
        city = City(name=name, state=state)
        db.add(city)
        await db.commit()
        return city

    @staticmethod
    async def create_hospital(
        db: AsyncSession, city: City, name: str = "Korle Bu Teaching Hospital"
    ) -> Hospital:
        hospital = Hospital(name=name, phone="+233302000000", is_government=True, city_id=city.id)
        db.add(hospital)
        await db.commit()
        return hospital

    @staticmethod
    async def create_blood_bank(
        db: AsyncSession,
        city: City,
        name: str = "Central Blood Bank",
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        hospital: Optional[Hospital] = None,
        is_active: bool = True,
    ) -> BloodBank:
        bank = BloodBank(
            name=name,
            address="1 Hospital Road",
            phone="+233244000000",
            emergency_phone="+233200000000",
            latitude=latitude,
            longitude=longitude,
            is_24x7=True,
            is_active=is_active,
            city_id=city.id,
            hospital_id=hospital.id if hospital else None,
        )
        db.add(bank)
        await db.commit()
        return bank


@pytest.fixture
async def city(db_session: AsyncSession) -> City:
    return await TestDataFactory.create_city(db_session)


@pytest.fixture
async def hospital(db_session: AsyncSession, city: City) -> Hospital:
    return await TestDataFactory.create_hospital(db_session, city)


@pytest.fixture
async def blood_bank(db_session: AsyncSession, city: City, hospital: Hospital) -> BloodBank:
    return await TestDataFactory.create_blood_bank(
        db_session, city, latitude=5.6037, longitude=-0.1870, hospital=hospital
    )


# --- Authentication Helpers ---


def make_auth_headers(role: UserRole, user_id: str = "user-1") -> dict:
    token = TokenManager.create_access_token({"sub": user_id, "role": role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict:
    return make_auth_headers(UserRole.BLOOD_BANK_ADMIN, "bank-admin-1")


@pytest.fixture
def doctor_headers() -> dict:
    return make_auth_headers(UserRole.DOCTOR, "doctor-1")


@pytest.fixture
def user_headers() -> dict:
    return make_auth_headers(UserRole.USER, "user-1")


# --- Utility Functions ---


def assert_response_success(response, expected_status: int = 200):
    """Assert response is successful with proper structure."""
    assert response.status_code == expected_status, response.text
    data = response.json()
    assert data["success"] is True
    assert "data" in data
    return data["data"]


def assert_response_error(response, expected_status: int = 400, error: Optional[str] = None):
    """Assert response is an error with proper structure."""
    assert response.status_code == expected_status, response.text
    data = response.json()
    assert data["success"] is False
    assert "message" in data
    if error is not None:
        assert data["error"] == error
    return data
