"""
Centralized Test Configuration.
"""

import itertools
from datetime import date, timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.jwt import create_access_token
from backend.app.core.redis_client import get_redis
from backend.app.core.security import get_password_hash
from backend.app.models.enums import UserRole
from backend.app.models.user import User
from backend.app.models.vehicle_enums import VehicleType
from backend.app.services.driver_lifecycle import DriverService
from backend.app.services.trip_state_machine import TripService
from backend.app.services.vehicle_lifecycle import VehicleService
import backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


# In-memory stand-in for the calls the app makes on redis.asyncio.Redis
class MockRedis:
    def __init__(self):
        self.store = {}
        self.ttl = {}
        self._closed = False

    async def ping(self):
        return not self._closed

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.ttl[key] = ex
        return True

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store.clear()
        self.ttl.clear()

    async def aclose(self):
        self._closed = True


# Redis Fixture (Session Scope)
@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session
    
    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield
    
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    await redis_client_session.flushdb()
    
    yield
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation and service-level tests
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory():
    """Independent sessions on the test engine, for racing writers."""
    return TestingSessionLocal


# --- Factories ---

@pytest.fixture
def make_vehicle(db_session):
    """Register a vehicle (cap 1000 kg, odometer 100 km unless overridden)."""
    counter = itertools.count(1)

    async def _make(**overrides):
        n = next(counter)
        data = {
            "name": f"Test Truck {n}",
            "license_plate": f"TST-{n:04d}",
            "vehicle_type": VehicleType.TRUCK,
            "max_capacity": 1000,
            "odometer": 100,
        }
        data.update(overrides)
        return await VehicleService.create_vehicle(db_session, **data)

    return _make


@pytest.fixture
def make_driver(db_session):
    """Register a driver whose license is valid for another year unless overridden."""
    counter = itertools.count(1)

    async def _make(**overrides):
        n = next(counter)
        data = {
            "name": f"Test Driver {n}",
            "license_category": "c",
            "license_number": f"LIC-{n:05d}",
            "license_expiry_date": date.today() + timedelta(days=365),
        }
        data.update(overrides)
        return await DriverService.create_driver(db_session, **data)

    return _make


@pytest.fixture
def make_trip(db_session, make_vehicle, make_driver):
    """Create a Draft trip, registering a fresh vehicle/driver when none is given."""

    async def _make(vehicle=None, driver=None, **overrides):
        vehicle = vehicle or await make_vehicle()
        driver = driver or await make_driver()
        data = {
            "cargo_weight": 500,
            "from_location": "Depot",
            "to_location": "Customer",
            "start_odometer": vehicle.odometer,
        }
        data.update(overrides)
        return await TripService.create_trip(db_session, vehicle_id=vehicle.id, driver_id=driver.id, **data)

    return _make


@pytest.fixture
def auth_headers(db_session):
    """Bearer headers for a (created on demand) user with the given role."""

    async def _headers(role: UserRole) -> dict:
        email = f"{role.value.lower()}@fleet.io"
        user = (await db_session.execute(select(User).where(User.email == email))).scalar_one_or_none()
        if not user:
            user = User(
                email=email,
                name=role.value,
                hashed_password=get_password_hash("password123"),
                role=role,
                is_active=True
            )
            db_session.add(user)
            await db_session.commit()
            await db_session.refresh(user)
        token = create_access_token({"sub": email, "user_id": user.id, "role": role.value})
        return {"Authorization": f"Bearer {token}"}

    return _headers
