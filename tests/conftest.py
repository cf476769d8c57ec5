import fnmatch
import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

# Settings are read at import time; provide test values before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("REDIS_PORT", "6379")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-tests-only")

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Load environment variables from .env file
load_dotenv()

from app.core.background import BackgroundDispatcher
from app.core.locks import ScopeGuard
from app.core.redis_client import CounterStore, get_redis_client
from app.core.security import ROLE_CLINIC, ROLE_PATIENT, create_access_token, get_password_hash
from app.database import get_db
from app.dependencies import (
    get_broadcaster,
    get_counter_store,
    get_dispatcher,
    get_notifier,
    get_queue_service,
    get_scope_guard,
)
from app.main import app
from app.models import clinics, doctors, metadata, patients
from app.services.broadcast_service import QueueBroadcaster
from app.services.notification_service import NotificationService
from app.services.numbering import NumberingPolicy
from app.services.queue_service import QueueService

# In-memory SQLite shared across the session's connections
TEST_DATABASE_URL = "sqlite+aiosqlite://"

# Fixed "now" for queue operations: a weekday, inside 09:00-17:00 UTC
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
CLINIC_OPENED_AT = NOW - timedelta(hours=4)
CLINIC_PASSWORD = "secret123"
CLINIC_PASSWORD_HASH = get_password_hash(CLINIC_PASSWORD)


class MutableClock:
    """Test clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


def make_redis() -> MagicMock:
    """MagicMock Redis client whose get/set/keys read and write a real dict."""
    store: dict[str, str] = {}
    mock_redis = MagicMock()
    mock_redis.store = store
    mock_redis.get.side_effect = lambda key: store.get(key)
    mock_redis.set.side_effect = lambda key, value: store.__setitem__(key, str(value))
    mock_redis.keys.side_effect = lambda pattern: [k for k in store if fnmatch.fnmatch(k, pattern)]
    mock_redis.publish.return_value = 1
    mock_redis.ping.return_value = True
    return mock_redis


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def mock_redis() -> MagicMock:
    """Dict-backed Redis stand-in."""
    return make_redis()


@pytest.fixture
def counter(mock_redis) -> CounterStore:
    """Serving counter on the mock Redis."""
    return CounterStore(mock_redis)


@pytest_asyncio.fixture
async def background() -> AsyncGenerator[BackgroundDispatcher, None]:
    """Dispatcher drained at the end of each test."""
    dispatcher = BackgroundDispatcher()
    yield dispatcher
    await dispatcher.drain()


@pytest.fixture
def guard() -> ScopeGuard:
    """Scope guard bound to the test's event loop."""
    return ScopeGuard(timeout=1.0)


@pytest.fixture
def broadcaster(mock_redis, background) -> QueueBroadcaster:
    """Broadcaster publishing to the mock Redis."""
    return QueueBroadcaster(mock_redis, background)


@pytest.fixture
def notifier(background) -> NotificationService:
    """Notifier; Firebase is not initialised in tests so sends are skipped."""
    return NotificationService(background)


@pytest.fixture
def clock() -> MutableClock:
    """Clock starting at NOW."""
    return MutableClock()


@pytest.fixture
def queue_service(db_session, counter, broadcaster, notifier, guard, clock) -> QueueService:
    """Queue service on the test clock."""
    return QueueService(
        db_session,
        counter,
        broadcaster,
        notifier,
        guard=guard,
        policy=NumberingPolicy(reset_on_new_day=True),
        clock=clock,
    )


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    mock_redis: MagicMock,
    background: BackgroundDispatcher,
    guard: ScopeGuard,
    clock: MutableClock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    def override_get_queue_service(
        counter: CounterStore = Depends(get_counter_store),
        broadcaster: QueueBroadcaster = Depends(get_broadcaster),
        notifier: NotificationService = Depends(get_notifier),
    ) -> QueueService:
        return QueueService(db_session, counter, broadcaster, notifier, guard=guard, clock=clock)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = lambda: mock_redis
    app.dependency_overrides[get_dispatcher] = lambda: background
    app.dependency_overrides[get_scope_guard] = lambda: guard
    app.dependency_overrides[get_queue_service] = override_get_queue_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Seed data
# ============================================================================


@pytest_asyncio.fixture
async def clinic(db_session) -> dict:
    """An open clinic, 09:00-17:00 UTC, 10 minutes per patient."""
    clinic_id = uuid4()
    data = {
        "id": clinic_id,
        "name": "Riverside Clinic",
        "email": "front@riverside.example.com",
        "password_hash": CLINIC_PASSWORD_HASH,
        "phone": "+15550001111",
        "address": "12 River Road",
        "services": ["General Consultation"],
        "opening_time": "09:00",
        "closing_time": "17:00",
        "timezone": "UTC",
        "average_process_time": 10,
        "max_active_queues": 50,
        "is_open": True,
        "last_status_change": CLINIC_OPENED_AT,
        "created_at": CLINIC_OPENED_AT,
        "updated_at": CLINIC_OPENED_AT,
    }
    await db_session.execute(insert(clinics).values(**data))
    await db_session.commit()
    return data


@pytest_asyncio.fixture
async def other_clinic(db_session) -> dict:
    """A second clinic, used for ownership checks."""
    data = {
        "id": uuid4(),
        "name": "Hilltop Clinic",
        "email": "desk@hilltop.example.com",
        "password_hash": CLINIC_PASSWORD_HASH,
        "phone": "+15550002222",
        "address": "3 Hill Street",
        "opening_time": "09:00",
        "closing_time": "17:00",
        "timezone": "UTC",
        "average_process_time": 15,
        "max_active_queues": 50,
        "is_open": True,
        "last_status_change": CLINIC_OPENED_AT,
        "created_at": CLINIC_OPENED_AT,
        "updated_at": CLINIC_OPENED_AT,
    }
    await db_session.execute(insert(clinics).values(**data))
    await db_session.commit()
    return data


async def add_doctor(db_session: AsyncSession, clinic_id, name: str = "Dr. Ada Moss") -> dict:
    """Insert an active, available doctor."""
    data = {
        "id": uuid4(),
        "clinic_id": clinic_id,
        "name": name,
        "specialty": "General Practice",
        "consultation_fee": 40,
        "available_days": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
        "available_start": "09:00",
        "available_end": "17:00",
        "is_active": True,
        "is_available": True,
        "last_status_change": CLINIC_OPENED_AT,
        "created_at": CLINIC_OPENED_AT,
        "updated_at": CLINIC_OPENED_AT,
    }
    await db_session.execute(insert(doctors).values(**data))
    await db_session.commit()
    return data


async def add_patient(db_session: AsyncSession, name: str, phone: str, fcm_token: str | None = None) -> dict:
    """Insert a patient without an active ticket."""
    data = {
        "id": uuid4(),
        "name": name,
        "phone": phone,
        "fcm_token": fcm_token,
        "created_at": CLINIC_OPENED_AT,
        "updated_at": CLINIC_OPENED_AT,
    }
    await db_session.execute(insert(patients).values(**data))
    await db_session.commit()
    return data


@pytest_asyncio.fixture
async def doctor(db_session, clinic) -> dict:
    """Doctor of the open clinic."""
    return await add_doctor(db_session, clinic["id"])


@pytest_asyncio.fixture
async def queue_patients(db_session) -> list[dict]:
    """Five patients, none queued."""
    return [await add_patient(db_session, f"Patient {i}", f"+1555010000{i}") for i in range(1, 6)]


def auth_headers_for(subject_id, role: str) -> dict:
    """Bearer header for a clinic or patient."""
    token = create_access_token(
        data={"sub": str(subject_id), "role": role},
        expires_delta=timedelta(minutes=30),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def clinic_headers(clinic) -> dict:
    """Authentication headers for the clinic."""
    return auth_headers_for(clinic["id"], ROLE_CLINIC)


@pytest.fixture
def patient_headers(queue_patients) -> dict:
    """Authentication headers for the first patient."""
    return auth_headers_for(queue_patients[0]["id"], ROLE_PATIENT)


@pytest.fixture
def create_doctor(db_session):
    """Factory for extra doctors."""

    async def _create(clinic_id, name: str = "Dr. Ben Hale") -> dict:
        return await add_doctor(db_session, clinic_id, name)

    return _create


@pytest.fixture
def create_patient(db_session):
    """Factory for extra patients."""

    async def _create(name: str, phone: str, fcm_token: str | None = None) -> dict:
        return await add_patient(db_session, name, phone, fcm_token)

    return _create


@pytest.fixture
def headers_for():
    """Factory for bearer headers."""
    return auth_headers_for
