"""
Centralized Test Configuration.
"""

import random
from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from tracker.app.db.session import Base
from tracker.app.models.parcel import Parcel  # noqa: F401  (registers the table)
from tracker.app.models.parcel_enums import ParcelStatus
from tracker.app.schemas.parcel import ParcelCreate
from tracker.app.services.parcel_service import ParcelService
from tracker.app.services.parcel_store import ParcelStore

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Fresh in-memory database per test, tables created up front."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield engine
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    TestingSessionLocal = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def store(db_session):
    return ParcelStore(db_session)


@pytest.fixture
def service(store):
    return ParcelService(store)


@pytest.fixture
def make_parcel():
    """Factory for a registered test parcel (client 1000, address 'test')."""
    def _make(client: int = 1000, address: str = "test") -> ParcelCreate:
        return ParcelCreate(
            client=client,
            status=ParcelStatus.REGISTERED,
            address=address,
            created_at=datetime.now(timezone.utc),
        )
    return _make


@pytest.fixture
def random_client():
    return random.randint(1, 10_000_000)
