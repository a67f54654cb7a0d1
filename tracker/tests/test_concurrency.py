"""
Concurrency Tests.

Validates that guards are checked against the persisted status, not a stale read.

Runs on a temporary SQLite file rather than the shared in-memory database, so
every session below holds its own connection, as separate callers would.
"""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from tracker.app.core.exceptions import InvalidStateError, InvalidTransitionError
from tracker.app.db.session import Base
from tracker.app.models.parcel_enums import ParcelStatus
from tracker.app.services.parcel_service import ParcelService
from tracker.app.services.parcel_store import ParcelStore


@pytest.fixture
async def engine(tmp_path):
    """File-backed database with a real connection pool."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield engine
    
    await engine.dispose()


@pytest.fixture
async def second_store(engine):
    """A store on its own session and connection, standing in for another caller."""
    async with async_sessionmaker(engine, expire_on_commit=False)() as session:
        yield ParcelStore(session)


@pytest.mark.asyncio
async def test_stale_read_cannot_edit_sent_parcel(store, second_store, make_parcel):
    """Caller A saw REGISTERED, caller B dispatched the parcel, A's edit must fail."""
    number = await store.add(make_parcel(address="original"))
    seen = await store.get(number)
    assert seen.status == ParcelStatus.REGISTERED
    
    await second_store.set_status(number, ParcelStatus.SENT)
    
    with pytest.raises(InvalidStateError):
        await store.set_address(number, "edited on stale data")
    with pytest.raises(InvalidStateError):
        await store.delete(number)
    
    stored = await second_store.get(number)
    assert stored.address == "original"
    assert stored.status == ParcelStatus.SENT


@pytest.mark.asyncio
async def test_double_advance_applies_once(store, second_store, make_parcel):
    """Two callers both read REGISTERED and both request SENT: only one wins."""
    number = await store.add(make_parcel())
    
    await store.set_status(number, ParcelStatus.SENT)
    with pytest.raises(InvalidTransitionError):
        await second_store.set_status(number, ParcelStatus.SENT)
    
    assert (await store.get(number)).status == ParcelStatus.SENT


@pytest.mark.asyncio
async def test_simultaneous_advance_applies_once(store, second_store, make_parcel):
    number = await store.add(make_parcel())
    
    results = await asyncio.gather(
        store.set_status(number, ParcelStatus.SENT),
        second_store.set_status(number, ParcelStatus.SENT),
        return_exceptions=True,
    )
    
    assert results.count(None) == 1
    assert sum(isinstance(r, InvalidTransitionError) for r in results) == 1
    assert (await store.get(number)).status == ParcelStatus.SENT


@pytest.mark.asyncio
async def test_service_next_status_from_two_callers(store, second_store, make_parcel):
    number = await store.add(make_parcel())
    
    assert await ParcelService(store).next_status(number) == ParcelStatus.SENT
    assert await ParcelService(second_store).next_status(number) == ParcelStatus.DELIVERED
    assert await ParcelService(store).next_status(number) is None
