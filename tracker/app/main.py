"""
Parcel Tracker demo entry point.

Runs one parcel lifecycle against the configured database:

    python -m tracker.app.main
"""

import asyncio

from tracker.app.core.config import settings
from tracker.app.core.exceptions import AppException
from tracker.app.core.observability import configure_logging, logger
from tracker.app.db.session import build_engine, build_session_factory, init_models
from tracker.app.services.parcel_service import ParcelService
from tracker.app.services.parcel_store import ParcelStore

# Import models to ensure they are registered with Base
from tracker.app.models.parcel import Parcel  # noqa: F401

DEMO_CLIENT = 1


def print_parcels(client: int, parcels) -> None:
    print(f"Parcels of client {client}:")
    for parcel in parcels:
        print(
            f"  #{parcel.number} status={parcel.status.value} "
            f"address='{parcel.address}' created_at={parcel.created_at.isoformat()}"
        )


async def run_demo(service: ParcelService, client: int = DEMO_CLIENT) -> None:
    """
    Walk a parcel through its lifecycle.
    
    1. Register a parcel and change its address
    2. Advance it to SENT and try to delete it (rejected)
    3. Advance it to DELIVERED
    4. Register a second parcel and delete it
    """
    parcel = await service.register(client, "Pskov, Pushkin st. 5")
    print(f"Registered parcel #{parcel.number} for client {client}")
    
    await service.change_address(parcel.number, "Saratov, Kozlov st. 25")
    await service.next_status(parcel.number)
    print_parcels(client, await service.client_parcels(client))
    
    try:
        await service.delete(parcel.number)
    except AppException as exc:
        print(f"Delete rejected: {exc.message}")
    
    await service.next_status(parcel.number)
    
    extra = await service.register(client, "Moscow, Tverskaya st. 1")
    await service.delete(extra.number)
    print(f"Registered and deleted parcel #{extra.number}")
    
    print_parcels(client, await service.client_parcels(client))


async def main() -> None:
    configure_logging(settings.log_level)
    logger.info("Starting demo", extra={"app_name": settings.app_name})
    
    engine = build_engine(settings)
    try:
        # Schema is normally provisioned externally; create it for the demo
        await init_models(engine)
        session_factory = build_session_factory(engine)
        async with session_factory() as session:
            await run_demo(ParcelService(ParcelStore(session)))
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
