"""
Parcel lifecycle service.

Workflow over ParcelStore: register, list, advance, re-address, delete.
Errors from the store are surfaced unchanged.
"""

import logging
from typing import List, Optional

from tracker.app.models.parcel_enums import ParcelStatus, next_status
from tracker.app.schemas.parcel import ParcelCreate, ParcelResponse, utc_now
from tracker.app.services.parcel_store import ParcelStore

logger = logging.getLogger("tracker.service")


class ParcelService:
    
    def __init__(self, store: ParcelStore):
        self.store = store

    async def register(self, client: int, address: str) -> ParcelResponse:
        """Create a parcel in REGISTERED status, stamped with the current UTC time."""
        parcel = ParcelCreate(
            client=client,
            status=ParcelStatus.REGISTERED,
            address=address,
            created_at=utc_now(),
        )
        number = await self.store.add(parcel)
        
        logger.info(
            "Parcel Registered",
            extra={"number": number, "client": client, "address": address}
        )
        return ParcelResponse(number=number, **parcel.model_dump())

    async def client_parcels(self, client: int) -> List[ParcelResponse]:
        """List a client's parcels."""
        parcels = await self.store.get_by_client(client)
        for parcel in parcels:
            logger.info(
                "Client Parcel",
                extra={
                    "number": parcel.number,
                    "client": client,
                    "address": parcel.address,
                    "status": parcel.status.value,
                    "created_at": parcel.created_at.isoformat(),
                }
            )
        return parcels

    async def next_status(self, number: int) -> Optional[ParcelStatus]:
        """
        Advance a parcel one step along its lifecycle.
        
        Returns:
            The new status, or None if the parcel was already delivered
            (it is left untouched).
        
        Raises:
            NotFoundError: If no parcel has this number
            InvalidTransitionError: If the status changed concurrently
        """
        parcel = await self.store.get(number)
        
        target = next_status(parcel.status)
        if target is None:
            logger.info("Parcel Already Final", extra={"number": number, "status": parcel.status.value})
            return None
        
        await self.store.set_status(number, target)
        logger.info("Parcel Status Changed", extra={"number": number, "status": target.value})
        return target

    async def change_address(self, number: int, address: str) -> None:
        await self.store.set_address(number, address)

    async def delete(self, number: int) -> None:
        await self.store.delete(number)
