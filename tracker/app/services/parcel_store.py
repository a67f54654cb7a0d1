"""
Parcel Store.

Sole gateway to parcel persistence. Every public method is one unit of
atomicity: it commits on success and rolls back on any failure, so the
caller's session is always left usable.

Mutations are guarded inside the statement itself
(UPDATE/DELETE ... WHERE number = ? AND status = ?), so a concurrently
changed status can never make an illegal mutation appear legal. When a
guarded statement touches no row, the current status is read back only to
decide which error to raise.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.app.core.exceptions import (
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
)
from tracker.app.core.observability import track_operation
from tracker.app.models.parcel import Parcel
from tracker.app.models.parcel_enums import PREVIOUS_STATUS, ParcelStatus
from tracker.app.schemas.parcel import MAX_IDENTIFIER, MIN_IDENTIFIER, ParcelCreate, ParcelResponse

logger = logging.getLogger("tracker.store")

# Raised by the driver for values it cannot bind (out-of-range integers,
# unencodable text) in addition to SQLAlchemy's own wrapped errors.
STORAGE_ERRORS = (SQLAlchemyError, OverflowError, UnicodeError)


def is_storable_identifier(value: int) -> bool:
    """True if `value` fits the signed 64-bit integer columns."""
    return MIN_IDENTIFIER <= value <= MAX_IDENTIFIER


class ParcelStore:
    """
    Persistence operations for parcel records.

    The session is owned by the caller; the store keeps no other state.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, parcel: ParcelCreate) -> int:
        """
        Insert a new parcel.

        Returns:
            The number assigned by the database

        Raises:
            StorageError: If the insert fails
        """
        async with track_operation("parcel.add", client=parcel.client) as log_data:
            record = Parcel(
                client=parcel.client,
                status=parcel.status,
                address=parcel.address,
                created_at=parcel.created_at,
            )
            async with self._unit_of_work(f"Failed to add parcel for client {parcel.client}"):
                self.db.add(record)
                await self.db.flush()  # Assigns the autoincrement number
                number = record.number
                await self.db.commit()

            log_data["number"] = number
            return number

    async def get(self, number: int) -> ParcelResponse:
        """
        Fetch a single parcel by number.

        Raises:
            NotFoundError: If no parcel has this number
            StorageError: If the read fails
        """
        async with track_operation("parcel.get", number=number):
            if not is_storable_identifier(number):
                raise NotFoundError("Parcel", number)

            stmt = (
                select(Parcel)
                .where(Parcel.number == number)
                .execution_options(populate_existing=True)
            )
            async with self._unit_of_work(f"Failed to read parcel {number}"):
                result = await self.db.execute(stmt)
                record = result.scalar_one_or_none()
                parcel = ParcelResponse.model_validate(record) if record is not None else None
                await self.db.commit()

            if parcel is None:
                raise NotFoundError("Parcel", number)
            return parcel

    async def get_by_client(self, client: int) -> List[ParcelResponse]:
        """
        Fetch every parcel owned by a client, ordered by number.

        Returns:
            List of parcels (empty if the client has none)

        Raises:
            StorageError: If the read fails
        """
        async with track_operation("parcel.get_by_client", client=client) as log_data:
            if not is_storable_identifier(client):
                log_data["count"] = 0
                return []

            stmt = (
                select(Parcel)
                .where(Parcel.client == client)
                .order_by(Parcel.number)
                .execution_options(populate_existing=True)
            )
            async with self._unit_of_work(f"Failed to read parcels of client {client}"):
                result = await self.db.execute(stmt)
                parcels = [ParcelResponse.model_validate(p) for p in result.scalars().all()]
                await self.db.commit()

            log_data["count"] = len(parcels)
            return parcels

    async def set_address(self, number: int, address: str) -> None:
        """
        Change the delivery address of a registered parcel.

        Raises:
            NotFoundError: If no parcel has this number
            InvalidStateError: If the parcel is no longer registered
            StorageError: If the update fails
        """
        async with track_operation("parcel.set_address", number=number):
            if not is_storable_identifier(number):
                raise NotFoundError("Parcel", number)

            stmt = (
                update(Parcel)
                .where(Parcel.number == number, Parcel.status == ParcelStatus.REGISTERED)
                .values(address=address)
                .execution_options(synchronize_session=False)
            )
            applied, current = await self._apply_guarded(stmt, number, "update address of")
            if not applied:
                if current is None:
                    raise NotFoundError("Parcel", number)
                raise InvalidStateError(number, current.value, "change address of")

    async def set_status(self, number: int, status: ParcelStatus) -> None:
        """
        Move a parcel one step forward (registered -> sent -> delivered).

        Raises:
            NotFoundError: If no parcel has this number
            InvalidTransitionError: If `status` is not the next status
            StorageError: If the update fails
        """
        status = ParcelStatus(status)
        async with track_operation("parcel.set_status", number=number, status=status.value):
            if not is_storable_identifier(number):
                raise NotFoundError("Parcel", number)

            predecessor = PREVIOUS_STATUS.get(status)
            if predecessor is None:
                # Nothing transitions into the initial status
                current = await self._read_status(number)
                if current is None:
                    raise NotFoundError("Parcel", number)
                raise InvalidTransitionError(number, current.value, status.value)

            stmt = (
                update(Parcel)
                .where(Parcel.number == number, Parcel.status == predecessor)
                .values(status=status)
                .execution_options(synchronize_session=False)
            )
            applied, current = await self._apply_guarded(stmt, number, "update status of")
            if not applied:
                if current is None:
                    raise NotFoundError("Parcel", number)
                raise InvalidTransitionError(number, current.value, status.value)

    async def delete(self, number: int) -> None:
        """
        Permanently remove a registered parcel.

        Raises:
            NotFoundError: If no parcel has this number
            InvalidStateError: If the parcel is no longer registered
            StorageError: If the delete fails
        """
        async with track_operation("parcel.delete", number=number):
            if not is_storable_identifier(number):
                raise NotFoundError("Parcel", number)

            stmt = (
                delete(Parcel)
                .where(Parcel.number == number, Parcel.status == ParcelStatus.REGISTERED)
                .execution_options(synchronize_session=False)
            )
            applied, current = await self._apply_guarded(stmt, number, "delete")
            if not applied:
                if current is None:
                    raise NotFoundError("Parcel", number)
                raise InvalidStateError(number, current.value, "delete")

    @asynccontextmanager
    async def _unit_of_work(self, message: str) -> AsyncIterator[None]:
        """
        Roll back whatever the wrapped statements left open if they fail.

        Storage and driver binding errors become StorageError; anything else
        propagates unchanged after the rollback.
        """
        try:
            yield
        except STORAGE_ERRORS as exc:
            raise await self._storage_failure(message, exc) from exc
        except Exception:
            await self.db.rollback()
            raise

    async def _apply_guarded(self, stmt, number: int, action: str) -> Tuple[bool, Optional[ParcelStatus]]:
        """
        Execute a guarded UPDATE/DELETE and commit it if it touched a row.

        Returns:
            (True, None) if applied, otherwise (False, current status or None
            when the parcel does not exist). Nothing is written in that case.
        """
        async with self._unit_of_work(f"Failed to {action} parcel {number}"):
            result = await self.db.execute(stmt)
            if result.rowcount > 0:
                await self.db.commit()
                return True, None

            current = await self._select_status(number)
            await self.db.rollback()
            return False, current

    async def _read_status(self, number: int) -> Optional[ParcelStatus]:
        async with self._unit_of_work(f"Failed to read parcel {number}"):
            current = await self._select_status(number)
            await self.db.commit()
            return current

    async def _select_status(self, number: int) -> Optional[ParcelStatus]:
        result = await self.db.execute(select(Parcel.status).where(Parcel.number == number))
        return result.scalar_one_or_none()

    async def _storage_failure(self, message: str, exc: Exception) -> StorageError:
        """Roll back the failed unit of work and build the error to raise."""
        try:
            await self.db.rollback()
        except SQLAlchemyError as rollback_exc:
            logger.warning("Rollback failed", extra={"reason": str(rollback_exc)})
        return StorageError(message, details={"reason": str(exc)})
