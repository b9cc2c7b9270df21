import asyncio
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.metrics import track_performance
from models.booking import Booking
from services.exceptions import (
    DuplicateBookingError,
    DuplicateOrWriteError,
    RepositoryError,
    StaleBookingError,
    WriteError,
)


class BookingRepository:
    """
    Booking store keyed by vehicle id.

    Writes are guarded: `insert` relies on the unique vehicle id and
    `update_in_place` only touches a record that is still unscheduled, so a
    concurrent request for the same vehicle cannot overwrite a scheduled
    booking. Every call is bounded by `timeout` seconds.
    """

    def __init__(self, db: AsyncSession, timeout: float = 10.0):
        self.db = db
        self.timeout = timeout

    async def _bounded(self, awaitable):
        return await asyncio.wait_for(awaitable, timeout=self.timeout)

    @track_performance(service_name="BookingRepository")
    async def find_by_vehicle(self, vehicle_id: str) -> Optional[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.vehicle_id == vehicle_id)
            .execution_options(populate_existing=True)
        )
        try:
            result = await self._bounded(self.db.execute(stmt))
            return result.scalar_one_or_none()
        except asyncio.TimeoutError:
            raise RepositoryError(f"Booking lookup timed out after {self.timeout:.1f}s")
        except SQLAlchemyError as e:
            raise RepositoryError(str(e)) from e

    @track_performance(service_name="BookingRepository")
    async def insert(self, booking: Booking) -> int:
        self.db.add(booking)
        try:
            await self._bounded(self.db.commit())
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateBookingError(f"Booking already exists for vehicle {booking.vehicle_id}") from e
        except asyncio.TimeoutError:
            await self.db.rollback()
            raise DuplicateOrWriteError(f"Booking insert timed out after {self.timeout:.1f}s")
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DuplicateOrWriteError(str(e)) from e
        return booking.id

    @track_performance(service_name="BookingRepository")
    async def update_in_place(self, vehicle_id: str, fields: Dict[str, Any]) -> None:
        stmt = (
            update(Booking)
            .where(Booking.vehicle_id == vehicle_id, Booking.is_scheduled == False)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self._bounded(self.db.execute(stmt))
            if result.rowcount == 0:
                await self.db.rollback()
                raise StaleBookingError(f"Booking for vehicle {vehicle_id} is no longer unscheduled")
            await self._bounded(self.db.commit())
        except asyncio.TimeoutError:
            await self.db.rollback()
            raise WriteError(f"Booking update timed out after {self.timeout:.1f}s")
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise WriteError(str(e)) from e

    async def list_all(self) -> List[Booking]:
        try:
            result = await self._bounded(self.db.execute(select(Booking).order_by(Booking.id)))
            return list(result.scalars().all())
        except asyncio.TimeoutError:
            raise RepositoryError("Failed to fetch bookings: timed out")
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to fetch bookings: {e}") from e
