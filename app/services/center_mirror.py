import asyncio
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.prometheus_metrics import prometheus_collector
from core.tasks import BackgroundTaskPool
from models.service_center import ServiceCenter
from services.exceptions import MirrorUpdateFailure

logger = logging.getLogger(__name__)


class CenterMirrorUpdater:
    """
    Appends bookings to the chosen center's embedded `bookings` list.

    Best effort and at most once: the update runs detached on the task pool
    with its own session and timeout, is never awaited by the request path,
    and is not retried. The booking store stays the source of truth; drift
    between it and a center's list is tolerated.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        pool: BackgroundTaskPool,
        timeout: float = 5.0
    ):
        self.session_factory = session_factory
        self.pool = pool
        self.timeout = timeout

    def schedule(self, center_id: str, booking: Dict[str, Any]) -> Optional[asyncio.Task]:
        return self.pool.spawn(
            self._run(center_id, booking),
            name=f"mirror:{center_id}:{booking.get('vehicleId')}",
            timeout=self.timeout
        )

    async def _run(self, center_id: str, booking: Dict[str, Any]):
        try:
            await self.append_booking_to_center(center_id, booking)
        except MirrorUpdateFailure as e:
            prometheus_collector.record_mirror_update("error")
            logger.warning(
                f"Mirror update failed: {e}",
                extra={"center_id": center_id, "vehicle_id": booking.get("vehicleId")}
            )
            return
        except asyncio.CancelledError:
            # pool timeout or shutdown drain
            prometheus_collector.record_mirror_update("cancelled")
            raise
        prometheus_collector.record_mirror_update("success")

    async def append_booking_to_center(self, center_id: str, booking: Dict[str, Any]) -> None:
        async with self.session_factory() as session:
            try:
                center = await session.get(ServiceCenter, center_id, with_for_update=True)
                if center is None:
                    raise MirrorUpdateFailure(f"Service center {center_id} not found")

                # Reassign so the JSON column is flagged dirty
                center.bookings = [*(center.bookings or []), booking]
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise MirrorUpdateFailure(f"Failed to update service center {center_id}: {e}") from e

        logger.info(
            f"Booking mirrored to center {center_id}",
            extra={"center_id": center_id, "vehicle_id": booking.get("vehicleId")}
        )
