import asyncio
import random
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.metrics import track_performance
from models.log_entry import LogEntry
from services.exceptions import LogWriteError, RepositoryError

LOG_TYPE_BOOKING = "BOOKING"

ACTION_CREATED = "CREATED"
ACTION_AUTO_ASSIGNED_CREATED = "AUTO_ASSIGNED_CREATED"
ACTION_UPDATED_SCHEDULE = "UPDATED_SCHEDULE"


def utc_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%SZ")


def generate_log_id(now: Optional[datetime] = None) -> str:
    """LOG_<YYYYMMDD>_<NNNN>. Unique enough for a diagnostic trail, not collision free."""
    now = now or datetime.now(timezone.utc)
    return f"LOG_{now.strftime('%Y%m%d')}_{random.randint(0, 9999):04d}"


class AuditLogSink:
    """Append-only booking lifecycle log. Failures are reported, never fatal to the booking."""

    def __init__(self, db: AsyncSession, timeout: float = 10.0):
        self.db = db
        self.timeout = timeout

    @track_performance(service_name="AuditLogSink")
    async def append(self, entry: LogEntry) -> None:
        self.db.add(entry)
        try:
            await asyncio.wait_for(self.db.commit(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await self.db.rollback()
            raise LogWriteError(f"Log write timed out after {self.timeout:.1f}s")
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise LogWriteError(str(e)) from e

    async def list_all(self) -> List[LogEntry]:
        try:
            result = await asyncio.wait_for(
                self.db.execute(select(LogEntry).order_by(LogEntry.id)),
                timeout=self.timeout
            )
            return list(result.scalars().all())
        except asyncio.TimeoutError:
            raise RepositoryError("Failed to fetch logs: timed out")
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to fetch logs: {e}") from e
