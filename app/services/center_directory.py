import asyncio
import logging
from typing import List, Optional, Protocol
from urllib.parse import quote

import httpx
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.metrics import track_performance
from models.service_center import ServiceCenter
from schemas.service_center import CenterRecord
from services.exceptions import LookupFailure

logger = logging.getLogger(__name__)


class CenterDirectory(Protocol):
    async def list_candidates(self, scope: Optional[str] = None) -> List[CenterRecord]:
        ...


class DatabaseCenterDirectory:
    """
    Lists active centers from the centers store.

    When `scope_by_company` is set, only centers whose name starts with the
    scope (the company prefix of the vehicle id) are returned.
    Results are ordered by center id so the selector's tie-break is stable.
    """

    def __init__(self, db: AsyncSession, timeout: float = 10.0, scope_by_company: bool = True):
        self.db = db
        self.timeout = timeout
        self.scope_by_company = scope_by_company

    @track_performance(service_name="DatabaseCenterDirectory")
    async def list_candidates(self, scope: Optional[str] = None) -> List[CenterRecord]:
        stmt = select(ServiceCenter).where(ServiceCenter.is_active == True)
        if scope and self.scope_by_company:
            stmt = stmt.where(ServiceCenter.name.startswith(scope, autoescape=True))
        stmt = stmt.order_by(ServiceCenter.center_id)

        try:
            result = await asyncio.wait_for(self.db.execute(stmt), timeout=self.timeout)
            centers = result.scalars().all()
        except asyncio.TimeoutError:
            raise LookupFailure(f"Center directory query timed out after {self.timeout:.1f}s")
        except SQLAlchemyError as e:
            raise LookupFailure(f"Center directory query failed: {e}") from e

        logger.info(
            f"Directory returned {len(centers)} active centers",
            extra={"scope": scope, "backend": "database"}
        )
        return [CenterRecord.from_model(c) for c in centers]


class HttpCenterDirectory:
    """
    Asks the remote assignment-advisory service for the centers of a company.

    GET {base_url}/get-center-by-name/{scope} -> JSON list of centers.
    The timeout is long because the remote service may be cold-starting.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, timeout: float = 30.0):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _build_url(self, scope: Optional[str]) -> str:
        return f"{self.base_url}/get-center-by-name/{quote(scope or '', safe='')}"

    @track_performance(service_name="HttpCenterDirectory")
    async def list_candidates(self, scope: Optional[str] = None) -> List[CenterRecord]:
        url = self._build_url(scope)
        logger.info(f"Fetching centers from: {url}")

        try:
            response = await self.client.get(url, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise LookupFailure(f"Center directory timed out: {e}") from e
        except httpx.HTTPError as e:
            raise LookupFailure(f"Center directory unreachable: {e}") from e

        if response.status_code != 200:
            raise LookupFailure(f"Center directory returned status: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise LookupFailure(f"Center directory returned invalid JSON: {e}") from e

        if payload is None:
            payload = []
        if not isinstance(payload, list):
            raise LookupFailure("Center directory payload is not a list")

        try:
            centers = [CenterRecord.model_validate(item) for item in payload]
        except ValidationError as e:
            raise LookupFailure(f"Center directory payload is malformed: {e}") from e

        logger.info(
            f"Directory returned {len(centers)} centers",
            extra={"scope": scope, "backend": "http"}
        )
        return centers
