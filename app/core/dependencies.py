import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import get_db, get_centers_db
from core.environment import (
    get_center_directory_backend,
    get_center_directory_timeout,
    get_center_directory_url,
    get_center_selection_policy,
    get_db_operation_timeout,
    get_fallback_center_id,
    scope_centers_by_company,
)
from services.audit_log import AuditLogSink
from services.booking_repository import BookingRepository
from services.booking_service import BookingContext, BookingService
from services.center_directory import CenterDirectory, DatabaseCenterDirectory, HttpCenterDirectory
from services.center_mirror import CenterMirrorUpdater
from services.selector import SelectionPolicy


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_center_mirror(request: Request) -> CenterMirrorUpdater:
    return request.app.state.center_mirror


def get_center_directory(
    request: Request,
    centers_db: AsyncSession = Depends(get_centers_db)
) -> CenterDirectory:
    if get_center_directory_backend() == "http":
        return HttpCenterDirectory(
            client=get_http_client(request),
            base_url=get_center_directory_url(),
            timeout=get_center_directory_timeout(),
        )
    return DatabaseCenterDirectory(
        centers_db,
        timeout=get_db_operation_timeout(),
        scope_by_company=scope_centers_by_company(),
    )


def get_booking_repository(db: AsyncSession = Depends(get_db)) -> BookingRepository:
    return BookingRepository(db, timeout=get_db_operation_timeout())


def get_audit_log(db: AsyncSession = Depends(get_db)) -> AuditLogSink:
    return AuditLogSink(db, timeout=get_db_operation_timeout())


def get_booking_service(
    repository: BookingRepository = Depends(get_booking_repository),
    audit_log: AuditLogSink = Depends(get_audit_log),
    directory: CenterDirectory = Depends(get_center_directory),
    mirror: CenterMirrorUpdater = Depends(get_center_mirror),
) -> BookingService:
    context = BookingContext(
        repository=repository,
        directory=directory,
        audit_log=audit_log,
        mirror=mirror,
        policy=SelectionPolicy.parse(get_center_selection_policy()),
        fallback_center_id=get_fallback_center_id(),
    )
    return BookingService(context)
