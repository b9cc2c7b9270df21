from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from core.dependencies import get_audit_log, get_booking_repository, get_booking_service
from schemas.booking import BookingRequest, BookingResponse
from services.audit_log import AuditLogSink
from services.booking_repository import BookingRepository
from services.booking_service import BookingService


router = APIRouter(tags=["bookings"])


@router.post("/book-service", response_model=BookingResponse)
async def book_service(req: BookingRequest, service: BookingService = Depends(get_booking_service)):
    """Create or update the booking of a vehicle, auto-assigning a center when none is given."""
    return await service.book_service(req)


@router.get("/bookings")
async def list_bookings(repository: BookingRepository = Depends(get_booking_repository)) -> List[Dict[str, Any]]:
    return [b.to_dict() for b in await repository.list_all()]


@router.get("/logs")
async def list_logs(audit_log: AuditLogSink = Depends(get_audit_log)) -> List[Dict[str, Any]]:
    return [entry.to_dict() for entry in await audit_log.list_all()]
