import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.prometheus_metrics import prometheus_collector
from services.exceptions import (
    BadRequestError,
    BookingDomainError,
    LookupFailure,
    NoCandidateError,
    RepositoryError,
)

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS = (
    (BadRequestError, 400),
    (NoCandidateError, 404),
    (LookupFailure, 502),
    (RepositoryError, 500),
)

ERROR_MESSAGES = {
    LookupFailure: "Could not fetch service centers",
    RepositoryError: "Booking store operation failed",
}


def status_for(exc: Exception) -> int:
    for exc_type, status in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status
    return 500


async def booking_exception_handler(request: Request, exc: BookingDomainError):
    status_code = status_for(exc)
    prometheus_collector.record_booking_outcome(exc.__class__.__name__)

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", extra={"error_type": exc.__class__.__name__})
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}", extra={"error_type": exc.__class__.__name__})

    message = str(exc)
    for exc_type, public_message in ERROR_MESSAGES.items():
        if isinstance(exc, exc_type) and status_code >= 500:
            # Store and upstream details stay in the logs
            message = public_message
            break

    return JSONResponse(status_code=status_code, content={"error": message})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    prometheus_collector.record_booking_outcome("BadRequestError")
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = f"{location}: {first.get('msg')}" if location else first.get("msg")
    else:
        detail = "malformed request"
    return JSONResponse(status_code=400, content={"error": f"Invalid JSON: {detail}"})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(BookingDomainError, booking_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
