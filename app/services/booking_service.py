import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from core.metrics import track_performance
from core.prometheus_metrics import prometheus_collector
from models.booking import Booking
from models.log_entry import LogEntry
from schemas.booking import BookingRequest, BookingResponse
from services.audit_log import (
    ACTION_AUTO_ASSIGNED_CREATED,
    ACTION_CREATED,
    ACTION_UPDATED_SCHEDULE,
    LOG_TYPE_BOOKING,
    AuditLogSink,
    generate_log_id,
    utc_timestamp,
)
from services.booking_repository import BookingRepository
from services.center_directory import CenterDirectory
from services.center_mirror import CenterMirrorUpdater
from services.exceptions import (
    DuplicateBookingError,
    LogWriteError,
    LookupFailure,
    StaleBookingError,
    WriteError,
)
from services.selector import SelectionPolicy, choose_center
from services.validators import BookingRules

logger = logging.getLogger(__name__)

BOOKING_STATUS_CONFIRMED = "Confirmed"
MESSAGE_SAVED = "Successfully saved"
MESSAGE_ALREADY_BOOKED = "already booked"


@dataclass
class BookingContext:
    """Collaborators of one booking request, built per request and injected."""
    repository: BookingRepository
    directory: CenterDirectory
    audit_log: AuditLogSink
    mirror: CenterMirrorUpdater
    policy: SelectionPolicy = SelectionPolicy.LEAST_LOAD
    fallback_center_id: Optional[str] = "SC_DEFAULT"


@dataclass
class CenterAssignment:
    center_id: str
    center_name: str
    is_auto_assigned: bool


class BookingService:
    """
    Booking intake orchestration.

    Sequence for one request:
        1. Look up the vehicle's existing booking.
        2. A scheduled booking is frozen: answer "already booked", write nothing.
        3. Resolve the center: caller's choice, or directory + selector,
           or the fallback center when discovery fails.
        4. Insert (absent) or update in place (unscheduled) the booking.
        5. Append the audit log entry (failure is logged, not raised).
        6. Schedule the center mirror update without awaiting it.

    Errors before step 4 abort the request with nothing written. Errors
    after step 4 never change the caller's answer: the booking store is the
    source of truth, the log and the center mirror are derived.
    """

    def __init__(self, context: BookingContext):
        self.context = context

    @track_performance(service_name="BookingService")
    async def book_service(self, req: BookingRequest) -> BookingResponse:
        repository = self.context.repository

        existing = await repository.find_by_vehicle(req.vehicle_id)
        if existing is not None and existing.is_scheduled:
            return self._already_booked(existing)

        assignment = await self.determine_center(req)
        booking = self._build_booking(req, assignment)

        was_update = existing is not None
        try:
            if was_update:
                await repository.update_in_place(req.vehicle_id, self._booking_fields(booking))
            else:
                await repository.insert(booking)
        except (DuplicateBookingError, StaleBookingError):
            # Lost a race with a concurrent request for the same vehicle
            answer = await self._retry_after_lost_race(req.vehicle_id, booking)
            if answer is not None:
                return answer
            was_update = True

        action = self._log_action(assignment, was_update)
        log_id = req.log_id or generate_log_id()
        await self._append_log(log_id, booking, action)

        self.context.mirror.schedule(assignment.center_id, booking.to_center_entry())

        prometheus_collector.record_booking_outcome("confirmed")
        logger.info(
            "Booking saved",
            extra={
                "vehicle_id": req.vehicle_id,
                "center_id": assignment.center_id,
                "action": action,
                "log_id": log_id,
            }
        )
        return BookingResponse(
            booking_status=BOOKING_STATUS_CONFIRMED,
            generated_log_id=log_id,
            assigned_center=assignment.center_id,
            message=MESSAGE_SAVED,
        )

    async def determine_center(self, req: BookingRequest) -> CenterAssignment:
        """
        Resolves the center for a request.

        Raises:
            NoCandidateError: the directory answered but nothing is eligible
            LookupFailure: discovery failed and no fallback center is configured
        """
        scheduled = req.scheduled_service

        if BookingRules.is_explicit_center(scheduled.service_center_id):
            prometheus_collector.record_center_assignment("explicit")
            return CenterAssignment(
                center_id=scheduled.service_center_id,
                center_name=scheduled.service_center_name,
                is_auto_assigned=False,
            )

        scope = BookingRules.company_scope(req.vehicle_id)
        try:
            candidates = await self.context.directory.list_candidates(scope)
        except LookupFailure as e:
            fallback = self.context.fallback_center_id
            if not fallback:
                raise
            logger.warning(
                f"Center discovery failed, using fallback center {fallback}: {e}",
                extra={"vehicle_id": req.vehicle_id, "scope": scope}
            )
            prometheus_collector.record_center_assignment("fallback")
            return CenterAssignment(
                center_id=fallback,
                center_name=scheduled.service_center_name,
                is_auto_assigned=True,
            )

        chosen = choose_center(candidates, self.context.policy)
        logger.info(
            f"Selected service center {chosen.id} ({chosen.name})",
            extra={
                "vehicle_id": req.vehicle_id,
                "center_id": chosen.id,
                "load": chosen.load,
                "free_capacity": chosen.free_capacity,
                "policy": self.context.policy.value,
            }
        )
        prometheus_collector.record_center_assignment("auto")
        return CenterAssignment(
            center_id=chosen.id,
            center_name=scheduled.service_center_name or chosen.name,
            is_auto_assigned=True,
        )

    async def _retry_after_lost_race(self, vehicle_id: str, booking: Booking) -> Optional[BookingResponse]:
        """
        Re-reads the record after a guarded write tripped.

        A scheduled record answers "already booked". An unscheduled one is
        updated in place, once. Returns None when that update went through.
        """
        repository = self.context.repository
        current = await repository.find_by_vehicle(vehicle_id)
        if current is None:
            raise WriteError("Failed to save booking: record vanished during a concurrent write")
        if current.is_scheduled:
            return self._already_booked(current)

        try:
            await repository.update_in_place(vehicle_id, self._booking_fields(booking))
        except StaleBookingError as e:
            current = await repository.find_by_vehicle(vehicle_id)
            if current is not None and current.is_scheduled:
                return self._already_booked(current)
            raise WriteError("Failed to save booking") from e

        logger.info("Replaced booking written by a concurrent request", extra={"vehicle_id": vehicle_id})
        return None

    def _already_booked(self, existing: Booking) -> BookingResponse:
        # The log id is returned to the caller but no log row backs it
        prometheus_collector.record_booking_outcome("already_booked")
        logger.info(
            "Vehicle already has a scheduled booking",
            extra={"vehicle_id": existing.vehicle_id, "center_id": existing.service_center_id}
        )
        return BookingResponse(
            booking_status=existing.status,
            generated_log_id=generate_log_id(),
            assigned_center=existing.service_center_id,
            message=MESSAGE_ALREADY_BOOKED,
        )

    @staticmethod
    def _build_booking(req: BookingRequest, assignment: CenterAssignment) -> Booking:
        scheduled = req.scheduled_service
        return Booking(
            vehicle_id=req.vehicle_id,
            confirmation_code=req.confirmation_code,
            status=req.status,
            user_id=req.user_id or BookingRules.default_user_id(req.vehicle_id),
            is_scheduled=scheduled.is_scheduled,
            service_center_id=assignment.center_id,
            service_center_name=assignment.center_name,
            scheduled_at=scheduled.date_time or utc_timestamp(),
        )

    @staticmethod
    def _booking_fields(booking: Booking) -> Dict[str, Any]:
        return {
            "confirmation_code": booking.confirmation_code,
            "status": booking.status,
            "user_id": booking.user_id,
            "is_scheduled": booking.is_scheduled,
            "service_center_id": booking.service_center_id,
            "service_center_name": booking.service_center_name,
            "scheduled_at": booking.scheduled_at,
        }

    @staticmethod
    def _log_action(assignment: CenterAssignment, was_update: bool) -> str:
        if assignment.is_auto_assigned:
            return ACTION_AUTO_ASSIGNED_CREATED
        if was_update:
            return ACTION_UPDATED_SCHEDULE
        return ACTION_CREATED

    async def _append_log(self, log_id: str, booking: Booking, action: str) -> None:
        entry = LogEntry(
            log_id=log_id,
            user_id=booking.user_id,
            vehicle_id=booking.vehicle_id,
            timestamp=utc_timestamp(),
            log_type=LOG_TYPE_BOOKING,
            data={
                "confirmationCode": booking.confirmation_code,
                "status": booking.status,
                "serviceCenterId": booking.service_center_id,
                "serviceCenterName": booking.service_center_name,
                "scheduledAt": booking.scheduled_at,
                "isScheduled": booking.is_scheduled,
                "action": action,
            },
        )
        try:
            await self.context.audit_log.append(entry)
        except LogWriteError as e:
            prometheus_collector.record_audit_log_failure()
            logger.warning(
                f"Error saving log: {e}",
                extra={"vehicle_id": booking.vehicle_id, "log_id": log_id, "action": action}
            )
