class BookingDomainError(Exception):
    """Base class for all booking domain errors."""

class BadRequestError(BookingDomainError):
    """Raised when the booking request is malformed (no side effects happened)."""

class LookupFailure(BookingDomainError):
    """Raised when the center directory is unreachable, times out or returns an invalid payload."""

class NoCandidateError(BookingDomainError):
    """Raised when the directory answered but no center is eligible for assignment."""

class RepositoryError(BookingDomainError):
    """Raised when a booking store read fails or times out."""

class WriteError(RepositoryError):
    """Raised when a booking store write fails."""

class DuplicateOrWriteError(WriteError):
    """Raised when inserting a booking fails."""

class DuplicateBookingError(DuplicateOrWriteError):
    """Raised when a booking already exists for the vehicle (lost insert race)."""

class StaleBookingError(WriteError):
    """Raised when an in-place update finds the booking no longer unscheduled."""

class LogWriteError(BookingDomainError):
    """Raised when the audit log append fails. Never surfaced to the caller."""

class MirrorUpdateFailure(BookingDomainError):
    """Raised when appending a booking to a center record fails. Logged only."""
