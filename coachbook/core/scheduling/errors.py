"""
Scheduling errors.

Each failure mode of the booking flow has its own exception type so the
API layer can report distinct outcomes instead of one generic failure.
These classes know nothing about HTTP; status codes are assigned where
the errors are translated into responses.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for all booking and availability errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.__class__.__name__


class ValidationError(SchedulingError):
    """Missing or out-of-range input (coach, client, date, duration, hours)."""
    pass


class UnavailableError(SchedulingError):
    """The coach is blocked by an unavailable date or working hours."""
    pass


class ConflictError(SchedulingError):
    """The requested interval overlaps an existing active session."""
    pass


class NotFoundError(SchedulingError):
    """A session or availability record required by the operation is absent."""
    pass
