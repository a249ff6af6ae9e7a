"""
Coach availability and session booking logic.

Contains the availability engine, the conflict checker, and the session
lifecycle that ties them together.
"""

from .availability import (
    AvailabilityCheck,
    AvailabilityEngine,
    AvailabilityRepository,
    AvailabilityService,
)
from .clock import Clock, FixedClock, SystemClock
from .conflicts import ConflictChecker, SessionRepository, intervals_overlap
from .errors import (
    ConflictError,
    NotFoundError,
    SchedulingError,
    UnavailableError,
    ValidationError,
)
from .lifecycle import CoachLocks, SessionLifecycle, SlotCheck
from .models import (
    CoachAvailability,
    Session,
    SessionStatus,
    WorkingDay,
)

__all__ = [
    "AvailabilityCheck",
    "AvailabilityEngine",
    "AvailabilityRepository",
    "AvailabilityService",
    "Clock",
    "FixedClock",
    "SystemClock",
    "ConflictChecker",
    "SessionRepository",
    "intervals_overlap",
    "ConflictError",
    "NotFoundError",
    "SchedulingError",
    "UnavailableError",
    "ValidationError",
    "CoachLocks",
    "SessionLifecycle",
    "SlotCheck",
    "CoachAvailability",
    "Session",
    "SessionStatus",
    "WorkingDay",
]
