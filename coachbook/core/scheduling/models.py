"""
Domain models for coach availability and session booking.

These models have no dependencies on web frameworks or databases. They
are immutable snapshots: a change to a session or availability record
produces a new object, which the caller then writes back in full.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Mapping, Optional
from uuid import UUID, uuid4

import pytz

from .errors import ValidationError


MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 240
DEFAULT_DURATION_MINUTES = 60
MAX_NOTES_LENGTH = 1000

DEFAULT_TIME_ZONE = "UTC"

# Index matches datetime.weekday(): Monday is 0.
WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def ensure_aware(instant: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def resolve_time_zone(name: str):
    """Look up an IANA zone, raising ValidationError for unknown names."""
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValidationError(
            f"Unknown time zone: {name}",
            details={"time_zone": name},
        )


class SessionStatus(Enum):
    """Where a session is in its lifecycle."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELED = "canceled"
    PENDING = "pending"
    RESCHEDULED = "rescheduled"


@dataclass(frozen=True)
class WorkingDay:
    """
    A coach's bookable window for one weekday.

    Times are zero-padded 24-hour "HH:MM" strings, so plain string
    comparison orders them the same way as the clock does.
    """
    is_working: bool = True
    start: str = "09:00"
    end: str = "17:00"

    def __post_init__(self) -> None:
        for label, value in (("start", self.start), ("end", self.end)):
            if not isinstance(value, str) or not _HHMM.match(value):
                raise ValidationError(
                    f"Working hours {label} must be HH:MM, got {value!r}",
                    details={label: value},
                )

    def contains(self, hhmm: str) -> bool:
        """Inclusive on both ends."""
        return self.is_working and self.start <= hhmm <= self.end


@dataclass(frozen=True)
class CoachAvailability:
    """
    One coach's availability record.

    `working_hours` maps weekday names to WorkingDay. An empty mapping
    means the coach has no structured schedule and only unavailable
    dates restrict booking.
    """
    coach_id: str
    unavailable_dates: frozenset[date] = frozenset()
    working_hours: Mapping[str, WorkingDay] = field(default_factory=dict)
    time_zone: str = DEFAULT_TIME_ZONE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.coach_id:
            raise ValidationError("Coach ID is required")
        unknown = set(self.working_hours) - set(WEEKDAYS)
        if unknown:
            raise ValidationError(
                "Unknown weekday in working hours",
                details={"weekdays": sorted(unknown)},
            )
        resolve_time_zone(self.time_zone)

    @property
    def has_schedule(self) -> bool:
        return bool(self.working_hours)

    def localize(self, instant: datetime) -> datetime:
        """Express an instant in the coach's time zone."""
        return ensure_aware(instant).astimezone(resolve_time_zone(self.time_zone))

    def today(self, now: datetime) -> date:
        return self.localize(now).date()

    def without_date(self, day: date) -> "CoachAvailability":
        return replace(self, unavailable_dates=self.unavailable_dates - {day})


@dataclass(frozen=True)
class Session:
    """
    A booked coaching session between a coach and a client.

    `date` is the start instant. The interval the session occupies is
    half-open: [date, end_time).
    """
    coach_id: str
    client_id: str
    date: datetime
    duration: int = DEFAULT_DURATION_MINUTES
    status: SessionStatus = SessionStatus.SCHEDULED
    notes: Optional[str] = None
    canceled_by: Optional[str] = None
    cancel_reason: Optional[str] = None
    rescheduled_at: Optional[datetime] = None
    previous_date: Optional[datetime] = None
    id: UUID = field(default_factory=uuid4)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def end_time(self) -> datetime:
        return self.date + timedelta(minutes=self.duration)

    @property
    def is_active(self) -> bool:
        """Canceled sessions no longer hold their slot."""
        return self.status is not SessionStatus.CANCELED

    def is_upcoming(self, now: datetime) -> bool:
        return self.date > now

    def can_be_canceled(self, now: datetime) -> bool:
        return self.is_upcoming(now) and self.status is not SessionStatus.CANCELED

    def canceled(
        self,
        now: datetime,
        canceled_by: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> "Session":
        return replace(
            self,
            status=SessionStatus.CANCELED,
            canceled_by=canceled_by,
            cancel_reason=reason,
            updated_at=now,
        )

    def rescheduled(self, new_date: datetime, now: datetime) -> "Session":
        return replace(
            self,
            previous_date=self.date,
            date=new_date,
            status=SessionStatus.SCHEDULED,
            rescheduled_at=now,
            updated_at=now,
        )
