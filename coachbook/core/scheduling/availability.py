"""
Coach availability: the read-side engine and the write-side service.

The engine answers one question: can a session start at this instant
for this coach? It looks at two things, in order:

1. Unavailable dates, compared by calendar day in the coach's zone.
2. Structured working hours for the weekday, when the coach has any.

A coach with no availability record has no restrictions at all. A coach
with working hours but no entry for a given weekday is treated as not
working that day.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Iterable, Mapping, Optional, Protocol

from .clock import Clock, SystemClock
from .errors import NotFoundError, ValidationError
from .models import (
    DEFAULT_TIME_ZONE,
    WEEKDAYS,
    CoachAvailability,
    WorkingDay,
    ensure_aware,
)

logger = logging.getLogger(__name__)


REASON_UNAVAILABLE_DATE = "unavailable_date"
REASON_NOT_WORKING_DAY = "not_working_day"
REASON_OUTSIDE_WORKING_HOURS = "outside_working_hours"


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class AvailabilityRepository(Protocol):
    """Storage for one availability record per coach."""

    def get(self, coach_id: str) -> Optional[CoachAvailability]:
        """Return the coach's record, or None if none was ever set."""
        ...

    def save(self, availability: CoachAvailability) -> None:
        """Insert or fully replace the coach's record."""
        ...


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AvailabilityCheck:
    """Outcome of an availability check, with the reason when rejected."""
    available: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.available


class AvailabilityEngine:
    """Decides whether a coach can be booked at a given instant."""

    def __init__(self, repository: AvailabilityRepository) -> None:
        self._repository = repository

    def is_available(self, coach_id: str, candidate: datetime) -> bool:
        return self.check(coach_id, candidate).available

    def check(self, coach_id: str, candidate: datetime) -> AvailabilityCheck:
        # Fetched on every call; records can change between requests.
        availability = self._repository.get(coach_id)
        if availability is None:
            return AvailabilityCheck(available=True)
        return evaluate(availability, candidate)


def evaluate(availability: CoachAvailability, candidate: datetime) -> AvailabilityCheck:
    """Pure availability rule over a single record."""
    local = availability.localize(candidate)

    if local.date() in availability.unavailable_dates:
        return AvailabilityCheck(False, REASON_UNAVAILABLE_DATE)

    if not availability.has_schedule:
        return AvailabilityCheck(True)

    day = availability.working_hours.get(WEEKDAYS[local.weekday()])
    if day is None or not day.is_working:
        return AvailabilityCheck(False, REASON_NOT_WORKING_DAY)

    if not day.contains(local.strftime("%H:%M")):
        return AvailabilityCheck(False, REASON_OUTSIDE_WORKING_HOURS)

    return AvailabilityCheck(True)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

def parse_working_hours(raw: Mapping[str, Mapping]) -> dict[str, WorkingDay]:
    """
    Build WorkingDay values from plain mappings.

    Accepts both camelCase ("isWorking") and snake_case ("is_working")
    keys since payloads arrive from JSON clients and from storage.
    """
    hours: dict[str, WorkingDay] = {}
    for weekday, entry in raw.items():
        name = weekday.lower()
        if name not in WEEKDAYS:
            raise ValidationError(
                f"Unknown weekday: {weekday}",
                details={"weekday": weekday},
            )
        if isinstance(entry, WorkingDay):
            hours[name] = entry
            continue
        is_working = entry.get("is_working", entry.get("isWorking", True))
        hours[name] = WorkingDay(
            is_working=bool(is_working),
            start=entry.get("start", "09:00"),
            end=entry.get("end", "17:00"),
        )
    return hours


class AvailabilityService:
    """
    Maintains availability records.

    One record per coach: the first call to set_availability creates
    it, later calls update it in place. Records are never deleted.
    """

    def __init__(
        self,
        repository: AvailabilityRepository,
        clock: Optional[Clock] = None,
        default_time_zone: str = DEFAULT_TIME_ZONE,
    ) -> None:
        self._repository = repository
        self._clock = clock or SystemClock()
        self._default_time_zone = default_time_zone

    def set_availability(
        self,
        coach_id: str,
        unavailable_dates: Optional[Iterable[date]] = None,
        working_hours: Optional[Mapping[str, Mapping]] = None,
        time_zone: Optional[str] = None,
    ) -> tuple[CoachAvailability, bool]:
        """
        Create or update a coach's availability.

        Fields left as None keep their stored value on update. Returns
        the saved record and whether it was newly created.
        """
        if not coach_id:
            raise ValidationError("Coach ID is required")

        now = self._clock.now()
        existing = self._repository.get(coach_id)

        hours = parse_working_hours(working_hours) if working_hours is not None else None
        dates = frozenset(unavailable_dates) if unavailable_dates is not None else None

        if existing is None:
            record = CoachAvailability(
                coach_id=coach_id,
                unavailable_dates=dates or frozenset(),
                working_hours=hours or {},
                time_zone=time_zone or self._default_time_zone,
                created_at=now,
                updated_at=now,
            )
        else:
            record = replace(
                existing,
                unavailable_dates=dates if dates is not None else existing.unavailable_dates,
                working_hours=hours if hours is not None else existing.working_hours,
                time_zone=time_zone or existing.time_zone,
                updated_at=now,
            )

        if dates is not None:
            self._reject_past_dates(record, dates, now)

        self._repository.save(record)

        created = existing is None
        logger.info(
            "Availability %s",
            "created" if created else "updated",
            extra={
                "coach_id": coach_id,
                "unavailable_dates": len(record.unavailable_dates),
                "working_days": sorted(
                    name for name, day in record.working_hours.items() if day.is_working
                ),
            },
        )
        return record, created

    def get_availability(self, coach_id: str) -> CoachAvailability:
        availability = self._repository.get(coach_id)
        if availability is None:
            raise NotFoundError(
                "Availability not found for this coach",
                details={"coach_id": coach_id},
            )
        return availability

    def remove_unavailable_date(self, coach_id: str, day: date) -> CoachAvailability:
        """Drop one date from the coach's unavailable dates, if present."""
        if not coach_id or day is None:
            raise ValidationError("Coach ID and date to remove are required")

        availability = self.get_availability(coach_id)
        updated = replace(availability.without_date(day), updated_at=self._clock.now())
        self._repository.save(updated)

        logger.info(
            "Unavailable date removed",
            extra={
                "coach_id": coach_id,
                "date": day.isoformat(),
                "was_present": day in availability.unavailable_dates,
            },
        )
        return updated

    def _reject_past_dates(
        self,
        record: CoachAvailability,
        dates: frozenset[date],
        now: datetime,
    ) -> None:
        today = record.today(ensure_aware(now))
        past = sorted(d for d in dates if d < today)
        if past:
            raise ValidationError(
                "Cannot set unavailability for dates in the past",
                details={"dates": [d.isoformat() for d in past]},
            )
