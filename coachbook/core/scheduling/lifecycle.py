"""
Session lifecycle: booking, canceling and rescheduling.

Every state change follows the same shape: load the current snapshot,
validate the transition, build a new snapshot, write it back. Nothing
is written until every check has passed.

Status transitions handled here:

    (new)      -> scheduled
    scheduled  -> canceled
    any        -> scheduled   (reschedule; stamps previous_date)

Completion and the pending state are driven from outside this module.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generator, Optional
from uuid import UUID

from .availability import (
    REASON_NOT_WORKING_DAY,
    REASON_OUTSIDE_WORKING_HOURS,
    REASON_UNAVAILABLE_DATE,
    AvailabilityEngine,
)
from .clock import Clock, SystemClock
from .conflicts import ConflictChecker, SessionRepository
from .errors import (
    ConflictError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from .models import (
    DEFAULT_DURATION_MINUTES,
    MAX_DURATION_MINUTES,
    MAX_NOTES_LENGTH,
    MIN_DURATION_MINUTES,
    Session,
    SessionStatus,
    ensure_aware,
)

logger = logging.getLogger(__name__)


class CoachLocks:
    """
    Per-coach advisory locks.

    Held around check-then-write sequences so two requests in this
    process cannot both pass the conflict check for the same coach
    before either one commits. Does not coordinate across processes.

    A coach's entry exists only while some request holds or waits on
    its lock, so the registry is bounded by the number of coaches being
    booked at that moment.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # coach_id -> [lock, number of holders and waiters]
        self._locks: dict[str, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, coach_id: str) -> Generator[None, None, None]:
        with self._guard:
            entry = self._locks.setdefault(coach_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[coach_id]


@dataclass(frozen=True)
class SlotCheck:
    """Result of a read-only "is this slot open?" query."""
    available: bool
    reason: Optional[str] = None
    conflicts: list[Session] = field(default_factory=list)

    @property
    def bookable(self) -> bool:
        return self.available and not self.conflicts


class SessionLifecycle:
    """Orchestrates session state changes against availability and conflicts."""

    def __init__(
        self,
        sessions: SessionRepository,
        engine: AvailabilityEngine,
        checker: ConflictChecker,
        clock: Optional[Clock] = None,
        locks: Optional[CoachLocks] = None,
        require_future: bool = True,
    ) -> None:
        self._sessions = sessions
        self._engine = engine
        self._checker = checker
        self._clock = clock or SystemClock()
        self._locks = locks or CoachLocks()
        self._require_future = require_future

    # -----------------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------------

    def create_session(
        self,
        coach_id: str,
        client_id: str,
        start: datetime,
        duration: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Session:
        """
        Book a new session.

        Raises ValidationError, UnavailableError or ConflictError; on any
        of them nothing is persisted.
        """
        if not coach_id or not client_id or start is None:
            raise ValidationError(
                "Coach ID, client ID, and date are required",
                details={
                    "coach_id": bool(coach_id),
                    "client_id": bool(client_id),
                    "date": start is not None,
                },
            )
        duration = DEFAULT_DURATION_MINUTES if duration is None else duration
        _validate_duration(duration)
        if notes is not None and len(notes) > MAX_NOTES_LENGTH:
            raise ValidationError(
                f"Notes cannot exceed {MAX_NOTES_LENGTH} characters",
                details={"length": len(notes)},
            )

        start = ensure_aware(start)
        now = self._clock.now()
        self._validate_future(start, now)

        with self._locks.hold(coach_id):
            self._ensure_bookable(coach_id, start, duration)

            session = Session(
                coach_id=coach_id,
                client_id=client_id,
                date=start,
                duration=duration,
                status=SessionStatus.SCHEDULED,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            self._sessions.insert(session)

        logger.info(
            "Session booked",
            extra={
                "session_id": str(session.id),
                "coach_id": coach_id,
                "client_id": client_id,
                "start": start.isoformat(),
                "duration": duration,
            },
        )
        return session

    def cancel_session(
        self,
        session_id: UUID,
        canceled_by: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Session:
        """Mark a session canceled. Canceling twice just re-saves the status."""
        session = self.get_session(session_id)
        updated = session.canceled(self._clock.now(), canceled_by=canceled_by, reason=reason)
        self._sessions.update(updated)

        logger.info(
            "Session canceled",
            extra={
                "session_id": str(session_id),
                "coach_id": session.coach_id,
                "canceled_by": canceled_by,
                "previous_status": session.status.value,
            },
        )
        return updated

    def reschedule_session(self, session_id: UUID, new_start: datetime) -> Session:
        """
        Move a session to a new start instant.

        The new slot goes through the same availability and conflict
        checks as a fresh booking, ignoring the session's own slot.
        """
        if new_start is None:
            raise ValidationError("New session date is required")
        new_start = ensure_aware(new_start)
        now = self._clock.now()
        self._validate_future(new_start, now)

        coach_id = self.get_session(session_id).coach_id

        with self._locks.hold(coach_id):
            # Re-read under the lock; the first read only located the coach.
            session = self.get_session(session_id)
            self._ensure_bookable(
                session.coach_id,
                new_start,
                session.duration,
                exclude_session_id=session.id,
            )
            updated = session.rescheduled(new_start, now)
            self._sessions.update(updated)

        logger.info(
            "Session rescheduled",
            extra={
                "session_id": str(session_id),
                "coach_id": session.coach_id,
                "previous_date": session.date.isoformat(),
                "new_date": new_start.isoformat(),
            },
        )
        return updated

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def get_session(self, session_id: UUID) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(
                "Session not found",
                details={"session_id": str(session_id)},
            )
        return session

    def list_sessions_for_coach(self, coach_id: str) -> list[Session]:
        return sorted(self._sessions.list_for_coach(coach_id), key=lambda s: s.date)

    def list_sessions_for_client(self, client_id: str) -> list[Session]:
        return sorted(self._sessions.list_for_client(client_id), key=lambda s: s.date)

    def check_slot(
        self,
        coach_id: str,
        start: datetime,
        duration: Optional[int] = None,
    ) -> SlotCheck:
        """Report whether a slot could be booked, without booking it."""
        duration = DEFAULT_DURATION_MINUTES if duration is None else duration
        _validate_duration(duration)
        start = ensure_aware(start)

        availability = self._engine.check(coach_id, start)
        conflicts = self._checker.find_conflicts(coach_id, start, duration)
        return SlotCheck(
            available=availability.available,
            reason=availability.reason,
            conflicts=conflicts,
        )

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _ensure_bookable(
        self,
        coach_id: str,
        start: datetime,
        duration: int,
        exclude_session_id: Optional[UUID] = None,
    ) -> None:
        availability = self._engine.check(coach_id, start)
        if not availability.available:
            logger.warning(
                "Coach unavailable for requested slot",
                extra={
                    "coach_id": coach_id,
                    "start": start.isoformat(),
                    "reason": availability.reason,
                },
            )
            raise UnavailableError(
                _UNAVAILABLE_MESSAGES.get(availability.reason, "Coach is unavailable at this time"),
                details={"reason": availability.reason},
            )

        conflicts = self._checker.find_conflicts(
            coach_id, start, duration, exclude_session_id=exclude_session_id
        )
        if conflicts:
            raise ConflictError(
                "This time slot conflicts with another session",
                details={"conflicting_session_ids": [str(s.id) for s in conflicts]},
            )

    def _validate_future(self, start: datetime, now: datetime) -> None:
        if self._require_future and start <= now:
            raise ValidationError(
                "Session date must be in the future",
                details={"date": start.isoformat(), "now": now.isoformat()},
            )


_UNAVAILABLE_MESSAGES = {
    REASON_UNAVAILABLE_DATE: "Coach is unavailable on this date",
    REASON_NOT_WORKING_DAY: "Coach does not work on this day",
    REASON_OUTSIDE_WORKING_HOURS: "Requested time is outside the coach's working hours",
}


def _validate_duration(duration: int) -> None:
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise ValidationError(
            "Duration must be a whole number of minutes",
            details={"duration": duration},
        )
    if not MIN_DURATION_MINUTES <= duration <= MAX_DURATION_MINUTES:
        raise ValidationError(
            f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes",
            details={"duration": duration},
        )
