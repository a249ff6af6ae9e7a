"""
Session conflict detection.

Two sessions for the same coach conflict when their half-open intervals
[start, start + duration) overlap. Back-to-back sessions, where one ends
exactly when the next begins, do not conflict. Canceled sessions never
conflict with anything.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Protocol
from uuid import UUID

from .models import MAX_DURATION_MINUTES, Session, ensure_aware

logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Storage for sessions, as seen by the scheduling core."""

    def get(self, session_id: UUID) -> Optional[Session]:
        ...

    def insert(self, session: Session) -> None:
        ...

    def update(self, session: Session) -> None:
        """Replace the full stored record for session.id."""
        ...

    def list_active_for_coach(
        self,
        coach_id: str,
        starts_after: Optional[datetime] = None,
        starts_before: Optional[datetime] = None,
    ) -> list[Session]:
        """Non-canceled sessions for a coach, optionally bounded by start time."""
        ...

    def list_for_coach(self, coach_id: str) -> list[Session]:
        ...

    def list_for_client(self, client_id: str) -> list[Session]:
        ...


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    """Half-open interval overlap test."""
    return start_a < end_b and end_a > start_b


class ConflictChecker:
    """Finds active sessions for a coach that overlap a candidate interval."""

    def __init__(self, repository: SessionRepository) -> None:
        self._repository = repository

    def has_conflict(
        self,
        coach_id: str,
        start: datetime,
        duration: int,
        exclude_session_id: Optional[UUID] = None,
    ) -> bool:
        return bool(self.find_conflicts(coach_id, start, duration, exclude_session_id))

    def find_conflicts(
        self,
        coach_id: str,
        start: datetime,
        duration: int,
        exclude_session_id: Optional[UUID] = None,
    ) -> list[Session]:
        """
        Return the active sessions overlapping [start, start + duration).

        `exclude_session_id` skips one session, so a reschedule does not
        collide with the slot it is moving out of.
        """
        start = ensure_aware(start)
        end = start + timedelta(minutes=duration)

        # No session is longer than the maximum duration, so anything
        # starting earlier than that cannot reach into the candidate.
        candidates = self._repository.list_active_for_coach(
            coach_id,
            starts_after=start - timedelta(minutes=MAX_DURATION_MINUTES),
            starts_before=end,
        )

        conflicts = [
            session
            for session in candidates
            if session.is_active
            and session.id != exclude_session_id
            and intervals_overlap(session.date, session.end_time, start, end)
        ]

        if conflicts:
            logger.warning(
                "Found %d conflicting session(s)",
                len(conflicts),
                extra={
                    "coach_id": coach_id,
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "session_ids": [str(s.id) for s in conflicts],
                },
            )
        return conflicts
