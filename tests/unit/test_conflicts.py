"""
Unit tests for conflict detection.
"""

from datetime import datetime, timedelta, timezone

import pytest

from coachbook.core.scheduling.conflicts import intervals_overlap
from coachbook.core.scheduling.models import Session, SessionStatus


def utc(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


TEN = utc(2025, 6, 11, 10, 0)


@pytest.fixture
def booked(session_repo) -> Session:
    """An hour-long session for coach-1 at 10:00."""
    session = Session(coach_id="coach-1", client_id="client-1", date=TEN, duration=60)
    session_repo.insert(session)
    return session


# ---------------------------------------------------------------------------
# Interval Tests
# ---------------------------------------------------------------------------

class TestIntervalsOverlap:
    """Tests for the half-open overlap rule."""

    def test_partial_overlap(self):
        assert intervals_overlap(TEN, TEN + timedelta(hours=1),
                                 TEN + timedelta(minutes=30), TEN + timedelta(hours=2))

    def test_containment(self):
        assert intervals_overlap(TEN, TEN + timedelta(hours=2),
                                 TEN + timedelta(minutes=30), TEN + timedelta(minutes=45))

    def test_abutting_intervals_do_not_overlap(self):
        assert not intervals_overlap(TEN, TEN + timedelta(hours=1),
                                     TEN + timedelta(hours=1), TEN + timedelta(hours=2))
        assert not intervals_overlap(TEN + timedelta(hours=1), TEN + timedelta(hours=2),
                                     TEN, TEN + timedelta(hours=1))

    def test_symmetry(self):
        a = (TEN, TEN + timedelta(minutes=90))
        b = (TEN + timedelta(minutes=60), TEN + timedelta(minutes=120))
        assert intervals_overlap(*a, *b) == intervals_overlap(*b, *a)


# ---------------------------------------------------------------------------
# Checker Tests
# ---------------------------------------------------------------------------

class TestConflictChecker:
    """Tests for ConflictChecker against the session repository."""

    def test_overlapping_start_conflicts(self, checker, booked):
        conflicts = checker.find_conflicts("coach-1", TEN + timedelta(minutes=30), 60)
        assert [s.id for s in conflicts] == [booked.id]

    def test_candidate_ending_inside_existing_conflicts(self, checker, booked):
        assert checker.has_conflict("coach-1", TEN - timedelta(minutes=30), 60)

    def test_candidate_covering_existing_conflicts(self, checker, booked):
        assert checker.has_conflict("coach-1", TEN - timedelta(minutes=30), 180)

    def test_back_to_back_sessions_do_not_conflict(self, checker, booked):
        assert not checker.has_conflict("coach-1", TEN + timedelta(hours=1), 60)
        assert not checker.has_conflict("coach-1", TEN - timedelta(hours=1), 60)

    def test_other_coaches_do_not_conflict(self, checker, booked):
        assert not checker.has_conflict("coach-2", TEN, 60)

    def test_canceled_sessions_do_not_conflict(self, checker, session_repo, booked):
        session_repo.update(booked.canceled(TEN, canceled_by="client-1"))
        assert not checker.has_conflict("coach-1", TEN, 60)

    def test_excluded_session_is_ignored(self, checker, booked):
        assert not checker.has_conflict("coach-1", TEN, 60, exclude_session_id=booked.id)

    def test_long_earlier_session_is_found(self, checker, session_repo):
        # Four hours from 07:00 reaches into a candidate at 10:30.
        long_session = Session(
            coach_id="coach-1",
            client_id="client-2",
            date=TEN - timedelta(hours=3),
            duration=240,
        )
        session_repo.insert(long_session)

        conflicts = checker.find_conflicts("coach-1", TEN + timedelta(minutes=30), 15)

        assert [s.id for s in conflicts] == [long_session.id]

    def test_pending_sessions_hold_their_slot(self, checker, session_repo):
        session_repo.insert(Session(
            coach_id="coach-1",
            client_id="client-1",
            date=TEN,
            status=SessionStatus.PENDING,
        ))
        assert checker.has_conflict("coach-1", TEN, 30)
