"""
Unit tests for the scheduling domain models.

These tests verify the core value objects without touching storage.

Testing philosophy:
- Test behavior, not implementation
- Each test should have a clear "given/when/then" structure
- Use descriptive names that explain what we're testing
- Prefer real objects over mocks where practical
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from coachbook.core.scheduling.errors import ValidationError
from coachbook.core.scheduling.models import (
    CoachAvailability,
    Session,
    SessionStatus,
    WorkingDay,
    ensure_aware,
)


NOW = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)


def make_session(**overrides) -> Session:
    fields = {
        "coach_id": "coach-1",
        "client_id": "client-1",
        "date": datetime(2025, 6, 11, 10, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Session(**fields)


# ---------------------------------------------------------------------------
# WorkingDay Tests
# ---------------------------------------------------------------------------

class TestWorkingDay:
    """Tests for the WorkingDay value object."""

    def test_defaults_to_nine_to_five(self):
        day = WorkingDay()
        assert day.is_working
        assert (day.start, day.end) == ("09:00", "17:00")

    def test_contains_is_inclusive_at_both_ends(self):
        day = WorkingDay(start="09:00", end="17:00")
        assert day.contains("09:00")
        assert day.contains("17:00")
        assert not day.contains("08:59")
        assert not day.contains("17:01")

    def test_non_working_day_contains_nothing(self):
        day = WorkingDay(is_working=False)
        assert not day.contains("12:00")

    @pytest.mark.parametrize("value", ["9:00", "24:00", "12:60", "noon", ""])
    def test_rejects_malformed_times(self, value):
        with pytest.raises(ValidationError, match="HH:MM"):
            WorkingDay(start=value)


# ---------------------------------------------------------------------------
# CoachAvailability Tests
# ---------------------------------------------------------------------------

class TestCoachAvailability:
    """Tests for the availability record."""

    def test_requires_coach_id(self):
        with pytest.raises(ValidationError, match="Coach ID"):
            CoachAvailability(coach_id="")

    def test_rejects_unknown_weekday(self):
        with pytest.raises(ValidationError, match="weekday"):
            CoachAvailability(coach_id="c", working_hours={"funday": WorkingDay()})

    def test_rejects_unknown_time_zone(self):
        with pytest.raises(ValidationError, match="time zone"):
            CoachAvailability(coach_id="c", time_zone="Mars/Olympus")

    def test_has_schedule_only_with_working_hours(self):
        assert not CoachAvailability(coach_id="c").has_schedule
        assert CoachAvailability(coach_id="c", working_hours={"monday": WorkingDay()}).has_schedule

    def test_localize_uses_coach_time_zone(self):
        availability = CoachAvailability(coach_id="c", time_zone="America/New_York")
        # 02:00 UTC on the 10th is still the 9th in New York (EDT, UTC-4).
        local = availability.localize(datetime(2025, 6, 10, 2, 0, tzinfo=timezone.utc))
        assert local.date() == date(2025, 6, 9)
        assert local.strftime("%H:%M") == "22:00"

    def test_without_date_drops_only_that_date(self):
        availability = CoachAvailability(
            coach_id="c",
            unavailable_dates=frozenset({date(2025, 6, 10), date(2025, 6, 12)}),
        )
        assert availability.without_date(date(2025, 6, 10)).unavailable_dates == {date(2025, 6, 12)}


# ---------------------------------------------------------------------------
# Session Tests
# ---------------------------------------------------------------------------

class TestSession:
    """Tests for the Session snapshot and its derived fields."""

    def test_new_session_is_scheduled_for_an_hour(self):
        session = make_session()
        assert session.status is SessionStatus.SCHEDULED
        assert session.duration == 60

    def test_end_time_adds_duration(self):
        session = make_session(duration=90)
        assert session.end_time == session.date + timedelta(minutes=90)

    def test_is_upcoming_compares_against_now(self):
        assert make_session().is_upcoming(NOW)
        assert not make_session(date=NOW - timedelta(hours=1)).is_upcoming(NOW)

    def test_can_be_canceled_requires_upcoming_and_not_canceled(self):
        assert make_session().can_be_canceled(NOW)
        assert not make_session(status=SessionStatus.CANCELED).can_be_canceled(NOW)
        assert not make_session(date=NOW - timedelta(days=1)).can_be_canceled(NOW)

    def test_canceled_returns_new_snapshot(self):
        session = make_session()
        canceled = session.canceled(NOW, canceled_by="client-1", reason="sick")

        assert session.status is SessionStatus.SCHEDULED
        assert canceled.status is SessionStatus.CANCELED
        assert canceled.canceled_by == "client-1"
        assert canceled.cancel_reason == "sick"
        assert canceled.id == session.id

    def test_rescheduled_records_previous_date(self):
        session = make_session(status=SessionStatus.CANCELED)
        new_date = session.date + timedelta(days=1)

        moved = session.rescheduled(new_date, NOW)

        assert moved.previous_date == session.date
        assert moved.date == new_date
        assert moved.status is SessionStatus.SCHEDULED
        assert moved.rescheduled_at == NOW

    def test_canceled_sessions_are_not_active(self):
        assert make_session().is_active
        assert make_session(status=SessionStatus.PENDING).is_active
        assert not make_session(status=SessionStatus.CANCELED).is_active


def test_ensure_aware_treats_naive_as_utc():
    assert ensure_aware(datetime(2025, 6, 1, 8, 0)) == NOW
    assert ensure_aware(NOW) is NOW
