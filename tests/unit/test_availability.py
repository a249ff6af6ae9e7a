"""
Unit tests for the availability engine and availability service.
"""

from datetime import date, datetime, timezone

import pytest

from coachbook.core.scheduling.availability import (
    REASON_NOT_WORKING_DAY,
    REASON_OUTSIDE_WORKING_HOURS,
    REASON_UNAVAILABLE_DATE,
    evaluate,
    parse_working_hours,
)
from coachbook.core.scheduling.errors import NotFoundError, ValidationError
from coachbook.core.scheduling.models import CoachAvailability, WorkingDay


def utc(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


WEEKDAY_SCHEDULE = {
    "monday": {"isWorking": False},
    "tuesday": {"isWorking": True, "start": "09:00", "end": "17:00"},
    "wednesday": {"isWorking": True, "start": "09:00", "end": "17:00"},
}


# ---------------------------------------------------------------------------
# Engine Tests
# ---------------------------------------------------------------------------

class TestAvailabilityEngine:
    """Tests for AvailabilityEngine against stored records."""

    def test_coach_without_record_is_always_available(self, engine):
        assert engine.is_available("nobody", utc(2025, 6, 14, 3, 0))

    @pytest.mark.parametrize("hour,minute", [(0, 0), (10, 0), (23, 59)])
    def test_unavailable_date_blocks_every_time_of_day(self, engine, availability_repo, hour, minute):
        availability_repo.save(CoachAvailability(
            coach_id="coach-1",
            unavailable_dates=frozenset({date(2025, 6, 10)}),
        ))

        check = engine.check("coach-1", utc(2025, 6, 10, hour, minute))

        assert not check.available
        assert check.reason == REASON_UNAVAILABLE_DATE

    def test_neighbouring_days_stay_available(self, engine, availability_repo):
        availability_repo.save(CoachAvailability(
            coach_id="coach-1",
            unavailable_dates=frozenset({date(2025, 6, 10)}),
        ))

        assert engine.is_available("coach-1", utc(2025, 6, 9, 23, 59))
        assert engine.is_available("coach-1", utc(2025, 6, 11, 0, 0))

    def test_engine_reads_fresh_record_each_call(self, engine, availability_repo):
        assert engine.is_available("coach-1", utc(2025, 6, 10, 10))

        availability_repo.save(CoachAvailability(
            coach_id="coach-1",
            unavailable_dates=frozenset({date(2025, 6, 10)}),
        ))

        assert not engine.is_available("coach-1", utc(2025, 6, 10, 10))


class TestEvaluate:
    """Tests for the pure availability rule."""

    @pytest.fixture
    def scheduled(self) -> CoachAvailability:
        return CoachAvailability(
            coach_id="coach-1",
            working_hours=parse_working_hours(WEEKDAY_SCHEDULE),
        )

    @pytest.mark.parametrize("day", [2, 9, 16, 23])
    def test_every_monday_is_unavailable_when_not_working(self, scheduled, day):
        check = evaluate(scheduled, utc(2025, 6, day, 12, 0))
        assert check.reason == REASON_NOT_WORKING_DAY

    def test_window_bounds_are_inclusive(self, scheduled):
        assert evaluate(scheduled, utc(2025, 6, 10, 9, 0)).available
        assert evaluate(scheduled, utc(2025, 6, 10, 17, 0)).available

    def test_one_minute_outside_window_is_unavailable(self, scheduled):
        before = evaluate(scheduled, utc(2025, 6, 10, 8, 59))
        after = evaluate(scheduled, utc(2025, 6, 10, 17, 1))

        assert before.reason == REASON_OUTSIDE_WORKING_HOURS
        assert after.reason == REASON_OUTSIDE_WORKING_HOURS

    def test_weekday_missing_from_schedule_is_not_working(self, scheduled):
        # Saturday has no entry.
        check = evaluate(scheduled, utc(2025, 6, 14, 12, 0))
        assert check.reason == REASON_NOT_WORKING_DAY

    def test_no_schedule_means_only_dates_apply(self):
        availability = CoachAvailability(coach_id="coach-1")
        assert evaluate(availability, utc(2025, 6, 14, 3, 0)).available

    def test_unavailable_date_wins_over_working_hours(self, scheduled):
        availability = CoachAvailability(
            coach_id="coach-1",
            unavailable_dates=frozenset({date(2025, 6, 10)}),
            working_hours=scheduled.working_hours,
        )
        assert evaluate(availability, utc(2025, 6, 10, 12, 0)).reason == REASON_UNAVAILABLE_DATE

    def test_working_hours_are_compared_in_coach_time_zone(self):
        availability = CoachAvailability(
            coach_id="coach-1",
            working_hours={"tuesday": WorkingDay(start="09:00", end="17:00")},
            time_zone="Europe/Berlin",
        )
        # 07:00 UTC is 09:00 in Berlin (CEST, UTC+2).
        assert evaluate(availability, utc(2025, 6, 10, 7, 0)).available
        assert not evaluate(availability, utc(2025, 6, 10, 6, 59)).available
        # 15:30 UTC is 17:30 in Berlin.
        assert not evaluate(availability, utc(2025, 6, 10, 15, 30)).available

    def test_unavailable_date_is_matched_in_coach_time_zone(self):
        availability = CoachAvailability(
            coach_id="coach-1",
            unavailable_dates=frozenset({date(2025, 6, 10)}),
            time_zone="Asia/Tokyo",
        )
        # 16:00 UTC on the 9th is already the 10th in Tokyo.
        assert not evaluate(availability, utc(2025, 6, 9, 16, 0)).available


class TestParseWorkingHours:
    def test_accepts_camel_and_snake_case(self):
        hours = parse_working_hours({
            "Monday": {"isWorking": False},
            "tuesday": {"is_working": True, "start": "10:00", "end": "14:00"},
        })
        assert hours["monday"] == WorkingDay(is_working=False)
        assert hours["tuesday"] == WorkingDay(start="10:00", end="14:00")

    def test_rejects_unknown_weekday(self):
        with pytest.raises(ValidationError, match="weekday"):
            parse_working_hours({"someday": {}})


# ---------------------------------------------------------------------------
# Service Tests
# ---------------------------------------------------------------------------

class TestAvailabilityService:
    """Tests for creating and updating availability records."""

    def test_first_call_creates_record(self, availability_service):
        record, created = availability_service.set_availability(
            "coach-1", unavailable_dates=[date(2025, 6, 10)]
        )

        assert created
        assert record.unavailable_dates == {date(2025, 6, 10)}
        assert record.working_hours == {}
        assert record.time_zone == "UTC"

    def test_second_call_updates_in_place(self, availability_service):
        availability_service.set_availability("coach-1", unavailable_dates=[date(2025, 6, 10)])

        record, created = availability_service.set_availability(
            "coach-1", working_hours=WEEKDAY_SCHEDULE
        )

        assert not created
        # Omitted unavailable_dates keeps the stored ones.
        assert record.unavailable_dates == {date(2025, 6, 10)}
        assert record.working_hours["monday"].is_working is False

    def test_rejects_past_dates(self, availability_service, availability_repo):
        with pytest.raises(ValidationError, match="past"):
            availability_service.set_availability(
                "coach-1", unavailable_dates=[date(2025, 5, 31), date(2025, 6, 10)]
            )
        assert availability_repo.get("coach-1") is None

    def test_today_is_not_in_the_past(self, availability_service):
        record, _ = availability_service.set_availability(
            "coach-1", unavailable_dates=[date(2025, 6, 1)]
        )
        assert date(2025, 6, 1) in record.unavailable_dates

    def test_requires_coach_id(self, availability_service):
        with pytest.raises(ValidationError, match="Coach ID"):
            availability_service.set_availability("")

    def test_rejects_unknown_time_zone(self, availability_service):
        with pytest.raises(ValidationError, match="time zone"):
            availability_service.set_availability("coach-1", time_zone="Nowhere/City")

    def test_get_missing_record_raises_not_found(self, availability_service):
        with pytest.raises(NotFoundError):
            availability_service.get_availability("coach-1")

    def test_remove_unavailable_date(self, availability_service, engine):
        availability_service.set_availability(
            "coach-1", unavailable_dates=[date(2025, 6, 10), date(2025, 6, 12)]
        )
        assert not engine.is_available("coach-1", utc(2025, 6, 10, 10))

        record = availability_service.remove_unavailable_date("coach-1", date(2025, 6, 10))

        assert record.unavailable_dates == {date(2025, 6, 12)}
        assert engine.is_available("coach-1", utc(2025, 6, 10, 10))

    def test_remove_date_without_record_raises_not_found(self, availability_service):
        with pytest.raises(NotFoundError):
            availability_service.remove_unavailable_date("coach-1", date(2025, 6, 10))
