"""
Coach availability API endpoints.

Coaches declare unavailable dates and weekly working hours here. The
check endpoint answers "is this slot open?" without booking anything.
"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Query, Response, status
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ...core.scheduling.models import (
    DEFAULT_DURATION_MINUTES,
    CoachAvailability,
    ensure_aware,
)
from ..dependencies import (
    AuthenticatedUser,
    AvailabilityServiceDep,
    ClockDep,
    SessionLifecycleDep,
)
from .sessions import SessionResponse, to_session_response

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class WorkingDayModel(BaseModel):
    """
    Working window for one weekday, times as HH:MM (24h).

    Accepts `isWorking` or `is_working` on input. Unknown keys are
    rejected with a 400.
    """
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    is_working: bool = Field(
        True,
        validation_alias=AliasChoices("isWorking", "is_working"),
        description="False marks the weekday as a day off",
    )
    start: str = Field("09:00", description="Start of the window, HH:MM")
    end: str = Field("17:00", description="End of the window, HH:MM")


class SetAvailabilityRequest(BaseModel):
    """
    Create or update a coach's availability.

    Omitted fields keep their stored values on update.
    """
    coach_id: str = Field(description="Coach the record belongs to")
    unavailable_dates: Optional[list[date]] = Field(
        None, description="Days with no bookings. Past dates are rejected."
    )
    working_hours: Optional[dict[str, WorkingDayModel]] = Field(
        None, description="Weekday name (monday..sunday) to working window"
    )
    time_zone: Optional[str] = Field(None, description="IANA time zone, e.g. Europe/Berlin")


class RemoveUnavailableDateRequest(BaseModel):
    coach_id: str
    date_to_remove: date = Field(description="Date to remove (YYYY-MM-DD)")


class AvailabilityResponse(BaseModel):
    coach_id: str
    unavailable_dates: list[date]
    working_hours: dict[str, WorkingDayModel]
    time_zone: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SlotCheckResponse(BaseModel):
    """Whether a slot can be booked, and why not if it can't."""
    coach_id: str
    start: datetime
    duration: int
    available: bool = Field(description="Coach's availability allows this start time")
    reason: Optional[str] = Field(None, description="Why the coach is unavailable")
    conflicts: list[SessionResponse] = Field(description="Active sessions overlapping the slot")
    bookable: bool = Field(description="Available and free of conflicts")


def to_availability_response(availability: CoachAvailability) -> AvailabilityResponse:
    return AvailabilityResponse(
        coach_id=availability.coach_id,
        unavailable_dates=sorted(availability.unavailable_dates),
        working_hours={
            weekday: WorkingDayModel(is_working=day.is_working, start=day.start, end=day.end)
            for weekday, day in availability.working_hours.items()
        },
        time_zone=availability.time_zone,
        created_at=availability.created_at,
        updated_at=availability.updated_at,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Set coach availability",
    description="Create the coach's availability record (201) or update it (200)",
    responses={201: {"description": "Availability created"}},
)
def set_availability(
    request: SetAvailabilityRequest,
    response: Response,
    api_key: AuthenticatedUser,
    service: AvailabilityServiceDep,
) -> AvailabilityResponse:
    working_hours = None
    if request.working_hours is not None:
        working_hours = {
            weekday: day.model_dump() for weekday, day in request.working_hours.items()
        }

    availability, created = service.set_availability(
        coach_id=request.coach_id,
        unavailable_dates=request.unavailable_dates,
        working_hours=working_hours,
        time_zone=request.time_zone,
    )
    if created:
        response.status_code = status.HTTP_201_CREATED
    return to_availability_response(availability)


@router.patch(
    "/remove",
    response_model=AvailabilityResponse,
    summary="Remove an unavailable date",
    responses={404: {"description": "Availability not found for this coach"}},
)
def remove_unavailable_date(
    request: RemoveUnavailableDateRequest,
    api_key: AuthenticatedUser,
    service: AvailabilityServiceDep,
) -> AvailabilityResponse:
    availability = service.remove_unavailable_date(request.coach_id, request.date_to_remove)
    return to_availability_response(availability)


@router.get(
    "/{coach_id}",
    response_model=AvailabilityResponse,
    summary="Get coach availability",
    responses={404: {"description": "Availability not found for this coach"}},
)
def get_availability(
    coach_id: str,
    api_key: AuthenticatedUser,
    service: AvailabilityServiceDep,
) -> AvailabilityResponse:
    return to_availability_response(service.get_availability(coach_id))


@router.get(
    "/{coach_id}/check",
    response_model=SlotCheckResponse,
    summary="Check whether a slot is open",
    description="Runs the availability and conflict checks without booking",
)
def check_slot(
    coach_id: str,
    api_key: AuthenticatedUser,
    lifecycle: SessionLifecycleDep,
    clock: ClockDep,
    start: datetime = Query(description="Candidate start (ISO 8601; naive values are UTC)"),
    duration: Optional[int] = Query(None, description="Length in minutes, defaults to 60"),
) -> SlotCheckResponse:
    start = ensure_aware(start)
    duration = DEFAULT_DURATION_MINUTES if duration is None else duration
    result = lifecycle.check_slot(coach_id, start, duration)

    logger.debug(
        "Slot checked",
        extra={"coach_id": coach_id, "start": start.isoformat(), "bookable": result.bookable},
    )

    now = clock.now()
    return SlotCheckResponse(
        coach_id=coach_id,
        start=start,
        duration=duration,
        available=result.available,
        reason=result.reason,
        conflicts=[to_session_response(s, now) for s in result.conflicts],
        bookable=result.bookable,
    )
