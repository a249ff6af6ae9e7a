"""
Coaching session API endpoints.

Booking, canceling and rescheduling sessions, plus lookups by id, coach
and client. Every write goes through SessionLifecycle, which runs the
availability and conflict checks; failures surface as 400/404/409
through the scheduling error handler registered in main.py.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from ...core.scheduling.models import Session
from ..dependencies import (
    AuthenticatedUser,
    CallerDep,
    ClockDep,
    SessionLifecycleDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class CreateSessionRequest(BaseModel):
    """Request to book a session."""
    coach_id: str = Field(description="Coach providing the session")
    client_id: str = Field(description="Client booking the session")
    date: datetime = Field(description="Session start (ISO 8601; naive values are UTC)")
    duration: Optional[int] = Field(None, description="Length in minutes, 15-240. Defaults to 60.")
    notes: Optional[str] = Field(None, description="Free-form notes for the session")


class CancelSessionRequest(BaseModel):
    """Request to cancel a session."""
    canceled_by: Optional[str] = Field(None, description="Who canceled. Defaults to the caller.")
    reason: Optional[str] = Field(None, description="Why the session was canceled")


class RescheduleSessionRequest(BaseModel):
    """Request to move a session."""
    date: datetime = Field(description="New session start (ISO 8601)")


class SessionResponse(BaseModel):
    """A session with its derived fields."""
    id: UUID
    coach_id: str
    client_id: str
    date: datetime
    end_time: datetime
    duration: int
    status: str
    notes: Optional[str] = None
    canceled_by: Optional[str] = None
    cancel_reason: Optional[str] = None
    rescheduled_at: Optional[datetime] = None
    previous_date: Optional[datetime] = None
    is_upcoming: bool
    can_be_canceled: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]
    count: int


def to_session_response(session: Session, now: datetime) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        coach_id=session.coach_id,
        client_id=session.client_id,
        date=session.date,
        end_time=session.end_time,
        duration=session.duration,
        status=session.status.value,
        notes=session.notes,
        canceled_by=session.canceled_by,
        cancel_reason=session.cancel_reason,
        rescheduled_at=session.rescheduled_at,
        previous_date=session.previous_date,
        is_upcoming=session.is_upcoming(now),
        can_be_canceled=session.can_be_canceled(now),
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


def to_session_list(sessions: list[Session], now: datetime) -> SessionListResponse:
    return SessionListResponse(
        sessions=[to_session_response(s, now) for s in sessions],
        count=len(sessions),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a session",
    description="Book a session after checking coach availability and existing sessions",
    responses={
        400: {"description": "Invalid input"},
        409: {"description": "Coach unavailable or slot already taken"},
    },
)
def create_session(
    request: CreateSessionRequest,
    api_key: AuthenticatedUser,
    lifecycle: SessionLifecycleDep,
    clock: ClockDep,
) -> SessionResponse:
    """
    Book a new session.

    The coach must be available at the start time (not on an unavailable
    date, inside working hours when configured) and the interval must not
    overlap any of the coach's non-canceled sessions.
    """
    logger.info(
        "Booking session",
        extra={
            "coach_id": request.coach_id,
            "client_id": request.client_id,
            "date": request.date.isoformat(),
        }
    )

    session = lifecycle.create_session(
        coach_id=request.coach_id,
        client_id=request.client_id,
        start=request.date,
        duration=request.duration,
        notes=request.notes,
    )
    return to_session_response(session, clock.now())


@router.get(
    "/coach/{coach_id}",
    response_model=SessionListResponse,
    summary="List a coach's sessions",
)
def list_coach_sessions(
    coach_id: str,
    api_key: AuthenticatedUser,
    lifecycle: SessionLifecycleDep,
    clock: ClockDep,
) -> SessionListResponse:
    return to_session_list(lifecycle.list_sessions_for_coach(coach_id), clock.now())


@router.get(
    "/client/{client_id}",
    response_model=SessionListResponse,
    summary="List a client's sessions",
)
def list_client_sessions(
    client_id: str,
    api_key: AuthenticatedUser,
    lifecycle: SessionLifecycleDep,
    clock: ClockDep,
) -> SessionListResponse:
    return to_session_list(lifecycle.list_sessions_for_client(client_id), clock.now())


@router.get(
    "/{session_id}",
    response_model=SessionResponse,
    summary="Get session details",
    responses={404: {"description": "Session not found"}},
)
def get_session(
    session_id: UUID,
    api_key: AuthenticatedUser,
    lifecycle: SessionLifecycleDep,
    clock: ClockDep,
) -> SessionResponse:
    return to_session_response(lifecycle.get_session(session_id), clock.now())


@router.patch(
    "/{session_id}/cancel",
    response_model=SessionResponse,
    summary="Cancel a session",
    responses={404: {"description": "Session not found"}},
)
def cancel_session(
    session_id: UUID,
    request: CancelSessionRequest,
    api_key: AuthenticatedUser,
    caller: CallerDep,
    lifecycle: SessionLifecycleDep,
    clock: ClockDep,
) -> SessionResponse:
    """
    Cancel a session.

    The slot is released immediately: canceled sessions are ignored by
    conflict checks.
    """
    session = lifecycle.cancel_session(
        session_id,
        canceled_by=request.canceled_by or caller.user_id,
        reason=request.reason,
    )
    return to_session_response(session, clock.now())


@router.patch(
    "/{session_id}/reschedule",
    response_model=SessionResponse,
    summary="Reschedule a session",
    responses={
        404: {"description": "Session not found"},
        409: {"description": "Coach unavailable or new slot already taken"},
    },
)
def reschedule_session(
    session_id: UUID,
    request: RescheduleSessionRequest,
    api_key: AuthenticatedUser,
    lifecycle: SessionLifecycleDep,
    clock: ClockDep,
) -> SessionResponse:
    """
    Move a session to a new start time.

    The new slot is checked the same way as a new booking, so a
    reschedule can never double-book the coach.
    """
    session = lifecycle.reschedule_session(session_id, request.date)
    return to_session_response(session, clock.now())
