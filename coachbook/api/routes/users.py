"""
User-specific API endpoints.

Session history for the calling user, as a coach or as a client.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from ..dependencies import (
    AuthenticatedUser,
    CallerDep,
    ClockDep,
    SessionLifecycleDep,
)
from .sessions import SessionListResponse, to_session_list

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/me/sessions",
    response_model=SessionListResponse,
    status_code=status.HTTP_200_OK,
    summary="Get my sessions",
    description="Sessions the caller coaches (role coach) or attends (any other role)",
)
def get_my_sessions(
    api_key: AuthenticatedUser,
    caller: CallerDep,
    lifecycle: SessionLifecycleDep,
    clock: ClockDep,
) -> SessionListResponse:
    """
    Retrieve all sessions for the current user, ordered by start time.

    Identity comes from the X-User-Id and X-User-Role headers set by
    the upstream gateway.
    """
    if not caller.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User ID required. Provide X-User-Id header."
        )

    logger.info(
        "Fetching user sessions",
        extra={"user_id": caller.user_id, "role": caller.role}
    )

    if caller.is_coach:
        sessions = lifecycle.list_sessions_for_coach(caller.user_id)
    else:
        sessions = lifecycle.list_sessions_for_client(caller.user_id)

    return to_session_list(sessions, clock.now())
