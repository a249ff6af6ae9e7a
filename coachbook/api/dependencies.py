"""
FastAPI dependency injection.

Dependencies provide services, repositories, and configuration to route
handlers. Routes never build their own collaborators, so tests can swap
any of them with app.dependency_overrides.

Each dependency is a function that FastAPI calls when needed. Within one
request FastAPI caches results, so every repository in a request shares
the same document store (and the same Snowflake connection).
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from functools import partial
from typing import Annotated, Callable, ContextManager, Generator, Optional

from fastapi import Depends, Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.scheduling.availability import AvailabilityEngine, AvailabilityService
from ..core.scheduling.clock import Clock, SystemClock
from ..core.scheduling.conflicts import ConflictChecker
from ..core.scheduling.lifecycle import CoachLocks, SessionLifecycle
from ..infrastructure.documents.store import (
    DocumentStore,
    InMemoryDocumentStore,
    SnowflakeDocumentStore,
)
from ..infrastructure.repositories.availability import DocumentAvailabilityRepository
from ..infrastructure.repositories.sessions import DocumentSessionRepository
from ..infrastructure.snowflake.client import get_snowflake_connection

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# Process-wide state: the shared mock store (so data survives between
# requests in mock mode) and the per-coach booking locks.
_mock_document_store: Optional[InMemoryDocumentStore] = None
_coach_locks = CoachLocks()

# Zero-argument callable returning a context manager over a DocumentStore.
StoreOpener = Callable[[], ContextManager[DocumentStore]]


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    Raises 403 if key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8]}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


@dataclass(frozen=True)
class Caller:
    """Identity of the caller, as verified by the upstream gateway."""
    user_id: Optional[str]
    role: Optional[str]

    @property
    def is_coach(self) -> bool:
        return self.role == "coach"


async def get_caller(
    x_user_id: Annotated[Optional[str], Header()] = None,
    x_user_role: Annotated[Optional[str], Header()] = None,
) -> Caller:
    """
    Read caller identity from headers.

    Token verification happens upstream; this service only trusts the
    id and role the gateway forwards.
    """
    return Caller(
        user_id=x_user_id,
        role=x_user_role.lower() if x_user_role else None,
    )


# ---------------------------------------------------------------------------
# Storage Dependencies
# ---------------------------------------------------------------------------

def get_clock() -> Clock:
    return SystemClock()


def get_coach_locks() -> CoachLocks:
    return _coach_locks


@contextmanager
def open_document_store(settings: Settings) -> Generator[DocumentStore, None, None]:
    """
    Open the configured document store, closing any connection on exit.

    In mock mode, one in-memory store is shared across requests so
    data persists for the life of the process.

    Raises:
        StorageError: If the Snowflake connection cannot be opened
    """
    global _mock_document_store

    if settings.snowflake_mock_mode:
        if _mock_document_store is None:
            _mock_document_store = InMemoryDocumentStore()
            logger.info("Created shared in-memory document store")
        yield _mock_document_store
        return

    with get_snowflake_connection(settings.snowflake_config()) as conn:
        logger.debug("Created Snowflake document store")
        yield SnowflakeDocumentStore(conn)


def get_store_opener(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StoreOpener:
    """
    Provide a callable that opens the document store.

    Routes that must survive an unreachable store (readiness) open it
    themselves through this; everything else uses get_document_store.
    """
    return partial(open_document_store, settings)


def get_document_store(
    open_store: Annotated[StoreOpener, Depends(get_store_opener)],
) -> Generator[DocumentStore, None, None]:
    """
    Provide the document store for this request.

    This is a generator function because the Snowflake connection
    must be closed after the request:
    1. Open connection
    2. Yield store (FastAPI injects it)
    3. Close connection
    """
    with open_store() as store:
        yield store


def get_session_repository(
    store: Annotated[DocumentStore, Depends(get_document_store)],
) -> DocumentSessionRepository:
    return DocumentSessionRepository(store)


def get_availability_repository(
    store: Annotated[DocumentStore, Depends(get_document_store)],
) -> DocumentAvailabilityRepository:
    return DocumentAvailabilityRepository(store)


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_availability_service(
    repository: Annotated[DocumentAvailabilityRepository, Depends(get_availability_repository)],
    settings: Annotated[Settings, Depends(get_settings)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AvailabilityService:
    return AvailabilityService(
        repository,
        clock=clock,
        default_time_zone=settings.default_time_zone,
    )


def get_session_lifecycle(
    sessions: Annotated[DocumentSessionRepository, Depends(get_session_repository)],
    availability: Annotated[DocumentAvailabilityRepository, Depends(get_availability_repository)],
    settings: Annotated[Settings, Depends(get_settings)],
    clock: Annotated[Clock, Depends(get_clock)],
    locks: Annotated[CoachLocks, Depends(get_coach_locks)],
) -> SessionLifecycle:
    """
    Provide the session lifecycle for this request.

    The lifecycle is cheap to build; only the locks are shared across
    requests, since they are what serializes bookings per coach.
    """
    return SessionLifecycle(
        sessions=sessions,
        engine=AvailabilityEngine(availability),
        checker=ConflictChecker(sessions),
        clock=clock,
        locks=locks,
        require_future=settings.require_future_sessions,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
CallerDep = Annotated[Caller, Depends(get_caller)]
StoreOpenerDep = Annotated[StoreOpener, Depends(get_store_opener)]
AvailabilityServiceDep = Annotated[AvailabilityService, Depends(get_availability_service)]
SessionLifecycleDep = Annotated[SessionLifecycle, Depends(get_session_lifecycle)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
ClockDep = Annotated[Clock, Depends(get_clock)]
