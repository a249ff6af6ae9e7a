"""
Shared fixtures.

Everything runs against the in-memory document store and a clock
pinned to Sunday 2025-06-01 08:00 UTC, so "the future" is stable.
Useful calendar facts for that week:

    2025-06-09  Monday
    2025-06-10  Tuesday
    2025-06-11  Wednesday
    2025-06-14  Saturday
"""

from datetime import datetime, timezone

import pytest

from coachbook.core.scheduling.availability import AvailabilityEngine, AvailabilityService
from coachbook.core.scheduling.clock import FixedClock
from coachbook.core.scheduling.conflicts import ConflictChecker
from coachbook.core.scheduling.lifecycle import SessionLifecycle
from coachbook.infrastructure.documents.store import InMemoryDocumentStore
from coachbook.infrastructure.repositories.availability import DocumentAvailabilityRepository
from coachbook.infrastructure.repositories.sessions import DocumentSessionRepository


NOW = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def session_repo(store) -> DocumentSessionRepository:
    return DocumentSessionRepository(store)


@pytest.fixture
def availability_repo(store) -> DocumentAvailabilityRepository:
    return DocumentAvailabilityRepository(store)


@pytest.fixture
def availability_service(availability_repo, clock) -> AvailabilityService:
    return AvailabilityService(availability_repo, clock=clock)


@pytest.fixture
def engine(availability_repo) -> AvailabilityEngine:
    return AvailabilityEngine(availability_repo)


@pytest.fixture
def checker(session_repo) -> ConflictChecker:
    return ConflictChecker(session_repo)


@pytest.fixture
def lifecycle(session_repo, engine, checker, clock) -> SessionLifecycle:
    return SessionLifecycle(
        sessions=session_repo,
        engine=engine,
        checker=checker,
        clock=clock,
    )
