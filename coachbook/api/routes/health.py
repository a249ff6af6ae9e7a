"""
Health check endpoints.

- /health: liveness. Answers as long as the process is up.
- /health/ready: readiness. Verifies configuration and that both
  document collections can be read.
"""

import logging
from typing import Any, Callable

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ...config.settings import Settings
from ...infrastructure.documents.store import DocumentStore
from ...infrastructure.repositories import availability as availability_docs
from ...infrastructure.repositories import sessions as session_docs
from ..dependencies import SettingsDep, StoreOpener, StoreOpenerDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    name: str
    status: str  # "ok" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


def _check(name: str, run: Callable[[], None]) -> ReadinessCheck:
    """Run one check, turning any exception into an error entry."""
    try:
        run()
    except Exception as e:
        logger.error("Readiness check errored", extra={"check": name, "error": str(e)})
        return ReadinessCheck(name=name, status="error", error=str(e))
    return ReadinessCheck(name=name, status="ok")


def _configuration_check(settings: Settings) -> Callable[[], None]:
    def run() -> None:
        missing = settings.validate_required_fields()
        if missing:
            raise RuntimeError(f"Missing required fields: {', '.join(missing)}")
    return run


def _collection_check(store: DocumentStore, collection: str) -> Callable[[], None]:
    def run() -> None:
        # Any lookup will do; a missing id still exercises the query path.
        store.get(collection, "__readiness__")
    return run


def _storage_checks(open_store: StoreOpener) -> list[ReadinessCheck]:
    """
    Open the store and check it answers queries.

    Failing to open it at all (bad credentials, network) is reported as
    a single storage error instead of escaping the route.
    """
    try:
        with open_store() as store:
            return [
                _check("storage", store.ping),
                _check("sessions", _collection_check(store, session_docs.COLLECTION)),
                _check("availability", _collection_check(store, availability_docs.COLLECTION)),
            ]
    except Exception as e:
        logger.error("Could not open document store", extra={"error": str(e)})
        return [ReadinessCheck(name="storage", status="error", error=str(e))]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not touch storage.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "mock_mode": {"snowflake": settings.snowflake_mock_mode},
            "require_future_sessions": settings.require_future_sessions,
        },
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if configuration is complete and storage answers queries.",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
def readiness_check(
    settings: SettingsDep,
    open_store: StoreOpenerDep,
    response: Response,
) -> ReadinessResponse:
    """
    Readiness check for load balancers.

    Responds 503 when any check fails so traffic is routed elsewhere
    until storage comes back.
    """
    checks = [_check("configuration", _configuration_check(settings))]
    checks.extend(_storage_checks(open_store))

    ready = all(check.status == "ok" for check in checks)
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={"failed": [c.name for c in checks if c.status != "ok"]},
        )

    return ReadinessResponse(
        status="ready" if ready else "not_ready",
        version=__version__,
        checks=checks,
    )
