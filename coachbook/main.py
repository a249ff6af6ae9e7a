"""
FastAPI application entry point.

This module creates and configures the FastAPI application using an
application factory (create_app), so tests can build fresh instances
with their own dependency overrides.

For local development:
    SNOWFLAKE_MOCK_MODE=true uvicorn coachbook.main:app --reload

For production:
    gunicorn coachbook.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.routes import availability, health, sessions, users
from .config.settings import get_settings
from .core.scheduling.errors import (
    ConflictError,
    NotFoundError,
    SchedulingError,
    UnavailableError,
    ValidationError,
)
from .infrastructure.documents.store import StorageError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    UnavailableError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
}


ROUTERS = (
    (health, "/health", "Health"),
    (sessions, "/api/v1/sessions", "Sessions"),
    (availability, "/api/v1/availability", "Availability"),
    (users, "/api/v1/users", "Users"),
)


def status_for(exc: SchedulingError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Runs on startup and shutdown. FastAPI calls this automatically when
    the application starts/stops.
    """
    settings = get_settings()

    logger.info(
        "Coachbook API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {"snowflake": settings.snowflake_mock_mode},
            "require_future_sessions": settings.require_future_sessions,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        # Logged rather than raised so /health/ready can report it.
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("Coachbook API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Booking backend for coaching sessions.

        ## Features

        - Coaches declare unavailable dates and weekly working hours
        - Clients book sessions; bookings are checked against availability
          and against the coach's other sessions
        - Sessions can be canceled or rescheduled; reschedules are checked
          like new bookings

        ## Authentication

        All endpoints require an API key in the `X-API-Key` header. Caller
        identity is read from `X-User-Id` and `X-User-Role`.

        ## Errors

        - 400: invalid input
        - 404: session or availability record not found
        - 409: coach unavailable, or the slot overlaps another session
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for module, prefix, tag in ROUTERS:
        app.include_router(module.router, prefix=prefix, tags=[tag])

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at the docs."""
        return {
            "message": "Coachbook API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError):
        """
        Translate booking and availability errors into HTTP responses.

        Each error type keeps its own status code so clients can tell an
        unavailable coach from a taken slot from a bad request.
        """
        status_code = status_for(exc)
        logger.info(
            "Request rejected",
            extra={
                "path": request.url.path,
                "method": request.method,
                "code": exc.code,
                "status_code": status_code,
                "error": exc.message,
            },
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "code": exc.code, "details": exc.details},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed payloads are client errors like any other validation failure."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Invalid request",
                "code": "ValidationError",
                "details": {"errors": jsonable_errors(exc)},
            },
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(
            "Storage failure",
            extra={"path": request.url.path, "method": request.method, "error": str(exc)},
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Storage is unavailable. Please retry later."},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Prevents stack traces from leaking to clients. The full error is
        logged server-side; the client gets a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Keep only the JSON-safe parts of pydantic's error list."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "coachbook.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
