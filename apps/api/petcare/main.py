"""FastAPI application exposing the appointment scheduling core."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.errors import (
    BackendError,
    BackendUnavailable,
    BookingRejected,
    BookingValidationError,
    InvalidTransition,
    MissingCancellationReason,
    PetCareError,
    TransitionNotPermitted,
    UnknownTypeError,
)
from .core.logging_config import configure_logging
from .repositories.appointments import AppointmentRepository, HttpAppointmentRepository
from .routers import appointments as appointments_router
from .services.lifecycle import AppointmentLifecycle

logger = logging.getLogger(__name__)

# Starlette renamed its 422 constant (UNPROCESSABLE_ENTITY to UNPROCESSABLE_CONTENT)
# and deprecated the old name, so neither spelling covers every supported release.
HTTP_422_UNPROCESSABLE = 422

# Most specific first.
ERROR_STATUS: tuple[tuple[type[PetCareError], int], ...] = (
    (BookingValidationError, HTTP_422_UNPROCESSABLE),
    (MissingCancellationReason, HTTP_422_UNPROCESSABLE),
    (TransitionNotPermitted, status.HTTP_403_FORBIDDEN),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (BackendUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (BookingRejected, status.HTTP_400_BAD_REQUEST),
    (BackendError, status.HTTP_502_BAD_GATEWAY),
    (UnknownTypeError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def _bind_repository(app: FastAPI, repository: AppointmentRepository) -> None:
    app.state.repository = repository
    app.state.lifecycle = AppointmentLifecycle(repository, max_tracked=settings.lifecycle_max_tracked)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    owned: HttpAppointmentRepository | None = None
    if getattr(app.state, "repository", None) is None:
        owned = HttpAppointmentRepository.from_settings(settings)
        _bind_repository(app, owned)
        logger.info("Using appointment backend at %s", settings.backend_base_url)
    try:
        yield
    finally:
        if owned is not None:
            await owned.aclose()


async def handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
    """Translate scheduling errors into JSON responses."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, mapped in ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code = mapped
            break

    # Backend 4xx rejections keep the backend's status code.
    if isinstance(exc, BackendError) and not isinstance(exc, BackendUnavailable):
        if exc.status_code is not None and 400 <= exc.status_code < 500:
            status_code = exc.status_code

    body: dict[str, object] = {"detail": str(exc)}
    if isinstance(exc, BookingValidationError):
        body["errors"] = [error.model_dump(mode="json") for error in exc.errors]

    if status_code >= 500:
        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=body)


def create_app(repository: AppointmentRepository | None = None) -> FastAPI:
    """Build the application, optionally bound to a given repository."""

    configure_logging(settings.log_level)
    app = FastAPI(title="Pet Care Scheduling API", version="0.1.0", lifespan=lifespan)

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if repository is not None:
        _bind_repository(app, repository)

    app.add_exception_handler(PetCareError, handle_domain_error)
    app.include_router(appointments_router.router, prefix="/api/appointments", tags=["appointments"])

    @app.get("/api/health", tags=["meta"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
