"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from box_tracker.api.auth import router as auth_router
from box_tracker.api.capture import router as capture_router
from box_tracker.api.inventory import router as inventory_router
from box_tracker.api.models import AnalyzePhotoRequest
from box_tracker.app_logging import configure_logging
from box_tracker.containers import AppContainer
from box_tracker.domain.auth import AuthSession
from box_tracker.domain.errors import (
    BoxTrackerError,
    CameraUnavailableError,
    ConfigurationError,
    InputValidationError,
    InvalidImageError,
    InvalidTransitionError,
    NotAuthenticatedError,
    NotFoundError,
    NothingToCommitError,
    RateLimitError,
    RateLimitExceededError,
    RemoteServiceError,
    StoreOperationError,
)

_STATUS_BY_ERROR: tuple[tuple[type[BoxTrackerError], int], ...] = (
    (NotAuthenticatedError, 401),
    (NotFoundError, 404),
    (InputValidationError, 400),
    (RateLimitError, 429),
    (NothingToCommitError, 409),
    (InvalidTransitionError, 409),
    (CameraUnavailableError, 409),
    (ConfigurationError, 503),
    (RemoteServiceError, 502),
    (StoreOperationError, 500),
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    def log_session_change(session: AuthSession | None) -> None:
        if session is None:
            logger.info("Signed out")
        else:
            logger.info("Signed in as %s", session.user_id)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        unsubscribe = state_container.auth_service.on_session_change(
            log_session_change
        )
        try:
            yield
        finally:
            unsubscribe()
            await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(auth_router)
    app.include_router(inventory_router)
    app.include_router(capture_router)

    @app.exception_handler(BoxTrackerError)
    async def handle_domain_error(
        request: Request, exc: BoxTrackerError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.error(
                "Request failed: %s %s: %s", request.method, request.url.path, exc
            )
        content: dict[str, object] = {"error": str(exc)}
        if isinstance(exc, RateLimitExceededError):
            content["retryAfter"] = exc.wait_time_ms
        return JSONResponse(status_code=status_code, content=content)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/analyze-photo")
    async def analyze_photo(
        body: AnalyzePhotoRequest, request: Request
    ) -> dict[str, object]:
        """Describe the main item in a single photo."""
        state_container: AppContainer = request.app.state.container
        if not body.image_base64:
            raise InvalidImageError("No image provided")
        logger.info("Starting photo analysis with context: %s", body.box_context)
        item = await state_container.analysis_service.analyze(
            body.image_base64, body.box_context
        )
        return {
            "items": [
                {
                    "name": item.name,
                    "description": item.description,
                    "category": item.category,
                }
            ]
        }

    return app


def _status_for(exc: BoxTrackerError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500
