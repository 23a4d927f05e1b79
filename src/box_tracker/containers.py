"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from box_tracker.adapters.openai_analysis_client import OpenAIAnalysisClient
from box_tracker.adapters.supabase_auth_provider import SupabaseAuthProvider
from box_tracker.adapters.supabase_inventory_repository import (
    SupabaseInventoryRepository,
)
from box_tracker.config import Settings
from box_tracker.domain.inventory import Box
from box_tracker.services.analysis import AnalysisService, RateLimiter
from box_tracker.services.auth import AuthService
from box_tracker.services.capture import (
    CaptureSession,
    CaptureSessionRegistry,
    describe_box,
)
from box_tracker.services.commit import CommitService
from box_tracker.services.images import ImagePreprocessor
from box_tracker.services.ingestion import IngestionQueue
from box_tracker.services.inventory import InventoryService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    auth_service: AuthService
    inventory_service: InventoryService
    analysis_service: AnalysisService
    preprocessor: ImagePreprocessor
    commit_service: CommitService
    capture_sessions: CaptureSessionRegistry
    close_resources: Callable[[], Awaitable[None]]


def build_capture_registry(
    analysis_service: AnalysisService,
    preprocessor: ImagePreprocessor,
    commit_service: CommitService,
) -> CaptureSessionRegistry:
    """Create a registry whose sessions share one analysis service."""

    def open_session(user_id: str, box: Box) -> CaptureSession:
        return CaptureSession(
            user_id=user_id,
            box_id=box.id,
            queue=IngestionQueue(analyzer=analysis_service, context=describe_box(box)),
            preprocessor=preprocessor,
            commit_service=commit_service,
        )

    return CaptureSessionRegistry(factory=open_session)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_key
    )
    inventory_service = InventoryService(
        repository=SupabaseInventoryRepository(supabase_client),
        base_url=resolved_settings.base_url,
        max_attempts=resolved_settings.store_max_attempts,
        retry_delay_seconds=resolved_settings.store_retry_delay_seconds,
    )
    auth_service = AuthService(SupabaseAuthProvider(supabase_client))
    openai_client = (
        OpenAIAnalysisClient.create(resolved_settings.openai_api_key)
        if resolved_settings.openai_api_key
        else None
    )
    analysis_service = AnalysisService(
        client=openai_client,
        model=resolved_settings.openai_model,
        rate_limiter=RateLimiter(
            max_requests_per_minute=resolved_settings.analysis_requests_per_minute
        ),
        max_tokens=resolved_settings.openai_max_tokens,
        max_retries=resolved_settings.analysis_max_retries,
        backoff_base_seconds=resolved_settings.analysis_backoff_base_seconds,
    )
    preprocessor = ImagePreprocessor(
        max_dimension=resolved_settings.image_max_dimension,
        quality=resolved_settings.image_quality,
    )
    commit_service = CommitService(inventory_service)
    capture_sessions = build_capture_registry(
        analysis_service, preprocessor, commit_service
    )

    async def close_resources() -> None:
        await capture_sessions.close_all()
        if openai_client is not None:
            await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        auth_service=auth_service,
        inventory_service=inventory_service,
        analysis_service=analysis_service,
        preprocessor=preprocessor,
        commit_service=commit_service,
        capture_sessions=capture_sessions,
        close_resources=close_resources,
    )
