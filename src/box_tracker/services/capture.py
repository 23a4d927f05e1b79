"""Capture interface feeding photos into the ingestion queue."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from box_tracker.domain.errors import CameraUnavailableError
from box_tracker.domain.inventory import Box
from box_tracker.services.commit import CommitResult, CommitService
from box_tracker.services.images import ImagePreprocessor
from box_tracker.services.ingestion import IngestionQueue

logger = logging.getLogger(__name__)

# Tried in order until one opens; later profiles relax the constraints.
CAMERA_PROFILES: tuple[dict[str, object], ...] = (
    {"facing_mode": "environment", "width": 1280, "height": 720, "frame_rate": 30},
    {"facing_mode": "environment", "width": 1280, "height": 720},
    {"width": 1280, "height": 720},
    {},
)


class CaptureMode(StrEnum):
    """Which acquisition path the capture interface is showing."""

    SELECT = "select"
    CAMERA = "camera"
    UPLOAD = "upload"


class CameraSource(Protocol):
    """A camera-like device that must be released after use."""

    async def open(self, profile: dict[str, object]) -> None:
        """Acquire the device with the given constraints."""

    async def capture(self) -> bytes:
        """Return the current frame as encoded image bytes."""

    async def close(self) -> None:
        """Release the device."""


@dataclass
class CaptureSession:
    """Per-box capture workflow: acquire, compress, enqueue, commit."""

    user_id: str
    box_id: str
    queue: IngestionQueue
    preprocessor: ImagePreprocessor
    commit_service: CommitService
    camera_factory: Callable[[], CameraSource] | None = None
    mode: CaptureMode = CaptureMode.SELECT
    _camera: CameraSource | None = field(default=None, init=False)

    async def __aenter__(self) -> "CaptureSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def camera_active(self) -> bool:
        """Whether a camera is currently held open."""
        return self._camera is not None

    async def switch_mode(self, mode: CaptureMode) -> None:
        """Change acquisition mode, releasing the camera when leaving it."""
        if mode is not CaptureMode.CAMERA:
            await self._release_camera()
        self.mode = mode

    async def start_camera(self) -> dict[str, object]:
        """Open the camera with the first profile that succeeds."""
        if self.camera_factory is None:
            raise CameraUnavailableError("Camera access is not supported")
        await self.switch_mode(CaptureMode.CAMERA)
        if self._camera is not None:
            return {}
        last_error: Exception | None = None
        for index, profile in enumerate(CAMERA_PROFILES, start=1):
            camera = self.camera_factory()
            try:
                await camera.open(profile)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Camera profile %s failed: %s", index, exc)
                last_error = exc
                await camera.close()
                continue
            self._camera = camera
            logger.info("Camera opened with profile %s", index)
            return profile
        raise CameraUnavailableError(
            f"Failed to access camera: {last_error}"
        ) from last_error

    async def capture_photo(self) -> str:
        """Grab a frame from the open camera and queue it."""
        if self._camera is None:
            raise CameraUnavailableError("Camera is not open")
        frame = await self._camera.capture()
        return self.queue.enqueue(self.preprocessor.compress(frame))

    def upload_photo(self, raw_image: bytes | str) -> str:
        """Compress an uploaded image and queue it.

        ``ImageDecodeError`` propagates and nothing is queued.
        """
        encoded = self.preprocessor.compress(raw_image)
        return self.queue.enqueue(encoded)

    async def finish(self) -> CommitResult:
        """Commit completed entries, then reset the queue and close.

        Store calls, including their retry delays, run in a worker thread.
        """
        try:
            return await asyncio.to_thread(
                self.commit_service.commit,
                self.user_id,
                self.box_id,
                self.queue.snapshot(),
            )
        finally:
            self.queue.clear()
            await self.close()

    async def close(self) -> None:
        """Release the camera and return to mode selection."""
        try:
            await self._release_camera()
        finally:
            self.mode = CaptureMode.SELECT

    async def _release_camera(self) -> None:
        camera, self._camera = self._camera, None
        if camera is not None:
            await camera.close()
            logger.info("Camera released")


CaptureSessionFactory = Callable[[str, Box], CaptureSession]


@dataclass
class CaptureSessionRegistry:
    """Open capture sessions keyed by user and box."""

    factory: CaptureSessionFactory
    _sessions: dict[tuple[str, str], CaptureSession] = field(
        default_factory=dict, init=False
    )

    def get(self, user_id: str, box_id: str) -> CaptureSession | None:
        """Return the open session for a box, if any."""
        return self._sessions.get((user_id, box_id))

    def open(self, user_id: str, box: Box) -> CaptureSession:
        """Return the open session for a box, creating it on first use."""
        key = (user_id, box.id)
        session = self._sessions.get(key)
        if session is None:
            session = self.factory(user_id, box)
            self._sessions[key] = session
        return session

    def discard(self, user_id: str, box_id: str) -> CaptureSession | None:
        """Forget a session without touching its queue."""
        return self._sessions.pop((user_id, box_id), None)

    async def close_all(self) -> None:
        """Close every open session and stop its queue on shutdown."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            try:
                await session.close()
            finally:
                await session.queue.shutdown()


def describe_box(box: Box) -> str:
    """Return the context hint passed to the vision model for a box."""
    return f"Box {box.box_number} - {box.category} - {box.summary}"
