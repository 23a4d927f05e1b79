"""Endpoints driving the photo capture queue of a box."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request, Response, status

from box_tracker.api.dependencies import get_container, owned_box, require_user
from box_tracker.api.models import PhotoUploadRequest  # noqa: TC001
from box_tracker.domain.errors import NotFoundError

if TYPE_CHECKING:
    from box_tracker.domain.queue import QueuedPhoto
    from box_tracker.services.capture import CaptureSession

router = APIRouter(prefix="/api/boxes/{box_id}/capture", tags=["capture"])


@router.get("")
async def capture_status(
    box_id: str, request: Request, user_id: str = Depends(require_user)
) -> dict[str, object]:
    """Return the queue of the box's capture session."""
    container = get_container(request)
    await asyncio.to_thread(owned_box, container, box_id, user_id)
    session = container.capture_sessions.get(user_id, box_id)
    if session is None:
        return {"mode": None, "counts": {}, "photos": []}
    return _serialize_session(session)


@router.post("/photos", status_code=status.HTTP_202_ACCEPTED)
async def upload_photo(
    box_id: str,
    body: PhotoUploadRequest,
    request: Request,
    user_id: str = Depends(require_user),
) -> dict[str, str]:
    """Compress an uploaded photo and queue it for analysis."""
    container = get_container(request)
    box = await asyncio.to_thread(owned_box, container, box_id, user_id)
    session = container.capture_sessions.open(user_id, box)
    photo_id = session.upload_photo(body.image_base64)
    return {"id": photo_id}


@router.delete("/photos/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_photo(
    box_id: str, photo_id: str, request: Request, user_id: str = Depends(require_user)
) -> Response:
    """Drop a photo from the queue."""
    session = await _require_session(request, box_id, user_id)
    session.queue.remove(photo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/photos/{photo_id}/retry")
async def retry_photo(
    box_id: str, photo_id: str, request: Request, user_id: str = Depends(require_user)
) -> dict[str, str]:
    """Discard a failed photo so a new one can be captured."""
    session = await _require_session(request, box_id, user_id)
    removed = session.queue.retry(photo_id)
    if removed is None:
        raise NotFoundError("Photo not found")
    return {"removed": removed.id}


@router.post("/finish")
async def finish_capture(
    box_id: str, request: Request, user_id: str = Depends(require_user)
) -> dict[str, object]:
    """Add every analyzed item to the box and end the session."""
    container = get_container(request)
    session = await _require_session(request, box_id, user_id)
    container.capture_sessions.discard(user_id, box_id)
    result = await session.finish()
    return {
        "created": result.count,
        "failures": [
            {"photoId": failure.photo_id, "name": failure.name, "error": failure.error}
            for failure in result.failures
        ],
    }


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def close_capture(
    box_id: str, request: Request, user_id: str = Depends(require_user)
) -> Response:
    """Close the capture session; in-flight analyses still finish."""
    container = get_container(request)
    await asyncio.to_thread(owned_box, container, box_id, user_id)
    session = container.capture_sessions.discard(user_id, box_id)
    if session is not None:
        await session.close()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def _require_session(
    request: Request, box_id: str, user_id: str
) -> CaptureSession:
    container = get_container(request)
    await asyncio.to_thread(owned_box, container, box_id, user_id)
    session = container.capture_sessions.get(user_id, box_id)
    if session is None:
        raise NotFoundError("No capture session for this box")
    return session


def _serialize_session(session: CaptureSession) -> dict[str, object]:
    counts = session.queue.counts()
    return {
        "mode": str(session.mode),
        "counts": {str(key): value for key, value in counts.items()},
        "photos": [_serialize_photo(entry) for entry in session.queue.snapshot()],
    }


def _serialize_photo(entry: QueuedPhoto) -> dict[str, object]:
    result = None
    if entry.result is not None:
        result = {
            "name": entry.result.name,
            "description": entry.result.description,
            "category": entry.result.category,
        }
    return {
        "id": entry.id,
        "photo": entry.photo,
        "status": str(entry.status),
        "result": result,
        "error": entry.error,
    }
