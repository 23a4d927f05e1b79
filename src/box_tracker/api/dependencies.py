"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Header, Request

from box_tracker.domain.errors import NotFoundError

if TYPE_CHECKING:
    from box_tracker.containers import AppContainer
    from box_tracker.domain.inventory import Box


def get_container(request: Request) -> AppContainer:
    """Return the container attached to the running app."""
    return request.app.state.container


def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> str:
    """Resolve the bearer token to a user id.

    Declared sync so FastAPI resolves it in its threadpool.
    """
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    return get_container(request).auth_service.require_user(token)


def owned_box(container: AppContainer, box_id: str, user_id: str) -> Box:
    """Return a box belonging to the user, hiding other users' boxes."""
    box = container.inventory_service.get_box(box_id)
    if box.user_id != user_id:
        raise NotFoundError("Box not found")
    return box
