"""Sign-in, sign-up and session endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, Response, status

from box_tracker.api.dependencies import get_container
from box_tracker.api.models import CredentialsRequest  # noqa: TC001

if TYPE_CHECKING:
    from box_tracker.domain.auth import AuthSession

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/sign-in")
def sign_in(body: CredentialsRequest, request: Request) -> dict[str, object]:
    """Sign in with email and password."""
    session = get_container(request).auth_service.sign_in(body.email, body.password)
    return serialize_session(session)


@router.post("/sign-up", status_code=status.HTTP_201_CREATED)
def sign_up(body: CredentialsRequest, request: Request) -> dict[str, object]:
    """Register an account and sign it in."""
    session = get_container(request).auth_service.sign_up(body.email, body.password)
    return serialize_session(session)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
def sign_out(request: Request) -> Response:
    get_container(request).auth_service.sign_out()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/session")
def current_session(request: Request) -> dict[str, object]:
    """Return the active session, or ``null`` when signed out."""
    session = get_container(request).auth_service.current_session()
    return {"session": serialize_session(session) if session else None}


def serialize_session(session: AuthSession) -> dict[str, object]:
    return {
        "userId": session.user_id,
        "accessToken": session.access_token,
        "email": session.email,
    }
