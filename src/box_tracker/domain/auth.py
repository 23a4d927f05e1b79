"""Domain models for authentication."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AuthSession:
    """An authenticated user session."""

    user_id: str
    access_token: str
    email: str | None = None
