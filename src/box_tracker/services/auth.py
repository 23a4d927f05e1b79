"""Authentication service gating inventory access."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from box_tracker.domain.auth import AuthSession
from box_tracker.domain.errors import NotAuthenticatedError

SessionListener = Callable[[AuthSession | None], None]


class AuthProvider(Protocol):
    """Interface for the hosted auth provider."""

    def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password."""

    def sign_up(self, email: str, password: str) -> AuthSession:
        """Register a new account."""

    def sign_out(self) -> None:
        """End the current session."""

    def current_session(self) -> AuthSession | None:
        """Return the active session, if any."""

    def get_user_id(self, access_token: str) -> str | None:
        """Resolve an access token to a user id."""

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a session-change listener and return an unsubscribe callable."""


@dataclass
class AuthService:
    """Application service for session lifecycle actions."""

    provider: AuthProvider

    def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in and return the new session."""
        return self.provider.sign_in(email.strip(), password)

    def sign_up(self, email: str, password: str) -> AuthSession:
        """Create an account and return its session."""
        return self.provider.sign_up(email.strip(), password)

    def sign_out(self) -> None:
        """Sign out of the current session."""
        self.provider.sign_out()

    def current_session(self) -> AuthSession | None:
        """Return the current session, if any."""
        return self.provider.current_session()

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """Subscribe to sign-in and sign-out events."""
        return self.provider.subscribe(listener)

    def require_user(self, access_token: str | None) -> str:
        """Return the user id for a token or raise ``NotAuthenticatedError``."""
        if not access_token:
            raise NotAuthenticatedError("Missing access token")
        user_id = self.provider.get_user_id(access_token)
        if user_id is None:
            raise NotAuthenticatedError("Invalid access token")
        return user_id
