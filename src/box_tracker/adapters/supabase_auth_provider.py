"""Supabase Auth implementation of the auth provider."""

from collections.abc import Callable
from dataclasses import dataclass

from supabase import AuthError, Client

from box_tracker.domain.auth import AuthSession
from box_tracker.domain.errors import NotAuthenticatedError
from box_tracker.services.auth import AuthProvider, SessionListener


@dataclass
class SupabaseAuthProvider(AuthProvider):
    """Auth provider backed by Supabase Auth."""

    client: Client

    def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password."""
        try:
            response = self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthError as exc:
            raise NotAuthenticatedError(str(exc)) from exc
        return _require_session(response.session)

    def sign_up(self, email: str, password: str) -> AuthSession:
        """Register an account and return its session."""
        try:
            response = self.client.auth.sign_up({"email": email, "password": password})
        except AuthError as exc:
            raise NotAuthenticatedError(str(exc)) from exc
        return _require_session(response.session)

    def sign_out(self) -> None:
        """End the current session."""
        self.client.auth.sign_out()

    def current_session(self) -> AuthSession | None:
        """Return the active session, if any."""
        return _to_session(self.client.auth.get_session())

    def get_user_id(self, access_token: str) -> str | None:
        """Resolve an access token to a user id."""
        try:
            response = self.client.auth.get_user(access_token)
        except AuthError:
            return None
        if response is None or response.user is None:
            return None
        return str(response.user.id)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Forward auth state changes as sessions."""

        def handle(_event: object, session: object) -> None:
            listener(_to_session(session))

        subscription = self.client.auth.on_auth_state_change(handle)
        return subscription.unsubscribe


def _to_session(session: object) -> AuthSession | None:
    if session is None:
        return None
    user = getattr(session, "user", None)
    if user is None:
        return None
    return AuthSession(
        user_id=str(user.id),
        access_token=str(session.access_token),
        email=getattr(user, "email", None),
    )


def _require_session(session: object) -> AuthSession:
    resolved = _to_session(session)
    if resolved is None:
        raise NotAuthenticatedError("No session returned; confirm the account email")
    return resolved
