"""Supabase Auth gateway and auth event bridge."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from movies_crud.adapters.supabase_errors import translated_errors
from movies_crud.domain.errors import BackendError, UnauthenticatedError
from movies_crud.domain.models import AuthSession, Identity
from movies_crud.services.accounts import AuthGateway
from movies_crud.services.auth_state import AuthEvent, AuthEventType

_logger = logging.getLogger(__name__)

_FORWARDED_EVENTS = {
    AuthEventType.INITIAL_SESSION,
    AuthEventType.SIGNED_IN,
    AuthEventType.SIGNED_OUT,
    AuthEventType.TOKEN_REFRESHED,
}


@dataclass
class SupabaseAuthGateway(AuthGateway):
    """Supabase implementation of the auth service."""

    client: Client

    def get_session(self) -> AuthSession | None:
        """Return the current session, if any."""
        with translated_errors():
            raw = self.client.auth.get_session()
        return to_session(raw)

    def get_user(self) -> Identity | None:
        """Return the identity behind the current session, if any."""
        with translated_errors():
            response = self.client.auth.get_user()
        user = getattr(response, "user", None)
        return to_identity(user) if user is not None else None

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password."""
        with translated_errors():
            response = self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        session = to_session(response.session)
        if session is None:
            raise UnauthenticatedError("Sign-in did not return a session")
        return session

    def sign_up(
        self, email: str, password: str, metadata: dict[str, object]
    ) -> tuple[Identity, AuthSession | None]:
        """Register an account with user metadata."""
        with translated_errors():
            response = self.client.auth.sign_up(
                {"email": email, "password": password, "options": {"data": metadata}}
            )
        if response.user is None:
            raise BackendError("Sign-up did not return a user")
        return to_identity(response.user), to_session(response.session)

    def sign_out(self) -> None:
        """End the current session."""
        with translated_errors():
            self.client.auth.sign_out()

    def update_user(self, fields: dict[str, object]) -> Identity:
        """Update the signed-in identity."""
        with translated_errors():
            response = self.client.auth.update_user(fields)
        if response.user is None:
            raise UnauthenticatedError("No signed-in user")
        return to_identity(response.user)

    def reset_password_for_email(self, email: str, redirect_to: str | None) -> None:
        """Send a password reset email."""
        options = {"redirect_to": redirect_to} if redirect_to else {}
        with translated_errors():
            self.client.auth.reset_password_for_email(email, options)

    def subscribe(self, callback: Callable[[AuthEvent], None]) -> Callable[[], None]:
        """Forward backend auth callbacks as typed events; returns unsubscribe."""

        def on_change(event: object, session: object) -> None:
            translated = translate_auth_event(event, session)
            if translated is None:
                _logger.debug("Dropping auth event %s", event)
                return
            callback(translated)

        subscription = self.client.auth.on_auth_state_change(on_change)
        return subscription.unsubscribe


def translate_auth_event(event: object, session: object) -> AuthEvent | None:
    """Map a backend auth callback to a reconciler event."""
    name = getattr(event, "value", event)
    try:
        event_type = AuthEventType(str(name))
    except ValueError:
        return None
    if event_type not in _FORWARDED_EVENTS:
        return None
    return AuthEvent(type=event_type, session=to_session(session))


def to_session(raw: object) -> AuthSession | None:
    """Convert a client session object into a domain session."""
    if raw is None:
        return None
    user = getattr(raw, "user", None)
    if user is None:
        return None
    expires_at = getattr(raw, "expires_at", None)
    return AuthSession(
        access_token=str(getattr(raw, "access_token", "")),
        refresh_token=str(getattr(raw, "refresh_token", "")),
        identity=to_identity(user),
        expires_at=(
            datetime.fromtimestamp(expires_at, tz=UTC)
            if isinstance(expires_at, int | float)
            else None
        ),
    )


def to_identity(user: object) -> Identity:
    """Convert a client user object into a domain identity."""
    metadata = getattr(user, "user_metadata", None) or {}
    return Identity(
        id=UUID(str(getattr(user, "id"))),
        email=getattr(user, "email", None),
        email_confirmed=getattr(user, "email_confirmed_at", None) is not None,
        metadata=dict(metadata),
    )
