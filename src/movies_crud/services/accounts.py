"""Account operations delegated to the auth backend."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from movies_crud.domain.errors import (
    AlreadyExistsError,
    BackendError,
    ErrorKind,
    NotFoundError,
    OperationResult,
    ValidationError,
)
from movies_crud.domain.models import AuthSession, Identity
from movies_crud.services.auth_state import AuthEvent
from movies_crud.services.movies import MovieRepository
from movies_crud.services.profiles import ProfileRepository, validate_username

PASSWORD_MIN_LENGTH = 6

_logger = logging.getLogger(__name__)


class AuthGateway(Protocol):
    """Interface to the hosted auth service."""

    def get_session(self) -> AuthSession | None:
        """Return the current session, if any."""

    def get_user(self) -> Identity | None:
        """Return the identity behind the current session, if any."""

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Sign in and return the new session."""

    def sign_up(
        self, email: str, password: str, metadata: dict[str, object]
    ) -> tuple[Identity, AuthSession | None]:
        """Register an account; the session is None until email confirmation."""

    def sign_out(self) -> None:
        """End the current session."""

    def update_user(self, fields: dict[str, object]) -> Identity:
        """Update attributes of the signed-in identity."""

    def reset_password_for_email(self, email: str, redirect_to: str | None) -> None:
        """Send a password reset email."""

    def subscribe(self, callback: Callable[[AuthEvent], None]) -> Callable[[], None]:
        """Forward auth state changes to `callback`; returns unsubscribe."""


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a sign-in or sign-up."""

    success: bool
    identity: Identity | None = None
    session: AuthSession | None = None
    error: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def from_exception(cls, exc: BackendError) -> "AuthResult":
        return cls(success=False, error=exc.kind, message=exc.message)


@dataclass
class AccountService:
    """Sign-in, registration and account lifecycle.

    Session changes reach the session store through the backend's auth
    events, never directly from here.
    """

    auth: AuthGateway
    profiles: ProfileRepository
    movies: MovieRepository
    password_reset_redirect_url: str | None = None

    async def current_session(self) -> AuthSession | None:
        """Return the backend's current session without blocking the loop."""
        return await asyncio.to_thread(self.auth.get_session)

    def sign_in(self, identifier: str, password: str) -> AuthResult:
        """Sign in with an email, or a username resolved to its email."""
        identifier = identifier.strip()
        try:
            if not identifier or not password:
                raise ValidationError("Username or email and password are required")
            email = identifier if "@" in identifier else self._email_for(identifier)
            session = self.auth.sign_in_with_password(email, password)
        except BackendError as exc:
            _logger.warning("Sign-in failed for %s: %s", identifier, exc)
            return AuthResult.from_exception(exc)
        return AuthResult(success=True, identity=session.identity, session=session)

    def sign_up(self, email: str, password: str, username: str) -> AuthResult:
        """Register an account carrying the chosen username."""
        try:
            email = email.strip()
            if "@" not in email:
                raise ValidationError("A valid email is required")
            _validate_password(password)
            username = validate_username(username)
            if self.profiles.get_by_username(username) is not None:
                raise AlreadyExistsError("This username is already taken")
            identity, session = self.auth.sign_up(
                email, password, {"username": username}
            )
        except BackendError as exc:
            return AuthResult.from_exception(exc)
        _logger.info("Registered %s as %s", identity.id, username)
        return AuthResult(success=True, identity=identity, session=session)

    def sign_out(self) -> OperationResult:
        """End the current session."""
        try:
            self.auth.sign_out()
        except BackendError as exc:
            return OperationResult.from_exception(exc)
        return OperationResult.ok()

    def update_password(self, new_password: str) -> OperationResult:
        """Change the signed-in identity's password."""
        try:
            _validate_password(new_password)
            self.auth.update_user({"password": new_password})
        except BackendError as exc:
            return OperationResult.from_exception(exc)
        return OperationResult.ok()

    def request_password_reset(self, email: str) -> OperationResult:
        """Send a password reset link."""
        try:
            email = email.strip()
            if "@" not in email:
                raise ValidationError("A valid email is required")
            self.auth.reset_password_for_email(email, self.password_reset_redirect_url)
        except BackendError as exc:
            return OperationResult.from_exception(exc)
        return OperationResult.ok()

    def delete_account(self, identity_id: UUID) -> OperationResult:
        """Delete owned movies and the profile, then sign out.

        Removing the auth user itself needs admin rights the client lacks.
        """
        try:
            removed = self.movies.delete_owned_movies(identity_id)
            self.profiles.delete_profile(identity_id)
            self.auth.sign_out()
        except BackendError as exc:
            _logger.warning("Account deletion failed for %s: %s", identity_id, exc)
            return OperationResult.from_exception(exc)
        _logger.info("Deleted account data for %s (%s movies)", identity_id, removed)
        return OperationResult.ok()

    def _email_for(self, username: str) -> str:
        email = self.profiles.find_email(username)
        if not email:
            raise NotFoundError("User not found")
        return email


def _validate_password(password: str) -> None:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
        )
