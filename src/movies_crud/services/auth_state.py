"""Session store and the auth event reconciliation state machine."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Protocol
from uuid import UUID

from movies_crud.domain.errors import BackendError, ErrorKind
from movies_crud.domain.models import AuthSession, Identity, Profile

_logger = logging.getLogger(__name__)

FALLBACK_DISPLAY_NAME = "User"


class AuthState(StrEnum):
    """Top-level authentication state."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class ProfileState(StrEnum):
    """Profile sub-state while authenticated."""

    NONE = "none"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class AuthEventType(StrEnum):
    """Events consumed by the reconciler."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    PROFILE_INVALIDATED = "PROFILE_INVALIDATED"


@dataclass(frozen=True)
class AuthEvent:
    """A typed authentication event."""

    type: AuthEventType
    session: AuthSession | None = None
    identity_id: UUID | None = None

    @classmethod
    def initial_session(cls, session: AuthSession | None) -> "AuthEvent":
        return cls(AuthEventType.INITIAL_SESSION, session=session)

    @classmethod
    def signed_in(cls, session: AuthSession | None) -> "AuthEvent":
        return cls(AuthEventType.SIGNED_IN, session=session)

    @classmethod
    def signed_out(cls) -> "AuthEvent":
        return cls(AuthEventType.SIGNED_OUT)

    @classmethod
    def token_refreshed(cls, session: AuthSession | None) -> "AuthEvent":
        return cls(AuthEventType.TOKEN_REFRESHED, session=session)

    @classmethod
    def profile_invalidated(cls, identity_id: UUID) -> "AuthEvent":
        return cls(AuthEventType.PROFILE_INVALIDATED, identity_id=identity_id)


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of the session store."""

    state: AuthState = AuthState.UNINITIALIZED
    session: AuthSession | None = None
    profile: Profile | None = None
    profile_state: ProfileState = ProfileState.NONE
    error: str | None = None

    @property
    def identity(self) -> Identity | None:
        return self.session.identity if self.session else None

    @property
    def loading(self) -> bool:
        return (
            self.state in {AuthState.UNINITIALIZED, AuthState.INITIALIZING}
            or self.profile_state is ProfileState.LOADING
        )

    @property
    def display_name(self) -> str | None:
        """Username, or a fallback label for an identity without a profile."""
        if self.profile is not None:
            return self.profile.username
        identity = self.identity
        if identity is None:
            return None
        if identity.email:
            return identity.email.split("@", 1)[0]
        return FALLBACK_DISPLAY_NAME


Subscriber = Callable[[SessionSnapshot], None]


@dataclass
class SessionStore:
    """Single mutable slot for the current session and profile."""

    _snapshot: SessionSnapshot = field(default_factory=SessionSnapshot)
    _subscribers: list[Subscriber] = field(default_factory=list)

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def identity_id(self) -> UUID | None:
        identity = self._snapshot.identity
        return identity.id if identity else None

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for every change; returns an unsubscribe handle."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def update(self, **changes: object) -> SessionSnapshot:
        """Replace fields of the snapshot and notify subscribers."""
        self._snapshot = replace(self._snapshot, **changes)
        for callback in list(self._subscribers):
            try:
                callback(self._snapshot)
            except Exception:
                _logger.exception("Session subscriber failed")
        return self._snapshot


class ProfileProvider(Protocol):
    """Source of profiles for an identity."""

    async def ensure_profile(self, identity: Identity) -> Profile:
        """Return the profile, creating it on first sight of the identity."""


class SessionSource(Protocol):
    """Source of the backend's current session."""

    async def current_session(self) -> AuthSession | None:
        """Return the active session, if any."""


@dataclass
class SessionReconciler:
    """Keeps the session store consistent with the auth event stream."""

    store: SessionStore
    profiles: ProfileProvider
    sessions: SessionSource
    profile_attempts: int = 3
    profile_timeout_seconds: float = 5.0
    retry_base_delay_seconds: float = 0.3
    session_refetch_attempts: int = 3
    _initialized: bool = field(default=False, init=False)
    _queue: asyncio.Queue | None = field(default=None, init=False)
    _loop: asyncio.AbstractEventLoop | None = field(default=None, init=False)
    _runner: asyncio.Task | None = field(default=None, init=False)
    _loads: set[asyncio.Task] = field(default_factory=set, init=False)
    _load_generation: int = field(default=0, init=False)

    async def start(self) -> None:
        """Start consuming queued events on the running loop."""
        self._loop = asyncio.get_running_loop()
        if self.store.snapshot.state is AuthState.UNINITIALIZED:
            self.store.update(state=AuthState.INITIALIZING)
        if self._runner is None or self._runner.done():
            self._runner = asyncio.create_task(self.run())

    async def bootstrap(self) -> None:
        """Queue the startup INITIAL_SESSION from the backend's current session."""
        session = await self._fetch_session(retry_on_empty=False)
        self.submit(AuthEvent.initial_session(session))

    async def stop(self) -> None:
        """Cancel the consumer and any in-flight profile loads."""
        tasks = [*self._loads]
        if self._runner is not None:
            tasks.append(self._runner)
            self._runner = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def submit(self, event: AuthEvent) -> None:
        """Enqueue an event from the loop thread."""
        self._ensure_queue().put_nowait(event)

    def submit_threadsafe(self, event: AuthEvent) -> None:
        """Enqueue an event from any thread, e.g. a backend auth callback."""
        if self._loop is None or self._loop.is_closed():
            self.submit(event)
            return
        self._loop.call_soon_threadsafe(self.submit, event)

    async def run(self) -> None:
        """Consume events forever."""
        queue = self._ensure_queue()
        while True:
            event = await queue.get()
            try:
                await self.handle(event)
            except Exception:
                _logger.exception("Failed to handle auth event %s", event.type)
            finally:
                queue.task_done()

    async def drain(self) -> None:
        """Wait until queued events and profile loads have settled."""
        if self._queue is not None:
            await self._queue.join()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait for in-flight profile loads."""
        while self._loads:
            await asyncio.gather(*list(self._loads), return_exceptions=True)

    async def handle(self, event: AuthEvent) -> None:
        """Apply one event to the store."""
        _logger.info(
            "Auth event %s (current=%s, incoming=%s)",
            event.type,
            self.store.identity_id,
            _session_identity_id(event.session) or event.identity_id,
        )
        if event.type is AuthEventType.INITIAL_SESSION:
            self._on_initial_session(event.session)
        elif event.type is AuthEventType.SIGNED_OUT:
            self._on_signed_out()
        elif event.type is AuthEventType.SIGNED_IN:
            await self._on_signed_in(event.session)
        elif event.type is AuthEventType.TOKEN_REFRESHED:
            self._on_token_refreshed(event.session)
        elif event.type is AuthEventType.PROFILE_INVALIDATED:
            self._on_profile_invalidated(event.identity_id)

    def _on_initial_session(self, session: AuthSession | None) -> None:
        if self._initialized:
            _logger.debug("Ignoring duplicate INITIAL_SESSION")
            return
        self._initialized = True
        if session is None:
            self.store.update(
                state=AuthState.ANONYMOUS,
                session=None,
                profile=None,
                profile_state=ProfileState.NONE,
                error=None,
            )
            return
        self._adopt(session)

    def _on_signed_out(self) -> None:
        self.store.update(
            state=AuthState.ANONYMOUS,
            session=None,
            profile=None,
            profile_state=ProfileState.NONE,
            error=None,
        )

    async def _on_signed_in(self, session: AuthSession | None) -> None:
        if session is None:
            session = await self._fetch_session(retry_on_empty=True)
            if session is None:
                _logger.warning("SIGNED_IN without a session; keeping current state")
                self.store.update(error="Sign-in could not be confirmed")
                return
        self._initialized = True
        if self.store.identity_id == session.identity.id:
            self.store.update(state=AuthState.AUTHENTICATED, session=session)
            return
        self._adopt(session)

    def _on_token_refreshed(self, session: AuthSession | None) -> None:
        if session is None or self.store.identity_id != session.identity.id:
            _logger.debug("Ignoring TOKEN_REFRESHED for a different identity")
            return
        self.store.update(session=session)

    def _on_profile_invalidated(self, identity_id: UUID | None) -> None:
        session = self.store.snapshot.session
        if session is None or identity_id != session.identity.id:
            _logger.debug("Ignoring PROFILE_INVALIDATED for %s", identity_id)
            return
        self.store.update(profile_state=ProfileState.LOADING)
        self._schedule_profile_load(session.identity)

    def _adopt(self, session: AuthSession) -> None:
        self.store.update(
            state=AuthState.AUTHENTICATED,
            session=session,
            profile=None,
            profile_state=ProfileState.LOADING,
            error=None,
        )
        self._schedule_profile_load(session.identity)

    def _schedule_profile_load(self, identity: Identity) -> None:
        self._load_generation += 1
        task = asyncio.create_task(
            self._load_profile(identity, self._load_generation)
        )
        self._loads.add(task)
        task.add_done_callback(self._loads.discard)

    async def _load_profile(self, identity: Identity, generation: int) -> None:
        last_error: Exception | None = None
        for attempt in range(1, self.profile_attempts + 1):
            if not self._is_current(identity.id, generation):
                _logger.debug("Abandoning profile load for %s", identity.id)
                return
            try:
                profile = await asyncio.wait_for(
                    self.profiles.ensure_profile(identity),
                    timeout=self.profile_timeout_seconds,
                )
            except (BackendError, TimeoutError) as exc:
                last_error = exc
                _logger.warning(
                    "Profile load failed (attempt %s/%s): %s",
                    attempt,
                    self.profile_attempts,
                    exc,
                )
                if not _is_transient(exc):
                    break
                if attempt < self.profile_attempts:
                    await asyncio.sleep(self._backoff(attempt))
                continue
            if not self._is_current(identity.id, generation):
                _logger.debug("Discarding stale profile for %s", identity.id)
                return
            self.store.update(
                profile=profile, profile_state=ProfileState.READY, error=None
            )
            return
        if self._is_current(identity.id, generation):
            self.store.update(
                profile_state=ProfileState.FAILED,
                error=f"Profile unavailable: {last_error}",
            )

    async def _fetch_session(self, *, retry_on_empty: bool) -> AuthSession | None:
        for attempt in range(1, self.session_refetch_attempts + 1):
            try:
                session = await self.sessions.current_session()
            except BackendError as exc:
                _logger.warning(
                    "Session fetch failed (attempt %s/%s): %s",
                    attempt,
                    self.session_refetch_attempts,
                    exc,
                )
            else:
                if session is not None or not retry_on_empty:
                    return session
            if attempt < self.session_refetch_attempts:
                await asyncio.sleep(self._backoff(attempt))
        return None

    def _backoff(self, attempt: int) -> float:
        return self.retry_base_delay_seconds * 2 ** (attempt - 1)

    def _is_current(self, identity_id: UUID, generation: int) -> bool:
        """Only the newest load for the cached identity may write the store."""
        return (
            generation == self._load_generation
            and self.store.identity_id == identity_id
        )

    def _ensure_queue(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue


def _session_identity_id(session: AuthSession | None) -> UUID | None:
    return session.identity.id if session else None


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, BackendError):
        return exc.kind is ErrorKind.TRANSIENT
    return True
