"""Shared test fixtures."""

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from movies_crud.config import Settings
from movies_crud.containers import AppContainer
from movies_crud.domain.errors import (
    AlreadyExistsError,
    BackendError,
    NotFoundError,
    UnauthenticatedError,
)
from movies_crud.domain.models import AuthSession, Identity, Profile
from movies_crud.domain.movies import Movie
from movies_crud.domain.playlists import Playlist
from movies_crud.services.accounts import AccountService, AuthGateway
from movies_crud.services.auth_state import (
    AuthEvent,
    SessionReconciler,
    SessionStore,
)
from movies_crud.services.favorites import FavoriteRepository, FavoritesService
from movies_crud.services.media import ImageStore, StorageGateway
from movies_crud.services.movies import MovieRepository, MovieService
from movies_crud.services.playlists import PlaylistRepository, PlaylistService
from movies_crud.services.profiles import ProfileRepository, ProfileService

_EPOCH = datetime(2024, 1, 1, tzinfo=UTC)


def make_identity(email: str | None = "viewer@example.com", **metadata) -> Identity:
    return Identity(
        id=uuid4(), email=email, email_confirmed=True, metadata=dict(metadata)
    )


def make_session(identity: Identity, token: str = "access") -> AuthSession:
    return AuthSession(
        access_token=token,
        refresh_token=f"{token}-refresh",
        identity=identity,
        expires_at=_EPOCH + timedelta(hours=1),
    )


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile repository for tests."""

    profiles: dict[UUID, Profile] = field(default_factory=dict)
    emails: dict[str, str] = field(default_factory=dict)
    update_error: BackendError | None = None

    def get_profile(self, identity_id: UUID) -> Profile | None:
        return self.profiles.get(identity_id)

    def get_by_username(self, username: str) -> Profile | None:
        for profile in self.profiles.values():
            if profile.username == username:
                return profile
        return None

    def create_profile(self, identity_id: UUID, username: str) -> Profile:
        if identity_id in self.profiles or self.get_by_username(username):
            raise AlreadyExistsError("duplicate key value", "23505")
        profile = Profile(identity_id=identity_id, username=username)
        self.profiles[identity_id] = profile
        return profile

    def update_avatar_url(self, identity_id: UUID, avatar_url: str | None) -> Profile:
        if self.update_error is not None:
            raise self.update_error
        if identity_id not in self.profiles:
            raise NotFoundError("Profile not found")
        profile = replace(self.profiles[identity_id], avatar_url=avatar_url)
        self.profiles[identity_id] = profile
        return profile

    def delete_profile(self, identity_id: UUID) -> None:
        self.profiles.pop(identity_id, None)

    def find_email(self, identifier: str) -> str | None:
        return self.emails.get(identifier)


@dataclass
class InMemoryMovieRepository(MovieRepository):
    """In-memory movie repository; deletes run the registered cascades."""

    movies: dict[UUID, Movie] = field(default_factory=dict)
    cascades: list[Callable[[UUID], None]] = field(default_factory=list)
    update_error: BackendError | None = None

    def list_movies(self) -> list[Movie]:
        return list(self.movies.values())

    def get_movie(self, movie_id: UUID) -> Movie | None:
        return self.movies.get(movie_id)

    def get_movies(self, movie_ids: list[UUID]) -> list[Movie]:
        return [self.movies[m] for m in movie_ids if m in self.movies]

    def create_movie(self, owner_id: UUID, payload: dict[str, object]) -> Movie:
        movie = Movie(
            id=uuid4(),
            owner_id=owner_id,
            created_at=_EPOCH + timedelta(seconds=len(self.movies)),
            **_movie_fields(payload),
        )
        self.movies[movie.id] = movie
        return movie

    def update_movie(self, movie_id: UUID, payload: dict[str, object]) -> Movie:
        if self.update_error is not None:
            raise self.update_error
        if movie_id not in self.movies:
            raise NotFoundError("Movie not found")
        movie = replace(self.movies[movie_id], **_movie_fields(payload))
        self.movies[movie_id] = movie
        return movie

    def delete_movie(self, movie_id: UUID) -> None:
        if self.movies.pop(movie_id, None) is not None:
            for cascade in self.cascades:
                cascade(movie_id)

    def delete_owned_movies(self, owner_id: UUID) -> int:
        owned = [m.id for m in self.movies.values() if m.owner_id == owner_id]
        for movie_id in owned:
            self.delete_movie(movie_id)
        return len(owned)

    def add(self, owner_id: UUID, title: str, **fields) -> Movie:
        return self.create_movie(owner_id, {"title": title, **fields})


def _movie_fields(payload: dict[str, object]) -> dict[str, object]:
    fields = {key: value for key, value in payload.items() if key != "user_id"}
    for key in ("cast", "genres"):
        if key in fields:
            fields[key] = tuple(fields[key] or ())
    return fields


@dataclass
class InMemoryFavoriteRepository(FavoriteRepository):
    """In-memory favorites; pairs are kept in insertion order."""

    pairs: list[tuple[UUID, UUID]] = field(default_factory=list)
    error: BackendError | None = None
    toggles: int = 0

    def toggle(self, identity_id: UUID, movie_id: UUID) -> bool:
        if self.error is not None:
            raise self.error
        self.toggles += 1
        pair = (identity_id, movie_id)
        if pair in self.pairs:
            self.pairs.remove(pair)
            return False
        self.pairs.append(pair)
        return True

    def is_favorited(self, identity_id: UUID, movie_id: UUID) -> bool:
        return (identity_id, movie_id) in self.pairs

    def list_movie_ids(self, identity_id: UUID) -> list[UUID]:
        if self.error is not None:
            raise self.error
        return [movie for user, movie in reversed(self.pairs) if user == identity_id]

    def forget_movie(self, movie_id: UUID) -> None:
        self.pairs = [pair for pair in self.pairs if pair[1] != movie_id]


@dataclass
class InMemoryPlaylistRepository(PlaylistRepository):
    """In-memory playlists with a unique (playlist, movie) constraint."""

    movie_repository: InMemoryMovieRepository | None = None
    playlists: dict[UUID, Playlist] = field(default_factory=dict)
    memberships: list[tuple[UUID, UUID]] = field(default_factory=list)

    def create_playlist(self, owner_id: UUID, payload: dict[str, object]) -> Playlist:
        playlist = Playlist(
            id=uuid4(),
            owner_id=owner_id,
            created_at=_EPOCH + timedelta(seconds=len(self.playlists)),
            **payload,
        )
        self.playlists[playlist.id] = playlist
        return playlist

    def get_playlist(self, playlist_id: UUID) -> Playlist | None:
        return self.playlists.get(playlist_id)

    def update_playlist(
        self, playlist_id: UUID, payload: dict[str, object]
    ) -> Playlist:
        if playlist_id not in self.playlists:
            raise NotFoundError("Playlist not found")
        playlist = replace(self.playlists[playlist_id], **payload)
        self.playlists[playlist_id] = playlist
        return playlist

    def delete_playlist(self, playlist_id: UUID) -> None:
        self.playlists.pop(playlist_id, None)
        self.memberships = [m for m in self.memberships if m[0] != playlist_id]

    def list_user_playlists(self, owner_id: UUID) -> list[Playlist]:
        owned = [p for p in self.playlists.values() if p.owner_id == owner_id]
        return sorted(owned, key=lambda p: p.created_at, reverse=True)

    def has_movie(self, playlist_id: UUID, movie_id: UUID) -> bool:
        return (playlist_id, movie_id) in self.memberships

    def add_movie(self, playlist_id: UUID, movie_id: UUID) -> None:
        if (playlist_id, movie_id) in self.memberships:
            raise AlreadyExistsError("duplicate key value", "23505")
        if (
            self.movie_repository is not None
            and movie_id not in self.movie_repository.movies
        ):
            raise NotFoundError("violates foreign key constraint", "23503")
        self.memberships.append((playlist_id, movie_id))

    def remove_movie(self, playlist_id: UUID, movie_id: UUID) -> None:
        if (playlist_id, movie_id) in self.memberships:
            self.memberships.remove((playlist_id, movie_id))

    def list_movie_ids(self, playlist_id: UUID) -> list[UUID]:
        return [m for playlist, m in self.memberships if playlist == playlist_id]

    def list_playlists_containing(self, movie_id: UUID, owner_id: UUID) -> list[UUID]:
        return [
            playlist_id
            for playlist_id, member in self.memberships
            if member == movie_id and self.playlists[playlist_id].owner_id == owner_id
        ]

    def forget_movie(self, movie_id: UUID) -> None:
        self.memberships = [m for m in self.memberships if m[1] != movie_id]


@dataclass
class InMemoryStorageGateway(StorageGateway):
    """In-memory object storage."""

    objects: dict[tuple[str, str], bytes] = field(default_factory=dict)
    remove_error: BackendError | None = None

    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> None:
        self.objects[(bucket, path)] = content

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"https://storage.test/object/public/{bucket}/{path}"

    def remove(self, bucket: str, paths: list[str]) -> None:
        if self.remove_error is not None:
            raise self.remove_error
        for path in paths:
            self.objects.pop((bucket, path), None)


@dataclass
class FakeAuthGateway(AuthGateway):
    """Fake auth backend that emits events to subscribers synchronously."""

    session: AuthSession | None = None
    accounts: dict[str, tuple[str, Identity]] = field(default_factory=dict)
    listeners: list[Callable[[AuthEvent], None]] = field(default_factory=list)
    reset_requests: list[tuple[str, str | None]] = field(default_factory=list)
    updates: list[dict[str, object]] = field(default_factory=list)
    sign_outs: int = 0

    def register(self, email: str, password: str, **metadata) -> Identity:
        identity = make_identity(email, **metadata)
        self.accounts[email] = (password, identity)
        return identity

    def get_session(self) -> AuthSession | None:
        return self.session

    def get_user(self) -> Identity | None:
        return self.session.identity if self.session else None

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise UnauthenticatedError("Invalid login credentials")
        self.session = make_session(account[1])
        self._emit(AuthEvent.signed_in(self.session))
        return self.session

    def sign_up(
        self, email: str, password: str, metadata: dict[str, object]
    ) -> tuple[Identity, AuthSession | None]:
        if email in self.accounts:
            raise AlreadyExistsError("User already registered", "user_already_exists")
        identity = self.register(email, password, **metadata)
        return identity, None

    def sign_out(self) -> None:
        self.sign_outs += 1
        self.session = None
        self._emit(AuthEvent.signed_out())

    def update_user(self, fields: dict[str, object]) -> Identity:
        if self.session is None:
            raise UnauthenticatedError("No signed-in user")
        self.updates.append(fields)
        return self.session.identity

    def reset_password_for_email(self, email: str, redirect_to: str | None) -> None:
        self.reset_requests.append((email, redirect_to))

    def subscribe(self, callback: Callable[[AuthEvent], None]) -> Callable[[], None]:
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)

    def _emit(self, event: AuthEvent) -> None:
        for listener in list(self.listeners):
            listener(event)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_anon_key="header.payload.signature",
    )


@pytest.fixture
def movie_repository() -> InMemoryMovieRepository:
    return InMemoryMovieRepository()


@pytest.fixture
def favorite_repository(
    movie_repository: InMemoryMovieRepository,
) -> InMemoryFavoriteRepository:
    repository = InMemoryFavoriteRepository()
    movie_repository.cascades.append(repository.forget_movie)
    return repository


@pytest.fixture
def playlist_repository(
    movie_repository: InMemoryMovieRepository,
) -> InMemoryPlaylistRepository:
    repository = InMemoryPlaylistRepository(movie_repository)
    movie_repository.cascades.append(repository.forget_movie)
    return repository


@pytest.fixture
def profile_repository() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def storage() -> InMemoryStorageGateway:
    return InMemoryStorageGateway()


@pytest.fixture
def auth_gateway() -> FakeAuthGateway:
    return FakeAuthGateway()


@pytest.fixture
def movie_service(
    settings: Settings,
    movie_repository: InMemoryMovieRepository,
    favorite_repository: InMemoryFavoriteRepository,
    storage: InMemoryStorageGateway,
) -> MovieService:
    return MovieService(
        repository=movie_repository,
        favorites=favorite_repository,
        portraits=ImageStore(
            storage, settings.portraits_bucket, settings.max_portrait_bytes
        ),
    )


@pytest.fixture
def favorites_service(
    movie_repository: InMemoryMovieRepository,
    favorite_repository: InMemoryFavoriteRepository,
) -> FavoritesService:
    return FavoritesService(favorite_repository, movie_repository)


@pytest.fixture
def playlist_service(
    movie_repository: InMemoryMovieRepository,
    playlist_repository: InMemoryPlaylistRepository,
    movie_service: MovieService,
) -> PlaylistService:
    return PlaylistService(
        repository=playlist_repository,
        movie_repository=movie_repository,
        movie_service=movie_service,
    )


@pytest.fixture
def profile_service(
    settings: Settings,
    profile_repository: InMemoryProfileRepository,
    storage: InMemoryStorageGateway,
) -> ProfileService:
    return ProfileService(
        repository=profile_repository,
        avatars=ImageStore(storage, settings.avatars_bucket, settings.max_avatar_bytes),
    )


@pytest.fixture
def account_service(
    auth_gateway: FakeAuthGateway,
    profile_repository: InMemoryProfileRepository,
    movie_repository: InMemoryMovieRepository,
) -> AccountService:
    return AccountService(
        auth=auth_gateway,
        profiles=profile_repository,
        movies=movie_repository,
        password_reset_redirect_url="https://movies.test/reset-password",
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    auth_gateway: FakeAuthGateway,
    account_service: AccountService,
    profile_service: ProfileService,
    movie_service: MovieService,
    favorites_service: FavoritesService,
    playlist_service: PlaylistService,
) -> AppContainer:
    session_store = SessionStore()
    reconciler = SessionReconciler(
        store=session_store,
        profiles=profile_service,
        sessions=account_service,
        retry_base_delay_seconds=0,
    )

    def on_profile_changed(identity_id: UUID) -> None:
        reconciler.submit_threadsafe(AuthEvent.profile_invalidated(identity_id))

    profile_service.on_profile_changed = on_profile_changed

    async def close_resources() -> None:
        await reconciler.stop()

    return AppContainer(
        settings=settings,
        session_store=session_store,
        reconciler=reconciler,
        auth_gateway=auth_gateway,
        account_service=account_service,
        profile_service=profile_service,
        movie_service=movie_service,
        favorites_service=favorites_service,
        playlist_service=playlist_service,
        close_resources=close_resources,
    )
