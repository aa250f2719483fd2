"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from supabase import create_client

from movies_crud.adapters.supabase_auth_gateway import SupabaseAuthGateway
from movies_crud.adapters.supabase_favorite_repository import (
    SupabaseFavoriteRepository,
)
from movies_crud.adapters.supabase_movie_repository import SupabaseMovieRepository
from movies_crud.adapters.supabase_playlist_repository import (
    SupabasePlaylistRepository,
)
from movies_crud.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from movies_crud.adapters.supabase_storage_gateway import SupabaseStorageGateway
from movies_crud.config import Settings
from movies_crud.services.accounts import AccountService, AuthGateway
from movies_crud.services.auth_state import AuthEvent, SessionReconciler, SessionStore
from movies_crud.services.favorites import FavoritesService
from movies_crud.services.media import ImageStore
from movies_crud.services.movies import MovieService
from movies_crud.services.playlists import PlaylistService
from movies_crud.services.profiles import ProfileService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_store: SessionStore
    reconciler: SessionReconciler
    auth_gateway: AuthGateway
    account_service: AccountService
    profile_service: ProfileService
    movie_service: MovieService
    favorites_service: FavoritesService
    playlist_service: PlaylistService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_anon_key
    )
    auth_gateway = SupabaseAuthGateway(supabase_client)
    storage = SupabaseStorageGateway(supabase_client)
    profile_repository = SupabaseProfileRepository(supabase_client)
    movie_repository = SupabaseMovieRepository(supabase_client)
    favorite_repository = SupabaseFavoriteRepository(supabase_client)
    playlist_repository = SupabasePlaylistRepository(supabase_client)

    session_store = SessionStore()
    profile_service = ProfileService(
        repository=profile_repository,
        avatars=ImageStore(
            storage,
            resolved_settings.avatars_bucket,
            resolved_settings.max_avatar_bytes,
        ),
    )
    account_service = AccountService(
        auth=auth_gateway,
        profiles=profile_repository,
        movies=movie_repository,
        password_reset_redirect_url=resolved_settings.password_reset_redirect_url,
    )
    reconciler = SessionReconciler(
        store=session_store,
        profiles=profile_service,
        sessions=account_service,
        profile_attempts=resolved_settings.profile_fetch_attempts,
        profile_timeout_seconds=resolved_settings.profile_fetch_timeout_seconds,
        retry_base_delay_seconds=resolved_settings.profile_retry_base_delay_seconds,
        session_refetch_attempts=resolved_settings.session_refetch_attempts,
    )

    def on_profile_changed(identity_id: UUID) -> None:
        reconciler.submit_threadsafe(AuthEvent.profile_invalidated(identity_id))

    profile_service.on_profile_changed = on_profile_changed

    movie_service = MovieService(
        repository=movie_repository,
        favorites=favorite_repository,
        portraits=ImageStore(
            storage,
            resolved_settings.portraits_bucket,
            resolved_settings.max_portrait_bytes,
        ),
    )
    favorites_service = FavoritesService(favorite_repository, movie_repository)
    playlist_service = PlaylistService(
        repository=playlist_repository,
        movie_repository=movie_repository,
        movie_service=movie_service,
    )

    async def close_resources() -> None:
        await reconciler.stop()

    return AppContainer(
        settings=resolved_settings,
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
