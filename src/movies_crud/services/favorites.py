"""Favorites toggle service."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from movies_crud.domain.errors import BackendError, ErrorKind
from movies_crud.domain.movies import Movie
from movies_crud.services.movies import MovieRepository, MoviesResult, with_favorites

_logger = logging.getLogger(__name__)


class FavoriteRepository(Protocol):
    """Persistence interface for favorites."""

    def toggle(self, identity_id: UUID, movie_id: UUID) -> bool:
        """Atomically flip the pair and return whether it now exists."""

    def is_favorited(self, identity_id: UUID, movie_id: UUID) -> bool:
        """Return whether the pair exists."""

    def list_movie_ids(self, identity_id: UUID) -> list[UUID]:
        """Return favorited movie ids, newest first."""


@dataclass(frozen=True)
class ToggleResult:
    """Outcome of a toggle; `is_favorited` is None when unknown."""

    success: bool
    is_favorited: bool | None = None
    error: ErrorKind | None = None
    message: str | None = None


@dataclass
class FavoritesService:
    """Flips and lists user-movie favorites.

    Each UI surface keeps its own copy of `is_favorited` and must update it
    from the value returned by `toggle`; nothing here invalidates other copies.
    """

    repository: FavoriteRepository
    movie_repository: MovieRepository

    def toggle(self, identity_id: UUID | None, movie_id: UUID) -> ToggleResult:
        """Flip the favorite in one backend round trip."""
        if identity_id is None:
            return ToggleResult(
                success=False,
                error=ErrorKind.UNAUTHENTICATED,
                message="Sign in to manage favorites",
            )
        try:
            state = self.repository.toggle(identity_id, movie_id)
        except BackendError as exc:
            _logger.warning("Toggle favorite failed for %s: %s", movie_id, exc)
            return ToggleResult(success=False, error=exc.kind, message=exc.message)
        return ToggleResult(success=True, is_favorited=bool(state))

    def is_favorited(self, identity_id: UUID | None, movie_id: UUID) -> bool:
        """Return whether the movie is a favorite; False when unknown."""
        if identity_id is None:
            return False
        try:
            return self.repository.is_favorited(identity_id, movie_id)
        except BackendError as exc:
            _logger.warning("Favorite lookup failed for %s: %s", movie_id, exc)
            return False

    def list_favorites(self, identity_id: UUID | None) -> MoviesResult:
        """Return the identity's favorite movies, newest favorite first."""
        if identity_id is None:
            return MoviesResult(success=False, error=ErrorKind.UNAUTHENTICATED)
        try:
            movie_ids = self.repository.list_movie_ids(identity_id)
            movies = self.movie_repository.get_movies(movie_ids)
        except BackendError as exc:
            return MoviesResult(success=False, error=exc.kind, message=exc.message)
        by_id: dict[UUID, Movie] = {movie.id: movie for movie in movies}
        ordered = [by_id[movie_id] for movie_id in movie_ids if movie_id in by_id]
        return MoviesResult(
            success=True, movies=with_favorites(ordered, set(movie_ids))
        )
