"""Playlists and playlist membership."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from movies_crud.domain.errors import (
    AlreadyExistsError,
    BackendError,
    ErrorKind,
    ForbiddenError,
    NotFoundError,
    OperationResult,
    ValidationError,
)
from movies_crud.domain.movies import Movie
from movies_crud.domain.playlists import Playlist
from movies_crud.services.movies import MovieRepository, MovieService

TITLE_MAX_LENGTH = 200

_logger = logging.getLogger(__name__)


class PlaylistRepository(Protocol):
    """Persistence interface for playlists and memberships."""

    def create_playlist(self, owner_id: UUID, payload: dict[str, object]) -> Playlist:
        """Create a playlist and return it."""

    def get_playlist(self, playlist_id: UUID) -> Playlist | None:
        """Return a playlist by id, if present."""

    def update_playlist(
        self, playlist_id: UUID, payload: dict[str, object]
    ) -> Playlist:
        """Update a playlist and return it."""

    def delete_playlist(self, playlist_id: UUID) -> None:
        """Delete a playlist and its memberships."""

    def list_user_playlists(self, owner_id: UUID) -> list[Playlist]:
        """Return the owner's playlists, newest first."""

    def has_movie(self, playlist_id: UUID, movie_id: UUID) -> bool:
        """Return whether the membership pair exists."""

    def add_movie(self, playlist_id: UUID, movie_id: UUID) -> None:
        """Insert a membership pair."""

    def remove_movie(self, playlist_id: UUID, movie_id: UUID) -> None:
        """Delete a membership pair if present."""

    def list_movie_ids(self, playlist_id: UUID) -> list[UUID]:
        """Return member movie ids in insertion order."""

    def list_playlists_containing(self, movie_id: UUID, owner_id: UUID) -> list[UUID]:
        """Return ids of the owner's playlists that contain the movie."""


@dataclass(frozen=True)
class PlaylistResult:
    """A single playlist or an error."""

    success: bool
    playlist: Playlist | None = None
    error: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def from_exception(cls, exc: BackendError) -> "PlaylistResult":
        return cls(success=False, error=exc.kind, message=exc.message)


@dataclass(frozen=True)
class PlaylistMoviesResult:
    """A playlist with its movies, or an error."""

    success: bool
    playlist: Playlist | None = None
    movies: list[Movie] = field(default_factory=list)
    is_owner: bool = False
    error: ErrorKind | None = None
    message: str | None = None


@dataclass(frozen=True)
class BulkAddResult:
    """Outcome of a non-atomic batch of additions.

    Additions stop at the first failure; `added` lists the movies that were
    inserted before it and remain in the playlist.
    """

    success: bool
    added: list[UUID] = field(default_factory=list)
    failed_movie_id: UUID | None = None
    error: ErrorKind | None = None
    message: str | None = None


def parse_playlist_form(
    form: Mapping[str, object], *, partial: bool = False
) -> dict[str, object]:
    """Validate raw playlist fields into a payload."""
    payload: dict[str, object] = {}
    if not partial or "title" in form:
        title = str(form.get("title") or "").strip()
        if not title:
            raise ValidationError("Title is required")
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationError(
                f"Title must be at most {TITLE_MAX_LENGTH} characters"
            )
        payload["title"] = title
    if "description" in form:
        description = str(form.get("description") or "").strip()
        payload["description"] = description or None
    if "is_public" in form:
        payload["is_public"] = bool(form.get("is_public"))
    elif not partial:
        payload["is_public"] = False
    return payload


@dataclass
class PlaylistService:
    """Application service for playlists and their movies."""

    repository: PlaylistRepository
    movie_repository: MovieRepository
    movie_service: MovieService

    def create_playlist(
        self, owner_id: UUID, form: Mapping[str, object]
    ) -> PlaylistResult:
        """Validate and create a playlist owned by `owner_id`."""
        try:
            payload = parse_playlist_form(form)
            playlist = self.repository.create_playlist(owner_id, payload)
        except BackendError as exc:
            return PlaylistResult.from_exception(exc)
        _logger.info("Created playlist %s (%s)", playlist.id, playlist.title)
        return PlaylistResult(success=True, playlist=playlist)

    def get_playlist(
        self, playlist_id: UUID, viewer_id: UUID | None = None
    ) -> PlaylistResult:
        """Return a playlist visible to the viewer."""
        try:
            playlist = self._require_visible(playlist_id, viewer_id)
        except BackendError as exc:
            return PlaylistResult.from_exception(exc)
        return PlaylistResult(success=True, playlist=playlist)

    def update_playlist(
        self, playlist_id: UUID, owner_id: UUID, form: Mapping[str, object]
    ) -> PlaylistResult:
        """Update the given fields of an owned playlist."""
        try:
            self._require_owned(playlist_id, owner_id)
            payload = parse_playlist_form(form, partial=True)
            if not payload:
                raise ValidationError("Nothing to update")
            playlist = self.repository.update_playlist(playlist_id, payload)
        except BackendError as exc:
            return PlaylistResult.from_exception(exc)
        return PlaylistResult(success=True, playlist=playlist)

    def delete_playlist(self, playlist_id: UUID, owner_id: UUID) -> OperationResult:
        """Delete an owned playlist; its movies are untouched."""
        try:
            self._require_owned(playlist_id, owner_id)
            self.repository.delete_playlist(playlist_id)
        except BackendError as exc:
            return OperationResult.from_exception(exc)
        return OperationResult.ok()

    def list_user_playlists(self, owner_id: UUID) -> list[Playlist]:
        """Return the owner's playlists; empty on backend failure."""
        try:
            return self.repository.list_user_playlists(owner_id)
        except BackendError as exc:
            _logger.warning("Listing playlists for %s failed: %s", owner_id, exc)
            return []

    def add_movie(
        self, playlist_id: UUID, movie_id: UUID, actor_id: UUID | None = None
    ) -> OperationResult:
        """Add a movie unless the pair already exists."""
        _logger.info("Adding movie %s to playlist %s", movie_id, playlist_id)
        try:
            playlist = self._require(playlist_id)
            if actor_id is not None and playlist.owner_id != actor_id:
                raise ForbiddenError("You do not own this playlist")
            if self.repository.has_movie(playlist_id, movie_id):
                return OperationResult.failure(
                    ErrorKind.ALREADY_MEMBER, "Movie is already in this playlist"
                )
            self.repository.add_movie(playlist_id, movie_id)
        except AlreadyExistsError:
            return OperationResult.failure(
                ErrorKind.ALREADY_MEMBER, "Movie is already in this playlist"
            )
        except BackendError as exc:
            _logger.warning("Adding movie %s failed: %s", movie_id, exc)
            return OperationResult.from_exception(exc)
        return OperationResult.ok()

    def add_movies(
        self,
        playlist_id: UUID,
        movie_ids: Iterable[UUID],
        actor_id: UUID | None = None,
    ) -> BulkAddResult:
        """Add several movies one by one, stopping at the first failure."""
        added: list[UUID] = []
        for movie_id in movie_ids:
            result = self.add_movie(playlist_id, movie_id, actor_id=actor_id)
            if not result.success:
                return BulkAddResult(
                    success=False,
                    added=added,
                    failed_movie_id=movie_id,
                    error=result.error,
                    message=result.message,
                )
            added.append(movie_id)
        return BulkAddResult(success=True, added=added)

    def remove_movie(
        self, playlist_id: UUID, movie_id: UUID, actor_id: UUID | None = None
    ) -> OperationResult:
        """Remove a movie; removing a non-member succeeds."""
        try:
            if actor_id is not None:
                self._require_owned(playlist_id, actor_id)
            self.repository.remove_movie(playlist_id, movie_id)
        except BackendError as exc:
            _logger.warning("Removing movie %s failed: %s", movie_id, exc)
            return OperationResult.from_exception(exc)
        return OperationResult.ok()

    def list_for_playlist(
        self, playlist_id: UUID, viewer_id: UUID | None
    ) -> PlaylistMoviesResult:
        """Return the playlist's movies in membership insertion order."""
        try:
            playlist = self._require_visible(playlist_id, viewer_id)
            movie_ids = self.repository.list_movie_ids(playlist_id)
            movies = self.movie_repository.get_movies(movie_ids) if movie_ids else []
            by_id = {movie.id: movie for movie in movies}
            ordered = [by_id[movie_id] for movie_id in movie_ids if movie_id in by_id]
            annotated = self.movie_service.annotate(ordered, viewer_id)
        except BackendError as exc:
            return PlaylistMoviesResult(
                success=False, error=exc.kind, message=exc.message
            )
        return PlaylistMoviesResult(
            success=True,
            playlist=playlist,
            movies=annotated,
            is_owner=viewer_id is not None and viewer_id == playlist.owner_id,
        )

    def list_playlists_containing(
        self, movie_id: UUID, identity_id: UUID | None
    ) -> list[UUID]:
        """Return ids of the identity's playlists that already hold the movie."""
        if identity_id is None:
            return []
        try:
            return self.repository.list_playlists_containing(movie_id, identity_id)
        except BackendError as exc:
            _logger.warning("Listing playlists containing %s failed: %s", movie_id, exc)
            return []

    def _require(self, playlist_id: UUID) -> Playlist:
        playlist = self.repository.get_playlist(playlist_id)
        if playlist is None:
            raise NotFoundError("Playlist not found")
        return playlist

    def _require_visible(self, playlist_id: UUID, viewer_id: UUID | None) -> Playlist:
        playlist = self._require(playlist_id)
        if not playlist.is_visible_to(viewer_id):
            raise ForbiddenError("This playlist is private")
        return playlist

    def _require_owned(self, playlist_id: UUID, owner_id: UUID) -> Playlist:
        playlist = self._require(playlist_id)
        if playlist.owner_id != owner_id:
            raise ForbiddenError("You do not own this playlist")
        return playlist
