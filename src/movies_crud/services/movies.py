"""Movie catalog services: CRUD, validation, search and portraits."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from movies_crud.domain.errors import (
    BackendError,
    ErrorKind,
    ForbiddenError,
    NotFoundError,
    OperationResult,
    ValidationError,
)
from movies_crud.domain.movies import SORT_FIELDS, Movie, SearchFilters
from movies_crud.services.media import ImageStore, UploadResult

MIN_YEAR = 1900
MAX_YEAR = 2030
MAX_SCORE = 10.0

_logger = logging.getLogger(__name__)


class MovieRepository(Protocol):
    """Persistence interface for movies."""

    def list_movies(self) -> list[Movie]:
        """Return every visible movie with its owner's username."""

    def get_movie(self, movie_id: UUID) -> Movie | None:
        """Return a movie by id, if present."""

    def get_movies(self, movie_ids: list[UUID]) -> list[Movie]:
        """Return the movies among the given ids, in any order."""

    def create_movie(self, owner_id: UUID, payload: dict[str, object]) -> Movie:
        """Create a movie and return it."""

    def update_movie(self, movie_id: UUID, payload: dict[str, object]) -> Movie:
        """Update a movie and return it."""

    def delete_movie(self, movie_id: UUID) -> None:
        """Delete a movie; favorites and memberships cascade."""

    def delete_owned_movies(self, owner_id: UUID) -> int:
        """Delete every movie of an owner and return how many were removed."""


class FavoriteLookup(Protocol):
    """Read side of favorites used to annotate listings."""

    def list_movie_ids(self, identity_id: UUID) -> list[UUID]:
        """Return favorited movie ids."""


@dataclass(frozen=True)
class MoviesResult:
    """A list of movies or an error."""

    success: bool
    movies: list[Movie] = field(default_factory=list)
    error: ErrorKind | None = None
    message: str | None = None


@dataclass(frozen=True)
class MovieResult:
    """A single movie or an error."""

    success: bool
    movie: Movie | None = None
    error: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def from_exception(cls, exc: BackendError) -> "MovieResult":
        return cls(success=False, error=exc.kind, message=exc.message)


def parse_movie_form(
    form: Mapping[str, object], *, partial: bool = False
) -> dict[str, object]:
    """Validate raw form fields into a movie payload."""
    payload: dict[str, object] = {}
    if not partial or "title" in form:
        title = _text(form.get("title"))
        if not title:
            raise ValidationError("Title is required")
        payload["title"] = title
    for key in ("director", "short_desc"):
        if key in form:
            payload[key] = _text(form.get(key)) or None
    if "year" in form:
        year = _integer(form.get("year"), "Year")
        if year is not None and not MIN_YEAR <= year <= MAX_YEAR:
            raise ValidationError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}")
        payload["year"] = year
    if "duration" in form:
        duration = _integer(form.get("duration"), "Duration")
        if duration is not None and duration <= 0:
            raise ValidationError("Duration must be a positive number of minutes")
        payload["duration"] = duration
    if "score" in form:
        score = _number(form.get("score"), "Score")
        if score is not None and not 0 <= score <= MAX_SCORE:
            raise ValidationError("Score must be between 0 and 10")
        payload["score"] = score
    for key in ("cast", "genres"):
        if key in form:
            payload[key] = _split_list(form.get(key))
    return payload


def apply_filters(movies: Iterable[Movie], filters: SearchFilters) -> list[Movie]:
    """Filter and sort movies the way the catalog listing does."""
    if filters.sort_by not in SORT_FIELDS:
        raise ValidationError(f"Unsupported sort field: {filters.sort_by}")
    result = list(movies)
    query = filters.query.strip().lower()
    if query:
        result = [
            movie
            for movie in result
            if query in movie.title.lower()
            or (movie.director is not None and query in movie.director.lower())
        ]
    if filters.year_from is not None:
        result = [m for m in result if m.year and m.year >= filters.year_from]
    if filters.year_to is not None:
        result = [m for m in result if m.year and m.year <= filters.year_to]
    if filters.min_score is not None:
        result = [
            m for m in result if m.score is not None and m.score >= filters.min_score
        ]
    if filters.genres:
        wanted = {genre.lower() for genre in filters.genres}
        result = [m for m in result if any(g.lower() in wanted for g in m.genres)]
    return sorted(
        result,
        key=lambda movie: _sort_key(movie, filters.sort_by),
        reverse=filters.sort_order == "desc",
    )


def with_favorites(movies: Iterable[Movie], favorite_ids: set[UUID]) -> list[Movie]:
    """Return copies of movies flagged against a set of favorite ids."""
    return [replace(movie, is_favorited=movie.id in favorite_ids) for movie in movies]


@dataclass
class MovieService:
    """Application service for the movie catalog."""

    repository: MovieRepository
    favorites: FavoriteLookup
    portraits: ImageStore

    def list_movies(
        self, viewer_id: UUID | None = None, filters: SearchFilters | None = None
    ) -> MoviesResult:
        """List movies, flagged with the viewer's favorites."""
        try:
            movies = self.repository.list_movies()
            movies = apply_filters(movies, filters or SearchFilters())
            return MoviesResult(success=True, movies=self.annotate(movies, viewer_id))
        except BackendError as exc:
            _logger.warning("Listing movies failed: %s", exc)
            return MoviesResult(success=False, error=exc.kind, message=exc.message)

    def get_movie(self, movie_id: UUID, viewer_id: UUID | None = None) -> MovieResult:
        """Return one movie, flagged with the viewer's favorite state."""
        try:
            movie = self._require(movie_id)
            return MovieResult(success=True, movie=self.annotate([movie], viewer_id)[0])
        except BackendError as exc:
            return MovieResult.from_exception(exc)

    def create_movie(self, owner_id: UUID, form: Mapping[str, object]) -> MovieResult:
        """Validate and create a movie owned by `owner_id`."""
        try:
            payload = parse_movie_form(form)
            movie = self.repository.create_movie(owner_id, payload)
        except BackendError as exc:
            return MovieResult.from_exception(exc)
        _logger.info("Created movie %s (%s)", movie.id, movie.title)
        return MovieResult(success=True, movie=movie)

    def update_movie(
        self, movie_id: UUID, owner_id: UUID, form: Mapping[str, object]
    ) -> MovieResult:
        """Update the given fields of a movie the caller owns."""
        try:
            self._require_owned(movie_id, owner_id)
            payload = parse_movie_form(form, partial=True)
            if not payload:
                raise ValidationError("Nothing to update")
            movie = self.repository.update_movie(movie_id, payload)
        except BackendError as exc:
            return MovieResult.from_exception(exc)
        return MovieResult(success=True, movie=movie)

    def delete_movie(self, movie_id: UUID, owner_id: UUID) -> OperationResult:
        """Delete an owned movie and, best effort, its portrait."""
        try:
            movie = self._require_owned(movie_id, owner_id)
            if movie.portrait_url:
                self.portraits.remove_url(movie.portrait_url)
            self.repository.delete_movie(movie_id)
        except BackendError as exc:
            _logger.warning("Deleting movie %s failed: %s", movie_id, exc)
            return OperationResult.from_exception(exc)
        _logger.info("Deleted movie %s with its favorites and memberships", movie_id)
        return OperationResult.ok()

    def upload_portrait(
        self, movie_id: UUID, owner_id: UUID, filename: str, content: bytes
    ) -> UploadResult:
        """Upload a portrait and point the movie at it."""
        uploaded: UploadResult | None = None
        try:
            movie = self._require_owned(movie_id, owner_id)
            uploaded = self.portraits.upload("movie", movie_id, filename, content)
            self.repository.update_movie(movie_id, {"portrait_url": uploaded.url})
        except BackendError as exc:
            if uploaded is not None and uploaded.url:
                self.portraits.remove_url(uploaded.url)
            return UploadResult.from_exception(exc)
        if movie.portrait_url:
            self.portraits.remove_url(movie.portrait_url)
        return uploaded

    def annotate(self, movies: list[Movie], viewer_id: UUID | None) -> list[Movie]:
        """Flag movies with the viewer's favorites."""
        if viewer_id is None or not movies:
            return with_favorites(movies, set())
        return with_favorites(movies, set(self.favorites.list_movie_ids(viewer_id)))

    def _require(self, movie_id: UUID) -> Movie:
        movie = self.repository.get_movie(movie_id)
        if movie is None:
            raise NotFoundError("Movie not found")
        return movie

    def _require_owned(self, movie_id: UUID, owner_id: UUID) -> Movie:
        movie = self._require(movie_id)
        if movie.owner_id != owner_id:
            raise ForbiddenError("You do not own this movie")
        return movie


def _text(value: object) -> str:
    return str(value).strip() if value is not None else ""


def _integer(value: object, label: str) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a whole number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be a whole number") from exc
    if not number.is_integer():
        raise ValidationError(f"{label} must be a whole number")
    return int(number)


def _number(value: object, label: str) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be a number") from exc


def _split_list(value: object) -> list[str]:
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else list(value)
    return [str(item).strip() for item in items if str(item).strip()]


def _sort_key(movie: Movie, sort_by: str) -> object:
    if sort_by == "title":
        return movie.title.lower()
    if sort_by == "year":
        return movie.year or 0
    if sort_by == "score":
        return movie.score or 0.0
    return movie.created_at or datetime.min.replace(tzinfo=UTC)
