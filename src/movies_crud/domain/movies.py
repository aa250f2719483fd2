"""Domain models for the movie catalog."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

SORT_FIELDS = ("title", "year", "score", "created_at")


@dataclass(frozen=True)
class Movie:
    """A movie owned by the identity that created it."""

    id: UUID
    title: str
    owner_id: UUID
    year: int | None = None
    director: str | None = None
    duration: int | None = None
    score: float | None = None
    short_desc: str | None = None
    cast: tuple[str, ...] = ()
    genres: tuple[str, ...] = ()
    portrait_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    owner_username: str | None = None
    is_favorited: bool = False


@dataclass(frozen=True)
class SearchFilters:
    """Filters and ordering applied to a movie listing."""

    query: str = ""
    year_from: int | None = None
    year_to: int | None = None
    min_score: float | None = None
    genres: tuple[str, ...] = field(default_factory=tuple)
    sort_by: str = "title"
    sort_order: str = "asc"
