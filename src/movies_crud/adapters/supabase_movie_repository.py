"""Supabase-backed movie repository."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from movies_crud.adapters.supabase_errors import translated_errors
from movies_crud.adapters.supabase_rows import owner_username, parse_timestamp
from movies_crud.domain.errors import BackendError, NotFoundError
from movies_crud.domain.movies import Movie
from movies_crud.services.movies import MovieRepository

_COLUMNS = "*, profiles:user_id ( username )"


@dataclass
class SupabaseMovieRepository(MovieRepository):
    """Supabase implementation for movies.

    Favorites and playlist memberships are removed by the database's
    ON DELETE CASCADE foreign keys when a movie row goes away.
    """

    client: Client

    def list_movies(self) -> list[Movie]:
        """Return every visible movie ordered by title."""
        with translated_errors():
            response = (
                self.client.table("movies").select(_COLUMNS).order("title").execute()
            )
        return [_parse_movie(row) for row in response.data or []]

    def get_movie(self, movie_id: UUID) -> Movie | None:
        """Return a movie by id, if present."""
        with translated_errors():
            response = (
                self.client.table("movies")
                .select(_COLUMNS)
                .eq("id", str(movie_id))
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_movie(response.data[0])

    def get_movies(self, movie_ids: list[UUID]) -> list[Movie]:
        """Return the movies among the given ids."""
        if not movie_ids:
            return []
        with translated_errors():
            response = (
                self.client.table("movies")
                .select(_COLUMNS)
                .in_("id", [str(movie_id) for movie_id in movie_ids])
                .execute()
            )
        return [_parse_movie(row) for row in response.data or []]

    def create_movie(self, owner_id: UUID, payload: dict[str, object]) -> Movie:
        """Create a movie row and return it."""
        with translated_errors():
            response = (
                self.client.table("movies")
                .insert({**payload, "user_id": str(owner_id)})
                .execute()
            )
        if not response.data:
            raise BackendError("Failed to create movie")
        return _parse_movie(response.data[0])

    def update_movie(self, movie_id: UUID, payload: dict[str, object]) -> Movie:
        """Update a movie row; the owner column is never rewritten."""
        changes = {key: value for key, value in payload.items() if key != "user_id"}
        with translated_errors():
            response = (
                self.client.table("movies")
                .update(changes)
                .eq("id", str(movie_id))
                .execute()
            )
        if not response.data:
            raise NotFoundError("Movie not found")
        return _parse_movie(response.data[0])

    def delete_movie(self, movie_id: UUID) -> None:
        """Delete a movie row."""
        with translated_errors():
            self.client.table("movies").delete().eq("id", str(movie_id)).execute()

    def delete_owned_movies(self, owner_id: UUID) -> int:
        """Delete every movie of an owner."""
        with translated_errors():
            response = (
                self.client.table("movies")
                .delete()
                .eq("user_id", str(owner_id))
                .execute()
            )
        return len(response.data or [])


def _parse_movie(row: dict[str, object]) -> Movie:
    """Parse a movie row into a domain model."""
    score = row.get("score")
    return Movie(
        id=UUID(str(row["id"])),
        title=str(row.get("title", "")),
        owner_id=UUID(str(row["user_id"])),
        year=row.get("year"),
        director=row.get("director"),
        duration=row.get("duration"),
        score=float(score) if score is not None else None,
        short_desc=row.get("short_desc"),
        cast=tuple(row.get("cast") or ()),
        genres=tuple(row.get("genres") or ()),
        portrait_url=row.get("portrait_url"),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
        owner_username=owner_username(row),
    )
