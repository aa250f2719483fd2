"""Supabase-backed playlist repository."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from movies_crud.adapters.supabase_errors import translated_errors
from movies_crud.adapters.supabase_rows import owner_username, parse_timestamp
from movies_crud.domain.errors import BackendError, NotFoundError
from movies_crud.domain.playlists import Playlist
from movies_crud.services.playlists import PlaylistRepository

_COLUMNS = "*, profiles:user_id ( username )"


@dataclass
class SupabasePlaylistRepository(PlaylistRepository):
    """Supabase implementation for playlists and the playlist_movies join table."""

    client: Client

    def create_playlist(self, owner_id: UUID, payload: dict[str, object]) -> Playlist:
        """Create a playlist row and return it."""
        with translated_errors():
            response = (
                self.client.table("playlists")
                .insert({**payload, "user_id": str(owner_id)})
                .execute()
            )
        if not response.data:
            raise BackendError("Failed to create playlist")
        return _parse_playlist(response.data[0])

    def get_playlist(self, playlist_id: UUID) -> Playlist | None:
        """Return a playlist with its owner's username, if present."""
        with translated_errors():
            response = (
                self.client.table("playlists")
                .select(_COLUMNS)
                .eq("id", str(playlist_id))
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_playlist(response.data[0])

    def update_playlist(
        self, playlist_id: UUID, payload: dict[str, object]
    ) -> Playlist:
        """Update a playlist row; the owner column is never rewritten."""
        changes = {key: value for key, value in payload.items() if key != "user_id"}
        with translated_errors():
            response = (
                self.client.table("playlists")
                .update(changes)
                .eq("id", str(playlist_id))
                .execute()
            )
        if not response.data:
            raise NotFoundError("Playlist not found")
        return _parse_playlist(response.data[0])

    def delete_playlist(self, playlist_id: UUID) -> None:
        """Delete a playlist; memberships cascade in the database."""
        with translated_errors():
            self.client.table("playlists").delete().eq("id", str(playlist_id)).execute()

    def list_user_playlists(self, owner_id: UUID) -> list[Playlist]:
        """Return the owner's playlists, newest first."""
        with translated_errors():
            response = (
                self.client.table("playlists")
                .select("*")
                .eq("user_id", str(owner_id))
                .order("created_at", desc=True)
                .execute()
            )
        return [_parse_playlist(row) for row in response.data or []]

    def has_movie(self, playlist_id: UUID, movie_id: UUID) -> bool:
        """Return whether the membership pair exists."""
        with translated_errors():
            response = (
                self.client.table("playlist_movies")
                .select("movie_id")
                .eq("playlist_id", str(playlist_id))
                .eq("movie_id", str(movie_id))
                .limit(1)
                .execute()
            )
        return bool(response.data)

    def add_movie(self, playlist_id: UUID, movie_id: UUID) -> None:
        """Insert a membership row."""
        with translated_errors():
            self.client.table("playlist_movies").insert(
                {"playlist_id": str(playlist_id), "movie_id": str(movie_id)}
            ).execute()

    def remove_movie(self, playlist_id: UUID, movie_id: UUID) -> None:
        """Delete a membership row if present."""
        with translated_errors():
            self.client.table("playlist_movies").delete().eq(
                "playlist_id", str(playlist_id)
            ).eq("movie_id", str(movie_id)).execute()

    def list_movie_ids(self, playlist_id: UUID) -> list[UUID]:
        """Return member movie ids in insertion order."""
        with translated_errors():
            response = (
                self.client.table("playlist_movies")
                .select("movie_id")
                .eq("playlist_id", str(playlist_id))
                .order("created_at")
                .execute()
            )
        return [UUID(str(row["movie_id"])) for row in response.data or []]

    def list_playlists_containing(self, movie_id: UUID, owner_id: UUID) -> list[UUID]:
        """Return ids of the owner's playlists holding the movie."""
        with translated_errors():
            response = (
                self.client.table("playlist_movies")
                .select("playlist_id, playlists!inner ( id, user_id )")
                .eq("movie_id", str(movie_id))
                .eq("playlists.user_id", str(owner_id))
                .execute()
            )
        return [UUID(str(row["playlist_id"])) for row in response.data or []]


def _parse_playlist(row: dict[str, object]) -> Playlist:
    """Parse a playlist row into a domain model."""
    return Playlist(
        id=UUID(str(row["id"])),
        owner_id=UUID(str(row["user_id"])),
        title=str(row.get("title", "")),
        is_public=bool(row.get("is_public", False)),
        description=row.get("description"),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
        owner_username=owner_username(row),
    )
