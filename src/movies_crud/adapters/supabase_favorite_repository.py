"""Supabase-backed favorites repository."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from movies_crud.adapters.supabase_errors import translated_errors
from movies_crud.services.favorites import FavoriteRepository


@dataclass
class SupabaseFavoriteRepository(FavoriteRepository):
    """Supabase implementation for user favorites."""

    client: Client

    def toggle(self, identity_id: UUID, movie_id: UUID) -> bool:
        """Flip the pair with the `toggle_favorite` function.

        The function resolves the identity from the request's JWT, so
        `identity_id` must be the signed-in identity.
        """
        with translated_errors():
            response = self.client.rpc(
                "toggle_favorite", {"movie_uuid": str(movie_id)}
            ).execute()
        return bool(response.data)

    def is_favorited(self, identity_id: UUID, movie_id: UUID) -> bool:
        """Return whether the pair exists."""
        with translated_errors():
            response = (
                self.client.table("user_favorites")
                .select("id")
                .eq("user_id", str(identity_id))
                .eq("movie_id", str(movie_id))
                .limit(1)
                .execute()
            )
        return bool(response.data)

    def list_movie_ids(self, identity_id: UUID) -> list[UUID]:
        """Return favorited movie ids, newest first."""
        with translated_errors():
            response = (
                self.client.table("user_favorites")
                .select("movie_id")
                .eq("user_id", str(identity_id))
                .order("created_at", desc=True)
                .execute()
            )
        return [UUID(str(row["movie_id"])) for row in response.data or []]
