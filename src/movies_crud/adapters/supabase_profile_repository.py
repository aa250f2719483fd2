"""Supabase-backed profile repository."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from movies_crud.adapters.supabase_errors import translated_errors
from movies_crud.domain.errors import BackendError, NotFoundError
from movies_crud.domain.models import Profile
from movies_crud.services.profiles import ProfileRepository

_COLUMNS = "id, username, avatar_url"


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for profile persistence."""

    client: Client

    def get_profile(self, identity_id: UUID) -> Profile | None:
        """Return the profile for an identity, if present."""
        with translated_errors():
            response = (
                self.client.table("profiles")
                .select(_COLUMNS)
                .eq("id", str(identity_id))
                .limit(1)
                .execute()
            )
        if response.data:
            return _parse_profile(response.data[0])
        return None

    def get_by_username(self, username: str) -> Profile | None:
        """Return the profile holding a username, if any."""
        with translated_errors():
            response = (
                self.client.table("profiles")
                .select(_COLUMNS)
                .eq("username", username)
                .limit(1)
                .execute()
            )
        if response.data:
            return _parse_profile(response.data[0])
        return None

    def create_profile(self, identity_id: UUID, username: str) -> Profile:
        """Create a profile row and return it."""
        with translated_errors():
            response = (
                self.client.table("profiles")
                .insert({"id": str(identity_id), "username": username})
                .execute()
            )
        if not response.data:
            raise BackendError("Failed to create profile")
        return _parse_profile(response.data[0])

    def update_avatar_url(self, identity_id: UUID, avatar_url: str | None) -> Profile:
        """Point the profile at a new avatar URL."""
        with translated_errors():
            response = (
                self.client.table("profiles")
                .update({"avatar_url": avatar_url})
                .eq("id", str(identity_id))
                .execute()
            )
        if not response.data:
            raise NotFoundError("Profile not found")
        return _parse_profile(response.data[0])

    def delete_profile(self, identity_id: UUID) -> None:
        """Delete a profile row."""
        with translated_errors():
            self.client.table("profiles").delete().eq("id", str(identity_id)).execute()

    def find_email(self, identifier: str) -> str | None:
        """Resolve a username or email through the lookup function."""
        with translated_errors():
            response = self.client.rpc(
                "get_user_by_username_or_email", {"identifier": identifier}
            ).execute()
        rows = response.data or []
        if rows and isinstance(rows[0], dict) and rows[0].get("email"):
            return str(rows[0]["email"])
        return None


def _parse_profile(row: dict[str, object]) -> Profile:
    return Profile(
        identity_id=UUID(str(row["id"])),
        username=str(row.get("username", "")),
        avatar_url=row.get("avatar_url"),
    )
