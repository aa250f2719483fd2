"""Domain model for playlists."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class Playlist:
    """A user-owned, optionally public, list of movies."""

    id: UUID
    owner_id: UUID
    title: str
    is_public: bool = False
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    owner_username: str | None = None

    def is_visible_to(self, viewer_id: UUID | None) -> bool:
        """Return whether the viewer may read this playlist."""
        return self.is_public or (viewer_id is not None and viewer_id == self.owner_id)

