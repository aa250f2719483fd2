"""Supabase Storage gateway."""

from dataclasses import dataclass

from supabase import Client

from movies_crud.adapters.supabase_errors import translated_errors
from movies_crud.services.media import StorageGateway


@dataclass
class SupabaseStorageGateway(StorageGateway):
    """Supabase implementation for bucket objects."""

    client: Client

    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> None:
        """Upload an object, overwriting any existing one."""
        with translated_errors():
            self.client.storage.from_(bucket).upload(
                path=path,
                file=content,
                file_options={
                    "content-type": content_type,
                    "cache-control": "3600",
                    "upsert": "true",
                },
            )

    def get_public_url(self, bucket: str, path: str) -> str:
        """Return the public URL for an object."""
        with translated_errors():
            return str(self.client.storage.from_(bucket).get_public_url(path))

    def remove(self, bucket: str, paths: list[str]) -> None:
        """Remove objects from a bucket."""
        with translated_errors():
            self.client.storage.from_(bucket).remove(paths)
