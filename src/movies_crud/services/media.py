"""Image validation and storage for portraits and avatars."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from movies_crud.domain.errors import BackendError, ErrorKind, ValidationError

ALLOWED_IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})

_CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}

_logger = logging.getLogger(__name__)


class StorageGateway(Protocol):
    """Object storage interface."""

    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> None:
        """Upload an object, replacing any existing one at the path."""

    def get_public_url(self, bucket: str, path: str) -> str:
        """Return the public URL for an object."""

    def remove(self, bucket: str, paths: list[str]) -> None:
        """Remove objects from a bucket."""


@dataclass(frozen=True)
class UploadResult:
    """Outcome of an image upload."""

    success: bool
    url: str | None = None
    path: str | None = None
    error: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def from_exception(cls, exc: BackendError) -> "UploadResult":
        return cls(success=False, error=exc.kind, message=exc.message)


def validate_image(filename: str, size: int, max_bytes: int) -> str:
    """Return the normalised extension or raise ValidationError."""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError("File type not allowed. Use JPG, PNG, GIF or WebP.")
    if size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise ValidationError(f"File is too large. Maximum {limit_mb:g}MB.")
    return extension


def object_path_from_url(url: str) -> str:
    """Extract the object path from a public storage URL."""
    return url.rstrip("/").rsplit("/", 1)[-1].split("?", 1)[0]


@dataclass
class ImageStore:
    """Uploads validated images into one bucket."""

    storage: StorageGateway
    bucket: str
    max_bytes: int

    def upload(
        self, prefix: str, owner_id: UUID, filename: str, content: bytes
    ) -> UploadResult:
        """Validate and upload an image, returning its public URL."""
        extension = validate_image(filename, len(content), self.max_bytes)
        stamp = int(datetime.now(tz=UTC).timestamp() * 1000)
        path = f"{prefix}_{owner_id}_{stamp}.{extension}"
        self.storage.upload(self.bucket, path, content, _CONTENT_TYPES[extension])
        url = self.storage.get_public_url(self.bucket, path)
        return UploadResult(success=True, url=url, path=path)

    def remove_url(self, url: str) -> bool:
        """Best-effort removal of an object referenced by URL."""
        path = object_path_from_url(url)
        try:
            self.storage.remove(self.bucket, [path])
        except BackendError as exc:
            _logger.warning("Failed to remove %s/%s: %s", self.bucket, path, exc)
            return False
        return True
