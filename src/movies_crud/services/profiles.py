"""Profile provisioning and maintenance."""

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from movies_crud.domain.errors import (
    AlreadyExistsError,
    BackendError,
    ErrorKind,
    NotFoundError,
    ValidationError,
)
from movies_crud.domain.models import Identity, Profile
from movies_crud.services.media import ImageStore, UploadResult

USERNAME_MIN_LENGTH = 3
_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
_USERNAME_STRIP = re.compile(r"[^A-Za-z0-9_]")

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileResult:
    """A single profile or an error."""

    success: bool
    profile: Profile | None = None
    error: ErrorKind | None = None
    message: str | None = None


class ProfileRepository(Protocol):
    """Persistence interface for profiles."""

    def get_profile(self, identity_id: UUID) -> Profile | None:
        """Return the profile for an identity, if present."""

    def get_by_username(self, username: str) -> Profile | None:
        """Return the profile holding a username, if any."""

    def create_profile(self, identity_id: UUID, username: str) -> Profile:
        """Create and return a profile."""

    def update_avatar_url(self, identity_id: UUID, avatar_url: str | None) -> Profile:
        """Point the profile at a new avatar."""

    def delete_profile(self, identity_id: UUID) -> None:
        """Delete a profile."""

    def find_email(self, identifier: str) -> str | None:
        """Resolve a username or email to the account email."""


def validate_username(username: str) -> str:
    """Return the trimmed username or raise ValidationError."""
    cleaned = username.strip()
    if not cleaned:
        raise ValidationError("Username is required")
    if len(cleaned) < USERNAME_MIN_LENGTH:
        raise ValidationError(
            f"Username must be at least {USERNAME_MIN_LENGTH} characters"
        )
    if not _USERNAME_PATTERN.match(cleaned):
        raise ValidationError(
            "Username may only contain letters, numbers and underscores"
        )
    return cleaned


@dataclass
class ProfileService:
    """Application service for profiles."""

    repository: ProfileRepository
    avatars: ImageStore
    on_profile_changed: Callable[[UUID], None] | None = None

    async def ensure_profile(self, identity: Identity) -> Profile:
        """Fetch the profile, creating it the first time an identity is seen."""
        return await asyncio.to_thread(self.get_or_create, identity)

    def get_or_create(self, identity: Identity) -> Profile:
        """Synchronous fetch-or-create."""
        existing = self.repository.get_profile(identity.id)
        if existing:
            return existing

        username = self._free_username(_username_seed(identity))
        _logger.info("Provisioning profile %s for %s", username, identity.id)
        try:
            return self.repository.create_profile(identity.id, username)
        except AlreadyExistsError:
            # Another client created it between our read and write.
            existing = self.repository.get_profile(identity.id)
            if existing:
                return existing
            raise

    def get_profile(self, identity_id: UUID) -> ProfileResult:
        """Return the profile for an identity."""
        try:
            profile = self.repository.get_profile(identity_id)
        except BackendError as exc:
            return ProfileResult(success=False, error=exc.kind, message=exc.message)
        if profile is None:
            return ProfileResult(
                success=False, error=ErrorKind.NOT_FOUND, message="Profile not found"
            )
        return ProfileResult(success=True, profile=profile)

    def is_username_available(self, username: str) -> bool:
        """Return whether no profile holds the username."""
        return self.repository.get_by_username(username.strip()) is None

    def update_avatar(
        self, identity_id: UUID, filename: str, content: bytes
    ) -> UploadResult:
        """Upload a new avatar, swap the pointer, then drop the old object."""
        uploaded: UploadResult | None = None
        try:
            current = self.repository.get_profile(identity_id)
            if current is None:
                raise NotFoundError("Profile not found")
            uploaded = self.avatars.upload("avatar", identity_id, filename, content)
            self.repository.update_avatar_url(identity_id, uploaded.url)
        except BackendError as exc:
            _logger.warning("Avatar update failed for %s: %s", identity_id, exc)
            if uploaded is not None and uploaded.url:
                self.avatars.remove_url(uploaded.url)
            return UploadResult.from_exception(exc)
        if current.avatar_url:
            self.avatars.remove_url(current.avatar_url)
        self._notify(identity_id)
        return uploaded

    def _free_username(self, seed: str) -> str:
        candidate = seed
        suffix = 1
        while self.repository.get_by_username(candidate) is not None:
            suffix += 1
            candidate = f"{seed}{suffix}"
        return candidate

    def _notify(self, identity_id: UUID) -> None:
        if self.on_profile_changed is not None:
            self.on_profile_changed(identity_id)


def _username_seed(identity: Identity) -> str:
    """Pick a username from signup metadata or the email local part."""
    metadata = identity.metadata or {}
    raw = metadata.get("username")
    if not isinstance(raw, str) or not raw.strip():
        raw = (identity.email or "").split("@", 1)[0]
    seed = _USERNAME_STRIP.sub("", raw.strip())
    if len(seed) < USERNAME_MIN_LENGTH:
        seed = f"user_{identity.id.hex[:8]}"
    return seed
