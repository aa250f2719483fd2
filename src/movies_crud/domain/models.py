"""Domain models for identities, sessions and profiles."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class Identity:
    """Authenticated principal issued by the auth backend."""

    id: UUID
    email: str | None = None
    email_confirmed: bool = False
    metadata: dict[str, object] | None = field(default=None, hash=False)


@dataclass(frozen=True)
class AuthSession:
    """Token pair bound to an identity."""

    access_token: str
    refresh_token: str
    identity: Identity
    expires_at: datetime | None = None


@dataclass(frozen=True)
class Profile:
    """Application-level metadata attached 1:1 to an identity."""

    identity_id: UUID
    username: str
    avatar_url: str | None = None
