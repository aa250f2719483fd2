"""Helpers for parsing PostgREST rows."""

from datetime import datetime


def parse_timestamp(raw: object) -> datetime | None:
    """Parse an ISO timestamp column, tolerating nulls."""
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return None


def owner_username(row: dict[str, object]) -> str | None:
    """Return the username from an embedded `profiles` relation."""
    profile = row.get("profiles")
    if isinstance(profile, dict):
        username = profile.get("username")
        return str(username) if username else None
    return None
