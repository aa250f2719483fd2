"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

MIB = 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_anon_key: str
    portraits_bucket: str = "portraits"
    avatars_bucket: str = "avatars"
    max_portrait_bytes: int = 5 * MIB
    max_avatar_bytes: int = 2 * MIB
    profile_fetch_attempts: int = 3
    profile_fetch_timeout_seconds: float = 5.0
    profile_retry_base_delay_seconds: float = 0.3
    session_refetch_attempts: int = 3
    password_reset_redirect_url: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
