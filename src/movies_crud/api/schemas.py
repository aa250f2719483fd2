"""Pydantic request models for the local API."""

from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class SignInRequest(BaseModel):
    """Credentials; `identifier` is an email or a username."""

    identifier: str
    password: str


class SignUpRequest(BaseModel):
    """Registration payload."""

    email: str
    password: str
    username: str


class PasswordResetRequest(BaseModel):
    """Password reset payload."""

    email: str


class PasswordUpdateRequest(BaseModel):
    """New password for the signed-in identity."""

    password: str


class MovieForm(BaseModel):
    """Movie fields; only the fields that are sent are applied on update."""

    title: str | None = None
    year: int | None = None
    director: str | None = None
    duration: int | None = None
    score: float | None = None
    short_desc: str | None = None
    cast: list[str] | str | None = None
    genres: list[str] | str | None = None


class PlaylistForm(BaseModel):
    """Playlist fields; only the fields that are sent are applied on update."""

    title: str | None = None
    description: str | None = None
    is_public: bool | None = None


class PlaylistMoviesRequest(BaseModel):
    """Either one movie or a batch of movies to add."""

    movie_id: UUID | None = None
    movie_ids: list[UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_target(self) -> "PlaylistMoviesRequest":
        if (self.movie_id is None) == (not self.movie_ids):
            raise ValueError("Send either movie_id or movie_ids")
        return self
