"""Movie catalog and favorites endpoints."""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, UploadFile

from movies_crud.api.dependencies import current_viewer, get_container, require_identity
from movies_crud.api.errors import ensure_success
from movies_crud.api.schemas import MovieForm
from movies_crud.containers import AppContainer
from movies_crud.domain.movies import SearchFilters

router = APIRouter(tags=["movies"])


@router.get("/movies")
def list_movies(
    q: str = "",
    year_from: int | None = None,
    year_to: int | None = None,
    min_score: float | None = None,
    genres: str | None = None,
    sort_by: str = "title",
    sort_order: Literal["asc", "desc"] = "asc",
    viewer_id: UUID | None = Depends(current_viewer),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """List movies with optional search filters."""
    filters = SearchFilters(
        query=q,
        year_from=year_from,
        year_to=year_to,
        min_score=min_score,
        genres=tuple(g.strip() for g in (genres or "").split(",") if g.strip()),
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = container.movie_service.list_movies(viewer_id, filters)
    ensure_success(result)
    return {"movies": result.movies}


@router.post("/movies", status_code=201)
def create_movie(
    form: MovieForm,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Create a movie owned by the caller."""
    result = container.movie_service.create_movie(
        identity_id, form.model_dump(exclude_unset=True)
    )
    ensure_success(result)
    return {"movie": result.movie}


@router.get("/movies/{movie_id}")
def get_movie(
    movie_id: UUID,
    viewer_id: UUID | None = Depends(current_viewer),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return one movie."""
    result = container.movie_service.get_movie(movie_id, viewer_id)
    ensure_success(result)
    return {"movie": result.movie}


@router.patch("/movies/{movie_id}")
def update_movie(
    movie_id: UUID,
    form: MovieForm,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Update fields of an owned movie."""
    result = container.movie_service.update_movie(
        movie_id, identity_id, form.model_dump(exclude_unset=True)
    )
    ensure_success(result)
    return {"movie": result.movie}


@router.delete("/movies/{movie_id}")
def delete_movie(
    movie_id: UUID,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, str]:
    """Delete an owned movie with its favorites and memberships."""
    ensure_success(container.movie_service.delete_movie(movie_id, identity_id))
    return {"status": "ok"}


@router.post("/movies/{movie_id}/portrait")
def upload_portrait(
    movie_id: UUID,
    file: UploadFile,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Upload a portrait for an owned movie."""
    result = container.movie_service.upload_portrait(
        movie_id, identity_id, file.filename or "", file.file.read()
    )
    ensure_success(result)
    return {"movie_id": movie_id, "portrait_url": result.url}


@router.post("/movies/{movie_id}/favorite")
def toggle_favorite(
    movie_id: UUID,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Flip the caller's favorite flag for a movie."""
    result = container.favorites_service.toggle(identity_id, movie_id)
    ensure_success(result)
    return {"movie_id": movie_id, "is_favorited": result.is_favorited}


@router.get("/movies/{movie_id}/playlists")
def playlists_containing(
    movie_id: UUID,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return ids of the caller's playlists that already hold the movie."""
    playlist_ids = container.playlist_service.list_playlists_containing(
        movie_id, identity_id
    )
    return {"playlist_ids": playlist_ids}


@router.get("/favorites")
def list_favorites(
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return the caller's favorite movies."""
    result = container.favorites_service.list_favorites(identity_id)
    ensure_success(result)
    return {"movies": result.movies}
