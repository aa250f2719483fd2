"""Playlist endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends

from movies_crud.api.dependencies import current_viewer, get_container, require_identity
from movies_crud.api.errors import ensure_success, raise_for_failure
from movies_crud.api.schemas import PlaylistForm, PlaylistMoviesRequest
from movies_crud.containers import AppContainer

router = APIRouter(prefix="/playlists", tags=["playlists"])


@router.get("")
def list_playlists(
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return the caller's playlists."""
    return {"playlists": container.playlist_service.list_user_playlists(identity_id)}


@router.post("", status_code=201)
def create_playlist(
    form: PlaylistForm,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Create a playlist owned by the caller."""
    result = container.playlist_service.create_playlist(
        identity_id, form.model_dump(exclude_unset=True)
    )
    ensure_success(result)
    return {"playlist": result.playlist}


@router.get("/{playlist_id}")
def get_playlist(
    playlist_id: UUID,
    viewer_id: UUID | None = Depends(current_viewer),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return a playlist visible to the caller."""
    result = container.playlist_service.get_playlist(playlist_id, viewer_id)
    ensure_success(result)
    return {"playlist": result.playlist}


@router.patch("/{playlist_id}")
def update_playlist(
    playlist_id: UUID,
    form: PlaylistForm,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Update fields of an owned playlist."""
    result = container.playlist_service.update_playlist(
        playlist_id, identity_id, form.model_dump(exclude_unset=True)
    )
    ensure_success(result)
    return {"playlist": result.playlist}


@router.delete("/{playlist_id}")
def delete_playlist(
    playlist_id: UUID,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, str]:
    """Delete an owned playlist; its movies are kept."""
    ensure_success(container.playlist_service.delete_playlist(playlist_id, identity_id))
    return {"status": "ok"}


@router.get("/{playlist_id}/movies")
def list_playlist_movies(
    playlist_id: UUID,
    viewer_id: UUID | None = Depends(current_viewer),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return a playlist's movies in the order they were added."""
    result = container.playlist_service.list_for_playlist(playlist_id, viewer_id)
    ensure_success(result)
    return {
        "playlist": result.playlist,
        "movies": result.movies,
        "is_owner": result.is_owner,
    }


@router.post("/{playlist_id}/movies", status_code=201)
def add_playlist_movies(
    playlist_id: UUID,
    payload: PlaylistMoviesRequest,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Add one movie, or a batch that stops at the first failure."""
    service = container.playlist_service
    if payload.movie_id is not None:
        ensure_success(
            service.add_movie(playlist_id, payload.movie_id, actor_id=identity_id)
        )
        return {"added": [payload.movie_id]}
    result = service.add_movies(playlist_id, payload.movie_ids, actor_id=identity_id)
    if not result.success:
        raise_for_failure(
            result.error,
            result.message,
            added=[str(movie_id) for movie_id in result.added],
            failed_movie_id=str(result.failed_movie_id),
        )
    return {"added": result.added}


@router.delete("/{playlist_id}/movies/{movie_id}")
def remove_playlist_movie(
    playlist_id: UUID,
    movie_id: UUID,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, str]:
    """Remove a movie from an owned playlist."""
    ensure_success(
        container.playlist_service.remove_movie(
            playlist_id, movie_id, actor_id=identity_id
        )
    )
    return {"status": "ok"}
