"""Request dependencies shared by the routers."""

from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from movies_crud.containers import AppContainer


def get_container(request: Request) -> AppContainer:
    """Return the container attached to the app."""
    return request.app.state.container


def current_viewer(container: AppContainer = Depends(get_container)) -> UUID | None:
    """Return the signed-in identity id, if any."""
    return container.session_store.identity_id


def require_identity(viewer: UUID | None = Depends(current_viewer)) -> UUID:
    """Reject anonymous callers."""
    if viewer is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "unauthenticated", "message": "Sign in required"},
        )
    return viewer
