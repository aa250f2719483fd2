"""Profile endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, UploadFile

from movies_crud.api.dependencies import get_container, require_identity
from movies_crud.api.errors import ensure_success
from movies_crud.containers import AppContainer

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
def get_profile(
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return the caller's profile."""
    result = container.profile_service.get_profile(identity_id)
    ensure_success(result)
    return {"profile": result.profile}


@router.put("/avatar")
def update_avatar(
    file: UploadFile,
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Replace the caller's avatar; the session profile reloads afterwards."""
    result = container.profile_service.update_avatar(
        identity_id, file.filename or "", file.file.read()
    )
    ensure_success(result)
    return {"avatar_url": result.url}
