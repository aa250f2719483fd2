"""Authentication and account endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends

from movies_crud.api.dependencies import get_container, require_identity
from movies_crud.api.errors import ensure_success
from movies_crud.api.schemas import (
    PasswordResetRequest,
    PasswordUpdateRequest,
    SignInRequest,
    SignUpRequest,
)
from movies_crud.containers import AppContainer

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-in")
def sign_in(
    payload: SignInRequest, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    """Sign in with an email or username."""
    result = container.account_service.sign_in(payload.identifier, payload.password)
    ensure_success(result)
    return {"identity": result.identity}


@router.post("/sign-up", status_code=201)
def sign_up(
    payload: SignUpRequest, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    """Register a new account."""
    result = container.account_service.sign_up(
        payload.email, payload.password, payload.username
    )
    ensure_success(result)
    return {
        "identity": result.identity,
        "confirmation_required": result.session is None,
    }


@router.post("/sign-out")
def sign_out(container: AppContainer = Depends(get_container)) -> dict[str, str]:
    """End the current session."""
    ensure_success(container.account_service.sign_out())
    return {"status": "ok"}


@router.post("/password-reset")
def password_reset(
    payload: PasswordResetRequest, container: AppContainer = Depends(get_container)
) -> dict[str, str]:
    """Send a password reset link."""
    ensure_success(container.account_service.request_password_reset(payload.email))
    return {"status": "ok"}


@router.put("/password", dependencies=[Depends(require_identity)])
def update_password(
    payload: PasswordUpdateRequest, container: AppContainer = Depends(get_container)
) -> dict[str, str]:
    """Change the signed-in identity's password."""
    ensure_success(container.account_service.update_password(payload.password))
    return {"status": "ok"}


@router.delete("/account")
def delete_account(
    identity_id: UUID = Depends(require_identity),
    container: AppContainer = Depends(get_container),
) -> dict[str, str]:
    """Delete the signed-in identity's movies and profile, then sign out."""
    ensure_success(container.account_service.delete_account(identity_id))
    return {"status": "ok"}


@router.get("/username-available")
def username_available(
    username: str, container: AppContainer = Depends(get_container)
) -> dict[str, bool]:
    """Return whether a username is free."""
    return {"available": container.profile_service.is_username_available(username)}
