"""Mapping of service results to HTTP errors."""

from typing import NoReturn, Protocol

from fastapi import HTTPException

from movies_crud.domain.errors import ErrorKind

_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.ALREADY_MEMBER: 409,
    ErrorKind.VALIDATION: 422,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.TRANSIENT: 503,
    ErrorKind.BACKEND: 502,
}


class ServiceResult(Protocol):
    success: bool
    error: ErrorKind | None
    message: str | None


def status_for(error: ErrorKind | None) -> int:
    """Return the HTTP status for an error kind."""
    if error is None:
        return 500
    return _STATUS_BY_KIND.get(error, 500)


def raise_for_failure(
    error: ErrorKind | None, message: str | None, **extra: object
) -> NoReturn:
    """Raise an HTTPException describing a failed operation."""
    raise HTTPException(
        status_code=status_for(error),
        detail={"error": str(error) if error else None, "message": message, **extra},
    )


def ensure_success(result: ServiceResult) -> None:
    """Raise unless the result succeeded."""
    if not result.success:
        raise_for_failure(result.error, result.message)
