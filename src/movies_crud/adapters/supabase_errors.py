"""Translation of Supabase client exceptions into the error taxonomy."""

from collections.abc import Iterator
from contextlib import contextmanager

import httpx

from movies_crud.domain.errors import (
    AlreadyExistsError,
    BackendError,
    ForbiddenError,
    NotFoundError,
    TransientBackendError,
    UnauthenticatedError,
    ValidationError,
)

_NOT_FOUND_CODES = {"PGRST116", "23503", "user_not_found"}
_FORBIDDEN_CODES = {"42501"}
_DUPLICATE_CODES = {"23505", "user_already_exists", "email_exists"}
_UNAUTHENTICATED_CODES = {"PGRST301", "invalid_credentials", "session_not_found"}
_VALIDATION_CODES = {"22P02", "23502", "23514", "weak_password", "validation_failed"}


def translate_error(exc: Exception) -> BackendError:
    """Map a client exception to a BackendError subclass."""
    if isinstance(exc, BackendError):
        return exc
    message = str(getattr(exc, "message", None) or exc) or exc.__class__.__name__
    if isinstance(exc, httpx.TimeoutException | httpx.TransportError | TimeoutError):
        return TransientBackendError(message)
    if isinstance(exc, ConnectionError):
        return TransientBackendError(message)

    raw_code = getattr(exc, "code", None)
    code = str(raw_code) if raw_code is not None else None
    status = _status_from_exception(exc)
    lowered = message.lower()

    if code in _DUPLICATE_CODES:
        return AlreadyExistsError(message, code)
    if code in _NOT_FOUND_CODES:
        return NotFoundError(message, code)
    if code in _FORBIDDEN_CODES or "row-level security" in lowered:
        return ForbiddenError(message, code)
    if code in _UNAUTHENTICATED_CODES:
        return UnauthenticatedError(message, code)
    if code in _VALIDATION_CODES:
        return ValidationError(message, code)
    if status is not None:
        if status == 401:
            return UnauthenticatedError(message, code)
        if status == 403:
            return ForbiddenError(message, code)
        if status == 404:
            return NotFoundError(message, code)
        if status == 409:
            return AlreadyExistsError(message, code)
        if status in {400, 422}:
            return ValidationError(message, code)
        if status == 429 or status >= 500:
            return TransientBackendError(message, code)
    return BackendError(message, code)


@contextmanager
def translated_errors() -> Iterator[None]:
    """Re-raise client exceptions as BackendError subclasses."""
    try:
        yield
    except BackendError:
        raise
    except Exception as exc:
        raise translate_error(exc) from exc


def _status_from_exception(exc: Exception) -> int | None:
    """Extract an HTTP status from an exception, if available."""
    status = getattr(exc, "status", None)
    if isinstance(status, int):
        return status
    if isinstance(status, str) and status.isdigit():
        return int(status)
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None
