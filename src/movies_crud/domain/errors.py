"""Error taxonomy and result values shared by the services."""

from dataclasses import dataclass
from enum import StrEnum


class ErrorKind(StrEnum):
    """Caller-visible failure categories."""

    TRANSIENT = "transient"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    ALREADY_EXISTS = "already_exists"
    ALREADY_MEMBER = "already_member"
    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    BACKEND = "backend"


class BackendError(Exception):
    """Base class for errors raised by adapters and validators."""

    kind: ErrorKind = ErrorKind.BACKEND

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class TransientBackendError(BackendError):
    """Network or timeout failure; safe to retry."""

    kind = ErrorKind.TRANSIENT


class NotFoundError(BackendError):
    """Requested row does not exist or is hidden."""

    kind = ErrorKind.NOT_FOUND


class ForbiddenError(BackendError):
    """Ownership or visibility violation."""

    kind = ErrorKind.FORBIDDEN


class AlreadyExistsError(BackendError):
    """Unique constraint violation."""

    kind = ErrorKind.ALREADY_EXISTS


class ValidationError(BackendError):
    """Malformed input caught before any backend call."""

    kind = ErrorKind.VALIDATION


class UnauthenticatedError(BackendError):
    """Operation requires a signed-in identity."""

    kind = ErrorKind.UNAUTHENTICATED


@dataclass(frozen=True)
class OperationResult:
    """Success flag with an optional error."""

    success: bool
    error: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def ok(cls) -> "OperationResult":
        return cls(success=True)

    @classmethod
    def failure(cls, error: ErrorKind, message: str | None = None) -> "OperationResult":
        return cls(success=False, error=error, message=message)

    @classmethod
    def from_exception(cls, exc: BackendError) -> "OperationResult":
        return cls(success=False, error=exc.kind, message=exc.message)
