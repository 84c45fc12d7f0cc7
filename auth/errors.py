"""
auth/errors.py -- Error taxonomy and Result type for the auth core.

Core operations (login, registration, principal lookup) return a Result
instead of raising. Callers branch on result.error.kind; the HTTP layer maps
each kind to a status code in one place (api/routes/v1/auth.py).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    DUPLICATE_IDENTITY = "duplicate_identity"
    AUTHENTICATION_FAILURE = "authentication_failure"
    TOKEN_INVALID = "token_invalid"
    CONFIGURATION = "configuration_error"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class AuthError:
    kind: ErrorKind
    message: str
    field: str | None = None  # which input conflicted, e.g. "username" or "email"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or an AuthError -- never both, never neither.

    Build with Result.success() / Result.failure() rather than the raw
    constructor.
    """

    value: T | None = None
    error: AuthError | None = None

    def __post_init__(self) -> None:
        if (self.value is None) == (self.error is None):
            raise ValueError("Result requires exactly one of value or error.")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, field: str | None = None) -> Result[T]:
        return cls(error=AuthError(kind=kind, message=message, field=field))

    def unwrap(self) -> T:
        """Return the value, or raise RuntimeError if this is a failure."""
        if self.error is not None:
            raise RuntimeError(f"unwrap() on failed Result: {self.error.kind.value}: {self.error.message}")
        return self.value  # type: ignore[return-value]
