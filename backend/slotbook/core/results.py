# backend/slotbook/core/results.py
"""
Explicit outcome values for booking operations.

Service methods return ``Result`` instead of raising for the outcomes a caller
is expected to handle (bad input, unknown ids, overlaps, illegal transitions,
wrong actor). The HTTP layer turns a failed result into an ``HTTPException``
with the same ``{message, code, details}`` body the rest of the API uses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from fastapi import HTTPException, status

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_STATE = "invalid_state"
    FORBIDDEN = "forbidden"


_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
}


@dataclass(frozen=True)
class ServiceError:
    """A business failure: what went wrong, for humans and for machines."""

    kind: ErrorKind
    message: str
    code: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def status_code(self) -> int:
        return _STATUS_BY_KIND[self.kind]

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )

    @classmethod
    def validation(
        cls, message: str, code: str = "VALIDATION_ERROR", **details: Any
    ) -> "ServiceError":
        return cls(ErrorKind.VALIDATION, message, code, details)

    @classmethod
    def not_found(cls, message: str, code: str = "NOT_FOUND", **details: Any) -> "ServiceError":
        return cls(ErrorKind.NOT_FOUND, message, code, details)

    @classmethod
    def conflict(
        cls, message: str, code: str = "BOOKING_CONFLICT", **details: Any
    ) -> "ServiceError":
        return cls(ErrorKind.CONFLICT, message, code, details)

    @classmethod
    def invalid_state(
        cls, message: str, code: str = "INVALID_STATE", **details: Any
    ) -> "ServiceError":
        return cls(ErrorKind.INVALID_STATE, message, code, details)

    @classmethod
    def forbidden(cls, message: str, code: str = "FORBIDDEN", **details: Any) -> "ServiceError":
        return cls(ErrorKind.FORBIDDEN, message, code, details)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a ``ServiceError``, never both."""

    value: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ServiceError) -> "Result[T]":
        return cls(error=error)

    def value_or_raise(self) -> T:
        """Return the value, or raise the HTTP form of the error (route helper)."""
        if self.error is not None:
            raise self.error.to_http_exception()
        return self.value  # type: ignore[return-value]
