"""Outcome values for fallible domain operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Why a domain operation did not succeed."""

    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    CONFLICT = "conflict"


@dataclass(frozen=True, slots=True)
class OperationResult(Generic[T]):
    """
    Result of an access-layer operation.

    Exactly one of ``value`` (on success) or ``error`` (on failure) is
    meaningful; ``message`` carries a human-readable reason for failures.
    """

    ok: bool
    value: T | None = None
    error: ErrorKind | None = None
    message: str = ""

    @classmethod
    def success(cls, value: T | None = None) -> "OperationResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "OperationResult[T]":
        return cls(ok=False, error=error, message=message)


def http_status_for_error(error: ErrorKind | None) -> int:
    """Map an error kind to an HTTP status code."""

    return {
        ErrorKind.NOT_FOUND: 404,
        ErrorKind.VALIDATION: 400,
        ErrorKind.AUTHENTICATION: 401,
        ErrorKind.PERMISSION: 403,
        ErrorKind.CONFLICT: 409,
    }.get(error, 400)


__all__ = [
    "ErrorKind",
    "OperationResult",
    "http_status_for_error",
]
