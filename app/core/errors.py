"""Application-level exception types.

Domain errors shared by the store, the search adapter, the services and the
API layer. The exception handlers map each subclass to an HTTP status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    field: str
    min_value: int
    max_value: int
    actual_value: int
    http_status: int
    credential_id: str
    path: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundAppError(AppError):
    """Raised when a referenced record does not exist."""


class UpstreamAppError(AppError):
    """Raised by search adapters when a page fetch fails for any reason."""


class PersistenceAppError(AppError):
    """Raised when the durable copy of a store cannot be read or written."""
