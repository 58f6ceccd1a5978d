"""Application-level exception types.

Domain errors raised by validators and services, mapped to HTTP responses by
``app.core.exception_handlers``. Rate limit rejections are not errors: the
limiter returns a decision and the HTTP layer turns it into a 429.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    field: str
    max_length: int
    actual_length: int
    max_size: int
    actual_size: int
    allowed_types: list[str]
    errors: list[str]
    hint: str
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
    """Raised when request input fails validation."""
