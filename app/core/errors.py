"""Application-level exception types.

This module defines domain errors used across services and routes, enabling
consistent error handling, logging, and API responses.

Rate limit denials are not application errors: ``RateLimitExceededError``
only carries the limiter verdict to its dedicated 429 handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict

from app.adapters.rate_limit.base import RateLimitResult


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    filename: str
    field: str
    errors: list[dict[str, Any]]
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


class NotFoundAppError(AppError):
    """Raised when a stored resource does not exist."""


class StorageAppError(AppError):
    """Raised when reading or writing the tab store fails."""


class RateLimitExceededError(Exception):
    """Raised by tier dependencies when a client has used up its window."""

    def __init__(self, tier: str, result: RateLimitResult) -> None:
        super().__init__(f"Rate limit exceeded on tier '{tier}'")
        self.tier = tier
        self.result = result
