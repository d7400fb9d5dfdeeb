"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    endpoint: str
    limit: int
    reset_ms: int
    retry_after: int
    allowed_values: list[str]
    fields: list[dict[str, str]]


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
    """Raised when request input fails validation (HTTP 422)."""


class NotFoundAppError(AppError):
    """Raised when a requested resource does not exist."""


@dataclass
class RateLimitAppError(AppError):
    """Raised when a caller exhausts its rate limit window.

    Attributes:
        headers: Response headers (Retry-After, X-RateLimit-*) for the 429.
    """

    headers: dict[str, str] = field(default_factory=dict)
