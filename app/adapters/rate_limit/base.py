"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so we can swap storage backends later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RateLimitConfig:
    """Limit applied to one endpoint.

    Attributes:
        max_requests: Maximum number of requests allowed per window.
        window_ms: Window length in milliseconds.

    Raises:
        ValueError: If either value is not a positive integer.
    """

    max_requests: int
    window_ms: int

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check or peek.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_ms: Milliseconds until the current window ends.
        reset_time: Absolute (UTC) time when the current window ends.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_ms: int
    reset_time: datetime

    @property
    def retry_after_seconds(self) -> int:
        """Whole seconds a blocked caller should wait (rounded up)."""
        return max(0, math.ceil(self.reset_ms / 1000))


class AbstractRateLimitStore(ABC):
    """Interface for rate limit stores.

    Keys are composed from ``identifier`` (e.g. client IP) and ``endpoint``
    (e.g. ``"login"``), so the same caller has independent budgets per
    endpoint.
    """

    @abstractmethod
    def check(self, identifier: str, endpoint: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one request against the caller's budget.

        Args:
            identifier: Unique caller identifier (IP address, user id).
            endpoint: Logical endpoint name.
            config: Limit to apply.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def get_info(
        self, identifier: str, endpoint: str, config: RateLimitConfig
    ) -> RateLimitResult | None:
        """Report the caller's quota without consuming it.

        Returns:
            RateLimitResult, or None when no window is currently open.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, identifier: str, endpoint: str) -> None:
        """Forget the window for one caller/endpoint pair."""
        raise NotImplementedError

    @abstractmethod
    def clear_all(self) -> None:
        """Forget every window."""
        raise NotImplementedError

    def start(self) -> None:
        """Start background housekeeping. No-op by default."""

    def close(self) -> None:
        """Release background resources. No-op by default."""


def build_key(identifier: str, endpoint: str) -> str:
    """Compose the storage key for an identifier/endpoint pair."""
    return f"{identifier}:{endpoint}"
