"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start with
an in-memory store and later migrate to Redis or another shared store without
changing the API layer.
"""

from app.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitConfig,
    RateLimitResult,
)
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore

__all__ = [
    "AbstractRateLimitStore",
    "InMemoryRateLimitStore",
    "RateLimitConfig",
    "RateLimitResult",
]
