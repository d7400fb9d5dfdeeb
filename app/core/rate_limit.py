"""Rate limiting dependencies for FastAPI routes.

This module wires the rate limit store into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: the store lives on ``app.state`` behind
  AbstractRateLimitStore and can be replaced (e.g., Redis).
- Per-endpoint budgets: the same client gets independent limits for
  "login", "register", general API calls, etc.

Clients are identified by proxy headers (X-Forwarded-For, X-Real-IP,
CF-Connecting-IP), falling back to the socket peer address.
"""

from __future__ import annotations

import hashlib
import logging
import math
from typing import Awaitable, Callable, Mapping

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitConfig, RateLimitResult
from app.core.config import settings
from app.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

RATE_LIMITS: dict[str, RateLimitConfig] = {
    "login": RateLimitConfig(max_requests=5, window_ms=60 * 1000),
    "register": RateLimitConfig(max_requests=3, window_ms=60 * 1000),
    "password_reset": RateLimitConfig(max_requests=3, window_ms=60 * 60 * 1000),
    "api": RateLimitConfig(max_requests=100, window_ms=60 * 1000),
    "strict_api": RateLimitConfig(max_requests=10, window_ms=60 * 1000),
}


def get_client_identifier(headers: Mapping[str, str]) -> str:
    """Extract the client address from proxy headers.

    Args:
        headers: Request headers. Starlette headers are case-insensitive;
            plain dicts should use lower-case names.

    Returns:
        The first X-Forwarded-For entry, else X-Real-IP, else
        CF-Connecting-IP, else "unknown".

    Examples:
        >>> get_client_identifier({"x-forwarded-for": "203.0.113.7, 10.0.0.1"})
        '203.0.113.7'
        >>> get_client_identifier({})
        'unknown'
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        # A blank first hop (", 1.2.3.4") is not an address; fall through to
        # the other headers and finally "unknown" rather than keying on "".
        if first:
            return first

    for header in ("x-real-ip", "cf-connecting-ip"):
        value = headers.get(header)
        if value and value.strip():
            return value.strip()

    return UNKNOWN_CLIENT


def create_rate_limit_message(reset_ms: int) -> str:
    """Build the Spanish message returned with a 429.

    >>> create_rate_limit_message(30_000)
    'Demasiados intentos. Intenta de nuevo en 30 segundos.'
    >>> create_rate_limit_message(90_000)
    'Demasiados intentos. Intenta de nuevo en 2 minutos.'
    """
    seconds = math.ceil(reset_ms / 1000)

    if seconds < 60:
        suffix = "" if seconds == 1 else "s"
        return f"Demasiados intentos. Intenta de nuevo en {seconds} segundo{suffix}."

    minutes = math.ceil(seconds / 60)
    suffix = "" if minutes == 1 else "s"
    return f"Demasiados intentos. Intenta de nuevo en {minutes} minuto{suffix}."


def _hash_identifier(identifier: str) -> str:
    """Hash the client identifier for logging without exposing addresses."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def identify_client(request: Request) -> str:
    """Resolve the rate limit identifier for a request."""
    if settings.app.trust_proxy_headers:
        identifier = get_client_identifier(request.headers)
        if identifier != UNKNOWN_CLIENT:
            return identifier

    return request.client.host if request.client else UNKNOWN_CLIENT


def get_rate_limit_store(request: Request) -> AbstractRateLimitStore:
    """FastAPI dependency returning the store created by the app lifespan."""
    return request.app.state.rate_limit_store


def build_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Standard headers describing a caller's rate limit window."""
    return {
        "Retry-After": str(result.retry_after_seconds),
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(int(result.reset_time.timestamp())),
    }


def rate_limited(endpoint: str, config: RateLimitConfig) -> Callable[[Request], Awaitable[None]]:
    """Create a dependency enforcing ``config`` for ``endpoint``.

    Usage:
        @router.post("/login", dependencies=[Depends(rate_limited("login", RATE_LIMITS["login"]))])

    Args:
        endpoint: Logical endpoint name; budgets are tracked per name.
        config: Limit to apply.

    Returns:
        Async dependency raising RateLimitAppError (429) when exceeded.
    """

    async def enforce_rate_limit(request: Request) -> None:
        if not settings.app.rate_limit_enabled:
            return

        store = get_rate_limit_store(request)
        identifier = identify_client(request)
        result = store.check(identifier, endpoint, config)

        log_extra = {
            "endpoint": endpoint,
            "client_hash": _hash_identifier(identifier),
            "limit": result.limit,
            "remaining": result.remaining,
            "window_ms": config.window_ms,
        }

        if result.allowed:
            logger.debug("rate_limit.allowed", extra=log_extra)
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={**log_extra, "reset_ms": result.reset_ms},
        )

        headers = build_rate_limit_headers(result) if settings.app.rate_limit_include_headers else {}
        raise RateLimitAppError(
            code="rate_limit_exceeded",
            message=create_rate_limit_message(result.reset_ms),
            details={
                "endpoint": endpoint,
                "limit": result.limit,
                "reset_ms": result.reset_ms,
                "retry_after": result.retry_after_seconds,
            },
            headers=headers,
        )

    return enforce_rate_limit
