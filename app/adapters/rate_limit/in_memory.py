"""In-memory fixed-window rate limit store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit,
  and every restart forgets all windows. Multi-replica deployments need a
  shared store behind AbstractRateLimitStore.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from app.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitConfig,
    RateLimitResult,
    build_key,
)

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_INTERVAL_SECONDS = 10 * 60


def _now_ms() -> int:
    return int(time.time() * 1000)


def _to_datetime(epoch_ms: int) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)


@dataclass
class _WindowState:
    count: int
    reset_time: int


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Fixed-window counters per ``identifier:endpoint`` key.

    A window opens on the first request for a key and lasts ``window_ms``.
    Requests inside the window increment the counter; the first request
    after the window ends opens a fresh one with no penalty carried over.

    Expired windows are reclaimed by ``sweep()``, which a daemon thread runs
    every ``cleanup_interval_seconds`` once ``start()`` is called. Use the
    store as a context manager (or call ``close()``) to stop that thread.
    """

    def __init__(
        self,
        *,
        cleanup_interval_seconds: float = DEFAULT_CLEANUP_INTERVAL_SECONDS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """Initialize the store.

        Args:
            cleanup_interval_seconds: Delay between background sweeps.
            clock: Time source returning UNIX time in milliseconds.

        Raises:
            ValueError: If cleanup_interval_seconds is not positive.
        """
        if cleanup_interval_seconds <= 0:
            raise ValueError("cleanup_interval_seconds must be > 0")

        self._cleanup_interval = cleanup_interval_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}
        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

    def __enter__(self) -> "InMemoryRateLimitStore":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    @property
    def running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start(self) -> None:
        """Start the background sweeper. Calling it twice is harmless."""
        with self._lock:
            if self.running:
                return
            self._stop_event.clear()
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                name="rate-limit-sweeper",
                daemon=True,
            )
            self._sweeper.start()

        logger.debug(
            "rate_limit.sweeper_started",
            extra={"interval_s": self._cleanup_interval},
        )

    def close(self) -> None:
        """Stop the background sweeper, if running."""
        sweeper = self._sweeper
        if sweeper is None:
            return
        self._stop_event.set()
        sweeper.join(timeout=5)
        self._sweeper = None
        logger.debug("rate_limit.sweeper_stopped")

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self._cleanup_interval):
            self.sweep()

    def sweep(self) -> int:
        """Delete every window that has already ended.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, s in self._state_by_key.items() if s.reset_time < now]
            for key in expired:
                del self._state_by_key[key]
            remaining = len(self._state_by_key)

        if expired:
            logger.debug(
                "rate_limit.swept",
                extra={"removed": len(expired), "entries": remaining},
            )
        return len(expired)

    def _build_result(
        self,
        *,
        allowed: bool,
        config: RateLimitConfig,
        remaining: int,
        reset_time: int,
        now: int,
    ) -> RateLimitResult:
        return RateLimitResult(
            allowed=allowed,
            limit=config.max_requests,
            remaining=remaining,
            reset_ms=reset_time - now,
            reset_time=_to_datetime(reset_time),
        )

    def check(self, identifier: str, endpoint: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one request and report whether it fits in the window.

        Args:
            identifier: Caller identifier (e.g. client IP).
            endpoint: Logical endpoint name (e.g. "login").
            config: Limit to apply.

        Returns:
            RateLimitResult with allowance decision and metadata.
        """
        key = build_key(identifier, endpoint)
        now = self._clock()

        with self._lock:
            state = self._state_by_key.get(key)

            if state is None or now > state.reset_time:
                state = _WindowState(count=1, reset_time=now + config.window_ms)
                self._state_by_key[key] = state
                return self._build_result(
                    allowed=True,
                    config=config,
                    remaining=config.max_requests - 1,
                    reset_time=state.reset_time,
                    now=now,
                )

            state.count += 1
            return self._build_result(
                allowed=state.count <= config.max_requests,
                config=config,
                remaining=max(0, config.max_requests - state.count),
                reset_time=state.reset_time,
                now=now,
            )

    def get_info(
        self, identifier: str, endpoint: str, config: RateLimitConfig
    ) -> RateLimitResult | None:
        """Peek at the current window without counting a request.

        ``allowed`` answers "would the next request be allowed", so it is
        false once the caller has used the whole budget.
        """
        key = build_key(identifier, endpoint)
        now = self._clock()

        with self._lock:
            state = self._state_by_key.get(key)
            if state is None or now > state.reset_time:
                return None
            count, reset_time = state.count, state.reset_time

        return self._build_result(
            allowed=count < config.max_requests,
            config=config,
            remaining=max(0, config.max_requests - count),
            reset_time=reset_time,
            now=now,
        )

    def reset(self, identifier: str, endpoint: str) -> None:
        with self._lock:
            self._state_by_key.pop(build_key(identifier, endpoint), None)

    def clear_all(self) -> None:
        with self._lock:
            self._state_by_key.clear()
