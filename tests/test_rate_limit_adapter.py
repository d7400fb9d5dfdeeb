"""Unit tests for the in-memory rate limit store."""

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.base import RateLimitConfig
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore

LOGIN = RateLimitConfig(max_requests=5, window_ms=60_000)


def test_allows_up_to_limit_then_blocks(store: InMemoryRateLimitStore) -> None:
    results = [store.check("ip1", "login", LOGIN) for _ in range(5)]

    assert [r.allowed for r in results] == [True] * 5
    assert [r.remaining for r in results] == [4, 3, 2, 1, 0]

    blocked = store.check("ip1", "login", LOGIN)
    assert blocked.allowed is False
    assert blocked.remaining == 0


def test_first_request_reports_full_window(store: InMemoryRateLimitStore, clock: Mock) -> None:
    result = store.check("ip1", "login", LOGIN)

    assert result.limit == 5
    assert result.reset_ms == 60_000
    assert result.reset_time == datetime.fromtimestamp(
        (clock.return_value + 60_000) / 1000, tz=timezone.utc
    )


def test_reset_ms_counts_down_within_window(store: InMemoryRateLimitStore, clock: Mock) -> None:
    store.check("ip1", "login", LOGIN)
    clock.return_value += 15_000

    result = store.check("ip1", "login", LOGIN)

    assert result.reset_ms == 45_000
    assert result.retry_after_seconds == 45


def test_window_resets_after_expiry(store: InMemoryRateLimitStore, clock: Mock) -> None:
    for _ in range(6):
        store.check("ip1", "login", LOGIN)

    # Still inside the window at exactly reset time
    clock.return_value += 60_000
    assert store.check("ip1", "login", LOGIN).allowed is False

    clock.return_value += 1
    result = store.check("ip1", "login", LOGIN)
    assert result.allowed is True
    assert result.remaining == LOGIN.max_requests - 1
    assert result.reset_ms == LOGIN.window_ms


def test_endpoints_are_independent(store: InMemoryRateLimitStore) -> None:
    config = RateLimitConfig(max_requests=1, window_ms=60_000)

    assert store.check("ip1", "login", config).allowed is True
    assert store.check("ip1", "login", config).allowed is False

    assert store.check("ip1", "register", config).allowed is True
    assert store.check("ip2", "login", config).allowed is True


def test_blocked_requests_keep_counting(store: InMemoryRateLimitStore) -> None:
    config = RateLimitConfig(max_requests=1, window_ms=60_000)
    store.check("ip1", "login", config)
    store.check("ip1", "login", config)
    store.check("ip1", "login", config)

    info = store.get_info("ip1", "login", config)
    assert info is not None
    assert info.remaining == 0
    assert info.allowed is False


class TestGetInfo:
    def test_returns_none_without_window(self, store: InMemoryRateLimitStore) -> None:
        assert store.get_info("ip1", "login", LOGIN) is None

    def test_does_not_consume_quota(self, store: InMemoryRateLimitStore) -> None:
        store.check("ip1", "login", LOGIN)

        infos = [store.get_info("ip1", "login", LOGIN) for _ in range(10)]

        assert all(info is not None and info.remaining == 4 for info in infos)
        assert store.check("ip1", "login", LOGIN).remaining == 3

    def test_reports_whether_next_request_fits(self, store: InMemoryRateLimitStore) -> None:
        for _ in range(4):
            store.check("ip1", "login", LOGIN)
        assert store.get_info("ip1", "login", LOGIN).allowed is True

        store.check("ip1", "login", LOGIN)
        info = store.get_info("ip1", "login", LOGIN)
        assert info.allowed is False
        assert info.remaining == 0

    def test_returns_none_after_expiry(self, store: InMemoryRateLimitStore, clock: Mock) -> None:
        store.check("ip1", "login", LOGIN)
        clock.return_value += LOGIN.window_ms + 1

        assert store.get_info("ip1", "login", LOGIN) is None


def test_reset_clears_single_entry(store: InMemoryRateLimitStore) -> None:
    config = RateLimitConfig(max_requests=1, window_ms=60_000)
    store.check("ip1", "login", config)
    store.check("ip1", "register", config)

    store.reset("ip1", "login")

    assert store.check("ip1", "login", config).allowed is True
    assert store.check("ip1", "register", config).allowed is False
    # Resetting an unknown key is a no-op
    store.reset("nobody", "login")


def test_clear_all_empties_store(store: InMemoryRateLimitStore) -> None:
    store.check("ip1", "login", LOGIN)
    store.check("ip2", "register", LOGIN)

    store.clear_all()

    assert len(store) == 0


def test_sweep_removes_only_expired_entries(store: InMemoryRateLimitStore, clock: Mock) -> None:
    short = RateLimitConfig(max_requests=5, window_ms=1_000)
    store.check("ip1", "login", short)
    store.check("ip2", "login", LOGIN)

    clock.return_value += 1_001

    assert store.sweep() == 1
    assert len(store) == 1
    assert store.get_info("ip2", "login", LOGIN) is not None


class TestLifecycle:
    def test_context_manager_starts_and_stops_sweeper(self, clock: Mock) -> None:
        with InMemoryRateLimitStore(clock=clock) as store:
            assert store.running is True

        assert store.running is False

    def test_start_is_idempotent_and_close_is_safe(self, clock: Mock) -> None:
        store = InMemoryRateLimitStore(clock=clock)
        store.close()

        store.start()
        store.start()
        assert store.running is True

        store.close()
        store.close()
        assert store.running is False

    def test_background_sweep_reclaims_expired_entries(self, clock: Mock) -> None:
        store = InMemoryRateLimitStore(cleanup_interval_seconds=0.01, clock=clock)
        store.check("ip1", "login", RateLimitConfig(max_requests=1, window_ms=10))
        clock.return_value += 11

        with store:
            for _ in range(200):
                if len(store) == 0:
                    break
                time.sleep(0.01)

        assert len(store) == 0

    def test_instances_do_not_share_state(self, clock: Mock) -> None:
        first = InMemoryRateLimitStore(clock=clock)
        second = InMemoryRateLimitStore(clock=clock)

        first.check("ip1", "login", LOGIN)

        assert second.get_info("ip1", "login", LOGIN) is None


def test_concurrent_checks_allow_exactly_the_limit(store: InMemoryRateLimitStore) -> None:
    config = RateLimitConfig(max_requests=50, window_ms=60_000)

    with ThreadPoolExecutor(max_workers=32) as pool:
        results = list(pool.map(lambda _: store.check("ip1", "login", config), range(2000)))

    assert sum(r.allowed for r in results) == config.max_requests
    assert sorted(r.remaining for r in results if r.allowed) == list(range(config.max_requests))
    info = store.get_info("ip1", "login", config)
    assert info is not None and info.remaining == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_requests": 0, "window_ms": 60_000},
        {"max_requests": -1, "window_ms": 60_000},
        {"max_requests": 5, "window_ms": 0},
    ],
)
def test_invalid_config_is_rejected(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimitConfig(**kwargs)


def test_invalid_cleanup_interval_is_rejected() -> None:
    with pytest.raises(ValueError):
        InMemoryRateLimitStore(cleanup_interval_seconds=0)
