"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any app import so that settings are
built for the testing environment.
"""

import os

# Must happen before app.core.config is imported
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_INCLUDE_HEADERS", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore  # noqa: E402
from app.core.app_factory import create_app  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Controllable millisecond clock."""
    return Mock(return_value=1_700_000_000_000)


@pytest.fixture
def store(clock: Mock) -> InMemoryRateLimitStore:
    return InMemoryRateLimitStore(clock=clock)


@pytest.fixture
def client(store: InMemoryRateLimitStore):
    """Test client over a fresh app with its own rate limit store."""
    with TestClient(create_app(rate_limit_store=store)) as test_client:
        yield test_client
