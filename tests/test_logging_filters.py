"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from app.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    clear_request_id,
    redact,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired to an in-memory stream with the production filters."""
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_id()


def test_redacts_credentials_and_client_addresses(capture) -> None:
    logger, stream = capture

    logger.info(
        "login_event",
        extra={
            "password": "hunter2",
            "identifier": "203.0.113.7",
            "client_hash": "abc123",
        },
    )

    output = stream.getvalue()
    assert "hunter2" not in output
    assert "203.0.113.7" not in output
    assert "[REDACTED]" in output
    assert "abc123" in output


def test_redacts_nested_headers(capture) -> None:
    logger, stream = capture

    logger.info(
        "headers_event",
        extra={"headers": {"X-Forwarded-For": "203.0.113.7", "user-agent": "pytest"}},
    )

    record = json.loads(stream.getvalue())
    assert record["headers"]["X-Forwarded-For"] == "[REDACTED]"
    assert record["headers"]["user-agent"] == "pytest"


def test_safe_fields_and_request_id_pass_through(capture) -> None:
    logger, stream = capture
    set_request_id("req-123")

    logger.info("rate_limit.allowed", extra={"endpoint": "login", "remaining": 4})

    record = json.loads(stream.getvalue())
    assert record["message"] == "rate_limit.allowed"
    assert record["level"] == "info"
    assert record["request_id"] == "req-123"
    assert record["endpoint"] == "login"
    assert record["remaining"] == 4


def test_spanish_text_is_not_escaped(capture) -> None:
    logger, stream = capture

    logger.info("Intenta de nuevo en 1 minuto más tarde")

    assert "más" in stream.getvalue()


def test_redact_handles_lists_and_tuples() -> None:
    value = {"items": [{"token": "t"}, ("x", {"email": "a@b.c"})]}

    assert redact(value) == {"items": [{"token": "[REDACTED]"}, ("x", {"email": "[REDACTED]"})]}
