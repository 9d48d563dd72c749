"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from app.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    redact,
    set_request_id,
)


@pytest.fixture
def capture():
    logger = logging.getLogger("test_send_quota_logging")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_id()


def test_redacts_credentials_and_recipients(capture) -> None:
    logger, stream = capture

    logger.info(
        "send_limiter.send_recorded",
        extra={
            "api_key": "test-key-alice",
            "recipient": "hr@example.com",
            "user_id": "alice",
        },
    )

    output = stream.getvalue()
    assert "test-key-alice" not in output
    assert "hr@example.com" not in output
    assert "[REDACTED]" in output
    assert "alice" in output


def test_redacts_nested_mappings() -> None:
    value = {"headers": {"X-API-Key": "secret", "user-agent": "pytest"}, "items": [{"token": "t"}]}

    assert redact(value) == {
        "headers": {"X-API-Key": "[REDACTED]", "user-agent": "pytest"},
        "items": [{"token": "[REDACTED]"}],
    }


def test_safe_fields_pass_through(capture) -> None:
    logger, stream = capture

    logger.info(
        "send_limiter.stats_computed",
        extra={"used": 3, "limit": 10, "remaining": 7, "allowed": True},
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "send_limiter.stats_computed"
    assert record["level"] == "info"
    assert (record["used"], record["limit"], record["remaining"]) == (3, 10, 7)
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_from_context_is_attached(capture) -> None:
    logger, stream = capture
    set_request_id("req-123")

    logger.info("status_gate.status_changed")

    assert json.loads(stream.getvalue())["request_id"] == "req-123"
