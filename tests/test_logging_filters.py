"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

from app.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    fingerprint,
    set_request_id,
)


def _capture(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_sensitive_filter_redacts_credential_fields():
    """Ensure apikey and cx never reach the output."""

    logger, stream = _capture("test_redaction")

    logger.info(
        "credentials.created",
        extra={
            "apikey": "AIza-secret-123",
            "cx": "engine-secret",
            "X-Admin-Key": "admin-secret",
            "credential_id": "65f0c0de",
        },
    )

    output = stream.getvalue()

    assert "AIza-secret-123" not in output
    assert "engine-secret" not in output
    assert "admin-secret" not in output
    assert "[REDACTED]" in output
    assert "65f0c0de" in output


def test_sensitive_filter_allows_safe_fields():
    """Verify safe fields pass through unmodified."""

    logger, stream = _capture("test_safe_fields")

    logger.info(
        "pagination.fetch_failed",
        extra={
            "query": "python",
            "start": 11,
            "error_code": "upstream_http_error",
            "duration_ms": 150.5,
        },
    )

    payload = json.loads(stream.getvalue())

    assert payload["message"] == "pagination.fetch_failed"
    assert payload["query"] == "python"
    assert payload["start"] == 11
    assert "[REDACTED]" not in stream.getvalue()


def test_sensitive_filter_redacts_nested_dicts():
    """Ensure nested sensitive fields are redacted."""

    logger, stream = _capture("test_nested")

    logger.info(
        "upstream.request",
        extra={
            "params": {"key": "secret-key", "q": "pytest", "start": 1},
            "records": [{"apikey": "in-a-list", "quotas": 5}],
        },
    )

    output = stream.getvalue()

    assert "secret-key" not in output
    assert "in-a-list" not in output
    assert "pytest" in output
    assert '"quotas": 5' in output


def test_request_id_from_context_is_attached():
    logger, stream = _capture("test_request_id")

    set_request_id("req-abc")
    try:
        logger.info("aggregation.completed")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-abc"


def test_fingerprint_is_stable_and_opaque():
    assert fingerprint("AIza-secret") == fingerprint("AIza-secret")
    assert fingerprint("AIza-secret") != fingerprint("AIza-other")
    assert "AIza" not in fingerprint("AIza-secret")
    assert len(fingerprint("AIza-secret")) == 16
    assert fingerprint(None) is None
