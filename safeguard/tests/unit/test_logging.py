"""Unit tests for logging configuration and audit events."""

from collections.abc import Iterator
from typing import Any

import pytest
from loguru import logger

from safeguard.shared.context import operation_scope
from safeguard.shared.logging import (
    build_log_entry,
    log_password_created,
    log_sync_failed,
)
from safeguard.shared.logging.config import REDACTED, _redacting_patcher


@pytest.fixture
def captured() -> Iterator[tuple[list[dict], Any]]:
    """Collect log records passed through the redacting patcher."""
    records: list[dict] = []
    patched = logger.patch(_redacting_patcher)
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records, patched
    logger.remove(handler_id)


class TestRedaction:
    """Tests for sensitive field redaction."""

    def test_sensitive_keys_are_redacted(self, captured):
        records, patched = captured

        patched.info("login", password="hunter2", api_key="abc", service="GitHub")

        extra = records[-1]["extra"]
        assert extra["password"] == REDACTED
        assert extra["api_key"] == REDACTED
        assert extra["service"] == "GitHub"

    def test_nested_values_are_redacted(self, captured):
        records, patched = captured

        patched.info("payload", fields={"service": "GitHub", "password": "hunter2"})

        assert records[-1]["extra"]["fields"] == {"service": "GitHub", "password": REDACTED}

    def test_operation_id_is_injected(self, captured):
        records, patched = captured

        with operation_scope("op-42"):
            patched.info("inside")

        assert records[-1]["extra"]["operation_id"] == "op-42"


class TestBuildLogEntry:
    """Tests for the JSON sink representation."""

    def test_entry_shape(self, captured):
        records, patched = captured

        with operation_scope("op-7"):
            patched.bind(name="safeguard.test").warning("disk almost full", token="t0k3n")

        entry = build_log_entry(records[-1], "Memory Safe Guard")

        assert entry["level"] == "WARNING"
        assert entry["message"] == "disk almost full"
        assert entry["module"] == "safeguard.test"
        assert entry["operation_id"] == "op-7"
        assert entry["service"] == "Memory Safe Guard"
        assert entry["token"] == REDACTED


class TestAuditEvents:
    """Tests for structured audit events."""

    def test_password_created_event(self, captured):
        records, _ = captured

        log_password_created("entry-1", "GitHub")

        extra = records[-1]["extra"]
        assert extra["event"] == "password.created"
        assert extra["entry_id"] == "entry-1"
        assert "password" not in extra

    def test_sync_failed_event(self, captured):
        records, _ = captured

        log_sync_failed("insert", "entry-1", "Remote store is unreachable", error_type="SYNC")

        record = records[-1]
        assert record["level"].name == "WARNING"
        assert record["extra"]["event"] == "sync.failed"
        assert record["extra"]["operation"] == "insert"
