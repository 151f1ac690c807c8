"""Tests for the log line channel and structured logging helpers."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from devicesync.observability.events import EventChannel, LogLine
from devicesync.observability.logging import (
    StructuredFormatter,
    configure_logging,
    log_event,
    timed_operation,
)


class TestEventChannel:
    """Tests for EventChannel."""

    def test_emit_delivers_to_subscribers(self) -> None:
        channel = EventChannel()
        received: list[LogLine] = []
        channel.subscribe(received.append)

        line = channel.emit("Device connected")

        assert received == [line]
        assert line.message == "Device connected"
        assert line.timestamp.tzinfo is not None

    def test_unsubscribe(self) -> None:
        channel = EventChannel()
        received: list[LogLine] = []
        unsubscribe = channel.subscribe(received.append)

        unsubscribe()
        channel.emit("ignored")

        assert received == []

    def test_history_is_bounded(self) -> None:
        channel = EventChannel(history_size=3)
        for i in range(5):
            channel.emit(f"line {i}")

        assert [line.message for line in channel.history()] == ["line 2", "line 3", "line 4"]
        assert [line.message for line in channel.history(limit=1)] == ["line 4"]

    def test_replay(self) -> None:
        channel = EventChannel()
        channel.emit("before")
        received: list[LogLine] = []

        channel.subscribe(received.append, replay=True)

        assert [line.message for line in received] == ["before"]

    def test_subscriber_error_is_contained(self) -> None:
        channel = EventChannel()
        received: list[LogLine] = []

        def broken(line: LogLine) -> None:
            raise RuntimeError("ui gone")

        channel.subscribe(broken)
        channel.subscribe(received.append)
        channel.emit("still delivered")

        assert len(received) == 1

    def test_clear(self) -> None:
        channel = EventChannel()
        channel.emit("x")
        channel.clear()
        assert channel.history() == []

    def test_lines_are_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        channel = EventChannel()
        with caplog.at_level(logging.WARNING, logger="devicesync.events"):
            channel.emit("Device offline", logging.WARNING)

        assert "Device offline" in caplog.text

    def test_line_format(self) -> None:
        line = LogLine("Manual sync started")
        assert line.format().endswith(": Manual sync started")
        assert line.to_dict()["level"] == "INFO"


class TestStructuredLogging:
    """Tests for log_event, timed_operation and the JSON formatter."""

    def test_log_event_splits_metrics(self, caplog: pytest.LogCaptureFixture) -> None:
        log = logging.getLogger("devicesync.test")
        with caplog.at_level(logging.INFO, logger="devicesync.test"):
            log_event(log, "sync.task.completed", task_id="abc", attempt=2, ok=True)

        record = caplog.records[-1]
        assert record.event_type == "sync.task.completed"
        assert record.metrics == {"attempt": 2}
        assert record.metadata == {"task_id": "abc", "ok": True}

    def test_timed_operation_records_ctx(self, caplog: pytest.LogCaptureFixture) -> None:
        log = logging.getLogger("devicesync.test")
        with caplog.at_level(logging.INFO, logger="devicesync.test"):
            with timed_operation(log, "sync.pass", source="manual") as ctx:
                ctx["completed"] = 3

        record = caplog.records[-1]
        assert record.event_type == "sync.pass.complete"
        assert record.metrics["completed"] == 3
        assert "latency_ms" in record.metrics
        assert record.metadata == {"source": "manual"}

    def test_timed_operation_logs_failure(self, caplog: pytest.LogCaptureFixture) -> None:
        log = logging.getLogger("devicesync.test")
        with caplog.at_level(logging.ERROR, logger="devicesync.test"):
            with pytest.raises(RuntimeError):
                with timed_operation(log, "sync.pass"):
                    raise RuntimeError("boom")

        assert caplog.records[-1].event_type == "sync.pass.failed"

    def test_structured_formatter(self) -> None:
        record = logging.LogRecord("devicesync", logging.INFO, __file__, 1, "hello", None, None)
        record.event_type = "sync.pass.complete"
        record.metrics = {"latency_ms": 1.5}

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["message"] == "hello"
        assert entry["event"] == "sync.pass.complete"
        assert entry["metrics"] == {"latency_ms": 1.5}

    def test_structured_formatter_error_and_empty_fields(self) -> None:
        try:
            raise OSError("disk full")
        except OSError:
            exc_info = sys.exc_info()
        record = logging.LogRecord(
            "devicesync", logging.ERROR, __file__, 1, "write failed", None, exc_info
        )
        record.metadata = None

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["error"] == {"type": "OSError", "message": "disk full"}
        assert "metadata" not in entry
        assert "event" not in entry

    def test_configure_logging(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging("DEBUG", structured=True)
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)
