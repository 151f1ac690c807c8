"""Observability for devicesync: the UI log line channel and structured logging."""

from devicesync.observability.events import EventChannel, LogLine
from devicesync.observability.logging import (
    StructuredFormatter,
    configure_logging,
    log_event,
    timed_operation,
)

__all__ = [
    "EventChannel",
    "LogLine",
    "StructuredFormatter",
    "configure_logging",
    "log_event",
    "timed_operation",
]
