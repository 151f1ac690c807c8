"""Log setup for devicesync plus the two helpers the sync core logs through.

Passes are timed with ``timed_operation``; per-task outcomes that need
machine-readable fields go through ``log_event``. Both attach ``event_type``,
``metrics`` (numbers) and ``metadata`` (everything else) to the record,
which ``StructuredFormatter`` renders when ``logging.structured`` is on.

Usage:
    from devicesync.observability.logging import timed_operation, log_event

    with timed_operation(logger, "sync.pass", source="interval") as ctx:
        ctx["completed"] = 3

    log_event(logger, "sync.task.failed", task_id=task.id, error=str(e))
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# LogRecord attribute -> JSON key
_RECORD_FIELDS = (("event_type", "event"), ("metrics", "metrics"), ("metadata", "metadata"))


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for attr, key in _RECORD_FIELDS:
            value = getattr(record, attr, None)
            if value:
                entry[key] = value

        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            entry["error"] = {"type": type(exc).__name__, "message": str(exc)}

        return json.dumps(entry, default=str)


def _split_fields(fields: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    metrics = {
        k: v for k, v in fields.items() if isinstance(v, (int, float)) and not isinstance(v, bool)
    }
    metadata = {k: v for k, v in fields.items() if k not in metrics}
    return metrics, metadata


@contextmanager
def timed_operation(
    log: logging.Logger,
    operation: str,
    level: int = logging.INFO,
    **extra: Any,
) -> Iterator[dict[str, Any]]:
    """Time the block and log one completion (or failure) record for it.

    Values put into the yielded dict during the block are added to the
    completion record. The start record is always DEBUG.
    """
    ctx: dict[str, Any] = {}
    start = time.perf_counter()
    log.debug(
        "%s started",
        operation,
        extra={"event_type": f"{operation}.start", "metadata": extra},
    )
    try:
        yield ctx
    except Exception:
        elapsed_ms = (time.perf_counter() - start) * 1000
        log.error(
            "%s failed after %.1fms",
            operation,
            elapsed_ms,
            exc_info=True,
            extra={
                "event_type": f"{operation}.failed",
                "metrics": {"latency_ms": round(elapsed_ms, 1)},
                "metadata": extra,
            },
        )
        raise

    elapsed_ms = (time.perf_counter() - start) * 1000
    metrics, metadata = _split_fields({**extra, **ctx})
    log.log(
        level,
        "%s completed in %.1fms",
        operation,
        elapsed_ms,
        extra={
            "event_type": f"{operation}.complete",
            "metrics": {"latency_ms": round(elapsed_ms, 1), **metrics},
            "metadata": metadata,
        },
    )


def log_event(
    log: logging.Logger,
    event_type: str,
    level: int = logging.INFO,
    message: str | None = None,
    **fields: Any,
) -> None:
    """Log ``event_type`` with ``fields`` split into metrics and metadata."""
    metrics, metadata = _split_fields(fields)

    log.log(
        level,
        message or event_type,
        extra={
            "event_type": event_type,
            "metrics": metrics or None,
            "metadata": metadata or None,
        },
    )


def configure_logging(level: int | str = logging.INFO, structured: bool = False) -> None:
    """Send all logging to stderr, as plain text or JSON lines. Called once by the CLI."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter() if structured else logging.Formatter(PLAIN_FORMAT))
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]
