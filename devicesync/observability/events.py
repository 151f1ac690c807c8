"""Human-readable log line channel for the UI layer.

Components emit short lines ("Sync pass started (manual)", "Device
disconnected"); subscribers receive each line as it happens and late
subscribers can read the bounded history. Every line is also written to
the ``devicesync.events`` logger.

Usage:
    from devicesync.observability.events import EventChannel

    channel = EventChannel()
    unsubscribe = channel.subscribe(lambda line: print(line.timestamp, line.message))
    channel.emit("Device connected")
    unsubscribe()
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

logger = logging.getLogger("devicesync.events")

DEFAULT_HISTORY_SIZE = 500


@dataclass(frozen=True)
class LogLine:
    """One line shown in the device log panel."""

    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now().astimezone())
    level: int = logging.INFO

    def format(self) -> str:
        return f"{self.timestamp.strftime('%H:%M:%S')}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": logging.getLevelName(self.level),
            "message": self.message,
        }


Subscriber = Callable[[LogLine], None]


class EventChannel:
    """Thread-safe subscribe/notify channel of LogLine values."""

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE) -> None:
        self._history: deque[LogLine] = deque(maxlen=history_size)
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber, replay: bool = False) -> Callable[[], None]:
        """Register a subscriber.

        Args:
            subscriber: Called with each new line.
            replay: Deliver the current history before new lines.

        Returns:
            A function that removes the subscriber.
        """
        with self._lock:
            self._subscribers.append(subscriber)
            backlog = list(self._history) if replay else []

        for line in backlog:
            self._deliver(subscriber, line)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def emit(self, message: str, level: int = logging.INFO) -> LogLine:
        """Publish a line to history, the events logger, and all subscribers."""
        line = LogLine(message=message, level=level)
        with self._lock:
            self._history.append(line)
            subscribers = list(self._subscribers)

        logger.log(level, message)
        for subscriber in subscribers:
            self._deliver(subscriber, line)
        return line

    def history(self, limit: int | None = None) -> list[LogLine]:
        with self._lock:
            lines = list(self._history)
        return lines[-limit:] if limit else lines

    def clear(self) -> None:
        with self._lock:
            self._history.clear()

    @staticmethod
    def _deliver(subscriber: Subscriber, line: LogLine) -> None:
        try:
            subscriber(line)
        except Exception as e:
            logger.exception(f"Log line subscriber failed: {e}")
