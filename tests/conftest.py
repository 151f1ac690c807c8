"""Pytest configuration for devicesync tests.

Provides an in-process fake device link and a queue store whose writes
can be made to fail, so the sync core can be exercised without a device
or a flaky disk.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

import pytest

from devicesync.device.link import Ack, ConnectionHandle, ConnectionState, Credentials
from devicesync.errors import auth_rejected, delivery_failed, not_connected, store_write_failed
from devicesync.observability.events import EventChannel
from devicesync.sync.models import SyncTask
from devicesync.sync.queue import SyncTaskQueue
from devicesync.sync.store import MemoryQueueStore


class FakeDeviceLink:
    """DeviceLink double that records every attempt.

    Attributes:
        calls: Payloads passed to attempt_sync, in order.
        fail_when: Predicate on the payload; True makes the attempt fail.
        gate: If set, attempt_sync blocks until the event is set.
        entered: Set whenever attempt_sync is entered.
        drop_after: Disconnect after this many attempts.
        reject_token: Token that connect() rejects.
    """

    def __init__(self, connected: bool = False) -> None:
        self.calls: list[dict[str, Any] | None] = []
        self.fail_when: Callable[[dict[str, Any] | None], bool] | None = None
        self.gate: threading.Event | None = None
        self.entered = threading.Event()
        self.drop_after: int | None = None
        self.reject_token: str | None = None
        self.disconnect_calls = 0
        self._lock = threading.Lock()
        self._state = (
            ConnectionState(connected=True, since=datetime.now(UTC))
            if connected
            else ConnectionState.disconnected()
        )

    def set_connected(self, connected: bool) -> None:
        with self._lock:
            self._state = (
                ConnectionState(connected=True, since=datetime.now(UTC))
                if connected
                else ConnectionState.disconnected()
            )

    def connect(self, credentials: Credentials) -> ConnectionHandle:
        if self.reject_token is not None and credentials.token == self.reject_token:
            raise auth_rejected(credentials.address, status_code=401)
        self.set_connected(True)
        return ConnectionHandle(address=credentials.address, status="online")

    def is_connected(self) -> bool:
        with self._lock:
            return self._state.connected

    def connection_state(self) -> ConnectionState:
        with self._lock:
            return self._state

    def attempt_sync(self, payload: dict[str, Any] | None = None) -> Ack:
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        if not self.is_connected():
            raise not_connected()

        with self._lock:
            self.calls.append(payload)
            count = len(self.calls)
        if self.drop_after is not None and count >= self.drop_after:
            self.set_connected(False)

        if self.fail_when is not None and self.fail_when(payload):
            raise delivery_failed("device said no", status_code=500)
        return Ack(message="ok")

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.set_connected(False)


class FlakyStore(MemoryQueueStore):
    """Memory store whose writes fail while ``failing`` is True."""

    def __init__(self, tasks: Sequence[SyncTask] | None = None) -> None:
        super().__init__(tasks)
        self.failing = False

    def save(self, tasks: Sequence[SyncTask]) -> None:
        if self.failing:
            raise store_write_failed("memory://flaky", cause=OSError("disk full"))
        super().save(tasks)


@pytest.fixture
def link() -> FakeDeviceLink:
    """A connected fake device link."""
    return FakeDeviceLink(connected=True)


@pytest.fixture
def offline_link() -> FakeDeviceLink:
    """A disconnected fake device link."""
    return FakeDeviceLink(connected=False)


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def queue(store: FlakyStore) -> SyncTaskQueue:
    """A queue over an in-memory store."""
    q = SyncTaskQueue(store)
    yield q
    q.close()


@pytest.fixture
def events() -> EventChannel:
    return EventChannel(history_size=100)


@pytest.fixture
def messages(events: EventChannel) -> Callable[[], list[str]]:
    """Return a function listing the messages emitted on ``events``, oldest first."""
    return lambda: [line.message for line in events.history()]
