"""Device sync service: the object the UI layer talks to.

Wires one device link, one task queue, the scheduler, and the log line
channel together, and exposes the read model shown on the dashboard
(device status, connection duration, pending count).

Usage:
    from devicesync.service import DeviceSyncService

    service = DeviceSyncService.from_config(config, link)
    service.events.subscribe(print)
    service.connect(Credentials(address="devices/1", token="..."))
    service.request_manual_sync()
    print(service.status())
    service.close()
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from devicesync.config import DeviceSyncConfig
from devicesync.device.link import ConnectionHandle, Credentials, DeviceLink
from devicesync.errors import DeviceError, PersistenceError
from devicesync.observability.events import EventChannel
from devicesync.sync.models import PassResult, SchedulerState, SyncStatus, SyncTask
from devicesync.sync.queue import SyncTaskQueue
from devicesync.sync.scheduler import SyncScheduler
from devicesync.sync.store import JsonFileQueueStore
from devicesync.sync.timing import format_duration

logger = logging.getLogger(__name__)

NO_DURATION = "-"


@dataclass(frozen=True)
class StatusSnapshot:
    """Dashboard read model.

    Attributes:
        device_status: "Connected" or "Disconnected".
        connection_duration: "1d 2h 3m 4s" while connected, "-" otherwise.
        pending_count: Tasks not yet resolved.
        scheduler_state: Current pass state.
        connected_since: Start of the current connection.
    """

    device_status: str
    connection_duration: str
    pending_count: int
    scheduler_state: SchedulerState
    connected_since: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_status": self.device_status,
            "connection_duration": self.connection_duration,
            "pending_count": self.pending_count,
            "scheduler_state": self.scheduler_state.value,
            "connected_since": self.connected_since.isoformat() if self.connected_since else None,
        }


class DeviceSyncService:
    """Connection lifecycle plus the offline sync queue for one device."""

    def __init__(
        self,
        link: DeviceLink,
        queue: SyncTaskQueue,
        scheduler: SyncScheduler | None = None,
        events: EventChannel | None = None,
        config: DeviceSyncConfig | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            link: Device link.
            queue: Task queue (owned by the caller until ``close()``).
            scheduler: Scheduler (built from config if None).
            events: Log line channel (created if None).
            config: Settings used to build the scheduler.
        """
        self._config = config or DeviceSyncConfig()
        self._link = link
        self._queue = queue
        self._events = events or EventChannel(self._config.events.history_size)
        self._scheduler = scheduler or SyncScheduler(
            queue,
            link,
            events=self._events,
            interval_seconds=self._config.sync.interval_minutes * 60,
            daily_enabled=self._config.sync.daily_sync_enabled,
        )
        self._lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_config(
        cls,
        config: DeviceSyncConfig,
        link: DeviceLink,
        events: EventChannel | None = None,
    ) -> DeviceSyncService:
        """Build a service with a JSON file queue at ``config.sync.queue_path``."""
        store = JsonFileQueueStore(Path(config.sync.queue_path).expanduser())
        queue = SyncTaskQueue(store, retention_days=config.sync.retention_days)
        return cls(link, queue, events=events, config=config)

    @property
    def events(self) -> EventChannel:
        return self._events

    @property
    def queue(self) -> SyncTaskQueue:
        return self._queue

    @property
    def scheduler(self) -> SyncScheduler:
        return self._scheduler

    @property
    def link(self) -> DeviceLink:
        return self._link

    def connect(self, credentials: Credentials) -> ConnectionHandle:
        """Connect the device and start background syncing.

        Raises:
            AuthError: Credentials rejected.
            DeviceConnectionError: Device unreachable.
        """
        try:
            handle = self._link.connect(credentials)
        except DeviceError as e:
            self._events.emit(f"Connection failed: {e.message}", logging.ERROR)
            raise

        self._events.emit(f"Connected to {handle.address}")
        self._scheduler.start()

        pending = self._queue.pending_count()
        if pending:
            self._events.emit(f"{pending} sync tasks waiting from offline period")
        return handle

    def disconnect(self) -> None:
        """Flush pending work if possible, then stop syncing and disconnect."""
        if self._link.is_connected() and self._queue.pending_count():
            self._events.emit("Syncing pending tasks before disconnect")
            self._scheduler.request_manual_sync()

        self._scheduler.stop()
        try:
            self._link.disconnect()
        except DeviceError as e:
            logger.warning(f"Device disconnect reported an error: {e}")
        self._events.emit("Device disconnected")

    def request_manual_sync(self, timeout: float | None = None) -> PassResult | None:
        """Sync Now. See SyncScheduler.request_manual_sync."""
        return self._scheduler.request_manual_sync(timeout=timeout)

    def enqueue(self, payload: dict[str, Any] | None = None) -> SyncTask:
        """Queue work for the device.

        A failed write is logged and the in-memory task returned; it is
        written again with the next successful save.
        """
        try:
            return self._queue.enqueue(payload)
        except PersistenceError as e:
            self._events.emit(f"Sync task kept in memory only: {e}", logging.ERROR)
            task = self._queue.get(e.task_id) if e.task_id else None
            if task is None:
                raise
            return task

    def tasks(self, status: SyncStatus | None = None) -> list[SyncTask]:
        snapshot = self._queue.snapshot()
        if status is None:
            return list(snapshot)
        return [t for t in snapshot if t.status == status]

    def status(self) -> StatusSnapshot:
        """Current dashboard values."""
        state = self._link.connection_state()
        if state.connected and state.since is not None:
            duration = format_duration(state.since)
        else:
            duration = NO_DURATION

        return StatusSnapshot(
            device_status=state.label,
            connection_duration=duration,
            pending_count=self._queue.pending_count(),
            scheduler_state=self._scheduler.state,
            connected_since=state.since if state.connected else None,
        )

    def close(self) -> None:
        """Stop the scheduler and close the queue. Safe to call twice."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        self._scheduler.stop()
        try:
            self._queue.flush()
        except PersistenceError as e:
            logger.error(f"Final queue flush failed: {e}")
        self._queue.close()

    def __enter__(self) -> DeviceSyncService:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
