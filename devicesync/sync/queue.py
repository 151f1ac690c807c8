"""Ordered, persistent queue of sync tasks.

Provides a thread-safe task list that owns task lifecycle transitions
and keeps its backing store in step with memory.

All mutations are serialized by one lock and written through to the store.
A status change only becomes visible after the store accepted it; a new
task is kept in memory even when its write fails, and the failure is
raised as PersistenceError.

Retention: terminal tasks whose last status change is older than
``retention_days`` are pruned when the queue opens and whenever
``prune()`` is called (the scheduler does so after each pass). Pending
tasks are never pruned. ``retention_days=0`` keeps everything.

Usage:
    from devicesync.sync.queue import SyncTaskQueue
    from devicesync.sync.store import JsonFileQueueStore

    with SyncTaskQueue(JsonFileQueueStore(path)) as queue:
        task = queue.enqueue({"reading": 42})
        queue.mark_result(task.id, SyncStatus.COMPLETED)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from devicesync.errors import PersistenceError, QueueClosedError
from devicesync.sync.models import SyncStatus, SyncTask
from devicesync.sync.store import QueueStore

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 7

TaskCallback = Callable[[SyncTask], None]


class SyncTaskQueue:
    """Thread-safe FIFO of sync tasks backed by a QueueStore.

    Reads (``snapshot``, ``pending_count``, ``get``) work on an immutable
    tuple that is swapped in one assignment, so they never take the lock
    and never observe a half-applied change.

    Attributes:
        store: Backing store.
        retention_days: Age after which terminal tasks are pruned.
    """

    def __init__(
        self,
        store: QueueStore,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the queue and load persisted tasks.

        Args:
            store: Backing store. A missing or corrupt store starts empty.
            retention_days: Days to retain terminal tasks (0 = forever).
            clock: Source of the current UTC time.
        """
        if retention_days < 0:
            raise ValueError("retention_days must be >= 0")

        self._store = store
        self._retention_days = retention_days
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.RLock()
        self._tasks: tuple[SyncTask, ...] = ()
        self._callbacks: list[TaskCallback] = []
        self._closed = True

        self.open()

    @property
    def store(self) -> QueueStore:
        return self._store

    @property
    def retention_days(self) -> int:
        return self._retention_days

    @property
    def is_open(self) -> bool:
        return not self._closed

    def open(self) -> None:
        """(Re)load tasks from the store and accept mutations again."""
        with self._lock:
            self._tasks = tuple(self._store.load())
            self._closed = False
            logger.debug(f"Sync queue opened with {len(self._tasks)} tasks")

        try:
            self.prune()
        except PersistenceError as e:
            logger.warning(f"Retention pruning skipped at open: {e}")

    def close(self) -> None:
        """Stop accepting mutations. Reads keep returning the last state."""
        with self._lock:
            self._closed = True
        logger.debug("Sync queue closed")

    def __enter__(self) -> SyncTaskQueue:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise QueueClosedError()

    def enqueue(self, payload: dict[str, Any] | None = None) -> SyncTask:
        """Append a new Pending task and persist the list.

        Args:
            payload: Value to deliver. None creates a heartbeat task.

        Returns:
            The created task.

        Raises:
            PersistenceError: The write failed. The task is still queued
                in memory and will be written with the next successful save.
            QueueClosedError: The queue is closed.
        """
        with self._lock:
            self._ensure_open()

            now = self._clock()
            if self._tasks and self._tasks[-1].created_at > now:
                # Keep created_at non-decreasing in insertion order
                now = self._tasks[-1].created_at
            task = SyncTask.create(payload=payload, created_at=now)

            updated = (*self._tasks, task)
            self._tasks = updated
            write_error: PersistenceError | None = None
            try:
                self._store.save(updated)
            except PersistenceError as e:
                e.details["task_id"] = task.id
                write_error = e

        self._notify(task)
        if write_error is not None:
            logger.error(f"Sync task {task.id} queued in memory only: {write_error}")
            raise write_error

        logger.info(f"Sync task enqueued: {task.id}{' (heartbeat)' if task.is_heartbeat else ''}")
        return task

    def snapshot(self) -> tuple[SyncTask, ...]:
        """Return all tasks in insertion order."""
        return self._tasks

    def pending(self) -> list[SyncTask]:
        """Return Pending tasks in insertion order."""
        return [t for t in self._tasks if t.status == SyncStatus.PENDING]

    def pending_count(self) -> int:
        """Count tasks that have not reached a terminal state."""
        return sum(1 for t in self._tasks if t.status == SyncStatus.PENDING)

    def get(self, task_id: str) -> SyncTask | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def mark_result(self, task_id: str, outcome: SyncStatus) -> bool:
        """Move a Pending task to a terminal status.

        Args:
            task_id: The task identifier.
            outcome: SyncStatus.COMPLETED or SyncStatus.FAILED.

        Returns:
            True if the task changed, False if it was unknown or already terminal.

        Raises:
            ValueError: If ``outcome`` is not terminal.
            PersistenceError: The write failed; the task stays Pending.
            QueueClosedError: The queue is closed.
        """
        if not outcome.is_terminal:
            raise ValueError(f"Outcome must be terminal, got {outcome.value}")

        with self._lock:
            self._ensure_open()

            index = next((i for i, t in enumerate(self._tasks) if t.id == task_id), None)
            if index is None:
                logger.warning(f"Result reported for unknown sync task: {task_id}")
                return False

            current = self._tasks[index]
            if current.is_terminal:
                logger.info(
                    f"Ignoring {outcome.value} for sync task {task_id}: "
                    f"already {current.status.value}"
                )
                return False

            changed = current.with_status(outcome, at=self._clock())
            updated = (*self._tasks[:index], changed, *self._tasks[index + 1 :])

            try:
                self._store.save(updated)
            except PersistenceError as e:
                e.details["task_id"] = task_id
                logger.error(f"Result for sync task {task_id} not committed: {e}")
                raise

            self._tasks = updated

        logger.info(f"Sync task {task_id} marked {outcome.value}")
        self._notify(changed)
        return True

    def prune(self, now: datetime | None = None) -> int:
        """Remove terminal tasks older than the retention window.

        Returns:
            Number of tasks removed.

        Raises:
            PersistenceError: The write failed; nothing was removed.
        """
        if self._retention_days == 0:
            return 0

        cutoff = (now or self._clock()) - timedelta(days=self._retention_days)

        with self._lock:
            if self._closed:
                return 0

            kept = tuple(
                t
                for t in self._tasks
                if not (t.is_terminal and (t.updated_at or t.created_at) < cutoff)
            )
            removed = len(self._tasks) - len(kept)
            if removed == 0:
                return 0

            self._store.save(kept)
            self._tasks = kept

        logger.info(f"Pruned {removed} terminal sync tasks older than {self._retention_days}d")
        return removed

    def flush(self) -> None:
        """Write the in-memory list to the store.

        Raises:
            PersistenceError: The write failed.
        """
        with self._lock:
            self._store.save(self._tasks)

    def get_stats(self) -> dict[str, Any]:
        """Get queue statistics.

        Returns:
            Dictionary with counts by status and the oldest pending enqueue time.
        """
        tasks = self._tasks
        by_status = {status.value: 0 for status in SyncStatus}
        for task in tasks:
            by_status[task.status.value] += 1

        oldest_pending = next((t for t in tasks if t.status == SyncStatus.PENDING), None)

        return {
            "total": len(tasks),
            "by_status": by_status,
            "oldest_pending": oldest_pending.created_at.isoformat() if oldest_pending else None,
            "retention_days": self._retention_days,
        }

    def register_callback(self, callback: TaskCallback) -> Callable[[], None]:
        """Register a callback for task changes.

        Args:
            callback: Called with the new version of each added or changed task.

        Returns:
            A function that unregisters the callback.
        """
        with self._lock:
            self._callbacks.append(callback)

        def unregister() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unregister

    def _notify(self, task: SyncTask) -> None:
        with self._lock:
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback(task)
            except Exception as e:
                logger.exception(f"Error in sync queue callback: {e}")


__all__ = [
    "SyncTaskQueue",
    "DEFAULT_RETENTION_DAYS",
]
