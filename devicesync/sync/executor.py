"""Delivers pending sync tasks through the device link.

Handles one task at a time:
- attempt delivery through the DeviceLink
- translate the outcome into a terminal status
- record it in the queue (persisted before it counts)

Delivery failures never escape: a DeliveryError, or any other error the
link raises, marks the task Failed. A persistence failure leaves the task
Pending and is reported as an uncommitted result.

Usage:
    from devicesync.sync.executor import SyncExecutor

    executor = SyncExecutor(link, queue)
    results = executor.drain(queue.pending())
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from devicesync.device.link import DeviceLink
from devicesync.errors import DeliveryError, PersistenceError, QueueClosedError
from devicesync.observability.events import EventChannel
from devicesync.observability.logging import log_event
from devicesync.sync.models import SyncStatus, SyncTask, TaskResult
from devicesync.sync.queue import SyncTaskQueue

logger = logging.getLogger(__name__)


class SyncExecutor:
    """Executes sync tasks against the device link."""

    def __init__(
        self,
        link: DeviceLink,
        queue: SyncTaskQueue,
        events: EventChannel | None = None,
    ) -> None:
        self._link = link
        self._queue = queue
        self._events = events

    def _emit(self, message: str, level: int = logging.INFO) -> None:
        if self._events is not None:
            self._events.emit(message, level)

    def execute(self, task: SyncTask) -> TaskResult:
        """Attempt one task and record its outcome.

        Args:
            task: A Pending task.

        Returns:
            TaskResult with the decided status and whether it was committed.
        """
        error: str | None = None
        try:
            self._link.attempt_sync(task.payload)
            outcome = SyncStatus.COMPLETED
        except DeliveryError as e:
            outcome = SyncStatus.FAILED
            error = e.message
        except Exception as e:
            logger.exception(f"Device link raised while syncing task {task.id}")
            outcome = SyncStatus.FAILED
            error = str(e) or type(e).__name__

        try:
            changed = self._queue.mark_result(task.id, outcome)
        except (PersistenceError, QueueClosedError) as e:
            log_event(
                logger,
                "sync.task.uncommitted",
                logging.ERROR,
                f"Outcome for task {task.id} not recorded: {e}",
                task_id=task.id,
                outcome=outcome.value,
            )
            self._emit(f"Task {task.id[:8]} {outcome.value} but not saved: {e}", logging.ERROR)
            return TaskResult(task_id=task.id, status=outcome, committed=False, error=str(e))

        if not changed:
            # Someone else already resolved it; report what the queue holds
            current = self._queue.get(task.id)
            status = current.status if current else outcome
            return TaskResult(task_id=task.id, status=status, committed=True, error=error)

        if outcome == SyncStatus.COMPLETED:
            log_event(logger, "sync.task.completed", task_id=task.id)
            self._emit(f"Task {task.id[:8]} synced")
        else:
            log_event(
                logger, "sync.task.failed", logging.WARNING, task_id=task.id, error=error
            )
            self._emit(f"Task {task.id[:8]} failed: {error}", logging.WARNING)

        return TaskResult(task_id=task.id, status=outcome, committed=True, error=error)

    def drain(self, tasks: Sequence[SyncTask]) -> tuple[list[TaskResult], bool]:
        """Attempt every Pending task in ``tasks`` in order.

        Stops early, leaving the rest Pending, if the link reports that it
        is no longer connected or its status cannot be read.

        Returns:
            (results, interrupted) where ``interrupted`` is True when the
            link dropped before all tasks were attempted.
        """
        results: list[TaskResult] = []
        for index, task in enumerate(tasks):
            if task.status != SyncStatus.PENDING:
                continue
            if not self._link_up():
                remaining = sum(1 for t in tasks[index:] if t.status == SyncStatus.PENDING)
                logger.warning(f"Link dropped mid-pass; {remaining} tasks left pending")
                self._emit("Device disconnected during sync; remaining tasks kept", logging.WARNING)
                return results, True
            results.append(self.execute(task))
        return results, False

    def _link_up(self) -> bool:
        try:
            return bool(self._link.is_connected())
        except Exception as e:
            logger.warning(f"Connection check failed mid-pass, treating as dropped: {e}")
            return False

    def heartbeat(self) -> bool:
        """Send a payload-less sync directly, without a queued task.

        Returns:
            True if the device acknowledged it.
        """
        try:
            self._link.attempt_sync(None)
        except DeliveryError as e:
            logger.warning(f"Heartbeat sync failed: {e}")
            self._emit(f"Manual sync failed: {e.message}", logging.WARNING)
            return False
        except Exception as e:
            logger.exception("Device link raised during heartbeat sync")
            self._emit(f"Manual sync failed: {e}", logging.WARNING)
            return False
        self._emit("Manual sync started")
        return True
