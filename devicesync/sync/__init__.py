"""Offline sync queue and scheduler.

Provides a durable queue of sync tasks for one device and a scheduler
that drains it under manual, interval, and daily-boundary triggers,
gated by the device connection.

Usage:
    from devicesync.sync import SyncScheduler, SyncTaskQueue, JsonFileQueueStore

    queue = SyncTaskQueue(JsonFileQueueStore(path))
    scheduler = SyncScheduler(queue, link)
    scheduler.start()
"""

from devicesync.sync.executor import SyncExecutor
from devicesync.sync.models import (
    PassResult,
    SchedulerState,
    SyncStatus,
    SyncTask,
    TaskResult,
    TriggerSource,
)
from devicesync.sync.queue import SyncTaskQueue
from devicesync.sync.scheduler import SyncScheduler
from devicesync.sync.store import JsonFileQueueStore, MemoryQueueStore, QueueStore
from devicesync.sync.timing import format_duration, seconds_until_next_midnight

__all__ = [
    # Models
    "PassResult",
    "SchedulerState",
    "SyncStatus",
    "SyncTask",
    "TaskResult",
    "TriggerSource",
    # Storage
    "QueueStore",
    "JsonFileQueueStore",
    "MemoryQueueStore",
    # Queue
    "SyncTaskQueue",
    # Execution
    "SyncExecutor",
    "SyncScheduler",
    # Timing
    "format_duration",
    "seconds_until_next_midnight",
]
