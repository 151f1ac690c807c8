"""Durable storage for the ordered sync task list.

Stores implement ``load()`` and ``save()``. ``load`` never raises: a
missing or corrupt store yields an empty list so startup always succeeds.
``save`` raises PersistenceError when the write does not reach disk.

A file that exists but could not be read or understood is moved aside to
``<name>.bak`` before the first save replaces it.

Usage:
    from devicesync.sync.store import JsonFileQueueStore

    store = JsonFileQueueStore(Path("~/.devicesync/sync_queue.json").expanduser())
    tasks = store.load()
    store.save(tasks)
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from devicesync.errors import store_write_failed
from devicesync.sync.models import SyncTask
from devicesync.utils.atomic_write import atomic_write_json

logger = logging.getLogger(__name__)

STORE_FORMAT_VERSION = 1


@runtime_checkable
class QueueStore(Protocol):
    """Persistent backing for SyncTaskQueue."""

    def load(self) -> list[SyncTask]:
        """Return the persisted tasks in insertion order, or [] if unavailable."""
        ...

    def save(self, tasks: Sequence[SyncTask]) -> None:
        """Replace the persisted list. Raises PersistenceError on failure."""
        ...


class JsonFileQueueStore:
    """Queue store backed by a single JSON document.

    Layout::

        {"version": 1, "tasks": [{"id": ..., "created_at": ..., ...}, ...]}

    Writes go through a temp file and rename, so a crash mid-write keeps
    the previous list intact.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._set_aside = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[SyncTask]:
        self._set_aside = False
        if not self._path.exists():
            logger.debug(f"No persisted queue at {self._path}")
            return []

        try:
            with self._path.open(encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in sync queue file {self._path}: {e}")
            self._set_aside = True
            return []
        except OSError as e:
            logger.error(f"Failed to read sync queue {self._path}: {e}")
            self._set_aside = True
            return []

        if isinstance(data, list):
            # Bare list of tasks, as written by early releases
            records = data
        elif isinstance(data, dict):
            version = data.get("version", STORE_FORMAT_VERSION)
            if version != STORE_FORMAT_VERSION:
                logger.warning(f"Unknown sync queue format version: {version}")
                self._set_aside = True
                return []
            records = data.get("tasks", [])
        else:
            logger.warning(f"Unexpected sync queue document in {self._path}")
            self._set_aside = True
            return []

        if not isinstance(records, list):
            logger.warning(f"Sync queue 'tasks' is not a list in {self._path}")
            self._set_aside = True
            return []

        tasks: list[SyncTask] = []
        seen: set[str] = set()
        for record in records:
            try:
                task = SyncTask.from_dict(record)
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping corrupted sync task: {e}")
                continue
            if task.id in seen:
                logger.warning(f"Skipping duplicate sync task id: {task.id}")
                continue
            seen.add(task.id)
            tasks.append(task)

        logger.info(f"Loaded {len(tasks)} sync tasks from {self._path}")
        return tasks

    def save(self, tasks: Sequence[SyncTask]) -> None:
        document = {
            "version": STORE_FORMAT_VERSION,
            "tasks": [task.to_dict() for task in tasks],
        }
        if self._set_aside:
            self._move_aside()
        try:
            atomic_write_json(self._path, document)
        except (OSError, TypeError, ValueError) as e:
            raise store_write_failed(str(self._path), cause=e) from e
        logger.debug(f"Persisted {len(tasks)} sync tasks to {self._path}")

    def _move_aside(self) -> None:
        backup = self._path.with_name(f"{self._path.name}.bak")
        try:
            if self._path.exists():
                os.replace(self._path, backup)
                logger.error(f"Moved unreadable sync queue {self._path} to {backup}")
        except OSError as e:
            raise store_write_failed(str(self._path), cause=e) from e
        self._set_aside = False


class MemoryQueueStore:
    """Process-local store. Nothing survives a restart; used for dry runs and tests."""

    def __init__(self, tasks: Sequence[SyncTask] | None = None) -> None:
        self._tasks: list[SyncTask] = list(tasks or [])
        self._lock = threading.Lock()
        self.save_count = 0

    def load(self) -> list[SyncTask]:
        with self._lock:
            return list(self._tasks)

    def save(self, tasks: Sequence[SyncTask]) -> None:
        with self._lock:
            self._tasks = list(tasks)
            self.save_count += 1


__all__ = [
    "QueueStore",
    "JsonFileQueueStore",
    "MemoryQueueStore",
    "STORE_FORMAT_VERSION",
]
