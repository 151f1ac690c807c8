"""Data models for the offline sync queue.

Defines sync tasks, their lifecycle states, and the results reported
by the executor and scheduler.

Usage:
    from devicesync.sync.models import SyncTask, SyncStatus

    task = SyncTask.create(payload={"temperature": 21})
    done = task.with_status(SyncStatus.COMPLETED)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class SyncStatus(str, Enum):
    """Status of a sync task."""

    PENDING = "pending"  # Waiting for a pass while connected
    COMPLETED = "completed"  # Delivered to the device
    FAILED = "failed"  # Delivery failed, never retried automatically

    @property
    def is_terminal(self) -> bool:
        return self is not SyncStatus.PENDING


class TriggerSource(str, Enum):
    """What asked for a sync pass."""

    MANUAL = "manual"
    INTERVAL = "interval"
    DAILY = "daily"


class SchedulerState(str, Enum):
    """Scheduler pass state."""

    IDLE = "idle"
    RUNNING_PASS = "running_pass"


@dataclass(frozen=True)
class SyncTask:
    """A unit of work to deliver to the device.

    Only ``status`` and ``updated_at`` ever differ between versions of
    the same task; every change produces a new instance.

    Attributes:
        id: Unique identifier, never reused.
        created_at: Enqueue time (UTC).
        payload: Structured value to deliver. None is a heartbeat sync.
        status: Lifecycle state.
        updated_at: Time of the last status change.
    """

    id: str
    created_at: datetime
    payload: dict[str, Any] | None = None
    status: SyncStatus = SyncStatus.PENDING
    updated_at: datetime | None = None

    @classmethod
    def create(
        cls, payload: dict[str, Any] | None = None, created_at: datetime | None = None
    ) -> SyncTask:
        now = created_at or datetime.now(UTC)
        return cls(id=uuid.uuid4().hex, created_at=now, payload=payload, updated_at=now)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_heartbeat(self) -> bool:
        return not self.payload

    def with_status(self, status: SyncStatus, at: datetime | None = None) -> SyncTask:
        """Return a copy of this task carrying a new status."""
        return replace(self, status=status, updated_at=at or datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "payload": self.payload,
            "status": self.status.value,
            "updated_at": (self.updated_at or self.created_at).isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncTask:
        """Create from dictionary.

        Raises:
            KeyError, ValueError, TypeError: If the record is malformed.
        """
        created_at = datetime.fromisoformat(data["created_at"])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        updated_raw = data.get("updated_at")
        updated_at = datetime.fromisoformat(updated_raw) if updated_raw else created_at
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=UTC)
        payload = data.get("payload")
        if payload is not None and not isinstance(payload, dict):
            raise TypeError(f"payload must be an object, got {type(payload).__name__}")
        task_id = data["id"]
        if not isinstance(task_id, str) or not task_id:
            raise ValueError("task id must be a non-empty string")
        return cls(
            id=task_id,
            created_at=created_at,
            payload=payload,
            status=SyncStatus(data.get("status", SyncStatus.PENDING.value)),
            updated_at=updated_at,
        )


@dataclass
class TaskResult:
    """Outcome of one delivery attempt.

    Attributes:
        task_id: The task attempted.
        status: Outcome decided for the task.
        committed: Whether the outcome was durably recorded. An
            uncommitted outcome leaves the task Pending.
        error: Error message when delivery or persistence failed.
    """

    task_id: str
    status: SyncStatus
    committed: bool = True
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status == SyncStatus.COMPLETED


@dataclass
class PassResult:
    """Summary of one sync pass.

    Attributes:
        source: Trigger that started the pass.
        connected: Whether the device was reachable at pass start.
        started_at: Pass start time.
        finished_at: Pass end time.
        results: Per-task outcomes, in attempt order.
        placeholder_task_id: Task enqueued because the device was unavailable.
        heartbeat_ok: Heartbeat outcome for manual passes, None otherwise.
        interrupted: True if the link dropped before the snapshot was drained.
    """

    source: TriggerSource
    connected: bool
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
    results: list[TaskResult] = field(default_factory=list)
    placeholder_task_id: str | None = None
    heartbeat_ok: bool | None = None
    interrupted: bool = False

    @property
    def offline(self) -> bool:
        return not self.connected

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def completed(self) -> int:
        return sum(1 for r in self.results if r.status == SyncStatus.COMPLETED and r.committed)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == SyncStatus.FAILED and r.committed)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source": self.source.value,
            "connected": self.connected,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "attempted": self.attempted,
            "completed": self.completed,
            "failed": self.failed,
            "placeholder_task_id": self.placeholder_task_id,
            "heartbeat_ok": self.heartbeat_ok,
            "interrupted": self.interrupted,
        }
