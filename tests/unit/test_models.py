"""Tests for sync task models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from devicesync.sync.models import (
    PassResult,
    SyncStatus,
    SyncTask,
    TaskResult,
    TriggerSource,
)


class TestSyncStatus:
    """Tests for SyncStatus."""

    def test_terminal_states(self) -> None:
        assert SyncStatus.PENDING.is_terminal is False
        assert SyncStatus.COMPLETED.is_terminal is True
        assert SyncStatus.FAILED.is_terminal is True


class TestSyncTask:
    """Tests for SyncTask."""

    def test_create_defaults(self) -> None:
        """New tasks are Pending with a fresh id."""
        task = SyncTask.create({"a": 1})

        assert task.status == SyncStatus.PENDING
        assert task.payload == {"a": 1}
        assert task.updated_at == task.created_at
        assert task.created_at.tzinfo is not None
        assert task.is_heartbeat is False

    def test_ids_are_unique(self) -> None:
        ids = {SyncTask.create().id for _ in range(100)}
        assert len(ids) == 100

    def test_heartbeat_task(self) -> None:
        assert SyncTask.create(None).is_heartbeat is True

    def test_with_status_returns_new_instance(self) -> None:
        """Status changes produce a copy with only status/updated_at changed."""
        task = SyncTask.create({"a": 1})
        later = task.created_at + timedelta(seconds=5)

        done = task.with_status(SyncStatus.COMPLETED, at=later)

        assert task.status == SyncStatus.PENDING
        assert done.status == SyncStatus.COMPLETED
        assert done.updated_at == later
        assert done.id == task.id
        assert done.created_at == task.created_at
        assert done.payload == task.payload
        assert done.is_terminal is True

    def test_frozen(self) -> None:
        task = SyncTask.create()
        with pytest.raises(AttributeError):
            task.status = SyncStatus.FAILED  # type: ignore[misc]

    def test_serialization(self) -> None:
        """to_dict/from_dict preserve every field."""
        task = SyncTask.create({"nested": {"x": [1, 2]}}).with_status(SyncStatus.FAILED)

        restored = SyncTask.from_dict(task.to_dict())

        assert restored == task

    def test_from_dict_naive_timestamps_are_utc(self) -> None:
        task = SyncTask.from_dict(
            {"id": "t1", "created_at": "2024-03-01T10:00:00", "status": "pending"}
        )

        assert task.created_at == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)
        assert task.updated_at == task.created_at

    @pytest.mark.parametrize(
        "record",
        [
            {"created_at": "2024-03-01T10:00:00+00:00"},
            {"id": "t1"},
            {"id": "t1", "created_at": "yesterday"},
            {"id": "t1", "created_at": "2024-03-01T10:00:00+00:00", "status": "sent"},
            {"id": "t1", "created_at": "2024-03-01T10:00:00+00:00", "payload": [1]},
            {"id": "", "created_at": "2024-03-01T10:00:00+00:00"},
        ],
    )
    def test_from_dict_rejects_malformed(self, record: dict) -> None:
        with pytest.raises((KeyError, ValueError, TypeError)):
            SyncTask.from_dict(record)


class TestPassResult:
    """Tests for PassResult counters."""

    def test_counts_only_committed_outcomes(self) -> None:
        result = PassResult(source=TriggerSource.INTERVAL, connected=True)
        result.results = [
            TaskResult("a", SyncStatus.COMPLETED),
            TaskResult("b", SyncStatus.FAILED, error="boom"),
            TaskResult("c", SyncStatus.COMPLETED, committed=False),
        ]

        assert result.attempted == 3
        assert result.completed == 1
        assert result.failed == 1
        assert result.offline is False

    def test_duration(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=UTC)
        result = PassResult(source=TriggerSource.MANUAL, connected=False, started_at=start)
        assert result.duration_seconds == 0.0

        result.finished_at = start + timedelta(seconds=2.5)
        assert result.duration_seconds == 2.5

    def test_to_dict(self) -> None:
        result = PassResult(source=TriggerSource.DAILY, connected=False)
        data = result.to_dict()

        assert data["source"] == "daily"
        assert data["connected"] is False
        assert data["finished_at"] is None
        assert data["attempted"] == 0

    def test_task_result_success(self) -> None:
        assert TaskResult("a", SyncStatus.COMPLETED).success is True
        assert TaskResult("a", SyncStatus.FAILED).success is False
