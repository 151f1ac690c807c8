"""Tests for the devicesync exception hierarchy."""

from __future__ import annotations

import pytest

from devicesync.errors import (
    AuthError,
    ConfigurationError,
    DeliveryError,
    DeviceConnectionError,
    DeviceError,
    DeviceSyncError,
    ErrorCode,
    PersistenceError,
    QueueClosedError,
    auth_rejected,
    delivery_failed,
    device_unreachable,
    not_connected,
    store_write_failed,
)


class TestDeviceSyncError:
    """Tests for the base error."""

    def test_defaults(self) -> None:
        error = DeviceSyncError()
        assert error.message == "An error occurred"
        assert error.code == ErrorCode.UNKNOWN
        assert error.details == {}
        assert str(error) == "An error occurred"

    def test_cause_is_chained(self) -> None:
        cause = OSError("disk")
        error = DeviceSyncError("wrapped", cause=cause)
        assert error.__cause__ is cause

    def test_to_dict(self) -> None:
        error = DeviceSyncError("bad", code=ErrorCode.CFG_INVALID, details={"k": "v"})
        assert error.to_dict() == {
            "error": "DeviceSyncError",
            "code": "CFG_INVALID",
            "detail": "bad",
            "details": {"k": "v"},
        }

    def test_repr(self) -> None:
        assert repr(QueueClosedError()) == "QueueClosedError('Sync queue is closed')"


class TestHierarchy:
    """Tests for subclass codes and details."""

    @pytest.mark.parametrize(
        ("cls", "code"),
        [
            (ConfigurationError, ErrorCode.CFG_INVALID),
            (PersistenceError, ErrorCode.STO_WRITE_FAILED),
            (AuthError, ErrorCode.DEV_AUTH_REJECTED),
            (DeviceConnectionError, ErrorCode.DEV_UNREACHABLE),
            (DeliveryError, ErrorCode.DEV_DELIVERY_FAILED),
            (QueueClosedError, ErrorCode.QUE_CLOSED),
        ],
    )
    def test_default_codes(self, cls: type[DeviceSyncError], code: ErrorCode) -> None:
        error = cls()
        assert error.code == code
        assert isinstance(error, DeviceSyncError)

    def test_device_errors_share_base(self) -> None:
        for cls in (AuthError, DeviceConnectionError, DeliveryError):
            assert issubclass(cls, DeviceError)

    def test_configuration_details(self) -> None:
        error = ConfigurationError("bad", config_key="sync.interval", config_path="/x")
        assert error.details == {"config_key": "sync.interval", "config_path": "/x"}

    def test_persistence_task_id(self) -> None:
        assert PersistenceError(task_id="t1").task_id == "t1"
        assert PersistenceError().task_id is None


class TestFactories:
    """Tests for error factory functions."""

    def test_store_write_failed(self) -> None:
        cause = OSError("full")
        error = store_write_failed("/q.json", cause=cause, task_id="t1")
        assert error.details == {"path": "/q.json", "task_id": "t1"}
        assert error.cause is cause

    def test_auth_rejected(self) -> None:
        error = auth_rejected("devices/1", status_code=401)
        assert isinstance(error, AuthError)
        assert error.details["status_code"] == 401

    def test_device_unreachable(self) -> None:
        error = device_unreachable("devices/1", cause=TimeoutError("slow"))
        assert "slow" in error.message
        assert error.details["address"] == "devices/1"

    def test_not_connected(self) -> None:
        error = not_connected()
        assert isinstance(error, DeliveryError)
        assert error.code == ErrorCode.DEV_NOT_CONNECTED

    def test_delivery_failed(self) -> None:
        error = delivery_failed("HTTP 500", status_code=500)
        assert error.message == "Sync attempt failed: HTTP 500"
        assert error.details == {"status_code": 500}
