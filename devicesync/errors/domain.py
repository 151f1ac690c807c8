"""Storage, device, and queue error classes."""

from __future__ import annotations

from typing import Any

from devicesync.errors.base import DeviceSyncError, ErrorCode

# Storage Errors


class PersistenceError(DeviceSyncError):
    """Raised when the queue store cannot be read or written.

    Recovered locally: the queue keeps its best-effort in-memory state
    and the failure is surfaced as a log event.
    """

    default_message = "Queue persistence failed"
    default_code = ErrorCode.STO_WRITE_FAILED

    def __init__(
        self,
        message: str | None = None,
        *,
        path: str | None = None,
        task_id: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if path:
            details["path"] = path
        if task_id:
            details["task_id"] = task_id
        super().__init__(message, code=code, details=details, cause=cause)

    @property
    def task_id(self) -> str | None:
        return self.details.get("task_id")


# Device Errors


class DeviceError(DeviceSyncError):
    """Base class for errors reported by the device link."""

    default_message = "Device error"
    default_code = ErrorCode.DEV_UNREACHABLE

    def __init__(
        self,
        message: str | None = None,
        *,
        address: str | None = None,
        status_code: int | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if address:
            details["address"] = address
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, code=code, details=details, cause=cause)


class AuthError(DeviceError):
    """Raised when the device rejects the supplied credentials."""

    default_message = "Device rejected credentials"
    default_code = ErrorCode.DEV_AUTH_REJECTED


class DeviceConnectionError(DeviceError):
    """Raised when the device cannot be reached while connecting."""

    default_message = "Device unreachable"
    default_code = ErrorCode.DEV_UNREACHABLE


class DeliveryError(DeviceError):
    """Raised when a single sync attempt fails."""

    default_message = "Sync delivery failed"
    default_code = ErrorCode.DEV_DELIVERY_FAILED


# Queue Errors


class QueueClosedError(DeviceSyncError):
    """Raised when a closed queue is mutated."""

    default_message = "Sync queue is closed"
    default_code = ErrorCode.QUE_CLOSED
