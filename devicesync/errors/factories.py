"""Convenience factory functions for common error scenarios."""

from __future__ import annotations

from devicesync.errors.base import ErrorCode
from devicesync.errors.domain import (
    AuthError,
    DeliveryError,
    DeviceConnectionError,
    PersistenceError,
)


def store_write_failed(
    path: str, cause: Exception | None = None, task_id: str | None = None
) -> PersistenceError:
    """Create a PersistenceError for a failed queue write."""
    return PersistenceError(
        f"Failed to write sync queue to {path}",
        path=path,
        task_id=task_id,
        code=ErrorCode.STO_WRITE_FAILED,
        cause=cause,
    )


def auth_rejected(address: str, status_code: int | None = None) -> AuthError:
    """Create an AuthError for rejected credentials."""
    return AuthError(
        f"Device at {address} rejected credentials",
        address=address,
        status_code=status_code,
    )


def device_unreachable(address: str, cause: Exception | None = None) -> DeviceConnectionError:
    """Create a DeviceConnectionError for an unreachable device."""
    reason = str(cause) if cause else "no response"
    return DeviceConnectionError(
        f"Cannot reach device at {address}: {reason}",
        address=address,
        cause=cause,
    )


def not_connected() -> DeliveryError:
    """Create a DeliveryError for an attempt made without a connection."""
    return DeliveryError(
        "Device is not connected",
        code=ErrorCode.DEV_NOT_CONNECTED,
    )


def delivery_failed(
    reason: str, status_code: int | None = None, cause: Exception | None = None
) -> DeliveryError:
    """Create a DeliveryError for a failed sync attempt."""
    return DeliveryError(
        f"Sync attempt failed: {reason}",
        status_code=status_code,
        cause=cause,
    )
