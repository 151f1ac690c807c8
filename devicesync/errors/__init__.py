"""Unified exception hierarchy for devicesync.

Exception Hierarchy:
    DeviceSyncError (base)
    +-- ConfigurationError - Configuration and settings issues
    +-- PersistenceError - Queue store read/write failures
    +-- DeviceError - Device link failures
    |   +-- AuthError - Credentials rejected
    |   +-- DeviceConnectionError - Device unreachable on connect
    |   +-- DeliveryError - A single sync attempt failed
    +-- QueueClosedError - Mutation of a closed queue

Usage:
    from devicesync.errors import DeliveryError

    try:
        link.attempt_sync(payload)
    except DeliveryError as e:
        logger.warning("Delivery failed: %s (code: %s)", e.message, e.code)
"""

from devicesync.errors.base import (
    ConfigurationError,
    DeviceSyncError,
    ErrorCode,
)
from devicesync.errors.domain import (
    AuthError,
    DeliveryError,
    DeviceConnectionError,
    DeviceError,
    PersistenceError,
    QueueClosedError,
)
from devicesync.errors.factories import (
    auth_rejected,
    delivery_failed,
    device_unreachable,
    not_connected,
    store_write_failed,
)

__all__ = [
    "ErrorCode",
    "DeviceSyncError",
    "ConfigurationError",
    "PersistenceError",
    "DeviceError",
    "AuthError",
    "DeviceConnectionError",
    "DeliveryError",
    "QueueClosedError",
    "auth_rejected",
    "delivery_failed",
    "device_unreachable",
    "not_connected",
    "store_write_failed",
]
