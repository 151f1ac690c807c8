"""Device link boundary and the HTTP link implementation."""

from devicesync.device.http import HttpDeviceLink
from devicesync.device.link import (
    Ack,
    ConnectionHandle,
    ConnectionState,
    Credentials,
    DeviceLink,
)
from devicesync.device.network import get_local_ip

__all__ = [
    "Ack",
    "ConnectionHandle",
    "ConnectionState",
    "Credentials",
    "DeviceLink",
    "HttpDeviceLink",
    "get_local_ip",
]
