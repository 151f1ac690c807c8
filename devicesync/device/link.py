"""Device link capability consumed by the sync core.

The core never talks to the device itself. It asks a DeviceLink whether
it is connected and hands it payloads; everything else about the device
lives behind this protocol.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class Credentials:
    """What the login form collects.

    Attributes:
        address: Device address (IP, host, or device path segment).
        token: Bearer token presented to the device.
    """

    address: str
    token: str = ""

    def __repr__(self) -> str:
        # Keep tokens out of logs and tracebacks
        masked = "***" if self.token else ""
        return f"Credentials(address={self.address!r}, token={masked!r})"


@dataclass(frozen=True)
class ConnectionState:
    """Whether the link is usable, and since when.

    Attributes:
        connected: True while the link is usable.
        since: Time the current connection was established (None when disconnected).
    """

    connected: bool
    since: datetime | None = None

    @classmethod
    def disconnected(cls) -> ConnectionState:
        return cls(connected=False, since=None)

    @classmethod
    def connected_now(cls) -> ConnectionState:
        return cls(connected=True, since=datetime.now(UTC))

    @property
    def label(self) -> str:
        return "Connected" if self.connected else "Disconnected"


@dataclass(frozen=True)
class ConnectionHandle:
    """Returned by a successful connect.

    Attributes:
        address: Device address.
        status: Status string reported by the device.
        message: Free-form message reported by the device.
        connected_at: Connection time.
    """

    address: str
    status: str = ""
    message: str = ""
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class Ack:
    """Acknowledgement of one delivered sync."""

    message: str = ""
    data: dict[str, Any] | None = None


@runtime_checkable
class DeviceLink(Protocol):
    """Connection to the single remote device."""

    def connect(self, credentials: Credentials) -> ConnectionHandle:
        """Open the connection.

        Raises:
            AuthError: Credentials rejected.
            DeviceConnectionError: Device unreachable.
        """
        ...

    def is_connected(self) -> bool: ...

    def connection_state(self) -> ConnectionState: ...

    def attempt_sync(self, payload: dict[str, Any] | None = None) -> Ack:
        """Deliver one payload (None for a heartbeat).

        Raises:
            DeliveryError: The attempt failed.
        """
        ...

    def disconnect(self) -> None: ...
