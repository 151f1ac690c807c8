"""HTTP implementation of the device link.

Connecting fetches ``{base_url}/{address}`` with a bearer token and
expects a JSON body with ``status`` and ``message`` fields. Sync payloads
are POSTed as JSON to ``{base_url}{sync_path}``.

Usage:
    from devicesync.device.http import HttpDeviceLink
    from devicesync.device.link import Credentials

    link = HttpDeviceLink(base_url="http://192.168.1.20:8080")
    link.connect(Credentials(address="devices/1", token="secret"))
    link.attempt_sync({"reading": 42})
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

import requests

from devicesync.device.link import Ack, ConnectionHandle, ConnectionState, Credentials
from devicesync.errors import (
    DeviceConnectionError,
    auth_rejected,
    delivery_failed,
    device_unreachable,
    not_connected,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

LogSink = Callable[[str], None]


class HttpDeviceLink:
    """DeviceLink speaking JSON over HTTP.

    Thread-safe: connection state is guarded by a lock so the scheduler
    thread and a UI thread may use the same link.
    """

    def __init__(
        self,
        base_url: str,
        sync_path: str = "/sync",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        verify_tls: bool = True,
        session: requests.Session | None = None,
        log_sink: LogSink | None = None,
    ) -> None:
        """Initialize the link.

        Args:
            base_url: Root URL of the device API.
            sync_path: Path receiving sync payloads.
            timeout_seconds: Per-request timeout.
            verify_tls: Verify TLS certificates.
            session: Optional requests session (shared pools, tests).
            log_sink: Receives human-readable connection log lines.
        """
        self._base_url = base_url.rstrip("/")
        self._sync_path = sync_path if sync_path.startswith("/") else f"/{sync_path}"
        self._timeout = timeout_seconds
        self._verify = verify_tls
        self._session = session or requests.Session()
        self._log_sink = log_sink

        self._lock = threading.RLock()
        self._state = ConnectionState.disconnected()
        self._credentials: Credentials | None = None
        self._handle: ConnectionHandle | None = None

    @property
    def handle(self) -> ConnectionHandle | None:
        return self._handle

    def _emit(self, line: str) -> None:
        if self._log_sink is None:
            logger.info(line)
            return
        try:
            self._log_sink(line)
        except Exception as e:
            logger.exception(f"Device log sink failed: {e}")

    def _headers(self, credentials: Credentials) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if credentials.token:
            headers["Authorization"] = f"Bearer {credentials.token}"
        return headers

    def connect(self, credentials: Credentials) -> ConnectionHandle:
        address = credentials.address.strip("/")
        if not address:
            raise DeviceConnectionError("Device address is required")

        self._emit(f"Connecting to {address}")
        url = f"{self._base_url}/{address}"

        try:
            response = self._session.get(
                url,
                headers=self._headers(credentials),
                timeout=self._timeout,
                verify=self._verify,
            )
        except requests.RequestException as e:
            raise device_unreachable(address, cause=e) from e

        if response.status_code in (401, 403):
            raise auth_rejected(address, status_code=response.status_code)
        if not response.ok:
            raise DeviceConnectionError(
                f"Device at {address} answered HTTP {response.status_code}",
                address=address,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise DeviceConnectionError(
                f"Device at {address} sent an unreadable status", address=address, cause=e
            ) from e
        if not isinstance(body, dict):
            body = {}

        handle = ConnectionHandle(
            address=address,
            status=str(body.get("status", "")),
            message=str(body.get("message", "")),
        )

        with self._lock:
            self._credentials = credentials
            self._handle = handle
            self._state = ConnectionState(connected=True, since=handle.connected_at)

        self._emit(f"Device status: {handle.status or 'unknown'}")
        return handle

    def is_connected(self) -> bool:
        with self._lock:
            return self._state.connected

    def connection_state(self) -> ConnectionState:
        with self._lock:
            return self._state

    def attempt_sync(self, payload: dict[str, Any] | None = None) -> Ack:
        with self._lock:
            credentials = self._credentials
            connected = self._state.connected
        if not connected or credentials is None:
            raise not_connected()

        url = f"{self._base_url}{self._sync_path}"
        try:
            response = self._session.post(
                url,
                json=payload or {},
                headers=self._headers(credentials),
                timeout=self._timeout,
                verify=self._verify,
            )
        except requests.RequestException as e:
            raise delivery_failed(str(e), cause=e) from e

        if not response.ok:
            raise delivery_failed(
                f"HTTP {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError:
            data = None

        return Ack(
            message=str(data.get("message", "")) if isinstance(data, dict) else "",
            data=data if isinstance(data, dict) else None,
        )

    def disconnect(self) -> None:
        with self._lock:
            was_connected = self._state.connected
            self._state = ConnectionState.disconnected()
            self._credentials = None
            self._handle = None
        if was_connected:
            logger.info(f"Disconnected from {self._base_url}")

    def close(self) -> None:
        """Disconnect and release the HTTP session."""
        self.disconnect()
        self._session.close()
