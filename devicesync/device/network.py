"""Network helpers for the login screen."""

from __future__ import annotations

import logging
import socket

logger = logging.getLogger(__name__)

# Any routable address works; no packet is sent for a UDP connect
_PROBE_ADDRESS = ("8.8.8.8", 80)


def get_local_ip(probe: tuple[str, int] = _PROBE_ADDRESS) -> str | None:
    """Return the local IP address used for outbound traffic.

    Returns:
        Dotted IP string, or None if no route is available.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(probe)
            return sock.getsockname()[0]
    except OSError as e:
        logger.debug(f"Could not determine local IP: {e}")
        return None
