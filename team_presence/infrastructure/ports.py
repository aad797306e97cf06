"""Free TCP port discovery for the development server."""

from __future__ import annotations

import logging
import socket

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 100


class NoFreePortError(RuntimeError):
    """No port in the scanned range could be bound."""


def is_port_available(port: int, host: str = "127.0.0.1") -> bool:
    """Return True if a listening socket can be bound to ``host:port`` right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def find_free_port(
    start: int, host: str = "127.0.0.1", max_attempts: int = DEFAULT_MAX_ATTEMPTS
) -> int:
    """Scan ``start .. start + max_attempts - 1`` and return the first free port."""
    for port in range(start, min(start + max_attempts, 65536)):
        if is_port_available(port, host):
            return port
    raise NoFreePortError(f"no free port in range {start}-{start + max_attempts - 1}")


def get_available_port(preferred: int, host: str = "127.0.0.1") -> int:
    if is_port_available(preferred, host):
        return preferred
    logger.warning("Port busy, scanning for a free one", extra={"port": preferred})
    port = find_free_port(preferred + 1, host)
    logger.info("Using fallback port", extra={"port": port})
    return port
