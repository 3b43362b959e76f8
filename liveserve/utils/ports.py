"""
Port selection for the HTTP and WebSocket listeners.

A busy preferred port is not fatal: the next free port up to MAX_PORT is
used instead. The socket that won the probe is returned still bound, and
the listener adopts it, so nothing can grab the port in between.
"""

import logging
import socket
from typing import Optional

from ..errors import ConfigError, ErrorCode

logger = logging.getLogger(__name__)

MAX_PORT = 9000


def _bind(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        # Listening right away keeps a later SO_REUSEADDR bind from sharing the port
        sock.listen(128)
    except OSError:
        sock.close()
        raise
    return sock


def bind_available_port(preferred: int, host: str = "0.0.0.0",
                        label: str = "Port", limit: int = MAX_PORT) -> socket.socket:
    """
    Bind preferred, or the first free port after it.

    preferred == 0 lets the OS pick a random free port.

    Raises:
        ConfigError: every candidate up to limit is taken
    """
    if preferred == 0:
        try:
            return _bind(host, 0)
        except OSError as e:
            raise ConfigError(f"Cannot bind {host}: {e}", ErrorCode.CONFIG_PORT_UNAVAILABLE)

    last_error: Optional[OSError] = None
    for candidate in range(preferred, max(limit, preferred) + 1):
        try:
            sock = _bind(host, candidate)
        except OSError as e:
            last_error = e
            if candidate == preferred:
                logger.warning(f"{label} {preferred} is already in use, looking for an available one...")
            continue
        return sock

    raise ConfigError(
        f"No available port between {preferred} and {limit} on {host}: {last_error}",
        ErrorCode.CONFIG_PORT_UNAVAILABLE,
        details={"preferred": preferred, "host": host},
    )


def get_local_ip() -> str:
    """First non-loopback IPv4 address, used for display when bound to 0.0.0.0."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # UDP connect sends nothing; it only selects the outbound interface
        probe.connect(("10.255.255.255", 1))
        address = probe.getsockname()[0]
    except OSError:
        address = "127.0.0.1"
    finally:
        probe.close()
    return address


def display_host(host: str) -> str:
    return get_local_ip() if host in ("0.0.0.0", "::") else host
