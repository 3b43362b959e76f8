"""TLS material loading. One context is shared by the HTTP and WebSocket listeners."""

import logging
import os
import ssl

from ..errors import ConfigError, ErrorCode

logger = logging.getLogger(__name__)


def load_ssl_context(cert: str, key: str) -> ssl.SSLContext:
    """
    Build a server-side SSLContext from a PEM certificate and key.

    Raises:
        ConfigError: either file is missing or unreadable, or they don't match
    """
    for label, path in (("certificate", cert), ("key", key)):
        if not os.path.isfile(path):
            raise ConfigError(
                f"SSL {label} not found: {path}",
                ErrorCode.CONFIG_TLS_UNREADABLE,
                details={"path": path},
            )

    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    try:
        context.load_cert_chain(certfile=cert, keyfile=key)
    except (OSError, ssl.SSLError) as e:
        raise ConfigError(
            f"Cannot load SSL certificate/key ({cert}, {key}): {e}",
            ErrorCode.CONFIG_TLS_UNREADABLE,
            details={"cert": cert, "key": key},
        )

    logger.info(f"[WebServer] Loaded SSL certificate {cert}")
    return context
