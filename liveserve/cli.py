"""
liveserve command line.

Usage examples:
    liveserve public assets --watch
    liveserve -p 8080 --cors --no-index
    python -m liveserve --https -c server.crt -k server.key
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from dataclasses import replace
from typing import List, Optional

from . import __version__
from .base.config import LiveServeConfig, get_config, set_config, setup_logging
from .errors import LiveServeError
from .server import WebServer

logger = logging.getLogger(__name__)


def build_parser(defaults: LiveServeConfig) -> argparse.ArgumentParser:
    server = defaults.server
    parser = argparse.ArgumentParser(
        prog="liveserve",
        description="Local development file server with live reload",
    )
    parser.add_argument("roots", nargs="*", default=list(server.roots),
                        help=f"Document root directories, searched in order (default: {' '.join(server.roots)})")
    parser.add_argument("-H", "--host", default=server.host, help="Hostname to bind")
    parser.add_argument("-p", "--port", type=int, default=server.port, help="Port to listen on")
    parser.add_argument("-s", "--socket", dest="socket_port", type=int, default=server.socket_port,
                        help="WebSocket port for live reload")
    parser.add_argument("-S", "--https", action=argparse.BooleanOptionalAction, default=server.https,
                        help="Enable HTTPS (and wss for live reload)")
    parser.add_argument("-c", "--cert", default=server.cert, help="Path to SSL certificate")
    parser.add_argument("-k", "--key", default=server.key, help="Path to SSL private key")
    parser.add_argument("-w", "--watch", action=argparse.BooleanOptionalAction, default=server.watch,
                        help="Enable live reload")
    parser.add_argument("--cors", action=argparse.BooleanOptionalAction, default=server.cors,
                        help="Enable CORS headers")
    parser.add_argument("-i", "--index", action=argparse.BooleanOptionalAction, default=server.index,
                        help="Enable directory listing")
    parser.add_argument("--force-polling", action=argparse.BooleanOptionalAction, default=server.force_polling,
                        help="Poll the filesystem instead of using native notifications")
    parser.add_argument("--allow-unsafe-roots", action="store_true",
                        help="Allow serving system directories such as /etc or your home directory")
    parser.add_argument("--debug", action="store_true", default=defaults.debug, help="Verbose logging")
    parser.add_argument("-v", "--version", action="version", version=__version__)
    return parser


def config_from_args(args: argparse.Namespace, defaults: LiveServeConfig) -> LiveServeConfig:
    config = defaults.with_overrides(
        roots=tuple(args.roots),
        host=args.host,
        port=args.port,
        socket_port=args.socket_port,
        https=args.https,
        cert=args.cert,
        key=args.key,
        watch=args.watch,
        cors=args.cors,
        index=args.index,
        force_polling=args.force_polling,
        enforce_safe_roots=defaults.server.enforce_safe_roots and not args.allow_unsafe_roots,
    )
    if args.debug:
        config = replace(config, debug=True)
    return config


async def serve(config: LiveServeConfig) -> None:
    """Run the server until SIGINT/SIGTERM."""
    server = WebServer(config.server)
    stop_requested = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_requested.set)
        except NotImplementedError:
            # Windows event loops; KeyboardInterrupt still ends asyncio.run()
            pass

    await server.start()
    try:
        await stop_requested.wait()
        logger.info("Shutting down...")
    finally:
        await server.stop()


def main(argv: Optional[List[str]] = None) -> None:
    defaults = get_config()
    args = build_parser(defaults).parse_args(argv)
    config = config_from_args(args, defaults)
    set_config(config)
    setup_logging(config)

    try:
        asyncio.run(serve(config))
    except LiveServeError as e:
        logger.error(f"Failed to start web server: {e.message}")
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
