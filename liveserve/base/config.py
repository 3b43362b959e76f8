# ============================================================================
# liveserve/base/config.py
# Application Configuration Management
# ============================================================================
#
# PURPOSE:
# Every setting the servers consume: root directories, listen addresses,
# TLS material, feature switches and the reload client's retry policy.
#
# KEY CONCEPTS:
# 1. Frozen dataclasses: settings never change once a server is constructed
# 2. Environment Variables: LIVESERVE_* values override the defaults
# 3. Singleton: get_config() hands out one shared instance, set_config() swaps it in tests
#
# ============================================================================

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() in ("1", "true", "yes", "on")


# ============================================================================
# Server Configuration
# ============================================================================
# What gets served, where, and which optional features are switched on.

@dataclass(frozen=True)
class ServerConfig:
    # Document roots in search order (first match wins)
    roots: Tuple[str, ...] = (".",)

    # Interface to bind; 0.0.0.0 listens on every interface
    host: str = "0.0.0.0"

    # HTTP port and live-reload WebSocket port (0 = pick a random free port)
    port: int = 3000
    socket_port: int = 3001

    # TLS: when enabled both listeners use the same certificate/key pair
    https: bool = False
    cert: str = "server.crt"
    key: str = "server.key"

    # Feature switches
    watch: bool = False
    cors: bool = False
    index: bool = True

    # Reject system directories as roots (see resolver.UNSAFE_TREES)
    enforce_safe_roots: bool = True

    # Use stat polling instead of native recursive notifications
    force_polling: bool = False

    # Quiet window before a burst of file events becomes one reload
    debounce_ms: int = 100

    # Browser-side reconnect policy for the injected client script
    reconnect_attempts: int = 10
    reconnect_base_ms: int = 1000
    reconnect_max_ms: int = 30000


# ============================================================================
# Logging Configuration
# ============================================================================

@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    # Also write to a rotating file (console output is always on)
    file_enabled: bool = False
    file_path: Path = field(default_factory=lambda: Path("liveserve.log"))
    max_file_size_mb: int = 10
    backup_count: int = 5


# ============================================================================
# Master Configuration Container
# ============================================================================

@dataclass(frozen=True)
class LiveServeConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    log: LogConfig = field(default_factory=LogConfig)
    debug: bool = False

    def with_overrides(self, **server_overrides) -> "LiveServeConfig":
        """Return a copy whose server section has the given fields replaced."""
        return replace(self, server=replace(self.server, **server_overrides))

    @classmethod
    def from_env(cls) -> "LiveServeConfig":
        # LIVESERVE_ROOTS uses the platform path separator: "public:assets" on POSIX
        roots_str = os.getenv("LIVESERVE_ROOTS", "")
        roots = tuple(r for r in roots_str.split(os.pathsep) if r) or (".",)

        server = ServerConfig(
            roots=roots,
            host=os.getenv("LIVESERVE_HOST", "0.0.0.0"),
            port=int(os.getenv("LIVESERVE_PORT", "3000")),
            socket_port=int(os.getenv("LIVESERVE_SOCKET_PORT", "3001")),
            https=_env_flag("LIVESERVE_HTTPS", False),
            cert=os.getenv("LIVESERVE_CERT", "server.crt"),
            key=os.getenv("LIVESERVE_KEY", "server.key"),
            watch=_env_flag("LIVESERVE_WATCH", False),
            cors=_env_flag("LIVESERVE_CORS", False),
            index=_env_flag("LIVESERVE_INDEX", True),
            enforce_safe_roots=_env_flag("LIVESERVE_ENFORCE_SAFE_ROOTS", True),
            force_polling=_env_flag("LIVESERVE_FORCE_POLLING", False),
            debounce_ms=int(os.getenv("LIVESERVE_DEBOUNCE_MS", "100")),
        )

        log_path = os.getenv("LIVESERVE_LOG_FILE")
        log = LogConfig(
            level=os.getenv("LIVESERVE_LOG_LEVEL", "INFO"),
            file_enabled=bool(log_path),
            file_path=Path(log_path) if log_path else Path("liveserve.log"),
        )

        return cls(
            server=server,
            log=log,
            debug=_env_flag("LIVESERVE_DEBUG", False),
        )


# ============================================================================
# Global Configuration Singleton
# ============================================================================

_config: Optional[LiveServeConfig] = None


def get_config() -> LiveServeConfig:
    """
    Get the global configuration instance.

    Returns:
        The shared LiveServeConfig (built from the environment on first use)
    """
    global _config
    if _config is None:
        _config = LiveServeConfig.from_env()
    return _config


def set_config(config: Optional[LiveServeConfig]) -> None:
    """
    Replace the global configuration (mainly used for testing).

    Passing None drops the cached instance so the next get_config()
    re-reads the environment.
    """
    global _config
    _config = config


def setup_logging(config: Optional[LiveServeConfig] = None) -> None:
    """
    Configure Python's logging system based on our settings.

    Call this once at program startup; library code never calls it.
    """
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_enabled:
        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            cfg.log.file_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    level = "DEBUG" if cfg.debug else cfg.log.level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
