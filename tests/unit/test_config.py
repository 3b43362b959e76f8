"""Configuration loading, overrides and validation."""

import os

import pytest

from liveserve.base.config import LiveServeConfig, ServerConfig, get_config, set_config
from liveserve.errors import ConfigError
from liveserve.server.orchestrator import validate_config


def test_defaults():
    server = ServerConfig()
    assert server.roots == (".",)
    assert (server.host, server.port, server.socket_port) == ("0.0.0.0", 3000, 3001)
    assert server.index and not server.watch and not server.cors and not server.https
    assert server.enforce_safe_roots
    assert server.debounce_ms == 100


def test_from_env(monkeypatch):
    monkeypatch.setenv("LIVESERVE_ROOTS", os.pathsep.join(["public", "assets"]))
    monkeypatch.setenv("LIVESERVE_PORT", "8080")
    monkeypatch.setenv("LIVESERVE_WATCH", "yes")
    monkeypatch.setenv("LIVESERVE_INDEX", "off")
    monkeypatch.setenv("LIVESERVE_DEBUG", "1")

    config = LiveServeConfig.from_env()

    assert config.server.roots == ("public", "assets")
    assert config.server.port == 8080
    assert config.server.watch is True
    assert config.server.index is False
    assert config.debug is True


def test_singleton_and_reset(monkeypatch):
    first = get_config()
    assert get_config() is first

    monkeypatch.setenv("LIVESERVE_PORT", "4000")
    set_config(None)
    assert get_config().server.port == 4000

    custom = LiveServeConfig(server=ServerConfig(port=1234))
    set_config(custom)
    assert get_config() is custom


def test_with_overrides_returns_copy():
    base = LiveServeConfig()
    changed = base.with_overrides(port=9999, cors=True)
    assert changed.server.port == 9999
    assert changed.server.cors is True
    assert base.server.port == 3000


@pytest.mark.parametrize("overrides", [
    {"roots": ()},
    {"host": ""},
    {"port": -1},
    {"socket_port": 70000},
    {"debounce_ms": -5},
    {"reconnect_attempts": -1},
    {"reconnect_base_ms": 0},
    {"reconnect_base_ms": 5000, "reconnect_max_ms": 1000},
])
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ConfigError):
        validate_config(ServerConfig(**overrides))


def test_valid_config_passes():
    validate_config(ServerConfig(port=0, socket_port=0))
