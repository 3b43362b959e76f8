"""Port fallback and TLS material loading."""

import socket

import pytest

from liveserve.errors import ConfigError, ErrorCode
from liveserve.server.tls import load_ssl_context
from liveserve.utils.ports import bind_available_port, display_host, get_local_ip


@pytest.fixture
def busy_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock.getsockname()[1]
    sock.close()


def test_busy_port_falls_back_to_next(busy_port):
    sock = bind_available_port(busy_port, "127.0.0.1", limit=busy_port + 50)
    try:
        assert sock.getsockname()[1] > busy_port
    finally:
        sock.close()


def test_no_free_port_in_range(busy_port):
    with pytest.raises(ConfigError) as exc_info:
        bind_available_port(busy_port, "127.0.0.1", limit=busy_port)
    assert exc_info.value.code == ErrorCode.CONFIG_PORT_UNAVAILABLE


def test_port_zero_picks_random():
    sock = bind_available_port(0, "127.0.0.1")
    try:
        assert sock.getsockname()[1] > 0
    finally:
        sock.close()


def test_display_host():
    assert display_host("127.0.0.1") == "127.0.0.1"
    assert display_host("0.0.0.0") == get_local_ip()


def test_missing_certificate(tmp_path):
    with pytest.raises(ConfigError) as exc_info:
        load_ssl_context(str(tmp_path / "server.crt"), str(tmp_path / "server.key"))
    assert exc_info.value.code == ErrorCode.CONFIG_TLS_UNREADABLE


def test_garbage_certificate(tmp_path):
    cert = tmp_path / "server.crt"
    key = tmp_path / "server.key"
    cert.write_text("not a certificate")
    key.write_text("not a key")
    with pytest.raises(ConfigError) as exc_info:
        load_ssl_context(str(cert), str(key))
    assert exc_info.value.code == ErrorCode.CONFIG_TLS_UNREADABLE
