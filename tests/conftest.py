"""Shared fixtures for liveserve tests."""

from pathlib import Path

import pytest

from liveserve.base.config import ServerConfig, set_config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep LIVESERVE_* variables and the cached config from leaking between tests."""
    for name in ("LIVESERVE_ROOTS", "LIVESERVE_PORT", "LIVESERVE_SOCKET_PORT", "LIVESERVE_WATCH",
                 "LIVESERVE_CORS", "LIVESERVE_INDEX", "LIVESERVE_DEBUG", "LIVESERVE_HTTPS"):
        monkeypatch.delenv(name, raising=False)
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small document root:

        site/
            index.html
            about.txt
            docs/guide.md
            empty/
            assets/app.js
            .hidden
    """
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text("<html><body><h1>Home</h1></body></html>")
    (root / "about.txt").write_text("about")
    (root / "docs").mkdir()
    (root / "docs" / "guide.md").write_text("# Guide")
    (root / "empty").mkdir()
    (root / "assets").mkdir()
    (root / "assets" / "app.js").write_text("console.log('hi')")
    (root / ".hidden").write_text("secret")
    return root


@pytest.fixture
def two_roots(tmp_path: Path):
    """Roots A and B; x.txt exists only in B, shared.txt in both."""
    a = tmp_path / "A"
    b = tmp_path / "B"
    a.mkdir()
    b.mkdir()
    (b / "x.txt").write_text("from B")
    (a / "shared.txt").write_text("from A")
    (b / "shared.txt").write_text("from B")
    return a, b


@pytest.fixture
def server_config(site: Path) -> ServerConfig:
    """Config for a real server on random ports."""
    return ServerConfig(roots=(str(site),), host="127.0.0.1", port=0, socket_port=0)


class FakeTimerHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Deterministic stand-in for the call_later part of an event loop."""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay, callback, *args):
        handle = FakeTimerHandle(self.now + delay, lambda: callback(*args))
        self.handles.append(handle)
        return handle

    def advance_to(self, when):
        """Run every live timer due at or before `when`, in time order."""
        while True:
            due = [h for h in self.handles if not h.cancelled and h.when <= when + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = when


@pytest.fixture
def fake_loop():
    return FakeLoop()


class FakeWriter:
    """Minimal asyncio.StreamWriter double recording written bytes."""

    def __init__(self, fail_on_write=False, peer=("127.0.0.1", 50000)):
        self.fail_on_write = fail_on_write
        self.peer = peer
        self.written = []
        self.closed = False

    def write(self, data):
        if self.fail_on_write:
            raise ConnectionResetError("peer went away")
        self.written.append(bytes(data))

    def is_closing(self):
        return self.closed

    def close(self):
        self.closed = True

    async def wait_closed(self):
        return None

    async def drain(self):
        return None

    def get_extra_info(self, name, default=None):
        return self.peer if name == "peername" else default


@pytest.fixture
def writer_factory():
    return FakeWriter
