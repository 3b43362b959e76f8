"""File watcher: filtering, debounced change events, lifecycle."""

import asyncio
import os
from pathlib import Path

import pytest
from watchfiles import Change

from liveserve.errors import ConfigError, ErrorCode
from liveserve.observer import EventType
from liveserve.watch import FileWatcher, should_ignore, watched_roots


@pytest.mark.parametrize("filename", [
    ".hidden",
    "css/.cache",
    "backup.html~",
    "build.tmp",
    "server.log",
    ".index.html.swp",
    "notes.swo",
    ".DS_Store",
    "Thumbs.db",
    "node_modules/lib/index.js",
    ".git/HEAD",
    "sub/.svn/entries",
    "",
])
def test_noise_is_ignored(filename):
    assert should_ignore(filename)


@pytest.mark.parametrize("filename", [
    "index.html",
    "css/site.css",
    "js/app.min.js",
    "logs/readme.md",
    "temp/page.html",
])
def test_sources_are_not_ignored(filename):
    assert not should_ignore(filename)


def test_watched_roots_drops_nested(tmp_path):
    outer = tmp_path / "site"
    inner = outer / "assets"
    other = tmp_path / "other"
    for path in (inner, other):
        path.mkdir(parents=True)

    assert watched_roots([inner, outer, other]) == {outer.resolve(), other.resolve()}


def _collect_changes(watcher):
    events = []
    watcher.on(EventType.CHANGED, events.append)
    return events


def test_burst_becomes_one_change_event(tmp_path, fake_loop):
    watcher = FileWatcher(tmp_path)
    watcher._debouncer._loop = fake_loop
    events = _collect_changes(watcher)

    accepted = watcher.handle_changes([
        (Change.deleted, str(tmp_path / "index.html")),
        (Change.added, str(tmp_path / "index.html")),
        (Change.added, str(tmp_path / ".index.html.swp")),
        (Change.modified, str(tmp_path / "style.css")),
    ])
    assert accepted == 3

    fake_loop.advance_to(0.099)
    assert events == []
    fake_loop.advance_to(0.2)

    assert len(events) == 1
    payload = events[0].payload
    assert payload["filename"] == "style.css"
    assert payload["kind"] == "modified"
    assert payload["full_path"] == str(tmp_path / "style.css")
    assert "T" in payload["timestamp"]


def test_change_kinds(tmp_path, fake_loop):
    watcher = FileWatcher(tmp_path)
    watcher._debouncer._loop = fake_loop
    events = _collect_changes(watcher)

    for change, kind in ((Change.added, "created"), (Change.deleted, "deleted")):
        watcher.handle_changes([(change, str(tmp_path / "page.html"))])
        fake_loop.advance_to(fake_loop.now + 0.2)
        assert events[-1].payload["kind"] == kind


def test_paths_outside_root_are_dropped(tmp_path, fake_loop):
    root = tmp_path / "root"
    root.mkdir()
    watcher = FileWatcher(root)
    watcher._debouncer._loop = fake_loop

    assert watcher.handle_changes([(Change.modified, str(tmp_path / "elsewhere.html"))]) == 0
    assert not watcher._debouncer.pending


def test_nested_filename_is_relative(tmp_path, fake_loop):
    watcher = FileWatcher(tmp_path)
    watcher._debouncer._loop = fake_loop
    events = _collect_changes(watcher)

    watcher.handle_changes([(Change.modified, str(tmp_path / "css" / "site.css"))])
    fake_loop.advance_to(0.2)

    assert events[0].payload["filename"] == os.path.join("css", "site.css")


@pytest.mark.asyncio
async def test_start_fails_for_missing_root(tmp_path):
    watcher = FileWatcher(tmp_path / "missing")
    errors = []
    watcher.on(EventType.ERROR, errors.append)

    with pytest.raises(ConfigError) as exc_info:
        await watcher.start()

    assert exc_info.value.code == ErrorCode.SERVER_WATCH_FAILED
    assert not watcher.is_running
    assert len(errors) == 1


@pytest.mark.asyncio
async def test_start_fails_for_file_root(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x")
    with pytest.raises(ConfigError):
        await FileWatcher(target).start()


@pytest.mark.asyncio
async def test_stop_is_idempotent(tmp_path):
    watcher = FileWatcher(tmp_path)
    await watcher.start()
    assert watcher.is_running

    await watcher.stop()
    await watcher.stop()

    assert not watcher.is_running
    assert watcher.events.subscriber_count() == 0


@pytest.mark.asyncio
async def test_detects_real_file_change(tmp_path: Path):
    watcher = FileWatcher(tmp_path, debounce_ms=50)
    changed = asyncio.Event()
    seen = []

    def on_changed(event):
        seen.append(event.payload["filename"])
        changed.set()

    watcher.on(EventType.CHANGED, on_changed)
    await watcher.start()
    try:
        # give the native watcher a moment to register
        await asyncio.sleep(0.2)
        (tmp_path / "page.html").write_text("<p>v2</p>")
        await asyncio.wait_for(changed.wait(), timeout=5.0)
    finally:
        await watcher.stop()

    assert seen[0] == "page.html"


@pytest.mark.asyncio
async def test_batch_during_shutdown_leaves_no_pending_timer(tmp_path, monkeypatch):
    async def late_batch(root, *, stop_event, **kwargs):
        await stop_event.wait()
        yield {(Change.modified, str(Path(root) / "late.html"))}

    monkeypatch.setattr("liveserve.watch.watcher.awatch", late_batch)
    watcher = FileWatcher(tmp_path, debounce_ms=50)
    await watcher.start()

    await watcher.stop()

    assert not watcher._debouncer.pending
