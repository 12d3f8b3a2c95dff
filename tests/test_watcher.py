import asyncio
import threading
import time
from pathlib import Path

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from leptos_build.watched import Watched, WatchedKind
from leptos_build.watcher import FileWatcher, event_to_watched, watch


def test_created_event_is_relative_to_working_dir(tmp_path):
    event = FileCreatedEvent(str(tmp_path / "src" / "a.rs"))
    assert event_to_watched(event, tmp_path) == Watched.create(Path("src") / "a.rs")


def test_deleted_and_modified_events(tmp_path):
    deleted = event_to_watched(FileDeletedEvent(str(tmp_path / "x.css")), tmp_path)
    modified = event_to_watched(FileModifiedEvent(str(tmp_path / "x.css")), tmp_path)
    assert deleted == Watched.remove("x.css")
    assert modified == Watched.write("x.css")


def test_moved_event_becomes_rename(tmp_path):
    event = FileMovedEvent(str(tmp_path / "a.js"), str(tmp_path / "b.js"))
    watched = event_to_watched(event, tmp_path)
    assert watched.kind is WatchedKind.RENAME
    assert (watched.path, watched.to) == (Path("a.js"), Path("b.js"))


def test_path_outside_working_dir_is_kept(tmp_path):
    other = tmp_path / "other" / "f.rs"
    event = FileCreatedEvent(str(other))
    assert event_to_watched(event, tmp_path / "project") == Watched.create(other)


def test_ignored_events(tmp_path):
    assert event_to_watched(FileClosedEvent(str(tmp_path / "a")), tmp_path) is None
    assert event_to_watched(DirModifiedEvent(str(tmp_path)), tmp_path) is None


def _write_until(path: Path, done: threading.Event, timeout: float = 10.0) -> bool:
    deadline = time.monotonic() + timeout
    count = 0
    while time.monotonic() < deadline:
        path.write_text(f"change {count}")
        count += 1
        if done.wait(0.2):
            return True
    return False


def test_file_watcher_reports_changes(tmp_path):
    received = []
    seen = threading.Event()

    def handler(watched):
        received.append(watched)
        if watched.path == Path("a.txt"):
            seen.set()

    watcher = FileWatcher([tmp_path], handler, tmp_path, delay=0.05)
    watcher.start()
    try:
        changed = _write_until(tmp_path / "a.txt", seen)
    finally:
        watcher.stop()
    assert changed is True
    assert watcher.paths == [tmp_path]
    assert Path("a.txt") in [w.path for w in received]


def test_stop_without_start_is_harmless(tmp_path):
    watcher = FileWatcher([tmp_path], lambda w: None, tmp_path)
    watcher.stop()
    assert watcher.paths == [tmp_path]


@pytest.mark.asyncio
async def test_watch_skips_missing_and_nested_paths(tmp_path):
    src = tmp_path / "src"
    (src / "inner").mkdir(parents=True)
    received = threading.Event()

    def handler(watched):
        if watched.path == Path("src") / "b.rs":
            received.set()

    shutdown = asyncio.Event()
    task = asyncio.create_task(
        watch([src, tmp_path / "missing", src / "inner"], handler, tmp_path, shutdown.wait())
    )
    await asyncio.sleep(0.3)
    changed = await asyncio.to_thread(_write_until, src / "b.rs", received)
    shutdown.set()
    roots = await asyncio.wait_for(task, 10)
    assert changed
    assert [Path(p) for p in roots] == [src]