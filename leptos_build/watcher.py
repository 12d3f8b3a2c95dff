"""Watching project directories and turning file-system events into changes."""

from __future__ import annotations

import asyncio
import logging
import os
import queue
import threading
import time
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .logger import GRAY, TRACE, paint
from .paths import remove_nested
from .watched import Watched, convert_path

log = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.2

PathLike = str | os.PathLike
Handler = Callable[[Watched], Any]

_STOP = object()


def event_to_watched(event: FileSystemEvent, working_dir: PathLike) -> Watched | None:
    """The change an event describes, relative to ``working_dir``; None if ignored."""
    kind = event.event_type
    if kind not in (EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED):
        return None
    if kind == EVENT_TYPE_MODIFIED and event.is_directory:
        return None
    src = convert_path(os.fsdecode(event.src_path), working_dir)
    if kind == EVENT_TYPE_CREATED:
        return Watched.create(src)
    if kind == EVENT_TYPE_DELETED:
        return Watched.remove(src)
    if kind == EVENT_TYPE_MODIFIED:
        return Watched.write(src)
    dest = convert_path(os.fsdecode(event.dest_path), working_dir)
    return Watched.rename(src, dest)


class _Forward(FileSystemEventHandler):
    def __init__(self, events: queue.Queue) -> None:
        super().__init__()
        self._events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._events.put(event)


class FileWatcher:
    """Watches directories recursively and hands debounced changes to a handler."""

    def __init__(
        self,
        paths: Iterable[PathLike],
        handler: Handler,
        working_dir: PathLike = ".",
        delay: float = DEBOUNCE_SECONDS,
    ) -> None:
        self.paths = [Path(p) for p in paths]
        self.handler = handler
        self.working_dir = Path(working_dir)
        self.delay = delay
        self._events: queue.Queue = queue.Queue()
        self._observer: Any = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Begin watching; paths that cannot be watched are logged and skipped."""
        if self._observer is not None:
            raise RuntimeError("watcher already started")
        observer = Observer()
        observer.start()
        forward = _Forward(self._events)
        for path in self.paths:
            try:
                observer.schedule(forward, str(path), recursive=True)
            except OSError as err:
                log.error("Notify could not watch %s due to %r", path, err)
        thread = threading.Thread(target=self._dispatch, name="notify", daemon=True)
        thread.start()
        self._observer = observer
        self._thread = thread

    def stop(self) -> None:
        """Stop watching and wait for pending changes to be handled."""
        observer, thread = self._observer, self._thread
        if observer is None:
            return
        observer.stop()
        observer.join()
        self._events.put(_STOP)
        if thread is not None:
            thread.join()
        self._observer = None
        self._thread = None

    def __enter__(self) -> FileWatcher:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _collect(self, first: FileSystemEvent) -> tuple[list[FileSystemEvent], bool]:
        batch = [first]
        deadline = time.monotonic() + self.delay
        while (remaining := deadline - time.monotonic()) > 0:
            try:
                event = self._events.get(timeout=remaining)
            except queue.Empty:
                break
            if event is _STOP:
                return batch, True
            batch.append(event)
        return batch, False

    def _dispatch(self) -> None:
        while True:
            event = self._events.get()
            if event is _STOP:
                break
            batch, stopping = self._collect(event)
            changes: dict[Watched, None] = {}
            for item in batch:
                try:
                    watched = event_to_watched(item, self.working_dir)
                except Exception as err:
                    log.error("Notify error %s", err)
                    continue
                if watched is None:
                    log.log(TRACE, "Notify not handled %s", paint(GRAY, repr(item)))
                else:
                    changes[watched] = None
            for watched in changes:
                try:
                    self.handler(watched)
                except Exception:
                    log.exception("Notify error handling %s", watched)
            if stopping:
                break
        log.debug("Notify stopped")


async def watch(
    paths: Iterable[PathLike],
    handler: Handler,
    working_dir: PathLike,
    shutdown: Awaitable[Any],
) -> list[Path]:
    """Watch the existing ``paths`` until ``shutdown`` completes; returns the roots watched."""
    existing = [Path(p) for p in paths if Path(p).exists()]
    roots = [Path(p) for p in remove_nested(existing)]
    log.info("Notify watching paths %s", paint(GRAY, ", ".join(str(p) for p in roots)))
    watcher = FileWatcher(roots, handler, working_dir)
    await asyncio.to_thread(watcher.start)
    try:
        try:
            await shutdown
        except Exception as err:
            log.log(TRACE, "Notify stopped due to: %r", err)
    finally:
        await asyncio.to_thread(watcher.stop)
    return roots