from __future__ import annotations

import logging
import os
import queue
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


def _normalize(path: str | os.PathLike[str]) -> str:
    return str(Path(os.fspath(path)).resolve())


class TrackedFileHandler(FileSystemEventHandler):
    """Forward events that touch a tracked file onto a queue.

    Paths are compared after resolving, so the caller may pass relative
    names. Repeated events for the same file within ``debounce_ms`` are
    dropped.
    """

    def __init__(self, tracked: Iterable[str], q: "queue.Queue[str]", debounce_ms: int = 500) -> None:
        self.tracked = frozenset(_normalize(p) for p in tracked)
        self.q = q
        self.debounce_ms = debounce_ms
        self._last: dict[str, float] = {}

    def _debounced(self, path: str) -> bool:
        now = time.monotonic()
        last = self._last.get(path)
        self._last[path] = now
        return last is not None and (now - last) * 1000 < self.debounce_ms

    def _offer(self, raw: str | bytes) -> None:
        if isinstance(raw, bytes):
            raw = os.fsdecode(raw)
        path = _normalize(raw)
        if path not in self.tracked:
            return
        if self._debounced(path):
            return
        logger.debug(f"[watch] change: {path}")
        self.q.put(path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._offer(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._offer(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._offer(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        # Moving a tracked file away and moving something onto it both count
        self._offer(event.src_path)
        self._offer(event.dest_path)


@dataclass
class ChangeDetector:
    """Filesystem change detector using watchdog.

    Watches the parent directories of the tracked files (non-recursively)
    and queues the resolved path of every tracked file that changes.
    """

    paths: Iterable[str]
    q: "queue.Queue[str]"
    debounce_ms: int = 500
    stop_event: threading.Event = field(default_factory=threading.Event)

    def __post_init__(self) -> None:
        self.paths = [os.fspath(p) for p in self.paths]

    def directories(self) -> list[str]:
        return sorted({str(Path(_normalize(p)).parent) for p in self.paths})

    def watch(self) -> None:
        handler = TrackedFileHandler(self.paths, self.q, self.debounce_ms)
        observer = Observer()
        for directory in self.directories():
            if not Path(directory).is_dir():
                logger.warning(f"[watch] directory does not exist, skipping: {directory}")
                continue
            observer.schedule(handler, directory, recursive=False)
        observer.start()
        try:
            while not self.stop_event.wait(0.25):
                pass
        finally:
            observer.stop()
            observer.join()

    def stop(self) -> None:
        self.stop_event.set()
