"""Filesystem change notification on top of watchdog."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Optional

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    FileSystemMovedEvent,
)
from watchdog.observers import Observer

from sym_agents.constants import IGNORED_DIRS, WATCHER_JOIN_TIMEOUT
from sym_agents.discovery import walk_directories
from sym_agents.models import EventKind, FsEvent
from sym_agents.utils import absolute_path

EventSink = Callable[[FsEvent], None]


def _as_path(raw: Any, root: Path, real_root: Path) -> Path:
    if isinstance(raw, bytes):
        raw = os.fsdecode(raw)
    path = absolute_path(raw)
    if real_root != root:
        # some backends report resolved paths (e.g. /private/var on macOS)
        try:
            return root / path.relative_to(real_root)
        except ValueError:
            pass
    return path


def is_ignored(path: Path, root: Path) -> bool:
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        return True
    return any(part in IGNORED_DIRS for part in parts)


class WatchEventHandler(FileSystemEventHandler):
    """Translates watchdog events into ``FsEvent``s for the driver."""

    def __init__(self, emit: EventSink, root: Path) -> None:
        super().__init__()
        self._emit = emit
        self._root = absolute_path(root)
        self._real_root = Path(os.path.realpath(self._root))

    def _path(self, raw: Any) -> Path:
        return _as_path(raw, self._root, self._real_root)

    def _send(self, kind: EventKind, path: Path) -> None:
        if is_ignored(path, self._root):
            return
        self._emit(FsEvent(kind, path))

    def _send_tree(self, root: Path) -> None:
        self._send(EventKind.DIRECTORY_ADDED, root)
        for directory in walk_directories(root):
            self._send(EventKind.DIRECTORY_ADDED, directory)

    def on_created(self, event: FileSystemEvent) -> None:
        path = self._path(event.src_path)
        if event.is_directory:
            self._send(EventKind.DIRECTORY_ADDED, path)
        else:
            self._send(EventKind.FILE_ADDED, path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._send(EventKind.FILE_CHANGED, self._path(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._send(EventKind.FILE_REMOVED, self._path(event.src_path))

    def on_moved(self, event: FileSystemMovedEvent) -> None:
        destination = self._path(event.dest_path)
        if event.is_directory:
            self._send_tree(destination)
            return
        self._send(EventKind.FILE_REMOVED, self._path(event.src_path))
        self._send(EventKind.FILE_ADDED, destination)


class DirectoryWatcher:
    def __init__(
        self,
        root: Path,
        emit: EventSink,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        self.root = absolute_path(root)
        self._emit = emit
        self._observer_factory = observer_factory
        self._observer: Optional[Any] = None

    @property
    def is_alive(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self, initial_scan: bool = True) -> None:
        if self._observer is not None:
            return
        observer = self._observer_factory()
        handler = WatchEventHandler(self._emit, self.root)
        observer.schedule(handler, str(self.root), recursive=True)
        observer.start()
        self._observer = observer

        if initial_scan:
            for directory in walk_directories(self.root):
                self._emit(FsEvent(EventKind.DIRECTORY_ADDED, directory))

    def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=WATCHER_JOIN_TIMEOUT)
