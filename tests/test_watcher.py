import asyncio
import time
from pathlib import Path

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)
from watchdog.observers.polling import PollingObserver

from sym_agents.driver import ReconciliationDriver
from sym_agents.models import EventKind, FsEvent
from sym_agents.watcher import DirectoryWatcher, WatchEventHandler, is_ignored


def _handler(root: Path) -> tuple[WatchEventHandler, list[FsEvent]]:
    events: list[FsEvent] = []
    return WatchEventHandler(events.append, root), events


def _fast_polling_observer() -> PollingObserver:
    return PollingObserver(timeout=0.1)


def test_is_ignored(tmp_path: Path) -> None:
    assert is_ignored(tmp_path / "node_modules" / "pkg", tmp_path)
    assert is_ignored(tmp_path / "src" / ".git" / "HEAD", tmp_path)
    assert is_ignored(tmp_path.parent / "elsewhere", tmp_path)
    assert not is_ignored(tmp_path / "src" / "app", tmp_path)


def test_created_events(tmp_path: Path) -> None:
    handler, events = _handler(tmp_path)

    handler.dispatch(DirCreatedEvent(str(tmp_path / "src")))
    handler.dispatch(FileCreatedEvent(str(tmp_path / "agents.config.json")))
    handler.dispatch(DirCreatedEvent(str(tmp_path / "node_modules" / "x")))

    assert events == [
        FsEvent(EventKind.DIRECTORY_ADDED, tmp_path / "src"),
        FsEvent(EventKind.FILE_ADDED, tmp_path / "agents.config.json"),
    ]


def test_modified_and_deleted_events_only_for_files(tmp_path: Path) -> None:
    handler, events = _handler(tmp_path)

    handler.dispatch(DirModifiedEvent(str(tmp_path / "src")))
    handler.dispatch(FileModifiedEvent(str(tmp_path / "agents.config.yml")))
    handler.dispatch(DirDeletedEvent(str(tmp_path / "old")))
    handler.dispatch(FileDeletedEvent(str(tmp_path / "agents.config.yml")))

    assert events == [
        FsEvent(EventKind.FILE_CHANGED, tmp_path / "agents.config.yml"),
        FsEvent(EventKind.FILE_REMOVED, tmp_path / "agents.config.yml"),
    ]


def test_moved_file_is_removed_then_added(tmp_path: Path) -> None:
    handler, events = _handler(tmp_path)

    handler.dispatch(
        FileMovedEvent(str(tmp_path / "draft.json"), str(tmp_path / "agents.config.json"))
    )

    assert events == [
        FsEvent(EventKind.FILE_REMOVED, tmp_path / "draft.json"),
        FsEvent(EventKind.FILE_ADDED, tmp_path / "agents.config.json"),
    ]


def test_moved_directory_announces_whole_subtree(tmp_path: Path) -> None:
    destination = tmp_path / "components"
    (destination / "Button" / "icons").mkdir(parents=True)
    handler, events = _handler(tmp_path)

    handler.dispatch(DirMovedEvent(str(tmp_path / "tmp-components"), str(destination)))

    assert [event.path for event in events] == [
        destination,
        destination / "Button",
        destination / "Button" / "icons",
    ]
    assert {event.kind for event in events} == {EventKind.DIRECTORY_ADDED}


class RecordingObserver:
    def __init__(self) -> None:
        self.scheduled = []
        self.started = False
        self.stop_calls = 0

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((handler, path, recursive))

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stop_calls += 1

    def join(self, timeout=None) -> None:
        pass

    def is_alive(self) -> bool:
        return self.started and not self.stop_calls


def test_start_schedules_recursively_and_scans(tmp_path: Path) -> None:
    (tmp_path / "a" / "b").mkdir(parents=True)
    (tmp_path / "node_modules" / "pkg").mkdir(parents=True)
    observer = RecordingObserver()
    events: list[FsEvent] = []
    watcher = DirectoryWatcher(tmp_path, events.append, observer_factory=lambda: observer)

    watcher.start()

    assert observer.started
    assert observer.scheduled[0][1:] == (str(tmp_path), True)
    assert watcher.is_alive
    assert [event.path for event in events] == [tmp_path / "a", tmp_path / "a" / "b"]

    watcher.stop()
    watcher.stop()
    assert observer.stop_calls == 1
    assert not watcher.is_alive


def test_polling_observer_reports_new_directory(tmp_path: Path) -> None:
    events: list[FsEvent] = []
    watcher = DirectoryWatcher(
        tmp_path, events.append, observer_factory=_fast_polling_observer
    )
    watcher.start()
    try:
        (tmp_path / "fresh").mkdir()
        deadline = time.monotonic() + 5.0
        while time.monotonic() < deadline:
            if FsEvent(EventKind.DIRECTORY_ADDED, tmp_path / "fresh") in events:
                break
            time.sleep(0.05)
    finally:
        watcher.stop()

    assert FsEvent(EventKind.DIRECTORY_ADDED, tmp_path / "fresh") in events


@pytest.mark.asyncio(loop_scope="function")
async def test_watch_session_links_directory_created_on_disk(
    project: Path, write_json, log
) -> None:
    write_json(project / "agents.config.json", {"include": ["components/*"]})
    (project / "components" / "Existing").mkdir(parents=True)

    def factory(root: Path, emit) -> DirectoryWatcher:
        return DirectoryWatcher(root, emit, observer_factory=_fast_polling_observer)

    driver = ReconciliationDriver(project, log=log, watcher_factory=factory)
    await driver.watch()
    try:
        fresh = project / "components" / "Fresh"
        fresh.mkdir()
        links = [project / "components" / "Existing" / "AGENTS.md", fresh / "AGENTS.md"]
        deadline = time.monotonic() + 5.0
        while time.monotonic() < deadline:
            await driver.idle()
            if all(link.is_symlink() for link in links):
                break
            await asyncio.sleep(0.05)

        assert all(link.is_symlink() for link in links)
    finally:
        await driver.stop()

    assert not any(link.exists() for link in links)
