"""Orchestrates matching, linking and teardown for one project root."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from sym_agents.config_loader import ConfigLoader
from sym_agents.constants import (
    AGENTS_FILENAME,
    EVENT_QUEUE_SIZE,
    SHARED_CONFIG_DIRNAME,
)
from sym_agents.discovery import CandidateDiscovery
from sym_agents.errors import RootDirectoryError, WatcherStartError
from sym_agents.linker import LinkOperator, plan_link
from sym_agents.matcher import RuleMatcher
from sym_agents.models import (
    ActionKind,
    ActionStatus,
    DriverState,
    EventKind,
    FsEvent,
    LinkAction,
    MissingIncludePolicy,
    ReconcileReport,
    ResolutionKind,
    Rule,
)
from sym_agents.resolver import ConflictResolver
from sym_agents.state import LinkStateStore
from sym_agents.tui.log import ConsoleLog
from sym_agents.utils import absolute_path
from sym_agents.watcher import DirectoryWatcher

WatcherFactory = Callable[[Path, Callable[[FsEvent], None]], Any]


class ReconciliationDriver:
    """One linking session: loaded rules, owned links, and the watcher.

    All decisions and store updates happen on the event loop that runs the
    session; the watcher thread only hands events over through ``submit``.
    """

    def __init__(
        self,
        root: Path,
        loader: Optional[ConfigLoader] = None,
        log: Optional[ConsoleLog] = None,
        missing_include: MissingIncludePolicy = MissingIncludePolicy.MATCH_ALL,
        watcher_factory: WatcherFactory = DirectoryWatcher,
        queue_size: int = EVENT_QUEUE_SIZE,
        filename: str = AGENTS_FILENAME,
    ) -> None:
        self.root = absolute_path(root)
        self.loader = loader or ConfigLoader(self.root)
        self.log = log or ConsoleLog()
        self.filename = filename
        self.matcher = RuleMatcher(missing_include)
        self.resolver = ConflictResolver(self.matcher)
        self.discovery = CandidateDiscovery(self.matcher)
        self.store = LinkStateStore()
        self.operator = LinkOperator(self.store, log=self.log, filename=filename)
        self.rules: list[Rule] = []
        self.state = DriverState.IDLE

        self._watcher_factory = watcher_factory
        self._watcher: Optional[Any] = None
        self._queue_size = queue_size
        self._events: Optional[asyncio.Queue[Optional[FsEvent]]] = None
        self._drain_task: Optional[asyncio.Task[None]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._refreshing = False
        self._stopping = False
        self._overflowed = False

    @property
    def is_watching(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def ensure_root(self) -> None:
        if not self.root.is_dir():
            raise RootDirectoryError(self.root)

    # -- configuration -------------------------------------------------

    async def reload_configs(self) -> ReconcileReport:
        previous = self.state
        self.state = DriverState.LOADING
        self.log.info("Loading configurations...")
        try:
            result = await asyncio.to_thread(self.loader.load)
        finally:
            self.state = previous
        for error in result.errors:
            self.log.warn(str(error))
        self.rules = result.rules
        self.log.success(f"Loaded {len(self.rules)} configs.")
        return ReconcileReport(errors=list(result.errors))

    # -- reconciliation ------------------------------------------------

    async def reconcile_directory(
        self, directory: Path, rules: Optional[Sequence[Rule]] = None
    ) -> Optional[LinkAction]:
        directory = absolute_path(directory)
        candidates = self.rules if rules is None else rules
        resolution = self.resolver.resolve(directory, candidates)
        if resolution.kind == ResolutionKind.NONE:
            return None
        if resolution.kind == ResolutionKind.CONFLICT:
            return self._conflict(directory, resolution.rules)
        return await self.operator.realize(directory, resolution.rule)

    def _conflict(self, directory: Path, rules: tuple[Rule, ...]) -> LinkAction:
        self.log.warn(f'CONFLICT: Directory "{directory}" matches multiple configs.')
        for number, rule in enumerate(rules, start=1):
            self.log.warn(f"  {number}. Pattern from: {rule.describe()}")
        self.log.warn("  Skipping link to avoid an ambiguous choice.")
        return LinkAction(
            ActionKind.LINK,
            directory,
            ActionStatus.CONFLICT,
            f"matches {len(rules)} configs",
            conflicting=rules,
            filename=self.filename,
        )

    async def discover_candidates(self) -> list[Path]:
        return await asyncio.to_thread(self.discovery.discover, list(self.rules))

    async def apply_all_links(self) -> ReconcileReport:
        previous = self.state
        self.state = DriverState.RECONCILING
        report = ReconcileReport()
        try:
            for directory in await self.discover_candidates():
                report.add(await self.reconcile_directory(directory))
        finally:
            self.state = previous
        return report

    async def run_once(self) -> ReconcileReport:
        self.ensure_root()
        self.log.info("Running once...")
        report = await self.reload_configs()
        report.extend(await self.apply_all_links())
        self.log.success("Done.")
        return report

    def plan(self) -> ReconcileReport:
        """Report what a reconciliation pass would do, without touching disk."""
        self.ensure_root()
        result = self.loader.load()
        report = ReconcileReport(errors=list(result.errors))
        for directory in self.discovery.discover(result.rules):
            resolution = self.resolver.resolve(directory, result.rules)
            if resolution.kind == ResolutionKind.CONFLICT:
                report.add(
                    LinkAction(
                        ActionKind.LINK,
                        directory,
                        ActionStatus.CONFLICT,
                        f"matches {len(resolution.rules)} configs",
                        conflicting=resolution.rules,
                        filename=self.filename,
                    )
                )
            elif resolution.kind == ResolutionKind.SINGLE:
                try:
                    report.add(plan_link(directory, resolution.rule, self.filename))
                except OSError as exc:
                    report.add(
                        LinkAction(
                            ActionKind.LINK,
                            directory,
                            ActionStatus.FAILED,
                            f"{exc.strerror or exc}",
                            rule=resolution.rule,
                            error=exc,
                            filename=self.filename,
                        )
                    )
        return report

    # -- watch mode ----------------------------------------------------

    async def watch(self) -> None:
        if self.is_watching:
            self.log.warn("Watcher is already running.")
            return
        self.ensure_root()
        self.log.info("Starting watcher...")
        await self.reload_configs()

        self._loop = asyncio.get_running_loop()
        self._events = asyncio.Queue(maxsize=self._queue_size)
        self._stopping = False
        self._drain_task = asyncio.create_task(self._drain_events())

        watcher = self._watcher_factory(self.root, self.submit)
        try:
            await asyncio.to_thread(watcher.start)
        except OSError as exc:
            await self._finish_drain()
            raise WatcherStartError(self.root, str(exc)) from exc
        self._watcher = watcher
        self.state = DriverState.WATCHING
        self.log.success("Watching for changes...")

    def submit(self, event: FsEvent) -> None:
        """Hand an event to the session; safe to call from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        with suppress(RuntimeError):
            loop.call_soon_threadsafe(self._enqueue, event)

    def _enqueue(self, event: FsEvent) -> None:
        if self._events is None or self._stopping or self._refreshing:
            return
        try:
            self._events.put_nowait(event)
        except asyncio.QueueFull:
            if not self._overflowed:
                self.log.warn("Too many pending filesystem events, scheduling a full pass.")
            self._overflowed = True

    async def _drain_events(self) -> None:
        assert self._events is not None
        while True:
            event = await self._events.get()
            try:
                if event is None:
                    return
                if self._overflowed:
                    await self._resync()
                else:
                    await self.handle_event(event)
            except Exception as exc:
                # one bad event must not end the watch session
                self.log.error(f"Error handling {event.kind.value} for {event.path}", exc)
            finally:
                self._events.task_done()

    async def _resync(self) -> None:
        assert self._events is not None
        self._overflowed = False
        while not self._events.empty():
            pending = self._events.get_nowait()
            self._events.task_done()
            if pending is None:
                self._events.put_nowait(None)
                break
        await self.reload_configs()
        await self.apply_all_links()

    async def handle_event(self, event: FsEvent) -> None:
        if self._refreshing or self._stopping:
            return
        if event.kind == EventKind.DIRECTORY_ADDED:
            await self.reconcile_directory(event.path)
            return
        if self.loader.is_shared_path(event.path):
            await self.refresh()
        elif self.loader.is_config_file(event.path):
            await self.reload_configs()

    async def refresh(self) -> Optional[ReconcileReport]:
        if self._refreshing:
            return None
        self._refreshing = True
        previous = self.state
        self.state = DriverState.REFRESHING
        try:
            self.log.info(
                f"{SHARED_CONFIG_DIRNAME} directory changed, refreshing all symlinks..."
            )
            await self.store.teardown(self.operator.withdraw)
            report = await self.reload_configs()
            report.extend(await self.apply_all_links())
            self.log.success("Symlinks refreshed.")
            return report
        finally:
            self.state = previous
            self._refreshing = False

    async def idle(self) -> None:
        """Wait until every event submitted so far has been handled."""
        await asyncio.sleep(0)
        if self._events is not None and self.is_watching:
            await self._events.join()

    async def _finish_drain(self) -> None:
        task, self._drain_task = self._drain_task, None
        if task is None or task.done():
            return
        assert self._events is not None
        self._stopping = True
        await self._events.put(None)
        await task

    async def stop(self, cleanup: bool = True) -> ReconcileReport:
        self._stopping = True
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            await asyncio.to_thread(watcher.stop)
        await self._finish_drain()
        report = ReconcileReport()
        if cleanup:
            for action in await self.store.teardown(self.operator.withdraw):
                report.add(action)
        self.state = DriverState.STOPPED
        return report

    # -- teardown ------------------------------------------------------

    async def remove(self) -> ReconcileReport:
        self.log.info("Removing symlinks...")
        report = ReconcileReport()
        if self.store.has_any():
            for action in await self.store.teardown(self.operator.withdraw):
                report.add(action)
        else:
            # fresh process: nothing remembered, so re-derive from config
            self.ensure_root()
            report.extend(await self.reload_configs())
            for directory in await self.discover_candidates():
                report.add(await self.operator.withdraw(directory))
        self.log.success("Done.")
        return report

    def remove_sync(self) -> ReconcileReport:
        """Blocking teardown of every recorded link, for signal and exit hooks."""
        self._stopping = True
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.stop()
        self.operator.close()
        report = ReconcileReport()
        for action in self.store.teardown_sync(self.operator.withdraw_sync):
            report.add(action)
        self.state = DriverState.STOPPED
        return report

