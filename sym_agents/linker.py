"""Create, inspect and remove the per-directory document links."""

from __future__ import annotations

import asyncio
import os
import stat
from pathlib import Path
from typing import Callable, Optional

from sym_agents.constants import AGENTS_FILENAME
from sym_agents.models import ActionKind, ActionStatus, LinkAction, Rule
from sym_agents.state import LinkStateStore
from sym_agents.tui.log import ConsoleLog
from sym_agents.utils import absolute_path

DETAIL_CREATE = "create symlink"
DETAIL_ALREADY_LINKED = "already linked"
DETAIL_POINTS_ELSEWHERE = "symlink points elsewhere"
DETAIL_NON_SYMLINK = "non-symlink path exists"
DETAIL_DIRECTORY_GONE = "directory no longer exists"
DETAIL_REMOVE = "remove symlink"
DETAIL_NOTHING_TO_REMOVE = "nothing to remove"
DETAIL_ALREADY_REMOVED = "already removed"
DETAIL_CLOSED = "operator closed"


def relative_target(directory: Path, target_document: Path) -> str:
    return os.path.relpath(absolute_path(target_document), absolute_path(directory))


def link_points_to(link_path: Path, target_document: Path) -> bool:
    raw = os.readlink(link_path)
    current = os.path.normpath(os.path.join(os.path.dirname(link_path), raw))
    return current == os.path.normpath(absolute_path(target_document))


def plan_link(
    directory: Path, rule: Rule, filename: str = AGENTS_FILENAME
) -> LinkAction:
    link_path = directory / filename
    try:
        info = os.lstat(link_path)
    except FileNotFoundError:
        return LinkAction(
            ActionKind.LINK,
            directory,
            ActionStatus.CREATE,
            DETAIL_CREATE,
            rule=rule,
            filename=filename,
        )
    if stat.S_ISLNK(info.st_mode):
        if link_points_to(link_path, rule.target_document):
            return LinkAction(
                ActionKind.LINK,
                directory,
                ActionStatus.NOOP,
                DETAIL_ALREADY_LINKED,
                rule=rule,
                filename=filename,
            )
        return LinkAction(
            ActionKind.LINK,
            directory,
            ActionStatus.FIX,
            DETAIL_POINTS_ELSEWHERE,
            rule=rule,
            filename=filename,
        )
    return LinkAction(
        ActionKind.LINK,
        directory,
        ActionStatus.PRESERVE,
        DETAIL_NON_SYMLINK,
        rule=rule,
        filename=filename,
    )


def plan_unlink(directory: Path, filename: str = AGENTS_FILENAME) -> LinkAction:
    link_path = directory / filename
    try:
        info = os.lstat(link_path)
    except FileNotFoundError:
        return LinkAction(
            ActionKind.UNLINK,
            directory,
            ActionStatus.NOOP,
            DETAIL_NOTHING_TO_REMOVE,
            filename=filename,
        )
    if stat.S_ISLNK(info.st_mode):
        return LinkAction(
            ActionKind.UNLINK,
            directory,
            ActionStatus.REMOVE,
            DETAIL_REMOVE,
            filename=filename,
        )
    return LinkAction(
        ActionKind.UNLINK,
        directory,
        ActionStatus.PRESERVE,
        DETAIL_NON_SYMLINK,
        filename=filename,
    )


class LinkOperator:
    """Converges one directory's link to a decision and keeps the store honest.

    Filesystem work never touches the store; the store is only updated once
    the work has finished, on the caller's thread. The async variants run the
    filesystem work in a worker thread and settle on the event loop.
    """

    def __init__(
        self,
        store: LinkStateStore,
        log: Optional[ConsoleLog] = None,
        filename: str = AGENTS_FILENAME,
    ) -> None:
        self.store = store
        self.log = log or ConsoleLog()
        self.filename = filename
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def realize_sync(self, directory: Path, rule: Rule) -> LinkAction:
        directory = absolute_path(directory)
        if self.closed:
            return self._refused(directory, rule)
        action = self._guard(ActionKind.LINK, directory, self._realize_fs, rule)
        return self._settle_realize(action)

    async def realize(self, directory: Path, rule: Rule) -> LinkAction:
        directory = absolute_path(directory)
        if self.closed:
            return self._refused(directory, rule)
        action = await asyncio.to_thread(
            self._guard, ActionKind.LINK, directory, self._realize_fs, rule
        )
        return self._settle_realize(action)

    def withdraw_sync(self, directory: Path) -> LinkAction:
        directory = absolute_path(directory)
        action = self._guard(ActionKind.UNLINK, directory, self._withdraw_fs)
        return self._settle_withdraw(action)

    async def withdraw(self, directory: Path) -> LinkAction:
        directory = absolute_path(directory)
        action = await asyncio.to_thread(
            self._guard, ActionKind.UNLINK, directory, self._withdraw_fs
        )
        return self._settle_withdraw(action)

    def _guard(
        self,
        kind: ActionKind,
        directory: Path,
        operation: Callable[..., LinkAction],
        *args: Rule,
    ) -> LinkAction:
        try:
            return operation(directory, *args)
        except OSError as exc:
            return LinkAction(
                kind,
                directory,
                ActionStatus.FAILED,
                f"{exc.strerror or exc}",
                rule=args[0] if args else None,
                error=exc,
                filename=self.filename,
            )

    def _realize_fs(self, directory: Path, rule: Rule) -> LinkAction:
        planned = plan_link(directory, rule, self.filename)
        if planned.status == ActionStatus.FIX:
            try:
                os.unlink(planned.link_path)
            except FileNotFoundError:
                pass
        if planned.status in (ActionStatus.CREATE, ActionStatus.FIX):
            return self._create(planned, rule)
        return planned

    def _create(self, planned: LinkAction, rule: Rule) -> LinkAction:
        try:
            os.symlink(
                relative_target(planned.directory, rule.target_document),
                planned.link_path,
            )
        except FileNotFoundError:
            if not planned.directory.is_dir():
                return LinkAction(
                    ActionKind.LINK,
                    planned.directory,
                    ActionStatus.NOOP,
                    DETAIL_DIRECTORY_GONE,
                    rule=rule,
                    filename=self.filename,
                )
            raise
        except FileExistsError:
            # someone else put something there since we looked
            replanned = plan_link(planned.directory, rule, self.filename)
            if replanned.status in (ActionStatus.NOOP, ActionStatus.PRESERVE):
                return replanned
            raise
        return planned

    def _withdraw_fs(self, directory: Path) -> LinkAction:
        planned = plan_unlink(directory, self.filename)
        if planned.status != ActionStatus.REMOVE:
            return planned
        try:
            os.unlink(planned.link_path)
        except FileNotFoundError:
            return LinkAction(
                ActionKind.UNLINK,
                directory,
                ActionStatus.NOOP,
                DETAIL_ALREADY_REMOVED,
                filename=self.filename,
            )
        return planned

    def _settle_realize(self, action: LinkAction) -> LinkAction:
        directory = action.directory
        if action.status in (ActionStatus.CREATE, ActionStatus.FIX) and self.closed:
            # teardown ran while this link was being written
            undo = self._guard(ActionKind.UNLINK, directory, self._withdraw_fs)
            return self._settle_withdraw(undo)

        if action.status == ActionStatus.CREATE:
            self.store.record(directory, action.rule)
            self.log.action(f"Linked {self.filename} in {directory}")
        elif action.status == ActionStatus.FIX:
            self.store.record(directory, action.rule)
            self.log.action(f"Relinked {self.filename} in {directory} ({action.detail})")
        elif action.status == ActionStatus.NOOP:
            if action.detail == DETAIL_ALREADY_LINKED:
                self.store.record(directory, action.rule)
            else:
                self.store.forget(directory)
            self.log.debug(f"{action.link_path}: {action.detail}")
        elif action.status == ActionStatus.PRESERVE:
            self.store.forget(directory)
            self.log.debug(f"Skipping {action.link_path} as it is a real file")
        elif action.status == ActionStatus.FAILED:
            self.log.error(f"Error creating symlink at {action.link_path}", action.error)
        return action

    def _settle_withdraw(self, action: LinkAction) -> LinkAction:
        directory = action.directory
        action.rule = self.store.rule_for(directory)
        if action.status == ActionStatus.FAILED:
            self.log.error(f"Error removing link at {action.link_path}", action.error)
            return action

        self.store.forget(directory)
        if action.status == ActionStatus.REMOVE:
            self.log.action(f"Removed {self.filename} in {directory}")
        elif action.status == ActionStatus.PRESERVE:
            self.log.debug(f"Leaving {action.link_path} in place (not a symlink)")
        else:
            self.log.debug(f"{action.link_path}: {action.detail}")
        return action

    def _refused(self, directory: Path, rule: Rule) -> LinkAction:
        return LinkAction(
            ActionKind.LINK,
            directory,
            ActionStatus.NOOP,
            DETAIL_CLOSED,
            rule=rule,
            filename=self.filename,
        )
