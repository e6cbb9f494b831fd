from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from sym_agents.constants import AGENTS_FILENAME


class ActionKind(str, Enum):
    LINK = "link"
    UNLINK = "unlink"


class ActionStatus(str, Enum):
    NOOP = "noop"
    CREATE = "create"
    FIX = "fix"
    PRESERVE = "preserve"
    CONFLICT = "conflict"
    REMOVE = "remove"
    FAILED = "failed"


class ResolutionKind(str, Enum):
    NONE = "none"
    SINGLE = "single"
    CONFLICT = "conflict"


class EventKind(str, Enum):
    DIRECTORY_ADDED = "directory-added"
    FILE_ADDED = "file-added"
    FILE_CHANGED = "file-changed"
    FILE_REMOVED = "file-removed"


class DriverState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RECONCILING = "reconciling"
    WATCHING = "watching"
    REFRESHING = "refreshing"
    STOPPED = "stopped"


class MissingIncludePolicy(str, Enum):
    """What a rule without an ``include`` list matches."""

    MATCH_ALL = "all"
    MATCH_NONE = "none"


@dataclass(frozen=True, eq=False)
class Rule:
    """One configuration entry.

    Rules compare and hash by identity: two rules loaded from different
    configurations are different rules even when every field is equal.
    """

    root_directory: Path
    target_document: Path
    include_patterns: Optional[tuple[str, ...]] = None
    exclude_patterns: tuple[str, ...] = ()
    source: Optional[Path] = None

    def describe(self) -> str:
        if self.source is None:
            return str(self.root_directory)
        return f"{self.root_directory} ({self.source})"


@dataclass(frozen=True)
class Resolution:
    kind: ResolutionKind
    rules: tuple[Rule, ...] = ()

    @classmethod
    def none(cls) -> "Resolution":
        return cls(ResolutionKind.NONE)

    @classmethod
    def single(cls, rule: Rule) -> "Resolution":
        return cls(ResolutionKind.SINGLE, (rule,))

    @classmethod
    def conflict(cls, rules: tuple[Rule, ...]) -> "Resolution":
        return cls(ResolutionKind.CONFLICT, rules)

    @property
    def rule(self) -> Rule:
        if self.kind != ResolutionKind.SINGLE:
            raise ValueError(f"No single rule for a {self.kind.value} resolution")
        return self.rules[0]


@dataclass
class LinkAction:
    kind: ActionKind
    directory: Path
    status: ActionStatus
    detail: str
    rule: Optional[Rule] = None
    conflicting: tuple[Rule, ...] = ()
    error: Optional[Exception] = None
    filename: str = AGENTS_FILENAME

    @property
    def link_path(self) -> Path:
        return self.directory / self.filename

    @property
    def changed(self) -> bool:
        return self.status in (
            ActionStatus.CREATE,
            ActionStatus.FIX,
            ActionStatus.REMOVE,
        )


@dataclass
class ReconcileReport:
    actions: list[LinkAction] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def add(self, action: Optional[LinkAction]) -> None:
        if action is None:
            return
        self.actions.append(action)
        if action.status == ActionStatus.CONFLICT:
            self.skipped.append(f"Link skipped (conflict): {action.directory}")
        elif action.status == ActionStatus.PRESERVE:
            self.skipped.append(f"Link skipped (non-symlink path exists): {action.link_path}")
        elif action.status == ActionStatus.FAILED and action.error is not None:
            self.errors.append(action.error)

    def extend(self, other: "ReconcileReport") -> None:
        self.actions.extend(other.actions)
        self.errors.extend(other.errors)
        self.skipped.extend(other.skipped)

    def by_status(self, status: ActionStatus) -> list[LinkAction]:
        return [action for action in self.actions if action.status == status]

    def is_valid(self) -> bool:
        return not self.errors

    def summary(self) -> dict[str, int]:
        counts = {status.value: 0 for status in ActionStatus}
        for action in self.actions:
            counts[action.status.value] += 1
        counts["actions"] = len(self.actions)
        counts["errors"] = len(self.errors)
        counts["skipped"] = len(self.skipped)
        return counts


@dataclass(frozen=True)
class FsEvent:
    kind: EventKind
    path: Path
