import os
from pathlib import Path
from typing import Iterator, Optional, Sequence

from sym_agents.constants import IGNORED_DIRS
from sym_agents.matcher import RuleMatcher
from sym_agents.models import MissingIncludePolicy, Rule
from sym_agents.utils import absolute_path


def walk_directories(root: Path) -> Iterator[Path]:
    """Yield every directory below ``root`` in a stable, top-down order."""
    root_path = absolute_path(root)
    for current, dir_names, _ in os.walk(str(root_path), topdown=True):
        dir_names[:] = sorted(name for name in dir_names if name not in IGNORED_DIRS)
        current_path = Path(current)
        if current_path != root_path:
            yield current_path


class CandidateDiscovery:
    """Expands rules into the directories they could link into."""

    def __init__(self, matcher: Optional[RuleMatcher] = None) -> None:
        self.matcher = matcher or RuleMatcher()

    def expand_rule(self, rule: Rule) -> list[Path]:
        if (
            rule.include_patterns is None
            and self.matcher.missing_include == MissingIncludePolicy.MATCH_NONE
        ):
            return []
        root = rule.root_directory
        if not root.is_dir():
            return []
        return [
            directory
            for directory in walk_directories(root)
            if self.matcher.matches(directory, rule)
        ]

    def discover(self, rules: Sequence[Rule]) -> list[Path]:
        candidates: dict[Path, None] = {}
        for rule in rules:
            for directory in self.expand_rule(rule):
                candidates.setdefault(directory, None)
        return list(candidates)
