from pathlib import Path
from typing import Optional, Sequence

from sym_agents.matcher import RuleMatcher
from sym_agents.models import Resolution, Rule


class ConflictResolver:
    """Decides which rule, if any, owns a candidate directory.

    More than one matching rule is a conflict and the directory is left alone.
    There is no precedence between rules.
    """

    def __init__(self, matcher: Optional[RuleMatcher] = None) -> None:
        self.matcher = matcher or RuleMatcher()

    def matching_rules(self, directory: Path, rules: Sequence[Rule]) -> list[Rule]:
        matched: list[Rule] = []
        for rule in rules:
            if any(rule is seen for seen in matched):
                continue
            if self.matcher.matches(directory, rule):
                matched.append(rule)
        return matched

    def resolve(self, directory: Path, rules: Sequence[Rule]) -> Resolution:
        matched = self.matching_rules(directory, rules)
        if not matched:
            return Resolution.none()
        if len(matched) == 1:
            return Resolution.single(matched[0])
        return Resolution.conflict(tuple(matched))
