from pathlib import Path
from typing import Awaitable, Callable, Optional

from sym_agents.models import LinkAction, Rule


class LinkStateStore:
    """Every link this session currently owns, keyed by directory."""

    def __init__(self) -> None:
        self._links: dict[Path, Rule] = {}

    def record(self, directory: Path, rule: Rule) -> None:
        self._links[directory] = rule

    def forget(self, directory: Path) -> None:
        self._links.pop(directory, None)

    def has(self, directory: Path) -> bool:
        return directory in self._links

    def has_any(self) -> bool:
        return bool(self._links)

    def rule_for(self, directory: Path) -> Optional[Rule]:
        return self._links.get(directory)

    def all_directories(self) -> list[Path]:
        return list(self._links)

    def clear(self) -> None:
        self._links.clear()

    def __len__(self) -> int:
        return len(self._links)

    def teardown_sync(self, withdraw: Callable[[Path], LinkAction]) -> list[LinkAction]:
        return [withdraw(directory) for directory in self.all_directories()]

    async def teardown(
        self, withdraw: Callable[[Path], Awaitable[LinkAction]]
    ) -> list[LinkAction]:
        actions: list[LinkAction] = []
        for directory in self.all_directories():
            actions.append(await withdraw(directory))
        return actions
