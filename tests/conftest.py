import io
import json
import sys
from pathlib import Path
from typing import Any, Optional

from click.testing import CliRunner
import pytest
from rich.console import Console


def _ensure_repo_on_path() -> None:
    repo_root = Path(__file__).resolve().parent.parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_ensure_repo_on_path()

from sym_agents.config_loader import ConfigLoader, ConfigLoadResult  # noqa: E402
from sym_agents.models import Rule  # noqa: E402
from sym_agents.tui.log import ConsoleLog  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("INIT_CWD", raising=False)
    monkeypatch.setattr(Path, "home", lambda: tmp_path)


@pytest.fixture
def write_json():
    def _write(path: Path, payload: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload), encoding="utf-8")

    return _write


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    (root / "AGENTS.md").write_text("# Project agents\n", encoding="utf-8")
    return root


@pytest.fixture
def make_dirs():
    def _make(root: Path, *relative: str) -> list[Path]:
        created = []
        for item in relative:
            path = root / item
            path.mkdir(parents=True, exist_ok=True)
            created.append(path)
        return created

    return _make


@pytest.fixture
def log() -> ConsoleLog:
    console = Console(
        file=io.StringIO(), width=240, color_system=None, highlight=False
    )
    return ConsoleLog(console=console, verbose=True)


def log_output(log: ConsoleLog) -> str:
    return log.console.file.getvalue()


def make_rule(
    root: Path,
    include: Optional[list[str]] = None,
    exclude: Optional[list[str]] = None,
    target: Optional[Path] = None,
    source: Optional[Path] = None,
) -> Rule:
    return Rule(
        root_directory=root,
        target_document=target or root / "AGENTS.md",
        include_patterns=tuple(include) if include is not None else None,
        exclude_patterns=tuple(exclude or ()),
        source=source,
    )


class StaticLoader(ConfigLoader):
    """A loader that serves a fixed rule list instead of reading configs."""

    def __init__(self, root: Path, rules: list[Rule]) -> None:
        super().__init__(root)
        self.rules = list(rules)
        self.calls = 0

    def load(self) -> ConfigLoadResult:
        self.calls += 1
        return ConfigLoadResult(rules=list(self.rules))


@pytest.fixture
def cli_runner(tmp_path: Path) -> CliRunner:
    class HomeCliRunner(CliRunner):
        def invoke(self, cli: Any, args: Any = None, **kwargs: Any):  # type: ignore[override]
            env = dict(kwargs.pop("env", {}) or {})
            env.setdefault("HOME", str(tmp_path))
            kwargs["env"] = env
            return super().invoke(cli, args=args, **kwargs)

    return HomeCliRunner()
