import json
import os
from pathlib import Path
from typing import Any


def absolute_path(path: str | Path) -> Path:
    """Absolute, lexically normalized path; symlinks are not resolved."""
    return Path(os.path.abspath(os.fspath(path)))


def read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def is_under(path: Path, root: Path) -> bool:
    try:
        absolute_path(path).relative_to(absolute_path(root))
        return True
    except ValueError:
        return False


def compact_home_path(path: str | Path) -> str:
    text = str(path)
    home = str(Path.home())
    if text == home:
        return "~"
    home_prefix = f"{home}/"
    if text.startswith(home_prefix):
        return f"~/{text[len(home_prefix):]}"
    return text


def compact_home_paths_in_text(text: str) -> str:
    home = str(Path.home())
    if text == home:
        return "~"
    return text.replace(f"{home}/", "~/")
