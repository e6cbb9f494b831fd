"""Glob matching of candidate directories against rules."""

from __future__ import annotations

import functools
import os
import re
from fnmatch import fnmatchcase
from pathlib import Path, PurePath
from typing import Optional

from sym_agents.models import MissingIncludePolicy, Rule

GLOBSTAR = "**"

_BRACE_RE = re.compile(r"\{([^{}]*,[^{}]*)\}")
_CARET_CLASS_RE = re.compile(r"\[\^")


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives, innermost group first."""
    match = _BRACE_RE.search(pattern)
    if match is None:
        return [pattern]
    head = pattern[: match.start()]
    tail = pattern[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(f"{head}{option}{tail}"))
    return expanded


def normalize_pattern(pattern: str) -> str:
    normalized = pattern.strip().replace("\\", "/")
    # fnmatch only negates classes written as [!...]
    normalized = _CARET_CLASS_RE.sub("[!", normalized)
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.rstrip("/")


@functools.lru_cache(maxsize=512)
def _compile(pattern: str) -> tuple[tuple[str, ...], ...]:
    compiled: list[tuple[str, ...]] = []
    for alternative in expand_braces(normalize_pattern(pattern)):
        segments: list[str] = []
        for segment in alternative.split("/"):
            if not segment:
                continue
            if segment == GLOBSTAR and segments and segments[-1] == GLOBSTAR:
                continue
            segments.append(segment)
        compiled.append(tuple(segments))
    return tuple(compiled)


def _is_hidden(segment: str) -> bool:
    return segment.startswith(".")


def _segment_matches(segment: str, token: str) -> bool:
    if _is_hidden(segment) and not token.startswith("."):
        return False
    return fnmatchcase(segment, token)


def _match_segments(parts: tuple[str, ...], tokens: tuple[str, ...]) -> bool:
    @functools.lru_cache(maxsize=None)
    def step(i: int, j: int) -> bool:
        if j == len(tokens):
            return i == len(parts)
        token = tokens[j]
        if token == GLOBSTAR:
            if step(i, j + 1):
                return True
            # ** never walks into dot-directories
            return i < len(parts) and not _is_hidden(parts[i]) and step(i + 1, j)
        if i == len(parts):
            return False
        return _segment_matches(parts[i], token) and step(i + 1, j + 1)

    return step(0, 0)


def match_glob(path: str, pattern: str) -> bool:
    """Match a POSIX relative path against a shell glob with ``**`` support."""
    parts = tuple(part for part in path.split("/") if part and part != ".")
    return any(_match_segments(parts, tokens) for tokens in _compile(pattern))


def match_any(path: str, patterns: tuple[str, ...] | list[str]) -> bool:
    return any(match_glob(path, pattern) for pattern in patterns)


def relative_posix(root: Path, directory: Path) -> Optional[str]:
    """Return ``directory`` relative to ``root`` in POSIX form.

    ``None`` means the directory lies outside ``root``; an empty string means
    it is ``root`` itself.
    """
    try:
        relative = os.path.relpath(os.path.abspath(directory), os.path.abspath(root))
    except ValueError:
        return None
    if os.path.isabs(relative):
        return None
    posix = PurePath(relative).as_posix()
    if posix == ".":
        return ""
    if posix == ".." or posix.startswith("../"):
        return None
    return posix


class RuleMatcher:
    def __init__(
        self, missing_include: MissingIncludePolicy = MissingIncludePolicy.MATCH_ALL
    ) -> None:
        self.missing_include = missing_include

    def matches(self, directory: Path, rule: Rule) -> bool:
        relative = relative_posix(rule.root_directory, directory)
        if relative is None or relative == "":
            return False
        if match_any(relative, rule.exclude_patterns):
            return False
        if rule.include_patterns is None:
            if self.missing_include != MissingIncludePolicy.MATCH_ALL:
                return False
            return match_glob(relative, GLOBSTAR)
        return match_any(relative, rule.include_patterns)


def matches(
    directory: Path,
    rule: Rule,
    missing_include: MissingIncludePolicy = MissingIncludePolicy.MATCH_ALL,
) -> bool:
    return RuleMatcher(missing_include).matches(directory, rule)
