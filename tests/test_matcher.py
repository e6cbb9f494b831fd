from pathlib import Path

import pytest

from conftest import make_rule
from sym_agents.matcher import (
    RuleMatcher,
    expand_braces,
    match_glob,
    matches,
    normalize_pattern,
    relative_posix,
)
from sym_agents.models import MissingIncludePolicy


# --- match_glob ---


@pytest.mark.parametrize(
    "path, pattern, expected",
    [
        ("components", "components/**", True),
        ("components/Button", "components/**", True),
        ("components/Button/icons", "components/**", True),
        ("componentsX", "components/**", False),
        ("src/components", "**/*", True),
        ("src", "src/*", False),
        ("src/a", "src/*", True),
        ("src/a/b", "src/*", False),
        ("packages/ui/src", "packages/*/src", True),
        ("Button", "[A-Z]*", True),
        ("button", "[A-Z]*", False),
        ("Button", "button", False),
        ("pkg1", "pkg?", True),
        ("beta", "[^a]*", True),
        ("alpha", "[^a]*", False),
        ("beta", "[!a]*", True),
    ],
)
def test_match_glob(path: str, pattern: str, expected: bool) -> None:
    assert match_glob(path, pattern) is expected


def test_match_glob_wildcards_skip_dot_directories() -> None:
    assert not match_glob(".agents", "*")
    assert not match_glob("src/.cache", "**")
    assert not match_glob(".github/workflows", "**/*")
    assert match_glob(".github/workflows", ".github/*")
    assert match_glob(".github", ".*")


def test_match_glob_expands_braces() -> None:
    assert match_glob("apps/web", "{apps,libs}/*")
    assert match_glob("libs/core", "{apps,libs}/*")
    assert not match_glob("tools/cli", "{apps,libs}/*")


def test_expand_braces_nested_groups() -> None:
    assert sorted(expand_braces("{a,b}/{c,d}")) == ["a/c", "a/d", "b/c", "b/d"]
    assert expand_braces("plain/*") == ["plain/*"]


def test_caret_class_is_negation_in_include_and_exclude(tmp_path: Path) -> None:
    include = make_rule(tmp_path, include=["[^_]*"])
    exclude = make_rule(tmp_path, include=["**"], exclude=["[^_]*"])

    assert matches(tmp_path / "components", include)
    assert not matches(tmp_path / "_private", include)
    assert not matches(tmp_path / "components", exclude)
    assert matches(tmp_path / "_private", exclude)


def test_normalize_pattern_strips_dot_slash_and_trailing_slash() -> None:
    assert normalize_pattern("./components/") == "components"
    assert match_glob("components/Button", "./components/*/")


# --- relative_posix ---


def test_relative_posix(tmp_path: Path) -> None:
    root = tmp_path / "p"

    assert relative_posix(root, root / "a" / "b") == "a/b"
    assert relative_posix(root, root) == ""
    assert relative_posix(root, tmp_path) is None
    assert relative_posix(root, tmp_path / "pp" / "x") is None
    assert relative_posix(root, tmp_path / "p" / ".." / "q") is None


# --- RuleMatcher ---


def test_root_directory_is_never_matched(tmp_path: Path) -> None:
    rule = make_rule(tmp_path, include=["**"])

    assert not matches(tmp_path, rule)
    assert matches(tmp_path / "src", rule)


def test_directory_outside_root_is_never_matched(tmp_path: Path) -> None:
    rule = make_rule(tmp_path / "p", include=["**"])

    assert not matches(tmp_path / "other" / "src", rule)
    assert not matches(tmp_path / "p2", rule)


def test_exclude_wins_over_include(tmp_path: Path) -> None:
    rule = make_rule(
        tmp_path,
        include=["components/**"],
        exclude=["components/Legacy", "components/Legacy/**"],
    )

    assert matches(tmp_path / "components" / "Button", rule)
    assert not matches(tmp_path / "components" / "Legacy", rule)
    assert not matches(tmp_path / "components" / "Legacy" / "Old", rule)


def test_empty_include_list_matches_nothing(tmp_path: Path) -> None:
    rule = make_rule(tmp_path, include=[])

    assert not matches(tmp_path / "src", rule)


def test_missing_include_follows_policy(tmp_path: Path) -> None:
    rule = make_rule(tmp_path, exclude=["dist"])

    match_all = RuleMatcher(MissingIncludePolicy.MATCH_ALL)
    match_none = RuleMatcher(MissingIncludePolicy.MATCH_NONE)

    assert match_all.matches(tmp_path / "src", rule)
    assert not match_all.matches(tmp_path / "dist", rule)
    assert not match_all.matches(tmp_path / ".agents", rule)
    assert not match_none.matches(tmp_path / "src", rule)


def test_default_policy_is_match_all(tmp_path: Path) -> None:
    assert RuleMatcher().missing_include == MissingIncludePolicy.MATCH_ALL
