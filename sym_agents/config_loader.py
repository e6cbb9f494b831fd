"""Discover and parse ``agents.config.*`` files into rules."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from jsonschema import Draft202012Validator

from sym_agents.constants import (
    AGENTS_FILENAME,
    CONFIG_BASENAME,
    CONFIG_EXTENSIONS,
    IGNORED_DIRS,
    SCRIPT_CONFIG_EXTENSIONS,
    SHARED_CONFIG_DIRNAME,
)
from sym_agents.errors import (
    ConfigFileError,
    InvalidConfigSchemaError,
    InvalidJsonFormatError,
    InvalidYamlFormatError,
    MissingTargetDocumentError,
    UnsupportedConfigFormatError,
)
from sym_agents.models import Rule
from sym_agents.utils import absolute_path, is_under, read_json, read_text

_PATTERN_LIST = {"type": "array", "items": {"type": "string"}}

CONFIG_ENTRY_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "include": _PATTERN_LIST,
        "exclude": _PATTERN_LIST,
        "agentFile": {"type": "string", "minLength": 1},
    },
}

_VALIDATOR = Draft202012Validator(CONFIG_ENTRY_SCHEMA)


def format_schema_error(error: Any) -> str:
    path = ".".join([str(part) for part in error.path])
    return f"{error.message} at {path}" if path else str(error.message)


def _entry_detail(detail: str, index: Optional[int]) -> str:
    return f"entry {index}: {detail}" if index is not None else detail


@dataclass
class ConfigLoadResult:
    rules: list[Rule] = field(default_factory=list)
    errors: list[ConfigFileError] = field(default_factory=list)


class ConfigLoader:
    def __init__(self, root: Path) -> None:
        self.root = absolute_path(root)

    @property
    def shared_dir(self) -> Path:
        return self.root / SHARED_CONFIG_DIRNAME

    def is_config_file(self, path: Path) -> bool:
        return Path(path).name.startswith(f"{CONFIG_BASENAME}.")

    def is_shared_path(self, path: Path) -> bool:
        return is_under(Path(path), self.shared_dir)

    def discover_config_files(self) -> tuple[list[Path], list[Path]]:
        """Return ``(local, shared)`` config files, each sorted."""
        local: list[Path] = []
        shared: list[Path] = []
        if not self.root.is_dir():
            return local, shared

        for current, dir_names, file_names in os.walk(str(self.root), topdown=True):
            dir_names[:] = sorted(name for name in dir_names if name not in IGNORED_DIRS)
            for name in sorted(file_names):
                path = Path(current) / name
                if not self.is_config_file(path):
                    continue
                if path.suffix not in CONFIG_EXTENSIONS + SCRIPT_CONFIG_EXTENSIONS:
                    continue
                if self.is_shared_path(path):
                    shared.append(path)
                else:
                    local.append(path)
        return local, shared

    def load(self) -> ConfigLoadResult:
        result = ConfigLoadResult()
        local, shared = self.discover_config_files()

        for config_path in local:
            self._collect(config_path, config_path.parent, result)
        # shared configs apply to the whole project
        for config_path in shared:
            self._collect(config_path, self.root, result)
        return result

    def load_configs(self) -> list[Rule]:
        return self.load().rules

    def _collect(
        self, config_path: Path, root_directory: Path, result: ConfigLoadResult
    ) -> None:
        try:
            payload = self.read_config(config_path)
        except ConfigFileError as exc:
            result.errors.append(exc)
            return
        if payload is None:
            return

        is_list = isinstance(payload, list)
        items = payload if is_list else [payload]
        for index, item in enumerate(items):
            try:
                result.rules.append(
                    self.build_rule(
                        config_path, root_directory, item, index if is_list else None
                    )
                )
            except ConfigFileError as exc:
                result.errors.append(exc)

    def read_config(self, config_path: Path) -> Any:
        suffix = config_path.suffix
        if suffix in SCRIPT_CONFIG_EXTENSIONS:
            raise UnsupportedConfigFormatError(config_path)
        try:
            text = read_text(config_path)
        except OSError as exc:
            raise ConfigFileError(config_path, f"Unreadable config ({exc})") from exc
        if not text.strip():
            return None

        if suffix == ".json":
            try:
                return read_json(config_path)
            except json.JSONDecodeError as exc:
                raise InvalidJsonFormatError(config_path, exc.msg) from exc
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise InvalidYamlFormatError(config_path, str(exc).splitlines()[0]) from exc

    def build_rule(
        self,
        config_path: Path,
        root_directory: Path,
        item: Any,
        index: Optional[int] = None,
    ) -> Rule:
        error = next(iter(_VALIDATOR.iter_errors(item)), None)
        if error is not None:
            raise InvalidConfigSchemaError(
                config_path, _entry_detail(format_schema_error(error), index)
            )
        if "rootDir" in item:
            detail = "rootDir is not supported, configs apply to their own directory"
            raise InvalidConfigSchemaError(config_path, _entry_detail(detail, index))

        config_dir = config_path.parent
        agent_file = item.get("agentFile")
        target = (
            absolute_path(config_dir / agent_file)
            if agent_file
            else config_dir / AGENTS_FILENAME
        )
        if not target.exists():
            raise MissingTargetDocumentError(config_path, target)

        include = item.get("include")
        return Rule(
            root_directory=absolute_path(root_directory),
            target_document=absolute_path(target),
            include_patterns=tuple(include) if include is not None else None,
            exclude_patterns=tuple(item.get("exclude") or ()),
            source=config_path,
        )
