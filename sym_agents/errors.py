from pathlib import Path


class SymAgentsError(Exception):
    """Base user-facing application error."""


class RootDirectoryError(SymAgentsError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Root directory does not exist: {path}")


class WatcherStartError(SymAgentsError):
    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Could not start watcher on {path} ({detail})")


class ConfigFileError(SymAgentsError):
    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")


class InvalidJsonFormatError(ConfigFileError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Invalid JSON format ({detail})")


class InvalidYamlFormatError(ConfigFileError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Invalid YAML format ({detail})")


class InvalidConfigSchemaError(ConfigFileError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Invalid config schema ({detail})")


class UnsupportedConfigFormatError(ConfigFileError):
    def __init__(self, path: Path) -> None:
        super().__init__(
            path=path, message="Script configs are not supported, use JSON or YAML"
        )


class MissingTargetDocumentError(ConfigFileError):
    def __init__(self, path: Path, target: Path) -> None:
        self.target = target
        super().__init__(
            path=path, message=f"AGENTS.md not found (looking for {target})"
        )
