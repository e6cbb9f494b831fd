from typing import Final


AGENTS_FILENAME: Final[str] = "AGENTS.md"
SHARED_CONFIG_DIRNAME: Final[str] = ".agents"

CONFIG_BASENAME: Final[str] = "agents.config"
CONFIG_EXTENSIONS: Final[tuple[str, ...]] = (".json", ".yml", ".yaml")
SCRIPT_CONFIG_EXTENSIONS: Final[tuple[str, ...]] = (".js", ".cjs", ".mjs")

IGNORED_DIRS: Final[tuple[str, ...]] = (
    "node_modules",
    ".git",
)

EVENT_QUEUE_SIZE: Final[int] = 1024
WATCHER_JOIN_TIMEOUT: Final[float] = 5.0

LOG_PREFIX: Final[str] = "[SymAgents]"
