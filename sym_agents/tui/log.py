from typing import Optional

from rich.console import Console
from rich.text import Text

from sym_agents.constants import LOG_PREFIX
from sym_agents.tui.enums import LOG_LEVEL_STYLE, LogLevel


class ConsoleLog:
    """Colour-coded, prefixed log lines on a rich console.

    Messages are printed as plain ``Text`` so paths like ``src/[id]`` are never
    read as console markup.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        error_console: Optional[Console] = None,
        verbose: bool = False,
        prefix: str = LOG_PREFIX,
    ) -> None:
        self.console = console or Console(highlight=False)
        self.error_console = error_console or (
            Console(stderr=True, highlight=False) if console is None else console
        )
        self.verbose = verbose
        self.prefix = prefix

    def _emit(self, level: LogLevel, message: str) -> None:
        target = (
            self.error_console
            if level in (LogLevel.WARN, LogLevel.ERROR)
            else self.console
        )
        line = f"{self.prefix} {message}"
        target.print(Text(line, style=LOG_LEVEL_STYLE[level]), soft_wrap=True)

    def debug(self, message: str) -> None:
        if self.verbose:
            self._emit(LogLevel.DEBUG, message)

    def info(self, message: str) -> None:
        self._emit(LogLevel.INFO, message)

    def success(self, message: str) -> None:
        self._emit(LogLevel.SUCCESS, message)

    def action(self, message: str) -> None:
        self._emit(LogLevel.ACTION, message)

    def warn(self, message: str) -> None:
        self._emit(LogLevel.WARN, message)

    def error(self, message: str, error: Optional[BaseException] = None) -> None:
        self._emit(LogLevel.ERROR, message)
        if error is not None:
            self._emit(LogLevel.ERROR, f"  {error}")
