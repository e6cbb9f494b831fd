from sym_agents.tui.log import ConsoleLog
from sym_agents.tui.renderers import SymAgentsConsoleUI

__all__ = ["ConsoleLog", "SymAgentsConsoleUI"]
