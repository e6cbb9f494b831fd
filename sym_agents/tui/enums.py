from enum import Enum

from sym_agents.models import ActionStatus


class UIStyle(str, Enum):
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    CYAN = "cyan"
    MAGENTA = "magenta"
    DIM = "dim"
    WHITE = "white"


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    SUCCESS = "success"
    ACTION = "action"
    WARN = "warn"
    ERROR = "error"


LOG_LEVEL_STYLE = {
    LogLevel.DEBUG: UIStyle.DIM.value,
    LogLevel.INFO: UIStyle.CYAN.value,
    LogLevel.SUCCESS: UIStyle.GREEN.value,
    LogLevel.ACTION: UIStyle.BLUE.value,
    LogLevel.WARN: UIStyle.YELLOW.value,
    LogLevel.ERROR: UIStyle.RED.value,
}


ACTION_STATUS_STYLE = {
    ActionStatus.CREATE: UIStyle.GREEN.value,
    ActionStatus.FIX: UIStyle.YELLOW.value,
    ActionStatus.REMOVE: UIStyle.MAGENTA.value,
    ActionStatus.NOOP: UIStyle.DIM.value,
    ActionStatus.PRESERVE: UIStyle.CYAN.value,
    ActionStatus.CONFLICT: UIStyle.RED.value,
    ActionStatus.FAILED: UIStyle.RED.value,
}
