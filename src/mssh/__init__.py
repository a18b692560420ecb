"""mssh: an interactive shell for many SSH hosts at once."""

__version__ = "0.1.0"

from .config import Config, Defaults, load_config
from .dispatcher import Dispatcher, coerce_arguments
from .errors import CommandError, CommandNotFound, MsshError, ShellExit
from .executor import Executor
from .interpreter import Interpreter, State
from .pool import Connection, ConnectionPool, host_key
from .registry import CommandDescriptor, CommandRegistry, ParamSpec
from .tasks import Batch, TaskBarrier

__all__ = [
    "Config",
    "Defaults",
    "load_config",
    "Dispatcher",
    "coerce_arguments",
    "CommandError",
    "CommandNotFound",
    "MsshError",
    "ShellExit",
    "Executor",
    "Interpreter",
    "State",
    "Connection",
    "ConnectionPool",
    "host_key",
    "CommandDescriptor",
    "CommandRegistry",
    "ParamSpec",
    "Batch",
    "TaskBarrier",
]
