"""Exceptions raised by the mssh shell."""


class MsshError(Exception):
    """Base class for mssh errors."""


class CommandError(MsshError):
    """A command handler rejected its arguments or could not run."""


class CommandNotFound(MsshError, LookupError):
    """No command is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"command '{name}' is not registered")
        self.name = name


class ShellExit(MsshError):
    """Raised by the exit command to leave the interpreter loop."""
