"""Argument coercion and handler invocation."""

from __future__ import annotations

import inspect
from typing import Any, Sequence

from loguru import logger

from .errors import CommandError, ShellExit
from .registry import CommandDescriptor, CommandRegistry


def coerce_arguments(param_count: int, args: Sequence[str]) -> list[str] | None:
    """Fit ``args`` to ``param_count`` positional parameters.

    Missing trailing arguments are padded with empty strings. Returns None
    when more arguments are supplied than the command declares.
    """
    if len(args) > param_count:
        return None
    return list(args) + [""] * (param_count - len(args))


class Dispatcher:
    """Invokes registered commands with positional string arguments."""

    def __init__(self, registry: CommandRegistry, context: Any = None):
        self.registry = registry
        self.context = context

    async def dispatch(self, name: str, args: Sequence[str]) -> bool:
        """Look up ``name`` and invoke it. Raises CommandNotFound if unknown."""
        return await self.invoke(self.registry.describe(name), args)

    async def invoke(self, descriptor: CommandDescriptor, args: Sequence[str]) -> bool:
        """Invoke a command. Returns True if the handler ran to completion."""
        coerced = coerce_arguments(len(descriptor.params), args)
        if coerced is None:
            logger.warning(
                f"[{descriptor.name}] parameter count mismatch: "
                f"takes {len(descriptor.params)}, got {len(args)}"
            )
            return False

        try:
            result = descriptor.handler(self.context, coerced)
            if inspect.isawaitable(result):
                await result
        except ShellExit:
            raise
        except CommandError as e:
            logger.error(f"[{descriptor.name}] {e}")
            return False
        except Exception:
            logger.exception(f"[{descriptor.name}] command failed")
            return False
        return True
