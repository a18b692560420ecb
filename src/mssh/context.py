"""Shared state passed to command handlers."""

from __future__ import annotations

from dataclasses import dataclass

from .config import Config
from .executor import Executor
from .registry import CommandRegistry


@dataclass
class ShellContext:
    """State handed to every command handler."""

    config: Config
    registry: CommandRegistry
    executor: Executor
