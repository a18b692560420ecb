"""Line interpreter and script runner."""

from __future__ import annotations

import inspect
import shlex
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterable, Callable, Iterable

from loguru import logger

from .dispatcher import Dispatcher

SCRIPT_KEYWORD = "run"
COMMENT_PREFIX = "#"

# Receives the raw line when no command matches
Fallback = Callable[[str], Any]


class State(Enum):
    """State of the read-dispatch loop."""

    READING = "reading"
    DISPATCHING = "dispatching"
    TERMINATED = "terminated"


def echo(line: str) -> None:
    print(f"exec with default handler: {line}")


class Interpreter:
    """Reads lines, tokenizes them and drives the dispatcher.

    ``run <file> ...`` is handled here rather than registered as a command,
    so a script always executes through this loop.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        fallback: Fallback | None = None,
        script_keyword: str = SCRIPT_KEYWORD,
    ):
        self.dispatcher = dispatcher
        self.registry = dispatcher.registry
        self.fallback = fallback or echo
        self.script_keyword = script_keyword
        self.state = State.READING
        self._scripts: list[Path] = []

    async def interpret(self, lines: AsyncIterable[str] | Iterable[str]) -> None:
        """Execute lines until the input is exhausted."""
        self.state = State.READING
        await self._loop(lines)
        self.state = State.TERMINATED

    async def _loop(self, lines: AsyncIterable[str] | Iterable[str]) -> None:
        if isinstance(lines, AsyncIterable):
            async for line in lines:
                await self.execute_line(line)
        else:
            for line in lines:
                await self.execute_line(line)

    async def execute_line(self, line: str) -> None:
        line = line.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            return

        try:
            argv = shlex.split(line)
        except ValueError as e:
            logger.error(f"{line}: {e}")
            return
        if not argv:
            return

        name, args = argv[0], argv[1:]
        if name in self.registry:
            self.state = State.DISPATCHING
            try:
                await self.dispatcher.dispatch(name, args)
            finally:
                self.state = State.READING
        elif name == self.script_keyword:
            for script in args:
                await self.run_script(script)
        else:
            result = self.fallback(line)
            if inspect.isawaitable(result):
                await result

    async def run_script(self, script: str | Path) -> bool:
        """Execute a script file line by line. Returns False if it could not run."""
        path = Path(script).expanduser()
        resolved = path.resolve()
        if resolved in self._scripts:
            logger.error(f"run script {path} error: script is already running")
            return False
        try:
            text = path.read_text()
        except OSError as e:
            logger.error(f"run script {path} error: {e}")
            return False

        self._scripts.append(resolved)
        try:
            await self._loop(text.splitlines())
        finally:
            self._scripts.pop()
        return True
