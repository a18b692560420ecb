"""Interactive input: prompt_toolkit session, completion and stdin streams."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion, PathCompleter
from prompt_toolkit.document import Document
from prompt_toolkit.history import FileHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style

from .config import Config
from .registry import CommandRegistry

prompt_style = Style.from_dict({
    "prompt": "bold ansiyellow",
    "completion-menu.meta": "#6c6c6c italic",
})


class CommandCompleter(Completer):
    """Completes command names, then parameter placeholders and paths."""

    def __init__(self, registry: CommandRegistry, extra_words: tuple[str, ...] = ()):
        self.registry = registry
        self.extra_words = extra_words
        self.paths = PathCompleter(expanduser=True)

    def get_completions(self, document: Document, complete_event):
        text = document.text_before_cursor
        word = document.get_word_before_cursor(WORD=True)
        words = text.split()

        # First word: command name
        if not words or (len(words) == 1 and not text.endswith(" ")):
            for name in sorted([*self.registry.names(), *self.extra_words]):
                if name.startswith(word):
                    meta = self.registry.describe(name).help if name in self.registry else ""
                    yield Completion(name, start_position=-len(word), display_meta=meta)
            return

        name = words[0]
        position = len(words) - 1 if not text.endswith(" ") else len(words)
        if name in self.registry:
            params = self.registry.describe(name).params
            if 0 < position <= len(params) and not word:
                param = params[position - 1]
                yield Completion(
                    f"<{param.name}>",
                    start_position=0,
                    display_meta=param.desc,
                )

        yield from self.paths.get_completions(
            Document(word, cursor_position=len(word)), complete_event
        )


def interrupt(event) -> None:
    """Ctrl+C discards the current line, or exits on an empty one"""
    buffer = event.app.current_buffer
    if buffer.text:
        buffer.reset()
    else:
        event.app.exit(exception=EOFError)


def create_prompt_session(config: Config, registry: CommandRegistry, extra_words: tuple[str, ...] = ()) -> PromptSession:
    """Create the interactive session. Ctrl-C on an empty line ends input."""
    kb = KeyBindings()
    kb.add("c-c")(interrupt)

    config.history_file.parent.mkdir(parents=True, exist_ok=True)
    return PromptSession(
        history=FileHistory(str(config.history_file)),
        completer=CommandCompleter(registry, extra_words),
        complete_while_typing=False,
        key_bindings=kb,
        style=prompt_style,
    )


async def prompt_lines(session: PromptSession, prompt: str) -> AsyncIterator[str]:
    """Yield lines typed at the prompt until end of input."""
    message = [("class:prompt", f"[{prompt} ~ ]# ")]
    while True:
        try:
            yield await session.prompt_async(message)
        except EOFError:
            return


async def stream_lines(stream: TextIO) -> AsyncIterator[str]:
    """Yield lines from a non-interactive stream such as piped stdin."""
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            return
        yield line
