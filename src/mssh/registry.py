"""Registry of the commands the shell can dispatch."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from .errors import CommandNotFound

# (context, args) -> None, plain or coroutine function
Handler = Callable[[Any, list[str]], Any]


@dataclass(frozen=True)
class ParamSpec:
    """Description of one positional parameter.

    ``type`` and ``required`` are only rendered in help text, arguments
    always reach the handler as strings.
    """

    name: str
    type: str = "string"
    required: bool = True
    desc: str = ""


@dataclass(frozen=True)
class CommandDescriptor:
    """Metadata for one registered command."""

    group: str
    name: str
    handler: Handler
    help: str = ""
    usage: str = ""
    params: tuple[ParamSpec, ...] = field(default_factory=tuple)


class CommandRegistry:
    """Name-keyed collection of command descriptors."""

    def __init__(self) -> None:
        self._commands: dict[str, CommandDescriptor] = {}

    def register(
        self,
        group: str,
        name: str,
        handler: Handler,
        help: str = "",
        usage: str = "",
        params: Sequence[ParamSpec] = (),
    ) -> CommandDescriptor:
        """Register a command. The first registration of a name wins."""
        existing = self._commands.get(name)
        if existing is not None:
            return existing
        descriptor = CommandDescriptor(
            group=group,
            name=name,
            handler=handler,
            help=help,
            usage=usage or name,
            params=tuple(params),
        )
        self._commands[name] = descriptor
        return descriptor

    def lookup(self, name: str) -> Handler:
        return self.describe(name).handler

    def describe(self, name: str) -> CommandDescriptor:
        try:
            return self._commands[name]
        except KeyError:
            raise CommandNotFound(name) from None

    def groups(self) -> dict[str, list[CommandDescriptor]]:
        """Descriptors by group, groups in first-registration order."""
        grouped: dict[str, list[CommandDescriptor]] = {}
        for descriptor in self._commands.values():
            grouped.setdefault(descriptor.group, []).append(descriptor)
        for descriptors in grouped.values():
            descriptors.sort(key=lambda d: d.name)
        return grouped

    def list_all(self) -> list[CommandDescriptor]:
        return [d for descriptors in self.groups().values() for d in descriptors]

    def names(self) -> list[str]:
        return sorted(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)
