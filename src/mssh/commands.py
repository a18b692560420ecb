"""Builtin commands of the mssh shell.

Every handler takes the :class:`~mssh.context.ShellContext` and the
positional arguments as strings, already padded to the declared parameter
count. Bad input is reported by raising :class:`~mssh.errors.CommandError`.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from loguru import logger
from prompt_toolkit.shortcuts import clear as clear_screen

from .context import ShellContext
from .errors import CommandError, CommandNotFound, ShellExit
from .log import add_log_file
from .registry import CommandRegistry, ParamSpec


def _parse_int(name: str, value: str, default: int) -> int:
    if value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise CommandError(f"convert {name} to int error: {value!r}") from None


def _require(name: str, value: str) -> str:
    if value == "":
        raise CommandError(f"missing <{name}>")
    return value


async def connect(ctx: ShellContext, args: list[str]) -> None:
    user, password, host, port, timeout = args
    _require("username", user)
    _require("host", host)
    defaults = ctx.config.defaults
    port_number = _parse_int("port", port, defaults.port)
    timeout_seconds = _parse_int("timeout", timeout, defaults.timeout)
    ctx.executor.connect(user, password, host, port_number, timeout_seconds)


async def release(ctx: ShellContext, args: list[str]) -> None:
    (host,) = args
    await ctx.executor.release(_require("host", host))


def check(ctx: ShellContext, args: list[str]) -> None:
    ctx.executor.check()


async def put(ctx: ShellContext, args: list[str]) -> None:
    file_path, remote_dir = args
    await ctx.executor.put(_require("filePath", file_path), remote_dir)


async def get(ctx: ShellContext, args: list[str]) -> None:
    (remote_path,) = args
    await ctx.executor.get(_require("remotePath", remote_path))


async def remote_exec(ctx: ShellContext, args: list[str]) -> None:
    (command,) = args
    await ctx.executor.run(_require("command", command))


async def done(ctx: ShellContext, args: list[str]) -> None:
    await ctx.executor.done()


def format_overview(registry: CommandRegistry) -> str:
    lines = ["All commands:"]
    for group, descriptors in registry.groups().items():
        lines.append(f"  [{group}]")
        for descriptor in descriptors:
            lines.append(f"    {descriptor.name}: {descriptor.help}")
    return "\n".join(lines)


def format_usage(registry: CommandRegistry, name: str) -> str:
    try:
        descriptor = registry.describe(name)
    except CommandNotFound:
        return f"    command {name} is not registered"
    lines = [
        f"command: {descriptor.name}",
        f"help: {descriptor.help}",
        f"usage: {descriptor.usage}",
        "params:",
    ]
    for param in descriptor.params:
        necessity = "required" if param.required else "optional"
        lines.append(f"    <{param.name}>  ({param.type}), {necessity}, {param.desc}")
    return "\n".join(lines)


def show_help(ctx: ShellContext, args: list[str]) -> None:
    (name,) = args
    if name == "":
        print(format_overview(ctx.registry))
    else:
        print(format_usage(ctx.registry, name))


def clear(ctx: ShellContext, args: list[str]) -> None:
    clear_screen()


async def edit(ctx: ShellContext, args: list[str]) -> None:
    (filename,) = args
    editor = os.environ.get("EDITOR", "vim")
    try:
        proc = await asyncio.create_subprocess_exec(editor, _require("filename", filename))
    except OSError as e:
        raise CommandError(f"open {editor} failed: {e}") from None
    if await proc.wait() != 0:
        raise CommandError(f"{editor} exited with status {proc.returncode}")
    logger.info(f"{editor} edit success")


def exit_shell(ctx: ShellContext, args: list[str]) -> None:
    raise ShellExit()


def add_logger(ctx: ShellContext, args: list[str]) -> None:
    (filename,) = args
    path = Path(_require("filename", filename)).expanduser()
    try:
        add_log_file(path)
    except OSError as e:
        raise CommandError(f"add log file {path} failed: {e}") from None
    logger.info(f"logging to {path}")


def register_builtin_commands(registry: CommandRegistry) -> None:
    """Register every builtin command on ``registry``."""
    registry.register("inner", "done", done, "Wait for batch tasks to finish", "done")

    registry.register(
        "file",
        "put",
        put,
        "Upload a file to every connected host",
        "put <filePath> <remoteDir>",
        [
            ParamSpec("filePath", "string", True, "local file path, '@' expands to download/<host>"),
            ParamSpec("remoteDir", "string", False, "remote directory, defaults to the login home directory"),
        ],
    )
    registry.register(
        "file",
        "get",
        get,
        "Download a file from every connected host into download/<host>/",
        "get <remotePath>",
        [ParamSpec("remotePath", "string", True, "remote file path")],
    )

    registry.register("conn", "check", check, "Show tracked connections", "check")
    registry.register(
        "conn",
        "connect",
        connect,
        "Connect to a remote host",
        "connect <username> <password> <host> <port> <timeout>",
        [
            ParamSpec("username", "string", True, "user name"),
            ParamSpec("password", "string", True, "password"),
            ParamSpec("host", "string", True, "server address"),
            ParamSpec("port", "int", False, "sshd port, default 22"),
            ParamSpec("timeout", "int", False, "connect timeout in seconds, default 5"),
        ],
    )
    registry.register(
        "conn",
        "release",
        release,
        "Release a remote connection",
        "release <host>",
        [ParamSpec("host", "string", True, "host key as shown by check")],
    )

    registry.register(
        "remote",
        "exec",
        remote_exec,
        "Run a command on every connected host",
        "exec <command>",
        [ParamSpec("command", "string", True, "command line, quote it when it has spaces")],
    )

    registry.register(
        "cmdline",
        "help",
        show_help,
        "Show help",
        "help <command>",
        [ParamSpec("command", "string", False, "command name")],
    )
    registry.register("cmdline", "clear", clear, "Clear the screen", "clear")
    registry.register(
        "cmdline",
        "edit",
        edit,
        "Open a file in $EDITOR",
        "edit <filename>",
        [ParamSpec("filename", "string", True, "file name")],
    )
    registry.register("cmdline", "exit", exit_shell, "Exit mssh", "exit")

    registry.register(
        "logger",
        "log",
        add_logger,
        "Also write the log to a file",
        "log <filename>",
        [ParamSpec("filename", "string", True, "log file name")],
    )
