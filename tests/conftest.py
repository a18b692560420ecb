from __future__ import annotations

import asyncio
from pathlib import Path
from types import SimpleNamespace

import asyncssh
import pytest
from loguru import logger

from mssh.commands import register_builtin_commands
from mssh.config import Config
from mssh.context import ShellContext
from mssh.dispatcher import Dispatcher
from mssh.executor import Executor
from mssh.registry import CommandRegistry


class FakeStream:
    def __init__(self, lines: list[str]):
        self._lines = [line + "\n" for line in lines]

    async def readline(self) -> str:
        if not self._lines:
            return ""
        return self._lines.pop(0)


class FakeProcess:
    def __init__(self, stdout: list[str], stderr: list[str], exit_status: int):
        self.stdout = FakeStream(stdout)
        self.stderr = FakeStream(stderr)
        self.exit_status = exit_status

    async def __aenter__(self) -> FakeProcess:
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    async def wait(self) -> None:
        return None


class FakeHost:
    def __init__(self, name: str, home: str, unreachable: bool, pwd_fails: bool, exit_status: int):
        self.name = name
        self.home = home
        self.unreachable = unreachable
        self.pwd_fails = pwd_fails
        self.exit_status = exit_status
        self.transfer_fails = False
        self.pwd_hangs = False


class FakeConnection:
    def __init__(self, host: FakeHost, port: int):
        self.host = host
        self.port = port
        self.closed = False
        self.commands: list[str] = []
        self.process_options: list[dict] = []

    async def run(self, cmd: str, check: bool = False):
        self.commands.append(cmd)
        if self.host.pwd_fails:
            raise OSError("channel open failed")
        if self.host.pwd_hangs:
            await asyncio.Event().wait()
        return SimpleNamespace(stdout=self.host.home + "\n", exit_status=0)

    def create_process(self, cmd: str, **kwargs) -> FakeProcess:
        self.commands.append(cmd)
        self.process_options.append(kwargs)
        return FakeProcess(
            [f"{self.host.name}: {cmd}"],
            [] if self.host.exit_status == 0 else ["boom"],
            self.host.exit_status,
        )

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


class FakeNetwork:
    """Stands in for asyncssh.connect and asyncssh.scp."""

    def __init__(self) -> None:
        self.hosts: dict[str, FakeHost] = {}
        self.dials: list[tuple[str, int]] = []
        self.connections: list[FakeConnection] = []
        self.uploads: list[tuple[str, str, str]] = []
        self.downloads: list[tuple[str, str, str]] = []

    def add_host(
        self,
        name: str,
        home: str = "/root",
        unreachable: bool = False,
        pwd_fails: bool = False,
        exit_status: int = 0,
    ) -> FakeHost:
        host = FakeHost(name, home, unreachable, pwd_fails, exit_status)
        self.hosts[name] = host
        return host

    async def connect(self, host: str, port: int = 22, **kwargs) -> FakeConnection:
        self.dials.append((host, port))
        fake_host = self.hosts.get(host)
        if fake_host is None or fake_host.unreachable:
            raise OSError(f"connect to {host} refused")
        conn = FakeConnection(fake_host, port)
        self.connections.append(conn)
        return conn

    async def scp(self, src, dst, **kwargs) -> None:
        if isinstance(src, tuple):
            conn, remote_path = src
            if conn.host.transfer_fails:
                raise asyncssh.SFTPNoSuchFile(f"{remote_path} not found")
            Path(dst).write_text(f"{conn.host.name}:{remote_path}")
            self.downloads.append((conn.host.name, remote_path, dst))
        else:
            conn, remote_path = dst
            if conn.host.transfer_fails:
                raise asyncssh.SFTPFailure("disk full")
            self.uploads.append((conn.host.name, src, remote_path))


@pytest.fixture
def network(monkeypatch) -> FakeNetwork:
    fake = FakeNetwork()
    monkeypatch.setattr(asyncssh, "connect", fake.connect)
    monkeypatch.setattr(asyncssh, "scp", fake.scp)
    return fake


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        history_file=tmp_path / "history",
        rc_file=tmp_path / ".msshrc",
        download_root=tmp_path / "download",
    )


@pytest.fixture
def executor(config: Config) -> Executor:
    return Executor(config)


@pytest.fixture
def registry() -> CommandRegistry:
    registry = CommandRegistry()
    register_builtin_commands(registry)
    return registry


@pytest.fixture
def dispatcher(config: Config, registry: CommandRegistry, executor: Executor) -> Dispatcher:
    context = ShellContext(config=config, registry=registry, executor=executor)
    return Dispatcher(registry, context)


@pytest.fixture
def log_messages() -> list[str]:
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
