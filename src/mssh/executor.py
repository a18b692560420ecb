"""Connection management and multi-host operations for mssh."""

from __future__ import annotations

import asyncio
import posixpath
from pathlib import Path
from typing import Callable

import asyncssh
from loguru import logger

from . import transfer
from .config import Config
from .pool import DEFAULT_PORT, Connection, ConnectionPool, host_key
from .tasks import Batch, TaskBarrier

# ANSI colors for different hosts
COLORS = [
    "\033[36m",  # Cyan
    "\033[33m",  # Yellow
    "\033[35m",  # Magenta
    "\033[32m",  # Green
    "\033[34m",  # Blue
    "\033[91m",  # Light Red
    "\033[96m",  # Light Cyan
    "\033[93m",  # Light Yellow
]
RESET = "\033[0m"

# Placeholder in put paths, replaced by the host's download directory
HOST_PLACEHOLDER = "@"

TRANSPORT_ERRORS = (asyncssh.Error, OSError, asyncio.TimeoutError)

# Type alias for output callback
OutputCallback = Callable[[str, str], None]  # (host_key, line) -> None


class Executor:
    """Owns the connection pool and the task barrier.

    One instance lives for the whole shell session and is handed to every
    command handler.
    """

    def __init__(self, config: Config, on_output: OutputCallback | None = None):
        self.config = config
        self.pool = ConnectionPool()
        self.tasks = TaskBarrier(config.max_parallel)
        self.on_output = on_output
        self._pending: set[str] = set()
        self._colors: dict[str, str] = {}

    def _emit_output(self, key: str, line: str, tagged: bool = False) -> None:
        """Emit one line of remote output for a host."""
        if self.on_output:
            self.on_output(key, line)
            return
        if tagged:
            color = self._colors.setdefault(key, COLORS[len(self._colors) % len(COLORS)])
            print(f"{color}[{key}]{RESET} {line}")
        else:
            print(line)

    def connect(
        self,
        user: str,
        password: str,
        host: str,
        port: int = DEFAULT_PORT,
        timeout: int = 5,
    ) -> asyncio.Task | None:
        """Start connecting to ``host`` in the background.

        Returns the launched task, or None when the host is already
        connected or a connect to it is in flight.
        """
        key = host_key(host, port)
        if key in self.pool or key in self._pending:
            logger.info(f"[{key}] connected")
            return None
        self._pending.add(key)
        return self.tasks.launch(
            self._connect(key, user, password, host, port, timeout),
            name=f"connect {key}",
        )

    async def _connect(
        self, key: str, user: str, password: str, host: str, port: int, timeout: int
    ) -> None:
        try:
            try:
                conn = await asyncssh.connect(
                    host,
                    port=port,
                    username=user,
                    password=password,
                    client_keys=None,
                    known_hosts=None,  # Host keys are not verified
                    connect_timeout=timeout,
                )
            except TRANSPORT_ERRORS as e:
                logger.error(f"[{key}] ssh dial error: {e}")
                return

            try:
                result = await conn.run("pwd", check=True)
                connection = Connection(
                    host_key=key,
                    handle=conn,
                    home_directory=str(result.stdout).strip(),
                )
                added = await self.pool.add(connection)
            except TRANSPORT_ERRORS as e:
                logger.error(f"[{key}] get home path error: {e}")
                conn.close()
                return
            except asyncio.CancelledError:
                # Cancelled by shutdown before the handle reached the pool
                conn.close()
                raise

            if not added:
                logger.info(f"[{key}] connected")
                conn.close()
                return
            logger.info(f"[{key}] connect success")
        finally:
            self._pending.discard(key)

    async def release(self, key: str) -> bool:
        """Close and forget the connection to ``key``."""
        connection = await self.pool.remove(key)
        if connection is None:
            logger.warning(f"[{key}] has not connected yet")
            return False
        try:
            await connection.close()
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[{key}] close error: {e}")
        logger.warning(f"[{key}] released")
        return True

    def check(self) -> list[str]:
        """Report the hosts currently in the pool."""
        keys = self.pool.keys()
        for key in keys:
            logger.info(f"[{key}] connecting")
        return keys

    async def put(self, local_path: str, remote_dir: str = "") -> None:
        """Upload ``local_path`` to every connected host."""
        batch = self.tasks.batch()
        for connection in self.pool.snapshot():
            batch.launch(
                self._put(connection, local_path, remote_dir),
                name=f"put {connection.host_key}",
            )
        await self._join(batch)

    async def _put(self, connection: Connection, local_path: str, remote_dir: str) -> None:
        key = connection.host_key
        to_dir = remote_dir or connection.home_directory
        remote_path = posixpath.join(to_dir, posixpath.basename(local_path))
        # Re-upload of a per-host download: "@/file" -> "download/<host>/file"
        source = local_path.replace(HOST_PLACEHOLDER, str(self.config.download_root / key))
        try:
            await transfer.upload(connection.handle, source, remote_path)
        except TRANSPORT_ERRORS as e:
            logger.error(f"[{key}] scp file {source} error: {e}")
            return
        logger.info(f"[{key}] put file [{source}] to [{remote_path}] success")

    async def get(self, remote_path: str) -> None:
        """Download ``remote_path`` from every connected host."""
        batch = self.tasks.batch()
        for connection in self.pool.snapshot():
            batch.launch(
                self._get(connection, remote_path),
                name=f"get {connection.host_key}",
            )
        await self._join(batch)

    async def _get(self, connection: Connection, remote_path: str) -> None:
        key = connection.host_key
        local_path = self.download_dir(key) / posixpath.basename(remote_path)
        try:
            local_path.parent.mkdir(parents=True, exist_ok=True)
            await transfer.download(connection.handle, remote_path, local_path)
        except TRANSPORT_ERRORS as e:
            logger.error(f"[{key}] copy from remote error: {e}")
            return
        logger.info(f"[{key}] get file [{remote_path}] to [{local_path}] success")

    def download_dir(self, key: str) -> Path:
        return self.config.download_root / key

    async def run(self, cmd: str) -> dict[str, bool]:
        """Run ``cmd`` on every connected host. Returns success per host."""
        results: dict[str, bool] = {}
        connections = self.pool.snapshot()
        if not connections:
            logger.warning(f"no connected hosts, [{cmd}] not run")
            return results

        if self.config.run_mode == "parallel":

            async def run_one(connection: Connection) -> None:
                results[connection.host_key] = await self._run_command(
                    connection, cmd, tagged=True
                )

            batch = self.tasks.batch()
            for connection in connections:
                batch.launch(run_one(connection), name=f"run {connection.host_key}")
            await batch.join()
            return results

        for connection in connections:
            print(f"{COLORS[0]}>>>>>>>>>>>>>>> {connection.host_key} [{cmd}] <<<<<<<<<<<<<<<{RESET}")
            results[connection.host_key] = await self._run_command(connection, cmd)
        return results

    async def _run_command(self, connection: Connection, cmd: str, tagged: bool = False) -> bool:
        """Run a single command and stream output. Returns True if successful."""
        key = connection.host_key
        try:
            async with connection.handle.create_process(
                cmd, encoding="utf-8", errors="replace"
            ) as proc:
                # Read stdout and stderr concurrently
                async def read_stream(stream, is_stderr: bool = False):
                    while True:
                        line = await stream.readline()
                        if not line:
                            break
                        line = line.rstrip("\n\r")
                        prefix = "STDERR: " if is_stderr else ""
                        self._emit_output(key, f"{prefix}{line}", tagged)

                await asyncio.gather(
                    read_stream(proc.stdout),
                    read_stream(proc.stderr, is_stderr=True),
                )

                await proc.wait()
                exit_status = proc.exit_status

        except TRANSPORT_ERRORS as e:
            logger.error(f"[{key}] remote command [{cmd}] failed: {e}")
            return False

        if exit_status != 0:
            logger.error(f"[{key}] remote command [{cmd}] exited with status {exit_status}")
            return False
        logger.info(f"[{key}] remote command [{cmd}] success")
        return True

    async def done(self) -> None:
        """Wait for every launched unit, including those of earlier commands."""
        await self.tasks.wait()
        logger.info("multi command done")

    async def _join(self, batch: Batch) -> None:
        if self.config.scoped_barrier:
            await batch.join()
            logger.info(f"{len(batch)} host task(s) done")
        else:
            await self.done()

    async def shutdown(self) -> None:
        """Cancel outstanding units and close every connection."""
        await self.tasks.cancel_all()
        for key in self.pool.keys():
            connection = await self.pool.remove(key)
            if connection is None:
                continue
            try:
                await connection.close()
            except TRANSPORT_ERRORS as e:
                logger.warning(f"[{key}] close error: {e}")
