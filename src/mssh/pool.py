"""Pool of live SSH connections keyed by host."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import asyncssh

DEFAULT_PORT = 22


def host_key(host: str, port: int = DEFAULT_PORT) -> str:
    """Identity of a host in the pool: ``host`` or ``host:port``."""
    if port == DEFAULT_PORT:
        return host
    return f"{host}:{port}"


@dataclass
class Connection:
    """A live session to one host."""

    host_key: str
    handle: asyncssh.SSHClientConnection
    home_directory: str

    async def close(self) -> None:
        self.handle.close()
        await self.handle.wait_closed()


class ConnectionPool:
    """Mapping of host key to Connection.

    Inserts and deletes happen under a lock. Readers iterate a
    :meth:`snapshot` and may miss a concurrent connect or release.
    """

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        self._lock = asyncio.Lock()

    async def add(self, connection: Connection) -> bool:
        """Insert ``connection``. Returns False if its key is already live."""
        async with self._lock:
            if connection.host_key in self._connections:
                return False
            self._connections[connection.host_key] = connection
            return True

    async def remove(self, key: str) -> Connection | None:
        async with self._lock:
            return self._connections.pop(key, None)

    def get(self, key: str) -> Connection | None:
        return self._connections.get(key)

    def snapshot(self) -> list[Connection]:
        return list(self._connections.values())

    def keys(self) -> list[str]:
        return list(self._connections)

    def __contains__(self, key: object) -> bool:
        return key in self._connections

    def __len__(self) -> int:
        return len(self._connections)
