"""File copies over an established SSH connection."""

from __future__ import annotations

from pathlib import Path

import asyncssh


async def upload(conn: asyncssh.SSHClientConnection, local_path: str | Path, remote_path: str) -> None:
    await asyncssh.scp(str(local_path), (conn, remote_path))


async def download(conn: asyncssh.SSHClientConnection, remote_path: str, local_path: str | Path) -> None:
    await asyncssh.scp((conn, remote_path), str(local_path))
