from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 4


async def open_connection(db_path: Path) -> aiosqlite.Connection:
    conn = await aiosqlite.connect(str(db_path))
    conn.row_factory = aiosqlite.Row
    await conn.execute("PRAGMA journal_mode=WAL;")
    await conn.execute("PRAGMA busy_timeout=5000;")
    await conn.commit()
    return conn


class ConnectionPool:
    """Fixed-size set of SQLite connections shared by every caller.

    Each aiosqlite connection runs its statements on its own worker thread.
    ``acquire`` waits until a connection is free.
    """

    def __init__(self, connections: list[aiosqlite.Connection]) -> None:
        self._all = list(connections)
        self._available: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue()
        for conn in connections:
            self._available.put_nowait(conn)

    @classmethod
    async def open(cls, db_path: Path, size: int = DEFAULT_POOL_SIZE) -> "ConnectionPool":
        logger.info("opening sqlite pool at %s with size %d", db_path, size)
        connections = [await open_connection(db_path) for _ in range(max(size, 1))]
        return cls(connections)

    @property
    def size(self) -> int:
        return len(self._all)

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = await self._available.get()
        try:
            yield conn
        finally:
            self._available.put_nowait(conn)

    async def close(self) -> None:
        for conn in self._all:
            await conn.close()
        self._all.clear()
