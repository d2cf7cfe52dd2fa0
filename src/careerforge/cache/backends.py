"""Key/value persistence primitives behind :class:`LocalCache`.

Backends deal in opaque strings only; JSON encoding and key composition
live in the cache layer.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Protocol

import aiosqlite

from careerforge.exceptions import StorageError

_logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Structural backend interface used by :class:`LocalCache`.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementations concrete.
    """

    async def read(self, key: str) -> str | None:
        ...

    async def write(self, key: str, value: str) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...

    async def close(self) -> None:
        ...


class MemoryBackend:
    """Process-local dict backend, optionally bounded by a byte quota."""

    def __init__(self, *, quota_bytes: int | None = None) -> None:
        self._entries: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    def _size_with(self, key: str, value: str) -> int:
        size = len(key) + len(value)
        for existing_key, existing_value in self._entries.items():
            if existing_key != key:
                size += len(existing_key) + len(existing_value)
        return size

    async def read(self, key: str) -> str | None:
        return self._entries.get(key)

    async def write(self, key: str, value: str) -> None:
        if self._quota_bytes is not None and self._size_with(key, value) > self._quota_bytes:
            raise StorageError(f"Storage quota of {self._quota_bytes} bytes exceeded writing {key}", key=key)
        self._entries[key] = value

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._entries)

    async def close(self) -> None:
        return None


class SqliteBackend:
    """Single-table SQLite backend; durable across process restarts.

    Runs on :mod:`aiosqlite`, so queries execute on the connection's worker
    thread and a locked database never stalls the event loop. The
    connection opens on first use; :meth:`initialize` opens it eagerly.
    """

    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS entries (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at REAL NOT NULL
        )
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: aiosqlite.Connection | None = None
        self._closed = False
        self._init_lock = asyncio.Lock()

    @property
    def path(self) -> str:
        return self._path

    async def initialize(self) -> None:
        """Open the database file and create the schema if needed."""
        async with self._init_lock:
            if self._closed:
                raise StorageError(f"Cache database {self._path} is closed")
            if self._conn is not None:
                return
            try:
                if self._path != ":memory:":
                    Path(self._path).parent.mkdir(parents=True, exist_ok=True)
                conn = await aiosqlite.connect(self._path)
            except (OSError, aiosqlite.Error) as exc:
                raise StorageError(f"Cannot open cache database {self._path}: {exc}") from exc
            try:
                await conn.execute(self._SCHEMA)
                await conn.commit()
            except aiosqlite.Error as exc:
                await conn.close()
                raise StorageError(f"Cannot initialize cache database {self._path}: {exc}") from exc
            self._conn = conn
            _logger.debug("SQLite cache opened: %s", self._path)

    async def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            await self.initialize()
        assert self._conn is not None
        return self._conn

    async def read(self, key: str) -> str | None:
        conn = await self._require_conn()
        try:
            async with conn.execute("SELECT value FROM entries WHERE key = ?", (key,)) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StorageError(f"Failed to read {key}: {exc}", key=key) from exc
        return None if row is None else str(row[0])

    async def write(self, key: str, value: str) -> None:
        conn = await self._require_conn()
        try:
            await conn.execute(
                "INSERT INTO entries (key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                (key, value, time.time()),
            )
            await conn.commit()
        except aiosqlite.Error as exc:
            await self._rollback(conn)
            raise StorageError(f"Failed to write {key}: {exc}", key=key) from exc

    async def remove(self, key: str) -> None:
        conn = await self._require_conn()
        try:
            await conn.execute("DELETE FROM entries WHERE key = ?", (key,))
            await conn.commit()
        except aiosqlite.Error as exc:
            await self._rollback(conn)
            raise StorageError(f"Failed to delete {key}: {exc}", key=key) from exc

    async def _rollback(self, conn: aiosqlite.Connection) -> None:
        try:
            await conn.rollback()
        except aiosqlite.Error:
            _logger.debug("Rollback failed on %s", self._path, exc_info=True)

    async def close(self) -> None:
        async with self._init_lock:
            self._closed = True
            conn = self._conn
            self._conn = None
        if conn is not None:
            await conn.close()
