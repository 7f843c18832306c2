"""Connection handling shared by the SQLite record adapters."""

import asyncio
import json
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import aiosqlite

MEMORY_PATH = ":memory:"


def _encode_column(value: Any) -> Any:
    """Encode structured values (dict, list, tuple) as JSON text for storage."""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value)
    if isinstance(value, bool):
        return int(value)
    return value


class AsyncConnectionManager:
    """Owns aiosqlite connections for one database and its schema.

    An in-memory database only lives as long as its connection, so a single
    connection is opened on first use and shared until close(). File databases
    get a fresh connection per use and are switched to WAL when the schema is
    first applied.

    Every connection handed out returns aiosqlite.Row rows.
    """

    def __init__(self, db_path: str, schema: str) -> None:
        self._db_path = db_path
        self._schema = schema
        self._ready = False
        self._schema_lock: asyncio.Lock | None = None
        self._shared: aiosqlite.Connection | None = None

    @property
    def in_memory(self) -> bool:
        return self._db_path == MEMORY_PATH

    async def _open(self) -> aiosqlite.Connection:
        db = await aiosqlite.connect(self._db_path)
        db.row_factory = aiosqlite.Row
        return db

    async def _prepare(self) -> None:
        if self._ready:
            return
        # Created on first use so the lock binds to the running loop.
        if self._schema_lock is None:
            self._schema_lock = asyncio.Lock()
        async with self._schema_lock:
            if self._ready:
                return
            if self.in_memory:
                self._shared = await self._open()
                await self._shared.executescript(self._schema)
            else:
                db = await self._open()
                try:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(self._schema)
                finally:
                    await db.close()
            self._ready = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection with the schema in place.

        File connections are closed on exit; the shared in-memory one is not.
        """
        await self._prepare()
        if self._shared is not None:
            yield self._shared
            return
        db = await self._open()
        try:
            yield db
        finally:
            await db.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection, committing on success and rolling back on error."""
        async with self.connection() as db:
            try:
                yield db
            except BaseException:
                await db.rollback()
                raise
            await db.commit()

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        """Run one write statement in its own transaction."""
        async with self.transaction() as db:
            await db.execute(sql, params)

    async def fetch_all(
        self, sql: str, params: Sequence[Any] = ()
    ) -> list[dict[str, Any]]:
        async with self.connection() as db:
            async with db.execute(sql, params) as cursor:
                return [dict(row) async for row in cursor]

    async def fetch_value(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """Return the first column of the first row, or None without rows."""
        async with self.connection() as db:
            async with db.execute(sql, params) as cursor:
                row = await cursor.fetchone()
        return None if row is None else row[0]

    async def close(self) -> None:
        """Drop the shared in-memory connection; its data goes with it."""
        if self._shared is not None:
            await self._shared.close()
            self._shared = None
            self._ready = False
