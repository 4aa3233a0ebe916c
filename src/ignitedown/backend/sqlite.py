"""
SQLite backend using aiosqlite.

Local and development stand-in for the distributed cache. Runs in
autocommit mode so every statement is applied on its own, like a
statement against the cache.
"""

from __future__ import annotations

import sqlite3
from typing import Any, Sequence

import aiosqlite

from ignitedown.backend.base import Backend, StateCallback
from ignitedown.exceptions import DuplicateKeyError, InitializationError, StatementError
from ignitedown.logging import get_logger
from ignitedown.types import ConnectionState, Location

logger = get_logger(__name__)


class SqliteBackend(Backend):
    """Backend over a local SQLite database file."""

    upsert_verb = "INSERT OR REPLACE INTO"

    def __init__(self) -> None:
        self._db: aiosqlite.Connection | None = None
        self._database: str | None = None
        self._on_state_change: StateCallback | None = None

    @property
    def name(self) -> str:
        return "sqlite"

    async def connect(self, location: Location, on_state_change: StateCallback) -> None:
        self._database = location.name
        self._on_state_change = on_state_change
        await self._open()

    async def _open(self) -> None:
        assert self._on_state_change is not None
        self._on_state_change(ConnectionState.CONNECTING, None)
        try:
            self._db = await aiosqlite.connect(self._database, isolation_level=None)
        except sqlite3.Error as e:
            self._on_state_change(ConnectionState.DISCONNECTED, str(e))
            raise InitializationError(
                "Could not open SQLite database", {"database": self._database}
            ) from e
        self._on_state_change(ConnectionState.CONNECTED, None)

    async def open_cache(self, name: str) -> None:
        if self._db is None:
            raise InitializationError("SQLite database is not open", {"database": name})

    async def reconnect(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
        await self._open()

    async def execute(self, statement: str, args: Sequence[Any] = ()) -> list[tuple[Any, ...]]:
        if self._db is None:
            raise StatementError("SQLite database is not open", {"statement": statement})

        try:
            async with self._db.execute(statement, tuple(args)) as cursor:
                if cursor.description is None:
                    return [(cursor.rowcount,)]
                rows = await cursor.fetchall()
        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError(str(e), {"statement": statement}) from e
        except sqlite3.Error as e:
            raise StatementError(str(e), {"statement": statement}) from e

        return [tuple(row) for row in rows]

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
            logger.debug("SQLite database closed", database=self._database)
        if self._on_state_change is not None:
            self._on_state_change(ConnectionState.DISCONNECTED, None)
