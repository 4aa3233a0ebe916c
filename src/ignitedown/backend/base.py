"""
Backend abstraction for SQL-queryable caches.

A backend is consumed as an opaque statement-executing service: statement
text plus positional arguments in, rows out. It pushes ConnectionState
changes through the callback given to connect().
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Sequence

from ignitedown.types import ConnectionState, Location

StateCallback = Callable[[ConnectionState, "str | None"], None]


class Backend(ABC):
    """Abstract base class for statement-executing backends."""

    #: Statement prefix for multi-row upserts (e.g. "MERGE INTO").
    upsert_verb: str = "MERGE INTO"

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of this backend."""
        ...

    @abstractmethod
    async def connect(self, location: Location, on_state_change: StateCallback) -> None:
        """Open the connection and start pushing state changes."""
        ...

    @abstractmethod
    async def open_cache(self, name: str) -> None:
        """Acquire the cache/table handle statements run against.

        Raises:
            InitializationError: If the backend produced no handle.
        """
        ...

    @abstractmethod
    async def reconnect(self) -> None:
        """Re-establish a dropped connection."""
        ...

    @abstractmethod
    async def execute(self, statement: str, args: Sequence[Any] = ()) -> list[tuple[Any, ...]]:
        """Run one statement.

        DML statements return ``[(affected_rows,)]``.

        Raises:
            DuplicateKeyError: On a primary-key violation.
            StatementError: On any other driver failure.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection."""
        ...

    def table_options(self, cache: str) -> str:
        """Trailing CREATE TABLE clause for this backend."""
        return ""


def affected_rows(rows: list[tuple[Any, ...]]) -> int:
    """Affected-row count from a DML result."""
    if not rows or not rows[0]:
        return 0
    return int(rows[0][0])
