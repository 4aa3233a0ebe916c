"""
Ordered byte key-value store over a SQL-queryable cache.

IgniteDown implements the level-style store surface (open, close, get, put,
delete, batch, iterator) on top of the connection manager, the query
executor and the column codec. Keys iterate in byte order.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Mapping

from ignitedown import sql
from ignitedown.backend import Backend, affected_rows
from ignitedown.batch import plan_batch
from ignitedown.codec import Codec
from ignitedown.connection import ConnectionManager
from ignitedown.exceptions import DuplicateKeyError, InitializationError, KVError, NotFoundError
from ignitedown.executor import QueryExecutor
from ignitedown.logging import get_logger, log_context
from ignitedown.types import BatchOp, ConnectionState, RangeQuery, StoreOptions

logger = get_logger(__name__)


class IgniteDown:
    """Store handle bound to one backing table.

    Usage:
        store = IgniteDown(StoreOptions(location="ignite://127.0.0.1:10800/kv"))
        await store.open()
        await store.put(b"a", b"1")
        value = await store.get(b"a")
        await store.close()
    """

    def __init__(self, options: StoreOptions, backend: Backend | None = None) -> None:
        """Initialize the store handle.

        Args:
            options: Store options. ``options.location`` is the location or
                a prefix completed by ``open(location)``.
            backend: Backend override. If None, chosen from the location scheme.
        """
        self.options = options
        self.codec = Codec(options.key_size, options.value_size)
        self.connection = ConnectionManager(options, backend)
        self.executor = QueryExecutor(self.connection)

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    @property
    def location(self) -> str | None:
        return str(self.connection.location) if self.connection.location else None

    async def __aenter__(self) -> IgniteDown:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def open(self, location: str | None = None) -> None:
        """Connect and bootstrap the backing table (no-op if already open).

        Args:
            location: Appended to ``options.location`` (or used as the whole
                location when no prefix is configured).

        Raises:
            InitializationError: If the cache or schema cannot be set up.
        """
        if self.connection.is_open:
            return

        await self.connection.open(location)
        with log_context(location=self.location, operation="open"):
            try:
                await self.executor.execute_many(self.connection.bootstrap_statements())
            except KVError as e:
                await self.connection.close()
                raise InitializationError(
                    "Schema bootstrap failed", {"location": self.location, "error": str(e)}
                ) from e

    async def close(self) -> None:
        """Disconnect. Operations after close raise NotInitializedError."""
        await self.connection.close()

    async def get(self, key: bytes | str) -> bytes:
        """Return the value stored under key.

        Raises:
            NotFoundError: If the key is absent.
        """
        encoded = self.codec.encode_key(key)
        with log_context(location=self.location, operation="get"):
            rows = await self.executor.execute(sql.SELECT_VALUE, encoded)

        if not rows:
            raise NotFoundError("NotFound", {"key": key})
        return self.codec.decode(rows[0][0])

    async def put(self, key: bytes | str, value: bytes | str) -> None:
        """Insert or replace the value stored under key."""
        encoded_key = self.codec.encode_key(key)
        encoded_value = self.codec.encode_value(value)

        with log_context(location=self.location, operation="put"):
            if self.options.upsert == "merge":
                await self.executor.execute(
                    sql.upsert_rows(self.connection.backend.upsert_verb, 1),
                    encoded_key,
                    encoded_value,
                )
            else:
                await self._update_or_insert(encoded_key, encoded_value)

    async def _update_or_insert(self, key: str, value: str) -> None:
        rows = await self.executor.execute(sql.UPDATE_VALUE, value, key)
        if affected_rows(rows) > 0:
            return

        try:
            await self.executor.execute(sql.INSERT_ROW, key, value)
        except DuplicateKeyError:
            # A concurrent put inserted the key between our UPDATE and INSERT
            logger.debug("Insert raced with a concurrent writer, updating")
            await self.executor.execute(sql.UPDATE_VALUE, value, key)

    async def delete(self, key: bytes | str) -> None:
        """Remove key. Deleting an absent key is not an error."""
        encoded = self.codec.encode_key(key)
        with log_context(location=self.location, operation="delete"):
            await self.executor.execute(sql.DELETE_KEY, encoded)

    async def batch(self, operations: Iterable[BatchOp | Mapping[str, Any]]) -> None:
        """Apply puts and deletes with at most two statements.

        Requests for the same key resolve last-write-wins. The delete and the
        upsert statement are not one transaction; if the second fails the
        first stays applied.
        """
        backend = self.connection.backend
        plan = plan_batch(operations)
        if plan.empty:
            return

        deletes = [self.codec.encode_key(k) for k in plan.deletes]
        puts: list[str] = []
        for key, value in plan.puts:
            puts.append(self.codec.encode_key(key))
            puts.append(self.codec.encode_value(value))

        with log_context(location=self.location, operation="batch"):
            if deletes:
                await self.executor.execute(sql.delete_in(len(deletes)), *deletes)
            if puts:
                await self.executor.execute(
                    sql.upsert_rows(backend.upsert_verb, len(plan.puts)),
                    *puts,
                )
            logger.debug("Batch applied", deletes=len(deletes), puts=len(plan.puts))

    async def iterator(
        self,
        query: RangeQuery | None = None,
        **bounds: Any,
    ) -> AsyncIterator[tuple[bytes, bytes]]:
        """Yield (key, value) pairs in key order within the given bounds.

        Accepts a RangeQuery or its fields as keywords (gt, gte, lt, lte,
        reverse, limit). The whole result set is fetched with one query
        before the first pair is yielded.
        """
        if query is None:
            query = RangeQuery(**bounds)
        elif bounds:
            raise TypeError("Pass either a RangeQuery or keyword bounds, not both")

        statement, args = sql.select_range(query, self.codec.encode_bound)
        with log_context(location=self.location, operation="iterator"):
            rows = await self.executor.execute(statement, *args)

        for key, value in rows:
            yield self.codec.decode(key), self.codec.decode(value)

    async def items(self, **bounds: Any) -> list[tuple[bytes, bytes]]:
        """Collect iterator() into a list."""
        return [pair async for pair in self.iterator(**bounds)]


@asynccontextmanager
async def open_store(
    options: StoreOptions,
    location: str | None = None,
    backend: Backend | None = None,
) -> AsyncIterator[IgniteDown]:
    """Open a store for the duration of an ``async with`` block."""
    store = IgniteDown(options, backend=backend)
    await store.open(location)
    try:
        yield store
    finally:
        await store.close()
