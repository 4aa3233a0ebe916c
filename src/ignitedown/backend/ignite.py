"""
Apache Ignite backend using the pyignite asyncio thin client.

Connection state is pushed by the client through a ConnectionEventListener;
statements run as SQL fields queries in the PUBLIC schema.
"""

from __future__ import annotations

from typing import Any, Sequence

from ignitedown.backend.base import Backend, StateCallback
from ignitedown.exceptions import (
    ConfigurationError,
    DuplicateKeyError,
    InitializationError,
    StatementError,
)
from ignitedown.logging import get_logger
from ignitedown.types import ConnectionState, Location

logger = get_logger(__name__)

SQL_SCHEMA = "PUBLIC"


def _state_listener(on_state_change: StateCallback) -> Any:
    """Build a pyignite ConnectionEventListener that forwards state changes."""
    from pyignite.monitoring import ConnectionEventListener

    class _StateListener(ConnectionEventListener):
        def on_handshake_start(self, event: Any) -> None:
            on_state_change(ConnectionState.CONNECTING, None)

        def on_handshake_success(self, event: Any) -> None:
            on_state_change(ConnectionState.CONNECTED, None)

        def on_handshake_failed(self, event: Any) -> None:
            on_state_change(ConnectionState.DISCONNECTED, getattr(event, "error_msg", None))

        def on_authentication_failed(self, event: Any) -> None:
            on_state_change(ConnectionState.DISCONNECTED, getattr(event, "error_msg", None))

        def on_connection_closed(self, event: Any) -> None:
            on_state_change(ConnectionState.DISCONNECTED, None)

        def on_connection_lost(self, event: Any) -> None:
            on_state_change(ConnectionState.DISCONNECTED, getattr(event, "error_msg", None))

    return _StateListener()


class IgniteBackend(Backend):
    """Backend over an Apache Ignite cluster."""

    upsert_verb = "MERGE INTO"

    def __init__(self, table_template: str = "partitioned", backups: int = 1) -> None:
        self.table_template = table_template
        self.backups = backups
        self._client: Any = None
        self._cache: Any = None
        self._cache_name: str | None = None
        self._location: Location | None = None

    @property
    def name(self) -> str:
        return "ignite"

    async def connect(self, location: Location, on_state_change: StateCallback) -> None:
        try:
            from pyignite import AioClient
        except ImportError as e:
            raise ConfigurationError(
                "The ignite backend requires pyignite (pip install 'ignitedown[ignite]')"
            ) from e

        self._location = location
        self._client = AioClient(event_listeners=[_state_listener(on_state_change)])
        await self._connect()

    async def _connect(self) -> None:
        from pyignite.exceptions import ReconnectError

        assert self._location is not None
        try:
            await self._client.connect(self._location.host, self._location.port)
        except (ReconnectError, OSError) as e:
            raise InitializationError(
                "Could not connect to Ignite", {"address": self._location.address}
            ) from e

    async def open_cache(self, name: str) -> None:
        from pyignite.datatypes.prop_codes import PROP_NAME, PROP_SQL_SCHEMA
        from pyignite.exceptions import CacheError

        self._cache_name = name
        try:
            self._cache = await self._client.get_or_create_cache(
                {PROP_NAME: name, PROP_SQL_SCHEMA: SQL_SCHEMA}
            )
        except CacheError as e:
            raise InitializationError("IgniteCache could not be initialized", {"cache": name}) from e

        if self._cache is None:
            raise InitializationError("IgniteCache could not be initialized", {"cache": name})

    async def reconnect(self) -> None:
        await self._client.close()
        await self._connect()
        if self._cache_name is not None:
            await self.open_cache(self._cache_name)

    async def execute(self, statement: str, args: Sequence[Any] = ()) -> list[tuple[Any, ...]]:
        from pyignite.exceptions import (
            CacheError,
            ClusterError,
            ReconnectError,
            SQLError,
        )

        if self._client is None:
            raise StatementError("Ignite client is not connected", {"statement": statement})

        try:
            async with self._client.sql(
                statement,
                query_args=list(args),
                schema=SQL_SCHEMA,
                cache=self._cache,
            ) as cursor:
                rows = [tuple(row) async for row in cursor]
        except SQLError as e:
            if "duplicate key" in str(e).lower():
                raise DuplicateKeyError(str(e), {"statement": statement}) from e
            raise StatementError(str(e), {"statement": statement}) from e
        except (CacheError, ClusterError, ReconnectError, OSError) as e:
            raise StatementError(str(e), {"statement": statement}) from e

        return rows

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._cache = None

    def table_options(self, cache: str) -> str:
        return (
            f'WITH "template={self.table_template}, backups={self.backups}, '
            f'affinityKey=k, CACHE_NAME={cache}_kvstore"'
        )
