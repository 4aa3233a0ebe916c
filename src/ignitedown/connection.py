"""
Connection manager for a store handle.

Owns the backend connection, records the latest ConnectionState pushed by
the backend, bootstraps the backing table and index, and lets operations
wait (cooperatively) until the connection is usable.
"""

from __future__ import annotations

import asyncio

from ignitedown import sql
from ignitedown.backend import Backend, backend_for
from ignitedown.exceptions import BackendError, KVError, NotInitializedError
from ignitedown.logging import get_logger, log_context
from ignitedown.types import ConnectionState, Location, StoreOptions

logger = get_logger(__name__)


class ConnectionManager:
    """Lifecycle and state of the connection behind one store handle."""

    def __init__(self, options: StoreOptions, backend: Backend | None = None) -> None:
        """Initialize the connection manager.

        Args:
            options: Store options (location prefix, widths, polling).
            backend: Backend to use. If None, chosen from the location scheme at open().
        """
        self.options = options
        self.location: Location | None = None
        self._backend = backend
        self._state = ConnectionState.DISCONNECTED
        self._open = False
        self._reconnect_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ConnectionState:
        """Latest state pushed by the backend."""
        return self._state

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def backend(self) -> Backend:
        """The open backend.

        Raises:
            NotInitializedError: Before open() or after close().
        """
        if not self._open or self._backend is None:
            raise NotInitializedError("Store is not open")
        return self._backend

    def resolve_location(self, location: str | None = None) -> Location:
        """Combine the configured location prefix with an override."""
        if location is None:
            text = self.options.location
        elif self.options.location is None:
            text = location
        else:
            text = self.options.location + location

        if text is None:
            raise NotInitializedError("No location configured for the store")
        return Location.parse(text)

    def _on_state_change(self, state: ConnectionState, reason: str | None = None) -> None:
        if state is self._state:
            return
        self._state = state

        address = str(self.location) if self.location else None
        if state is ConnectionState.CONNECTED:
            logger.info("Client is started", location=address)
        elif state is ConnectionState.DISCONNECTED:
            logger.warning("Client is stopped", location=address, reason=reason)
        else:
            logger.debug("Client is connecting", location=address)

    async def open(self, location: str | None = None) -> None:
        """Connect and bootstrap the backing table.

        No-op if already open.

        Raises:
            InitializationError: If the cache handle or schema cannot be obtained.
        """
        if self._open:
            return

        self.location = self.resolve_location(location)
        if self._backend is None:
            self._backend = backend_for(self.location, self.options)

        with log_context(location=str(self.location), operation="open"):
            await self._backend.connect(self.location, self._on_state_change)
            try:
                await self._backend.open_cache(self.location.name)
            except Exception:
                await self._backend.close()
                raise
            self._open = True

            logger.info(
                "Store opened",
                backend=self._backend.name,
                cache=self.location.name,
                key_size=self.options.key_size,
                value_size=self.options.value_size,
            )

    def bootstrap_statements(self) -> list[str]:
        """CREATE TABLE / CREATE INDEX statements for the backing table."""
        assert self.location is not None
        return [
            sql.create_table(
                self.options.key_size,
                self.options.value_size,
                self.backend.table_options(self.location.name),
            ),
            sql.CREATE_INDEX,
        ]

    async def close(self) -> None:
        """Disconnect. Further operations raise NotInitializedError."""
        if not self._open:
            return
        self._open = False

        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            self._reconnect_task = None

        if self._backend is not None:
            await self._backend.close()
        self._state = ConnectionState.DISCONNECTED
        logger.info("Store closed", location=str(self.location))

    async def wait_connected(self) -> None:
        """Suspend until the state is CONNECTED.

        Schedules a reconnect while the state is DISCONNECTED.

        Raises:
            NotInitializedError: If the store is closed while waiting.
            BackendError: If connect_timeout elapses.
        """
        loop = asyncio.get_running_loop()
        timeout = self.options.connect_timeout
        deadline = loop.time() + timeout if timeout is not None else None

        while self._state is not ConnectionState.CONNECTED:
            backend = self.backend
            if self._state is ConnectionState.DISCONNECTED:
                self._schedule_reconnect(backend)

            if deadline is not None and loop.time() >= deadline:
                raise BackendError(
                    "Timed out waiting for the backend connection",
                    {"location": str(self.location), "timeout": timeout},
                )
            await asyncio.sleep(self.options.poll_interval)

    def _schedule_reconnect(self, backend: Backend) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.create_task(self._reconnect(backend))

    async def _reconnect(self, backend: Backend) -> None:
        logger.debug("Reconnecting", location=str(self.location))
        try:
            await backend.reconnect()
        except KVError as e:
            # State stays DISCONNECTED; the next poll schedules another attempt
            logger.warning("Reconnect failed", location=str(self.location), error=str(e))
        except Exception:
            logger.exception("Reconnect raised an unexpected error", location=str(self.location))
