"""
Tests for the Ignite backend against an in-process stand-in for AioClient.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pyignite
import pytest
from pyignite.datatypes.prop_codes import PROP_NAME, PROP_SQL_SCHEMA
from pyignite.exceptions import CacheError, ReconnectError, SQLError
from pyignite.monitoring import ConnectionEventListener

from ignitedown.backend.ignite import IgniteBackend, _state_listener
from ignitedown.exceptions import DuplicateKeyError, InitializationError, StatementError
from ignitedown.types import ConnectionState, Location


class FakeCursor:
    """Async-iterable cursor returned by FakeClient.sql()."""

    def __init__(self, rows: list[list[Any]]) -> None:
        self.rows = rows
        self.closed = False

    async def __aenter__(self) -> FakeCursor:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.closed = True

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for row in self.rows:
            yield row


class FakeClient:
    """Records calls the backend makes on pyignite's AioClient."""

    def __init__(self, event_listeners: list[Any] | None = None) -> None:
        self.listeners = event_listeners or []
        self.rows: list[list[Any]] = []
        self.sql_error: Exception | None = None
        self.connect_error: Exception | None = None
        self.cache_result: Any = "cache"
        self.queries: list[dict[str, Any]] = []
        self.connects: list[tuple[str, int]] = []
        self.cache_settings: list[dict[int, Any]] = []
        self.closes = 0

    async def connect(self, host: str, port: int) -> None:
        self.connects.append((host, port))
        for listener in self.listeners:
            listener.on_handshake_start(SimpleNamespace(host=host, port=port))
        if self.connect_error is not None:
            for listener in self.listeners:
                listener.on_handshake_failed(SimpleNamespace(error_msg=str(self.connect_error)))
            raise self.connect_error
        for listener in self.listeners:
            listener.on_handshake_success(SimpleNamespace(host=host, port=port))

    async def close(self) -> None:
        self.closes += 1
        for listener in self.listeners:
            listener.on_connection_closed(SimpleNamespace())

    async def get_or_create_cache(self, settings: dict[int, Any]) -> Any:
        self.cache_settings.append(settings)
        return self.cache_result

    def sql(self, statement: str, **kwargs: Any) -> FakeCursor:
        self.queries.append({"statement": statement, **kwargs})
        if self.sql_error is not None:
            raise self.sql_error
        return FakeCursor(self.rows)


@pytest.fixture
def states() -> list[tuple[ConnectionState, str | None]]:
    return []


@pytest.fixture
def record(states):
    def on_state_change(state: ConnectionState, reason: str | None = None) -> None:
        states.append((state, reason))

    return on_state_change


@pytest.fixture
async def backend(monkeypatch: pytest.MonkeyPatch, record) -> IgniteBackend:
    """IgniteBackend connected through FakeClient."""
    monkeypatch.setattr(pyignite, "AioClient", FakeClient)
    ignite = IgniteBackend()
    await ignite.connect(Location.parse("ignite://node-1:10800/kv"), record)
    await ignite.open_cache("kv")
    return ignite


class TestStateListener:
    """Connection events become ConnectionState changes."""

    def test_is_a_connection_listener(self, record) -> None:
        assert isinstance(_state_listener(record), ConnectionEventListener)

    def test_event_mapping(self, record, states) -> None:
        listener = _state_listener(record)
        listener.on_handshake_start(SimpleNamespace())
        listener.on_handshake_success(SimpleNamespace())
        listener.on_connection_lost(SimpleNamespace(error_msg="connection reset"))
        listener.on_handshake_failed(SimpleNamespace(error_msg="refused"))
        listener.on_authentication_failed(SimpleNamespace(error_msg="bad password"))
        listener.on_connection_closed(SimpleNamespace())

        assert states == [
            (ConnectionState.CONNECTING, None),
            (ConnectionState.CONNECTED, None),
            (ConnectionState.DISCONNECTED, "connection reset"),
            (ConnectionState.DISCONNECTED, "refused"),
            (ConnectionState.DISCONNECTED, "bad password"),
            (ConnectionState.DISCONNECTED, None),
        ]


class TestConnect:
    """connect / open_cache / reconnect."""

    @pytest.mark.asyncio
    async def test_connect_pushes_states(self, backend: IgniteBackend, states) -> None:
        client = backend._client
        assert client.connects == [("node-1", 10800)]
        assert [s for s, _ in states] == [ConnectionState.CONNECTING, ConnectionState.CONNECTED]
        assert client.cache_settings == [{PROP_NAME: "kv", PROP_SQL_SCHEMA: "PUBLIC"}]

    @pytest.mark.asyncio
    async def test_connect_failure(self, monkeypatch: pytest.MonkeyPatch, record, states) -> None:
        class RefusingClient(FakeClient):
            def __init__(self, event_listeners=None) -> None:
                super().__init__(event_listeners)
                self.connect_error = ReconnectError("Can not connect.")

        monkeypatch.setattr(pyignite, "AioClient", RefusingClient)
        with pytest.raises(InitializationError) as exc_info:
            await IgniteBackend().connect(Location.parse("ignite://node-1:10800/kv"), record)
        assert exc_info.value.context == {"address": "node-1:10800"}
        assert states[-1] == (ConnectionState.DISCONNECTED, "Can not connect.")

    @pytest.mark.asyncio
    async def test_missing_cache_handle(self, backend: IgniteBackend) -> None:
        backend._client.cache_result = None
        with pytest.raises(InitializationError):
            await backend.open_cache("kv")

    @pytest.mark.asyncio
    async def test_cache_error(self, backend: IgniteBackend) -> None:
        async def refuse(settings):
            raise CacheError("cache creation refused")

        backend._client.get_or_create_cache = refuse
        with pytest.raises(InitializationError) as exc_info:
            await backend.open_cache("kv")
        assert exc_info.value.context == {"cache": "kv"}

    @pytest.mark.asyncio
    async def test_reconnect(self, backend: IgniteBackend, states) -> None:
        client = backend._client
        await backend.reconnect()

        assert client.closes == 1
        assert client.connects == [("node-1", 10800), ("node-1", 10800)]
        assert len(client.cache_settings) == 2
        assert states[-1] == (ConnectionState.CONNECTED, None)

    @pytest.mark.asyncio
    async def test_close(self, backend: IgniteBackend, states) -> None:
        client = backend._client
        await backend.close()
        assert client.closes == 1
        assert backend._client is None
        assert states[-1] == (ConnectionState.DISCONNECTED, None)


class TestExecute:
    """Statement execution and error translation."""

    @pytest.mark.asyncio
    async def test_rows(self, backend: IgniteBackend) -> None:
        backend._client.rows = [["k1", "v1"], ["k2", "v2"]]
        rows = await backend.execute("SELECT k, v FROM kvstore WHERE k >= ?", ["k"])

        assert rows == [("k1", "v1"), ("k2", "v2")]
        query = backend._client.queries[-1]
        assert query["query_args"] == ["k"]
        assert query["schema"] == "PUBLIC"
        assert query["cache"] == "cache"

    @pytest.mark.asyncio
    async def test_dml_row_count(self, backend: IgniteBackend) -> None:
        backend._client.rows = [[1]]
        assert await backend.execute("DELETE FROM kvstore WHERE k = ?", ["k"]) == [(1,)]

    @pytest.mark.asyncio
    async def test_duplicate_key(self, backend: IgniteBackend) -> None:
        backend._client.sql_error = SQLError("Duplicate key during INSERT [key=k]")
        with pytest.raises(DuplicateKeyError) as exc_info:
            await backend.execute("INSERT INTO kvstore (k, v) VALUES (?, ?)", ["k", "v"])
        assert exc_info.value.context["statement"].startswith("INSERT INTO")

    @pytest.mark.asyncio
    async def test_other_sql_error(self, backend: IgniteBackend) -> None:
        backend._client.sql_error = SQLError("Table \"KVSTORE\" not found")
        with pytest.raises(StatementError) as exc_info:
            await backend.execute("SELECT v FROM kvstore WHERE k = ?", ["k"])
        assert not isinstance(exc_info.value, DuplicateKeyError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [ReconnectError("Can not reconnect"), ConnectionResetError("reset by peer"), CacheError("gone")],
    )
    async def test_transport_errors(self, backend: IgniteBackend, error: Exception) -> None:
        backend._client.sql_error = error
        with pytest.raises(StatementError) as exc_info:
            await backend.execute("SELECT v FROM kvstore WHERE k = ?", ["k"])
        assert not isinstance(exc_info.value, DuplicateKeyError)

    @pytest.mark.asyncio
    async def test_not_connected(self) -> None:
        with pytest.raises(StatementError):
            await IgniteBackend().execute("SELECT 1")
