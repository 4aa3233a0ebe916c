"""
Pytest configuration and fixtures for ignitedown tests.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, AsyncGenerator, Generator, Sequence
from unittest.mock import patch

import aiosqlite
import pytest

from ignitedown.backend.sqlite import SqliteBackend
from ignitedown.config import clear_settings_cache
from ignitedown.exceptions import StatementError
from ignitedown.store import IgniteDown
from ignitedown.types import ConnectionState, StoreOptions


class FlakyBackend(SqliteBackend):
    """SQLite backend that fails the next ``failures`` statements.

    With ``drop_on_failure`` each injected failure also pushes DISCONNECTED,
    so the next attempt has to wait for a reconnect.
    """

    def __init__(self, failures: int = 0, drop_on_failure: bool = False) -> None:
        super().__init__()
        self.failures = failures
        self.drop_on_failure = drop_on_failure
        self.attempts = 0
        self.reconnects = 0
        self.executed: list[tuple[str, tuple[Any, ...]]] = []

    async def execute(self, statement: str, args: Sequence[Any] = ()) -> list[tuple[Any, ...]]:
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            if self.drop_on_failure and self._on_state_change is not None:
                self._on_state_change(ConnectionState.DISCONNECTED, "injected failure")
            raise StatementError("Backend unavailable", {"statement": statement})
        self.executed.append((statement, tuple(args)))
        return await super().execute(statement, args)

    async def reconnect(self) -> None:
        self.reconnects += 1
        await super().reconnect()


class LateConnectBackend(SqliteBackend):
    """SQLite backend that reports CONNECTED only after ``delay`` seconds.

    ``delay=None`` never reports CONNECTED.
    """

    def __init__(self, delay: float | None = 0.05) -> None:
        super().__init__()
        self.delay = delay

    async def _open(self) -> None:
        assert self._on_state_change is not None
        self._on_state_change(ConnectionState.CONNECTING, None)
        self._db = await aiosqlite.connect(self._database, isolation_level=None)
        if self.delay is not None:
            asyncio.get_running_loop().call_later(
                self.delay, self._on_state_change, ConnectionState.CONNECTED, None
            )


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for databases and logs."""
    return tmp_path


@pytest.fixture
def sqlite_location(temp_dir: Path) -> str:
    """Location of a fresh SQLite database file."""
    return f"sqlite:///{temp_dir / 'kv.db'}"


@pytest.fixture
def options(sqlite_location: str) -> StoreOptions:
    """Store options with a fast connection poll."""
    return StoreOptions(
        location=sqlite_location,
        key_size=256,
        value_size=1024,
        poll_interval=0.01,
    )


@pytest.fixture
async def store(options: StoreOptions) -> AsyncGenerator[IgniteDown, None]:
    """Create an opened SQLite-backed store."""
    kv = IgniteDown(options)
    await kv.open()
    yield kv
    await kv.close()


@pytest.fixture
async def flaky_store(options: StoreOptions) -> AsyncGenerator[IgniteDown, None]:
    """Opened store over a FlakyBackend (no failures armed yet)."""
    kv = IgniteDown(options, backend=FlakyBackend())
    await kv.open()
    yield kv
    await kv.close()


@pytest.fixture
def mock_env_vars(sqlite_location: str) -> Generator[dict[str, str], None, None]:
    """Provide IGNITEDOWN_* environment variables for testing."""
    env_vars = {
        "IGNITEDOWN_LOCATION": sqlite_location,
        "IGNITEDOWN_KEY_SIZE": "64",
        "IGNITEDOWN_VALUE_SIZE": "128",
        "IGNITEDOWN_MAX_ATTEMPTS": "2",
        "IGNITEDOWN_POLL_INTERVAL": "0.01",
        "IGNITEDOWN_LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
