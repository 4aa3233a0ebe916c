"""
Statement-executing backends.

- base.py: Backend ABC and the state-change callback type
- ignite.py: Apache Ignite thin client (pyignite)
- sqlite.py: local SQLite database (aiosqlite)
"""

from __future__ import annotations

from ignitedown.backend.base import Backend, StateCallback, affected_rows
from ignitedown.exceptions import ConfigurationError
from ignitedown.types import Location, StoreOptions


def backend_for(location: Location, options: StoreOptions) -> Backend:
    """Create the backend that serves a location's scheme.

    Raises:
        ConfigurationError: If no backend handles the scheme.
    """
    if location.scheme == "ignite":
        from ignitedown.backend.ignite import IgniteBackend

        return IgniteBackend(table_template=options.table_template, backups=options.backups)
    if location.scheme == "sqlite":
        from ignitedown.backend.sqlite import SqliteBackend

        return SqliteBackend()
    raise ConfigurationError(
        "Unknown location scheme", {"scheme": location.scheme, "expected": ["ignite", "sqlite"]}
    )


__all__ = ["Backend", "StateCallback", "affected_rows", "backend_for"]
