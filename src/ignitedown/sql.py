"""
Statements against the backing table.

The table is ``kvstore(k CHAR(key_size), v CHAR(value_size), PRIMARY KEY (k))``
with a secondary index ``kvstore_k``. All statements use positional ``?``
parameters; only placeholder counts and column widths are interpolated.
"""

from __future__ import annotations

from typing import Any

from ignitedown.types import RangeQuery

TABLE = "kvstore"
INDEX = "kvstore_k"

CREATE_INDEX = f"CREATE INDEX IF NOT EXISTS {INDEX} ON {TABLE} (k)"

SELECT_VALUE = f"SELECT v FROM {TABLE} WHERE k = ?"
DELETE_KEY = f"DELETE FROM {TABLE} WHERE k = ?"
UPDATE_VALUE = f"UPDATE {TABLE} SET v = ? WHERE k = ?"
INSERT_ROW = f"INSERT INTO {TABLE} (k, v) VALUES (?, ?)"


def create_table(key_size: int, value_size: int, options: str = "") -> str:
    """CREATE TABLE IF NOT EXISTS with the configured column widths.

    Args:
        key_size: Width of the key column.
        value_size: Width of the value column.
        options: Backend-specific trailing clause (e.g. Ignite's WITH "...").
    """
    statement = (
        f"CREATE TABLE IF NOT EXISTS {TABLE} ("
        f"k CHAR({key_size}), "
        f"v CHAR({value_size}), "
        f"PRIMARY KEY (k))"
    )
    if options:
        statement = f"{statement} {options}"
    return statement


def placeholders(count: int, group: str = "?") -> str:
    return ", ".join([group] * count)


def delete_in(count: int) -> str:
    """DELETE for ``count`` keys in one statement."""
    return f"DELETE FROM {TABLE} WHERE k IN ({placeholders(count)})"


def upsert_rows(verb: str, count: int) -> str:
    """Multi-row upsert, e.g. ``MERGE INTO kvstore (k, v) VALUES (?, ?), ...``."""
    return f"{verb} {TABLE} (k, v) VALUES {placeholders(count, '(?, ?)')}"


def select_range(query: RangeQuery, encode_bound: Any) -> tuple[str, list[Any]]:
    """Translate a range query into a SELECT and its arguments.

    Args:
        query: Bounds, direction and limit.
        encode_bound: Callable mapping a bound to its column representation.

    Returns:
        (statement, args)
    """
    conditions: list[str] = []
    args: list[Any] = []

    if query.gt is not None:
        conditions.append("k > ?")
        args.append(encode_bound(query.gt))
    elif query.gte is not None:
        conditions.append("k >= ?")
        args.append(encode_bound(query.gte))

    if query.lt is not None:
        conditions.append("k < ?")
        args.append(encode_bound(query.lt))
    elif query.lte is not None:
        conditions.append("k <= ?")
        args.append(encode_bound(query.lte))

    statement = f"SELECT k, v FROM {TABLE}"
    if conditions:
        statement += " WHERE " + " AND ".join(conditions)
    statement += " ORDER BY k " + ("DESC" if query.reverse else "ASC")

    if query.limit >= 0:
        statement += " LIMIT ?"
        args.append(query.limit)

    return statement, args
