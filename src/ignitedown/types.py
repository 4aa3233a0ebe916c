"""
Core types for the ignitedown store.

This module defines the value objects shared by every layer:
- ConnectionState enum pushed by backends
- Location parsed from a URL-style descriptor
- StoreOptions (frozen) holding sizes, retry bound and upsert strategy
- Batch operations (PutOp, DelOp) and the RangeQuery descriptor
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Mapping, Union
from urllib.parse import urlsplit

from ignitedown.exceptions import ConfigurationError, InvalidRangeError

DEFAULT_IGNITE_PORT = 10800

UpsertStrategy = Literal["merge", "update_insert"]
UPSERT_STRATEGIES: tuple[str, ...] = ("merge", "update_insert")


class ConnectionState(str, Enum):
    """Connection states pushed by a backend."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def to_bytes(data: bytes | str) -> bytes:
    """Normalize a key or value argument to bytes (str is UTF-8 encoded)."""
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"Expected bytes or str, got {type(data).__name__}")


@dataclass(frozen=True)
class Location:
    """Parsed target location.

    ``ignite://host:port/cache`` addresses an Ignite cluster and cache;
    ``sqlite:///path.db`` addresses a local database file.
    """

    scheme: str
    host: str | None
    port: int | None
    name: str

    @classmethod
    def parse(cls, text: str, require_name: bool = True) -> Location:
        """Parse a location descriptor.

        Args:
            text: Descriptor such as ``ignite://127.0.0.1:10800/my_cache``.
            require_name: Reject an empty cache name. Pass False for a
                prefix that ``open(location)`` completes later.

        Returns:
            Location instance.

        Raises:
            ConfigurationError: If the scheme or the name is missing.
        """
        parts = urlsplit(text)
        if not parts.scheme:
            raise ConfigurationError("Location has no scheme", {"location": text})

        name = parts.path[1:] if parts.path.startswith("/") else parts.path
        if require_name and not name:
            raise ConfigurationError("Location has no cache name", {"location": text})

        try:
            port = parts.port
        except ValueError as e:
            raise ConfigurationError("Location has an invalid port", {"location": text}) from e

        if parts.scheme == "ignite" and port is None:
            port = DEFAULT_IGNITE_PORT

        return cls(scheme=parts.scheme, host=parts.hostname, port=port, name=name)

    @property
    def address(self) -> str:
        """host:port, or the name for local backends."""
        if self.host is None:
            return self.name
        return f"{self.host}:{self.port}"

    def __str__(self) -> str:
        netloc = f"{self.host}:{self.port}" if self.host else ""
        return f"{self.scheme}://{netloc}/{self.name}"


@dataclass(frozen=True)
class StoreOptions:
    """Options for one store handle.

    Attributes:
        location: Location descriptor (or prefix, see IgniteDown.open).
        key_size: Width of the key column in characters.
        value_size: Width of the value column in characters.
        max_attempts: Attempts per statement before BackendError.
        poll_interval: Seconds between connection-state checks.
        connect_timeout: Seconds to wait for CONNECTED (None waits forever).
        upsert: "merge" (single statement) or "update_insert".
        table_template: Ignite cache template for the backing table.
        backups: Ignite backup count for the backing table.
    """

    location: str | None = None
    key_size: int = 256
    value_size: int = 1024
    max_attempts: int = 3
    poll_interval: float = 0.1
    connect_timeout: float | None = None
    upsert: UpsertStrategy = "merge"
    table_template: str = "partitioned"
    backups: int = 1

    def __post_init__(self) -> None:
        for field_name in ("key_size", "value_size", "max_attempts"):
            value = getattr(self, field_name)
            if value < 1:
                raise ConfigurationError(
                    f"{field_name} must be a positive integer", {field_name: value}
                )
        if self.poll_interval <= 0:
            raise ConfigurationError(
                "poll_interval must be positive", {"poll_interval": self.poll_interval}
            )
        if self.upsert not in UPSERT_STRATEGIES:
            raise ConfigurationError(
                "Unknown upsert strategy",
                {"upsert": self.upsert, "expected": list(UPSERT_STRATEGIES)},
            )


@dataclass(frozen=True)
class PutOp:
    """Batch request: write value under key."""

    key: bytes | str
    value: bytes | str


@dataclass(frozen=True)
class DelOp:
    """Batch request: remove key."""

    key: bytes | str


BatchOp = Union[PutOp, DelOp]


def batch_op_from_dict(data: Mapping[str, Any]) -> BatchOp:
    """Build a batch operation from a ``{"type": "put"|"del", ...}`` mapping."""
    op_type = data.get("type")
    if op_type == "put":
        return PutOp(key=data["key"], value=data["value"])
    if op_type in ("del", "delete"):
        return DelOp(key=data["key"])
    raise ValueError(f"Unknown batch operation type: {op_type!r}")


@dataclass(frozen=True)
class RangeQuery:
    """Range iteration descriptor.

    At most one lower bound (gt or gte) and one upper bound (lt or lte).
    ``limit=-1`` means unbounded.
    """

    gt: bytes | str | None = None
    gte: bytes | str | None = None
    lt: bytes | str | None = None
    lte: bytes | str | None = None
    reverse: bool = False
    limit: int = -1

    def __post_init__(self) -> None:
        if self.gt is not None and self.gte is not None:
            raise InvalidRangeError("Range query cannot set both gt and gte")
        if self.lt is not None and self.lte is not None:
            raise InvalidRangeError("Range query cannot set both lt and lte")
        if self.limit < -1:
            raise InvalidRangeError("limit must be -1 or non-negative", {"limit": self.limit})
