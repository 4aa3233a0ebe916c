"""
ignitedown - ordered byte key-value store over SQL-queryable caches.

Adapts Apache Ignite (or a local SQLite database) to the get/put/delete/
batch/range-iterator contract of level-style stores.
"""

from __future__ import annotations

from ignitedown.exceptions import (
    BackendError,
    ConfigurationError,
    InitializationError,
    InvalidKeyError,
    InvalidRangeError,
    KVError,
    NotFoundError,
    NotInitializedError,
    ValueTooLargeError,
)
from ignitedown.store import IgniteDown, open_store
from ignitedown.types import ConnectionState, DelOp, Location, PutOp, RangeQuery, StoreOptions

__version__ = "0.1.0"

__all__ = [
    "BackendError",
    "ConfigurationError",
    "ConnectionState",
    "DelOp",
    "IgniteDown",
    "InitializationError",
    "InvalidKeyError",
    "InvalidRangeError",
    "KVError",
    "Location",
    "NotFoundError",
    "NotInitializedError",
    "PutOp",
    "RangeQuery",
    "StoreOptions",
    "ValueTooLargeError",
    "__version__",
    "open_store",
]
