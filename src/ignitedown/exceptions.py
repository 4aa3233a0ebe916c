"""
Exception hierarchy for the ignitedown store.

All exceptions inherit from KVError, which carries optional structured
context for logging and debugging.
"""

from __future__ import annotations

from typing import Any


class KVError(Exception):
    """Base exception for all store errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(KVError):
    """Raised when store options or the location descriptor are invalid.

    Examples:
        - Location without a scheme or cache name
        - Non-positive key/value sizes
        - Unknown upsert strategy
    """

    pass


class NotInitializedError(KVError):
    """Raised when an operation runs before open() completed or after close()."""

    pass


class InitializationError(KVError):
    """Raised when the cache handle or the schema bootstrap could not be obtained.

    Context should include:
        - location: The location being opened
        - cache: The cache name requested from the backend
    """

    pass


class NotFoundError(KVError):
    """Raised by get() when no row exists for the key."""

    pass


class ValueTooLargeError(KVError):
    """Raised when a key or value exceeds its configured column width.

    Context should include:
        - field: "key" or "value"
        - size: Byte length of the rejected payload
        - limit: Largest accepted byte length
    """

    pass


class InvalidKeyError(KVError, ValueError):
    """Raised for keys the store cannot hold (empty keys)."""

    pass


class InvalidRangeError(KVError, ValueError):
    """Raised when a range query carries both bounds of one side (gt+gte, lt+lte)."""

    pass


class BackendError(KVError):
    """Raised when a statement fails after the retry bound is exhausted.

    Context should include:
        - statement: The statement that failed
        - attempts: Number of attempts made
    """

    pass


class StatementError(KVError):
    """A single statement attempt failed in the backend driver.

    Raised by backends and retried by the query executor.
    """

    pass


class DuplicateKeyError(StatementError):
    """An INSERT hit the primary-key constraint of the backing table."""

    pass
