"""
Query executor with a bounded retry.

Each attempt first waits for the connection to be CONNECTED (the backend
may have dropped and come back between attempts), then submits the
statement. There is no backoff between attempts; the only delay is the
connection poll.
"""

from __future__ import annotations

from typing import Any, Sequence

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_none,
)

from ignitedown.connection import ConnectionManager
from ignitedown.exceptions import BackendError, DuplicateKeyError, StatementError
from ignitedown.logging import get_logger

logger = get_logger(__name__)


class QueryExecutor:
    """Runs parameterized statements against the backing table."""

    def __init__(self, connection: ConnectionManager) -> None:
        self.connection = connection

    @property
    def max_attempts(self) -> int:
        return self.connection.options.max_attempts

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Statement failed, retrying",
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            error=str(error),
        )

    async def execute(self, statement: str, *args: Any) -> list[tuple[Any, ...]]:
        """Run one statement, retrying failed attempts.

        Args:
            statement: Statement text with ``?`` placeholders.
            *args: Positional arguments.

        Returns:
            Result rows (``[(affected_rows,)]`` for DML).

        Raises:
            NotInitializedError: If the store is not open.
            DuplicateKeyError: On a primary-key violation (not retried).
            BackendError: When every attempt failed.
        """
        backend = self.connection.backend
        location = str(self.connection.location)

        retrying = AsyncRetrying(
            retry=(
                retry_if_exception_type(StatementError)
                & retry_if_not_exception_type(DuplicateKeyError)
            ),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_none(),
            before_sleep=self._log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    await self.connection.wait_connected()
                    logger.debug(
                        f"{location}: sql({statement!r})",
                        args=_preview(args),
                        attempt=attempt.retry_state.attempt_number,
                    )
                    return await backend.execute(statement, args)
        except DuplicateKeyError:
            raise
        except StatementError as e:
            raise BackendError(
                f"Statement failed after {self.max_attempts} attempts: {e.message}",
                {"statement": statement, "attempts": self.max_attempts},
            ) from e

    async def execute_many(self, statements: Sequence[str]) -> None:
        """Run argument-less statements in order (schema bootstrap)."""
        for statement in statements:
            await self.execute(statement)


def _preview(args: Sequence[Any], limit: int = 8) -> list[Any]:
    """Truncated argument list for debug logs."""
    shown = [a[:32] + "..." if isinstance(a, str) and len(a) > 32 else a for a in args[:limit]]
    if len(args) > limit:
        shown.append(f"... {len(args) - limit} more")
    return shown
