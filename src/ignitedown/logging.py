"""
Structured logging for the ignitedown store.

Provides:
- Context variables for location and operation (using contextvars)
- JSONFormatter for machine-readable logs to file
- RichHandler for pretty console output
- ContextLogger wrapper that attaches context to all log calls
- setup_logging() that configures both file and console handlers
- get_logger() factory
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

_location_var: ContextVar[str | None] = ContextVar("location", default=None)
_operation_var: ContextVar[str | None] = ContextVar("operation", default=None)


def get_location() -> str | None:
    """Get the current store location from context."""
    return _location_var.get()


def get_operation() -> str | None:
    """Get the current store operation from context."""
    return _operation_var.get()


@contextmanager
def log_context(
    location: str | None = None,
    operation: str | None = None,
) -> Generator[None, None, None]:
    """Context manager for scoped logging context.

    Args:
        location: Store location to set in context.
        operation: Operation name (get, put, batch, ...) to set in context.
    """
    old_location = _location_var.get()
    old_operation = _operation_var.get()

    try:
        if location is not None:
            _location_var.set(location)
        if operation is not None:
            _operation_var.set(operation)
        yield
    finally:
        _location_var.set(old_location)
        _operation_var.set(old_operation)


class JSONFormatter(logging.Formatter):
    """JSON Lines formatter with structured context."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        location = get_location()
        operation = get_operation()
        if location:
            log_obj["location"] = location
        if operation:
            log_obj["operation"] = operation

        if hasattr(record, "extra"):
            log_obj["extra"] = record.extra

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class ContextRichHandler(RichHandler):
    """Rich handler that prefixes the console line with the store context."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        level_text = super().get_level_text(record)

        parts: list[str] = []
        location = get_location()
        operation = get_operation()
        if location:
            parts.append(f"[dim]{location}[/dim]")
        if operation:
            parts.append(f"[cyan]{operation}[/cyan]")

        if parts:
            return Text.from_markup(f"{level_text} {' '.join(parts)}")

        return level_text


class ContextLogger:
    """Logger wrapper that attaches context and keyword fields to log calls."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _log(
        self,
        level: int,
        msg: str,
        *args: Any,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        extra = kwargs.pop("extra", {})

        location = get_location()
        operation = get_operation()
        if location:
            extra["location"] = location
        if operation:
            extra["operation"] = operation

        for key in list(kwargs.keys()):
            if key not in ("exc_info", "stack_info", "stacklevel"):
                extra[key] = kwargs.pop(key)

        self._logger.log(level, msg, *args, exc_info=exc_info, extra={"extra": extra})

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._log(logging.ERROR, msg, *args, exc_info=True, **kwargs)


_console: Console | None = None
_setup_done: bool = False


def get_console() -> Console:
    """Get the global rich console (stderr)."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def setup_logging(
    log_level: str = "INFO",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Set up logging with a JSON file handler and a rich console handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to log file. If None, only console logging is enabled.
        console_output: Whether to enable console output.
    """
    global _setup_done

    root_logger = logging.getLogger("ignitedown")
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)

    if console_output:
        rich_handler = ContextRichHandler(
            console=get_console(),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=True,
        )
        rich_handler.setLevel(getattr(logging, log_level.upper()))
        root_logger.addHandler(rich_handler)

    root_logger.propagate = False

    # pyignite logs every reconnect attempt at INFO
    for noisy_logger in ["pyignite", "aiosqlite", "asyncio"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    _setup_done = True


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger.

    Args:
        name: Logger name (usually __name__).

    Returns:
        ContextLogger wrapper around the standard logger.
    """
    if not _setup_done:
        setup_logging()

    if not name.startswith("ignitedown"):
        name = f"ignitedown.{name}"

    return ContextLogger(logging.getLogger(name))
