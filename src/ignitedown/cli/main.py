"""
CLI for the ignitedown store.

Commands:
    ignitedown get KEY - Print the value stored under KEY
    ignitedown put KEY VALUE - Store VALUE under KEY
    ignitedown del KEY - Remove KEY
    ignitedown scan - Print key/value pairs in key order
    ignitedown config - Show current configuration
    ignitedown version - Print version
"""

from __future__ import annotations

import asyncio
from typing import Annotated, Any, Awaitable, Callable, Optional, TypeVar

import orjson
import typer
from rich.console import Console
from rich.table import Table

from ignitedown import __version__
from ignitedown.config import Settings, clear_settings_cache, get_settings
from ignitedown.exceptions import KVError, NotFoundError
from ignitedown.logging import setup_logging
from ignitedown.store import IgniteDown, open_store
from ignitedown.types import RangeQuery

T = TypeVar("T")

app = typer.Typer(
    name="ignitedown",
    help="Ordered key-value store over Apache Ignite or SQLite",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

LocationOption = Annotated[
    Optional[str],
    typer.Option("--location", "-l", help="Location, e.g. ignite://127.0.0.1:10800/kv"),
]


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except Exception:
        return None


def _run(location: str | None, action: Callable[[IgniteDown], Awaitable[T]]) -> T:
    """Open a store from settings, run one action, close it."""
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'ignitedown config' to see the settings."
        )
        raise typer.Exit(1)

    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    async def _main() -> T:
        async with open_store(settings.store_options(location)) as store:
            return await action(store)

    try:
        return asyncio.run(_main())
    except NotFoundError:
        error_console.print("[yellow]Not found[/yellow]")
        raise typer.Exit(1)
    except KVError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="backslashreplace")


@app.command()
def get(
    key: Annotated[str, typer.Argument(help="Key to read")],
    location: LocationOption = None,
) -> None:
    """Print the value stored under KEY."""
    value = _run(location, lambda store: store.get(key))
    typer.echo(_text(value))


@app.command()
def put(
    key: Annotated[str, typer.Argument(help="Key to write")],
    value: Annotated[str, typer.Argument(help="Value to store")],
    location: LocationOption = None,
) -> None:
    """Store VALUE under KEY."""
    _run(location, lambda store: store.put(key, value))


@app.command("del")
def delete(
    key: Annotated[str, typer.Argument(help="Key to remove")],
    location: LocationOption = None,
) -> None:
    """Remove KEY (absent keys are ignored)."""
    _run(location, lambda store: store.delete(key))


@app.command()
def scan(
    gt: Annotated[Optional[str], typer.Option("--gt", help="Exclusive lower bound")] = None,
    gte: Annotated[Optional[str], typer.Option("--gte", help="Inclusive lower bound")] = None,
    lt: Annotated[Optional[str], typer.Option("--lt", help="Exclusive upper bound")] = None,
    lte: Annotated[Optional[str], typer.Option("--lte", help="Inclusive upper bound")] = None,
    reverse: Annotated[bool, typer.Option("--reverse", "-r", help="Descending order")] = False,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum pairs (-1 = all)")] = -1,
    as_json: Annotated[bool, typer.Option("--json", help="Emit JSON lines")] = False,
    location: LocationOption = None,
) -> None:
    """Print key/value pairs in key order."""
    try:
        query = RangeQuery(gt=gt, gte=gte, lt=lt, lte=lte, reverse=reverse, limit=limit)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    async def collect(store: IgniteDown) -> list[tuple[bytes, bytes]]:
        return [pair async for pair in store.iterator(query)]

    pairs = _run(location, collect)
    for key, value in pairs:
        if as_json:
            record: dict[str, Any] = {"key": _text(key), "value": _text(value)}
            typer.echo(orjson.dumps(record).decode("utf-8"))
        else:
            typer.echo(f"{_text(key)}\t{_text(value)}")


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = _get_settings_safe()
    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print("Check the IGNITEDOWN_* environment variables or the .env file.")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"ignitedown version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
