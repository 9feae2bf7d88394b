"""
CLI for txcache.

Commands:
    txcache config - Show current configuration
    txcache stampede - Run concurrent readers of one key through the stack
    txcache version - Print version
"""

from __future__ import annotations

import threading
import time
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from txcache import __version__
from txcache.cache import TransactionalCache, build_cache_stack
from txcache.config import Settings, clear_settings_cache, get_settings
from txcache.logging import setup_logging_from_settings

app = typer.Typer(
    name="txcache",
    help="Transactional, stampede-preventing cache decorators",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        error_console.print(f"[red]{e}[/red]")
        return None


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = _get_settings_safe()
    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print("Check the CACHE_* and LOG_* environment variables or your .env file.")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)


@app.command()
def stampede(
    threads: Annotated[
        int, typer.Option("--threads", "-t", min=1, help="Concurrent readers")
    ] = 8,
    fetch_ms: Annotated[
        int, typer.Option("--fetch-ms", min=0, help="Simulated cost of computing the value")
    ] = 100,
    blocking: Annotated[
        bool, typer.Option("--blocking/--no-blocking", help="Put a LockingCache in the stack")
    ] = True,
) -> None:
    """Read one missing key from many threads and count how often it is computed."""
    settings = _get_settings_safe()
    if settings is None:
        raise typer.Exit(1)
    setup_logging_from_settings()

    shared = build_cache_stack("stampede", blocking=blocking, settings=settings)
    fetches = 0
    fetch_guard = threading.Lock()
    errors: list[str] = []

    def reader() -> None:
        nonlocal fetches
        try:
            with TransactionalCache(shared) as tx:
                if tx.get("answer") is None:
                    with fetch_guard:
                        fetches += 1
                    time.sleep(fetch_ms / 1000.0)
                    tx.put("answer", 42)
        except Exception as e:
            errors.append(f"{type(e).__name__}: {e}")

    workers = [threading.Thread(target=reader, name=f"reader-{i}") for i in range(threads)]
    started = time.monotonic()
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    elapsed = time.monotonic() - started

    table = Table(title="Stampede", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("blocking", str(blocking))
    table.add_row("readers", str(threads))
    table.add_row("fetches", str(fetches))
    table.add_row("errors", str(len(errors)))
    table.add_row("elapsed_s", f"{elapsed:.3f}")
    console.print(table)

    for error in errors:
        error_console.print(f"[red]{error}[/red]")
    if errors:
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"txcache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
