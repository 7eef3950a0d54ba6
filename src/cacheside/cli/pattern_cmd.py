"""CLI commands for pattern-based key maintenance.

Usage:
    cacheside purge "packed:caches:user-basic:*"
    cacheside purge "packed:caches:*" --endpoint redis://cache-1:6379/0 -e redis://cache-2:6379/0
    cacheside keys "cache-lock:*"
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from redis.exceptions import RedisError
from rich.console import Console

from cacheside.cache.purge import clear_cache_by_pattern, fetch_cache_by_pattern
from cacheside.config import settings

purge_app = typer.Typer(help="Delete keys matching a pattern on every cache endpoint")
keys_app = typer.Typer(help="List keys matching a pattern on every cache endpoint")

console = Console()


def _endpoints(endpoints: Optional[list[str]]) -> list[str]:
    return endpoints or settings.cache_endpoint_urls


@purge_app.callback(invoke_without_command=True)
def purge(
    pattern: str = typer.Argument(
        ...,
        help="Redis glob pattern, e.g. 'packed:caches:user:*'",
    ),
    endpoints: Optional[list[str]] = typer.Option(
        None,
        "--endpoint",
        "-e",
        help="Redis URL to purge (repeatable, defaults to configured endpoints)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Print every deleted key",
    ),
) -> None:
    """Delete keys matching PATTERN."""
    urls = _endpoints(endpoints)
    console.print(f"[blue]Clearing[/blue] {pattern} on {len(urls)} endpoint(s)")

    try:
        cleared = asyncio.run(clear_cache_by_pattern(pattern, urls=urls))
    except RedisError as e:
        console.print(f"[red]Redis error:[/red] {e}")
        raise typer.Exit(code=1) from e

    if verbose:
        for key in cleared:
            console.print(f"  [green]✓[/green] {key}")

    console.print(f"[green]Cleared {len(cleared)} keys[/green]")


@keys_app.callback(invoke_without_command=True)
def keys(
    pattern: str = typer.Argument(
        ...,
        help="Redis glob pattern, e.g. 'cache-lock:*'",
    ),
    endpoints: Optional[list[str]] = typer.Option(
        None,
        "--endpoint",
        "-e",
        help="Redis URL to scan (repeatable, defaults to configured endpoints)",
    ),
) -> None:
    """List keys matching PATTERN."""
    urls = _endpoints(endpoints)

    try:
        found = asyncio.run(fetch_cache_by_pattern(pattern, urls=urls))
    except RedisError as e:
        console.print(f"[red]Redis error:[/red] {e}")
        raise typer.Exit(code=1) from e

    for key in found:
        console.print(key)

    console.print(f"[blue]{len(found)} keys[/blue]")
