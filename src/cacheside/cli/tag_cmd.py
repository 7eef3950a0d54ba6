"""CLI command for tag invalidation.

Usage:
    cacheside bust-tag leaderboard
    cacheside bust-tag leaderboard home-blocks
"""

from __future__ import annotations

import asyncio

import typer
from redis.exceptions import RedisError
from rich.console import Console

from cacheside.cache.redis import close_redis, get_redis
from cacheside.cache.tags import bust_cache_tag

app = typer.Typer(help="Delete every cache key grouped under the given tags")

console = Console()


async def _bust(tags: list[str]) -> int:
    client = await get_redis()
    try:
        return await bust_cache_tag(client, tags)
    finally:
        await close_redis()


@app.callback(invoke_without_command=True)
def bust_tag(
    tags: list[str] = typer.Argument(
        ...,
        help="Tag names to bust",
    ),
) -> None:
    """Bust every key tagged with TAGS."""
    try:
        deleted = asyncio.run(_bust(tags))
    except RedisError as e:
        console.print(f"[red]Redis error:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(f"[green]Busted {len(tags)} tag(s), {deleted} keys deleted[/green]")
