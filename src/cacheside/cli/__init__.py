"""CLI commands for cacheside.

Provides command-line interface using Typer:
- cacheside purge: Delete keys matching a pattern on every endpoint
- cacheside keys: List keys matching a pattern on every endpoint
- cacheside bust-tag: Delete every key grouped under a tag

Usage:
    cacheside --help
    cacheside purge "packed:caches:user-basic:*"
    cacheside keys "packed:caches:*" --endpoint redis://cache-2:6379/0
    cacheside bust-tag leaderboard
"""

import typer

from cacheside.cli.pattern_cmd import keys_app, purge_app
from cacheside.cli.tag_cmd import app as tag_app
from cacheside.config import settings
from cacheside.observability.logging import configure_logging

# Main CLI application
app = typer.Typer(
    name="cacheside",
    help="cacheside: cache-aside consistency layer maintenance",
    no_args_is_help=True,
)

# Add subcommands
app.add_typer(purge_app, name="purge")
app.add_typer(keys_app, name="keys")
app.add_typer(tag_app, name="bust-tag")


@app.callback()
def callback() -> None:
    """cacheside: cache-aside consistency layer maintenance."""
    configure_logging(json_format=settings.log_json, level=settings.log_level)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
