"""Index Screener CLI: Typer app factory and entry point."""

from __future__ import annotations

import logging
from typing import Optional

import typer

from cli.db import db_app
from cli.index import index_app
from screener.database.config import settings
from screener.database.database import DatabaseManager

app = typer.Typer(
    name="screener",
    help="Index Screener CLI: screen, rebalance and inspect indices from the terminal.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        from screener import __version__

        typer.echo(f"screener CLI {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    database_url: Optional[str] = typer.Option(
        None,
        "--database-url",
        envvar="DATABASE_URL",
        help="SQLAlchemy database URL (defaults to the configured settings).",
    ),
    log_level: str = typer.Option(
        settings.log_level,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show CLI version and exit.",
    ),
) -> None:
    """Global options applied before any sub-command."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    ctx.obj = DatabaseManager(database_url=database_url)
    ctx.call_on_close(ctx.obj.close)


# Register command groups
app.add_typer(db_app)
app.add_typer(index_app)


if __name__ == "__main__":
    app()
