"""Database management command group."""

from __future__ import annotations

import typer
from sqlalchemy.engine import make_url

from cli.display import dict_table, error_panel, success_panel
from screener.database.database import DatabaseManager

db_app = typer.Typer(name="db", help="Database connectivity and table management.")


def _manager(ctx: typer.Context) -> DatabaseManager:
    return ctx.obj


# ------------------------------------------------------------------
# init
# ------------------------------------------------------------------


@db_app.command()
def init(ctx: typer.Context) -> None:
    """Create all screener tables if they do not exist."""
    manager = _manager(ctx)
    try:
        manager.initialize(verbose=True)
        manager.create_all_tables()
    except Exception as exc:
        error_panel(f"Database initialization failed: {exc}")
        raise typer.Exit(code=1) from exc
    success_panel("Database tables created.")


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------


@db_app.command()
def status(ctx: typer.Context) -> None:
    """Show the database target and which screener tables exist."""
    manager = _manager(ctx)
    try:
        manager.initialize()
    except Exception as exc:
        error_panel(f"Cannot connect: {exc}")
        raise typer.Exit(code=1) from exc
    tables = manager.existing_tables()
    dict_table(
        {
            "url": make_url(manager.url).render_as_string(hide_password=True),
            "backend": "sqlite" if manager.is_sqlite else "postgresql",
            "tables": ", ".join(tables) or "none (run `screener db init`)",
        },
        title="Database Status",
    )
