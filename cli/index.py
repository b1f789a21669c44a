"""Index command group: run jobs, inspect compositions and manage definitions."""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Optional

import typer

from cli.display import (
    changes_table,
    composition_table,
    dict_table,
    error_panel,
    info_panel,
    list_table,
    success_panel,
    warning_panel,
)
from screener.config import IndexConfig, parse_index_config
from screener.database.database import DatabaseManager
from screener.database.repositories import IndexRepository
from screener.exceptions import ScreenerError
from screener.pipeline import IndexJobRunner, IndexRunResult, RunStatus

index_app = typer.Typer(name="index", help="Run index jobs and inspect compositions.")


def _manager(ctx: typer.Context) -> DatabaseManager:
    manager: DatabaseManager = ctx.obj
    if not manager.is_initialized:
        manager.initialize()
    return manager


def _read_document(path: Path) -> dict[str, Any]:
    try:
        document = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        error_panel(f"Cannot read {path}: {exc}")
        raise typer.Exit(code=1) from exc
    if not isinstance(document, dict):
        error_panel(f"{path} must contain a JSON object.")
        raise typer.Exit(code=1)
    return document


def _config_sections(config: IndexConfig) -> dict[str, str]:
    return {f.name: str(getattr(config, f.name)) for f in fields(config)}


def _render_result(result: IndexRunResult) -> None:
    dict_table(result.stage_counts, title="Stage counts")
    if result.composition:
        title = "Proposed composition" if result.dry_run else "Composition"
        composition_table(result.composition, title=title)
    changes_table(result.changes)
    if result.errors and result.succeeded:
        warning_panel("\n".join(result.errors))


# ------------------------------------------------------------------
# run
# ------------------------------------------------------------------


@index_app.command()
def run(
    ctx: typer.Context,
    index_id: str = typer.Argument(..., help="Index id or ticker."),
    force: bool = typer.Option(False, "--force", help="Run outside trading days."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute without persisting."),
) -> None:
    """Screen the universe, decide and persist the rebalance for one index."""
    runner = IndexJobRunner.from_database(_manager(ctx))
    result = runner.run(index_id, force=force, dry_run=dry_run)

    if result.status is RunStatus.FAILED:
        error_panel("\n".join(result.errors) or "Index job failed.")
        raise typer.Exit(code=1)
    if result.status is RunStatus.SKIPPED:
        warning_panel(result.reason or "Run skipped.")
        return

    _render_result(result)
    decision = result.decision.value if result.decision else "-"
    body = f"Status: {result.status.value}\nDecision: {decision}\n{result.reason or ''}"
    if result.status is RunStatus.REBALANCED and not result.dry_run:
        success_panel(body)
    else:
        info_panel(f"Index {index_id}", body)


# ------------------------------------------------------------------
# show
# ------------------------------------------------------------------


@index_app.command()
def show(
    ctx: typer.Context,
    index_id: str = typer.Argument(..., help="Index id or ticker."),
) -> None:
    """Show the current composition of an index."""
    repository = IndexRepository(_manager(ctx))
    definition = repository.get_definition(index_id)
    if definition is None:
        error_panel(f"Index '{index_id}' not found.")
        raise typer.Exit(code=1)

    info_panel(definition.ticker, f"{definition.name}\n{definition.description or ''}")
    composition_table(repository.get_current(definition.id))


# ------------------------------------------------------------------
# history
# ------------------------------------------------------------------


@index_app.command()
def history(
    ctx: typer.Context,
    index_id: str = typer.Argument(..., help="Index id or ticker."),
    limit: int = typer.Option(50, help="Max log entries to show."),
) -> None:
    """Show the rebalance history log of an index."""
    repository = IndexRepository(_manager(ctx))
    definition = repository.get_definition(index_id)
    if definition is None:
        error_panel(f"Index '{index_id}' not found.")
        raise typer.Exit(code=1)

    list_table(
        repository.get_history(definition.id, limit=limit),
        columns=["date", "action", "ticker", "reason"],
        title=f"History: {definition.ticker}",
    )


# ------------------------------------------------------------------
# list
# ------------------------------------------------------------------


@index_app.command(name="list")
def list_indices(
    ctx: typer.Context,
    include_inactive: bool = typer.Option(False, "--all", help="Include inactive indices."),
) -> None:
    """List stored index definitions."""
    definitions = IndexRepository(_manager(ctx)).list_definitions(
        active_only=not include_inactive
    )
    list_table(
        [
            {"id": d.id, "ticker": d.ticker, "name": d.name, "active": d.is_active}
            for d in definitions
        ],
        columns=["ticker", "name", "active", "id"],
        title="Indices",
    )


# ------------------------------------------------------------------
# validate
# ------------------------------------------------------------------


@index_app.command()
def validate(
    file: Path = typer.Argument(..., help="JSON configuration document."),
) -> None:
    """Parse a configuration document and print the resolved configuration."""
    document = _read_document(file)
    try:
        config = parse_index_config(document)
    except ScreenerError as exc:
        error_panel(str(exc))
        raise typer.Exit(code=1) from exc

    dict_table(_config_sections(config), title=f"Configuration: {file.name}")
    success_panel("Configuration is valid.")


# ------------------------------------------------------------------
# save
# ------------------------------------------------------------------


@index_app.command()
def save(
    ctx: typer.Context,
    ticker: str = typer.Argument(..., help="Index ticker."),
    file: Path = typer.Argument(..., help="JSON configuration document."),
    name: Optional[str] = typer.Option(None, help="Display name (defaults to ticker)."),
    description: Optional[str] = typer.Option(None, help="Index description."),
) -> None:
    """Create or update an index definition from a configuration document."""
    document = _read_document(file)
    try:
        definition = IndexRepository(_manager(ctx)).save_definition(
            ticker, name or ticker, document, description
        )
    except ScreenerError as exc:
        error_panel(str(exc))
        raise typer.Exit(code=1) from exc
    success_panel(f"Index '{definition.ticker}' saved ({definition.id}).")
