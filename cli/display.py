"""Rich rendering for screener CLI output."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from screener.domain.models import ChangeAction, CompositionChange, CompositionRow

console = Console()

_ACTION_STYLES = {ChangeAction.ENTRY: "green", ChangeAction.EXIT: "red"}


# ------------------------------------------------------------------
# Panels
# ------------------------------------------------------------------


def _panel(body: str, title: str, style: str) -> None:
    console.print(Panel(body, title=title, border_style=style))


def error_panel(msg: str) -> None:
    _panel(msg, "Error", "red")


def success_panel(msg: str) -> None:
    _panel(msg, "Success", "green")


def warning_panel(msg: str) -> None:
    _panel(msg, "Warning", "yellow")


def info_panel(title: str, body: str) -> None:
    _panel(body, title, "blue")


# ------------------------------------------------------------------
# Tables
# ------------------------------------------------------------------


def _table(title: str, *columns: str) -> Table:
    """Empty table with the CLI's header style; ``Name:right`` right-aligns."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for column in columns:
        header, _, align = column.partition(":")
        table.add_column(header, justify=align or "left")
    return table


def _empty(title: str) -> None:
    console.print(f"[dim]Nothing to show for '{title}'.[/dim]")


def _price(value: float | None) -> str:
    return "-" if value is None else f"{value:,.2f}"


def dict_table(data: dict[str, Any], title: str = "") -> None:
    """Two-column key/value table."""
    table = _table(title, "Key", "Value")
    for key, value in data.items():
        table.add_row(str(key), str(value))
    console.print(table)


def list_table(
    rows: Sequence[dict[str, Any]],
    columns: Sequence[str],
    title: str = "",
) -> None:
    """One row per dict, showing *columns* in order; missing keys are blank."""
    if not rows:
        _empty(title)
        return
    table = _table(title, *columns)
    for row in rows:
        table.add_row(*(str(row.get(column, "")) for column in columns))
    console.print(table)


def composition_table(rows: Sequence[CompositionRow], title: str = "Composition") -> None:
    """Target basket with weights as percentages."""
    if not rows:
        _empty(title)
        return
    table = _table(title, "#:right", "Ticker", "Weight:right", "Entry price:right", "Entry date")
    for position, row in enumerate(rows, start=1):
        table.add_row(
            str(position),
            f"[bold]{row.ticker}[/bold]",
            f"{row.target_weight:.2%}",
            _price(row.entry_price),
            row.entry_date.isoformat() if row.entry_date else "-",
        )
    console.print(table)


def changes_table(changes: Sequence[CompositionChange], title: str = "Changes") -> None:
    """ENTRY and EXIT records with their reasons."""
    if not changes:
        console.print("[dim]No composition changes.[/dim]")
        return
    table = _table(title, "Action", "Ticker", "Reason")
    for change in changes:
        style = _ACTION_STYLES[change.action]
        table.add_row(
            f"[{style}]{change.action.value}[/{style}]", change.ticker, change.reason
        )
    console.print(table)
