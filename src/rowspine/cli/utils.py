"""
CLI utility helpers: output formatting and database access.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from rowspine.core.errors import RowspineError
from rowspine.database import Database
from rowspine.row import json_default

console = Console()
err_console = Console(stderr=True)


# ── Database helper ──────────────────────────────────────────────────────


@contextmanager
def open_database(database: str | None = None) -> Iterator[Database]:
    """Connect (``ROWSPINE_DATABASE_URL`` when ``database`` is ``None``).

    Library errors are printed and turned into exit code 1.
    """
    db = None
    try:
        db = Database.connect(database)
        yield db
    except RowspineError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e
    finally:
        if db is not None:
            db.close()


# ── Output helpers ───────────────────────────────────────────────────────


def output_rows(items: list[dict[str, Any]], *, as_json: bool = False, title: str = "") -> None:
    """Render a list of dicts as JSON or a Rich table."""
    if as_json:
        console.print_json(json.dumps(items, default=json_default))
        return

    if not items:
        console.print("[dim]No items.[/dim]")
        return

    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in items[0]:
        table.add_column(col, overflow="fold")
    for item in items:
        table.add_row(*("" if v is None else str(v) for v in item.values()))
    console.print(table)
