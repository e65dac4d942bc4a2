"""
Root Typer application for the rowspine CLI.

Inspect a database the way the mapper sees it: tables, typed fields,
inferred relations and rows.

    rowspine tables -d blog.db
    rowspine relations post -d blog.db
    rowspine select post --where "type = 'text'" --order-by "pubdate DESC" --limit 5
"""

from __future__ import annotations

import typer
from typer import Typer

from rowspine.cli.utils import open_database, output_rows
from rowspine.core.logging import configure_logging
from rowspine.core.settings import get_settings

app = Typer(
    name="rowspine",
    help="rowspine: inspect tables, fields and relations of a database.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from rowspine import __version__

        typer.echo(f"rowspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """rowspine CLI."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def tables(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """List the tables with their row counts."""
    with open_database(database) as db:
        items = [
            {"table": table.name, "fields": len(table.fields), "rows": table.count()}
            for table in db
        ]
        output_rows(items, as_json=json_out, title="Tables")


@app.command()
def fields(
    table: str = typer.Argument(..., help="Table name"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the fields of a table and how they are converted."""
    with open_database(database) as db:
        items = []
        for field in db[table].fields.values():
            d = field.descriptor
            items.append(
                {
                    "name": d.name,
                    "type": d.type,
                    "field": type(field).__name__,
                    "null": d.nullable,
                    "default": d.default,
                }
            )
        output_rows(items, as_json=json_out, title=f"Fields of {table}")


@app.command()
def relations(
    table: str = typer.Argument(..., help="Table name"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the relations inferred between a table and the others."""
    with open_database(database) as db:
        source = db[table]
        items = []
        for other in db:
            relation = db.relations.resolve(source, other)
            if relation is None:
                continue
            items.append(
                {
                    "table": other.name,
                    "kind": relation.kind.value,
                    "via": relation.join_table or relation.field,
                }
            )
        output_rows(items, as_json=json_out, title=f"Relations of {table}")


@app.command()
def select(
    table: str = typer.Argument(..., help="Table name"),
    where: list[str] | None = typer.Option(None, "--where", "-w", help="Raw SQL condition (repeatable)"),
    order_by: str | None = typer.Option(None, "--order-by"),
    limit: int | None = typer.Option(None, "--limit", "-n"),
    offset: int | None = typer.Option(None, "--offset"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Select rows of a table."""
    with open_database(database) as db:
        query = db[table].select()
        for condition in where or []:
            query.where(condition)
        if order_by:
            query.order_by(order_by)
        query.limit(limit).offset(offset)
        output_rows(query.run().to_list(), as_json=json_out, title=table)


if __name__ == "__main__":
    app()
