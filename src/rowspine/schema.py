"""
Schema providers: where table and field definitions come from.

A provider satisfies :class:`~rowspine.core.protocols.SchemeProvider`:
``get_tables()`` lists table names and ``get_table_fields(table)``
describes each field as a dict with the keys ``name``, ``type``,
``null``, ``default``, ``unsigned``, ``length`` and ``values``.

Providers:
    - :class:`SqliteScheme`: reads ``sqlite_master`` and ``PRAGMA table_info``
    - :class:`SqlAlchemyScheme`: any backend through ``sqlalchemy.inspect``
    - :class:`StaticScheme`: an in-memory mapping (tests, fixed schemas)

Examples:
    >>> scheme = StaticScheme({"post": [{"name": "id", "type": "integer"}]})
    >>> scheme.get_table_fields("post")[0]["null"]
    True
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.engine import Engine

from rowspine.core.errors import UnknownTableError

_TYPE_RE = re.compile(r"^(?P<type>[a-z_][a-z0-9_ ]*?)\s*(?:\((?P<args>.*)\))?$")
_SQL_FUNCTION_DEFAULTS = {"current_timestamp", "current_date", "current_time"}


def field_info(
    name: str,
    type: str = "",
    *,
    null: bool = True,
    default: Any = None,
    unsigned: bool = False,
    length: int | None = None,
    values: list[str] | None = None,
) -> dict[str, Any]:
    """Build a normalised field description."""
    return {
        "name": name,
        "type": type.lower(),
        "null": null,
        "default": default,
        "unsigned": unsigned,
        "length": length,
        "values": values,
    }


def parse_declared_type(declared: str) -> tuple[str, int | None, list[str] | None, bool]:
    """Split ``VARCHAR(255)``, ``enum('a','b')`` or ``INT UNSIGNED``.

    Returns ``(type, length, values, unsigned)``.
    """
    text = declared.strip().lower()
    unsigned = " unsigned" in f" {text}"
    text = re.sub(r"\bunsigned\b", "", text).strip()

    match = _TYPE_RE.match(text)
    if not match:
        return text, None, None, unsigned

    type_name = " ".join(match.group("type").split())
    args = match.group("args")
    length = None
    values = None
    if args:
        if args.lstrip().startswith("'"):
            values = [v.replace("''", "'") for v in re.findall(r"'((?:[^']|'')*)'", args)]
        else:
            first = args.split(",", 1)[0].strip()
            if first.isdigit():
                length = int(first)
    return type_name, length, values, unsigned


def parse_default(raw: Any) -> Any:
    """Turn a SQL default literal into a plain value.

    Function defaults (``CURRENT_TIMESTAMP``...) and expressions are
    computed by the database, so they map to ``None``.
    """
    if raw is None or not isinstance(raw, str):
        return raw
    text = raw.strip()
    while text.startswith("(") and text.endswith(")"):
        text = text[1:-1].strip()
    if text.upper() == "NULL" or text.lower() in _SQL_FUNCTION_DEFAULTS:
        return None
    if len(text) >= 2 and text[0] == text[-1] == "'":
        return text[1:-1].replace("''", "'")
    if re.fullmatch(r"-?\d+(\.\d+)?", text):
        return text
    if "(" in text or "::" in text:
        return None
    return text


class SqliteScheme:
    """Schema provider for SQLite connections."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    def _fetchall(self, sql: str, params: tuple = ()) -> list:
        cursor = self._connection.execute(sql, params)
        try:
            return cursor.fetchall()
        finally:
            cursor.close()

    def get_tables(self) -> list[str]:
        rows = self._fetchall(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [row[0] for row in rows]

    def get_table_fields(self, table: str) -> list[dict[str, Any]]:
        if table not in self.get_tables():
            raise UnknownTableError(table)

        quoted = '"' + table.replace('"', '""') + '"'
        fields = []
        for _cid, name, declared, notnull, default, _pk in self._fetchall(f"PRAGMA table_info({quoted})"):
            type_name, length, values, unsigned = parse_declared_type(declared or "")
            fields.append(
                field_info(
                    name,
                    type_name,
                    null=not notnull,
                    default=parse_default(default),
                    unsigned=unsigned,
                    length=length,
                    values=values,
                )
            )
        return fields


class SqlAlchemyScheme:
    """Schema provider backed by ``sqlalchemy.inspect``."""

    def __init__(self, bind: Engine | Any) -> None:
        self._bind = bind

    def get_tables(self) -> list[str]:
        return sorted(sa_inspect(self._bind).get_table_names())

    def get_table_fields(self, table: str) -> list[dict[str, Any]]:
        inspector = sa_inspect(self._bind)
        if table not in inspector.get_table_names():
            raise UnknownTableError(table)

        fields = []
        for column in inspector.get_columns(table):
            col_type = column["type"]
            type_name = getattr(col_type, "__visit_name__", type(col_type).__name__)
            values = getattr(col_type, "enums", None)
            fields.append(
                field_info(
                    column["name"],
                    str(type_name),
                    null=bool(column.get("nullable", True)),
                    default=parse_default(column.get("default")),
                    unsigned=bool(getattr(col_type, "unsigned", False)),
                    length=getattr(col_type, "length", None),
                    values=list(values) if values else None,
                )
            )
        return fields


class StaticScheme:
    """Schema provider over a fixed ``{table: [field dicts]}`` mapping.

    Field dicts may omit any key but ``name``; omitted keys take the
    defaults of :func:`field_info`.
    """

    def __init__(self, tables: Mapping[str, list[Mapping[str, Any]]]) -> None:
        self._tables = {
            table: [field_info(**dict(f)) for f in fields]
            for table, fields in tables.items()
        }

    def get_tables(self) -> list[str]:
        return list(self._tables)

    def get_table_fields(self, table: str) -> list[dict[str, Any]]:
        try:
            return [dict(f) for f in self._tables[table]]
        except KeyError:
            raise UnknownTableError(table) from None


__all__ = [
    "field_info",
    "parse_declared_type",
    "parse_default",
    "SqliteScheme",
    "SqlAlchemyScheme",
    "StaticScheme",
]
