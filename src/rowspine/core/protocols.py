"""
Canonical protocol definitions for rowspine.

The library depends on two external collaborators only by shape:

- :class:`Connection`: executes SQL text with positional parameters and
  hands back a DB-API style cursor;
- :class:`SchemeProvider`: lists tables and describes their fields.

Both are ``runtime_checkable`` so adapters can be verified with
``isinstance`` in tests.

Architecture:
    ::

        protocols.py
        ├── Connection      sqlite3 adapter, SQLAlchemy session bridge
        ├── Cursor          what Connection.execute() returns
        └── SchemeProvider  SqliteScheme, SqlAlchemyScheme, StaticScheme

Tags:
    protocol, connection, schema, rowspine, contracts
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cursor(Protocol):
    """Result handle returned by :meth:`Connection.execute`."""

    description: Sequence[Sequence[Any]] | None
    rowcount: int
    lastrowid: Any

    def fetchone(self) -> Any:
        ...

    def fetchall(self) -> list:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Connection(Protocol):
    """
    Minimal synchronous connection interface.

    ``params`` is an ordered sequence: the N-th placeholder of ``sql``
    binds the N-th value.

    Examples:
        >>> cursor = conn.execute("SELECT * FROM post WHERE id = ?", (1,))
        >>> cursor.fetchall()
    """

    def execute(self, sql: str, params: Sequence[Any] = ()) -> Cursor:
        """Execute one statement and return its cursor."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


@runtime_checkable
class SchemeProvider(Protocol):
    """
    Schema introspection contract.

    ``get_table_fields`` returns one dict per field with the keys
    ``name``, ``type``, ``null``, ``default``, ``unsigned``, ``length``
    and ``values`` (enumerated values, or ``None``).
    """

    def get_tables(self) -> list[str]:
        """Return the names of all tables."""
        ...

    def get_table_fields(self, table: str) -> list[dict[str, Any]]:
        """Return the field info of a table."""
        ...


__all__ = [
    "Connection",
    "Cursor",
    "SchemeProvider",
]
