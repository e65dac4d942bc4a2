"""SQL dialect abstraction for the query builder.

The query builder never writes backend-specific syntax itself. It asks
the ``Dialect`` for placeholders, identifier quoting, how to express
"no limit", how to fetch a generated identity and whether ``LIMIT`` /
``OFFSET`` are accepted on ``UPDATE`` and ``DELETE``.

Architecture::

    ┌────────────────────────────────────────────────────────────────┐
    │  Query.compile()                                                │
    │     f"SELECT {d.quote(t)}.* FROM {d.quote(t)} WHERE id = "      │
    │     f"{d.placeholder(0)}"                                       │
    └────────────────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌──────────────┐   ┌────────────────┐   ┌──────────────┐
    │ SQLite       │   │ PostgreSQL     │   │ MySQL        │
    │ ?  "name"    │   │ %s  "name"     │   │ %s  `name`   │
    │ LIMIT -1     │   │ RETURNING id   │   │ LIMIT 2^64-1 │
    │ UPD/DEL limit│   │ no UPD/DEL lim │   │ UPD/DEL limit│
    │  (compiled)  │   │                │   │              │
    └──────────────┘   └────────────────┘   └──────────────┘

``supports_update_delete_limit`` is the hook dialect adapters use to
suppress ``limit()``/``offset()`` on UPDATE and DELETE without touching
call sites. SQLite only supports them when compiled with
``SQLITE_ENABLE_UPDATE_DELETE_LIMIT``; the flag is passed in by the
database after reading ``PRAGMA compile_options``.

Examples:
    >>> from rowspine.core.dialect import get_dialect
    >>> d = get_dialect("sqlite")
    >>> d.placeholders(3)
    '?, ?, ?'
    >>> d.quote("post")
    '"post"'

Tags:
    dialect, sql, abstraction, portability, rowspine
"""

from __future__ import annotations

import re
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a SQL fragment (string) valid for the target
    database; the query builder interpolates these fragments, never
    values.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    @property
    def supports_update_delete_limit(self) -> bool:
        """Whether ``UPDATE``/``DELETE`` accept ``LIMIT`` and ``OFFSET``."""
        ...

    @property
    def no_limit(self) -> str | None:
        """Literal meaning "no limit", needed when only OFFSET is given.

        ``None`` when the backend accepts ``OFFSET`` without ``LIMIT``.
        """
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    def quote(self, identifier: str) -> str:
        """Quote a table or column identifier."""
        ...

    def returning(self, column: str) -> str | None:
        """``RETURNING`` clause used to read a generated identity.

        ``None`` means the driver's ``cursor.lastrowid`` is used instead.
        """
        ...

    def default_values(self) -> str:
        """Tail of an ``INSERT`` that provides no column values."""
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect: ``?`` placeholders, ``"name"`` identifiers."""

    def __init__(self, *, update_delete_limit: bool = False) -> None:
        self._update_delete_limit = update_delete_limit

    @property
    def name(self) -> str:
        return "sqlite"

    @property
    def supports_update_delete_limit(self) -> bool:
        return self._update_delete_limit

    @property
    def no_limit(self) -> str | None:
        return "-1"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def returning(self, column: str) -> str | None:  # noqa: ARG002
        return None

    def default_values(self) -> str:
        return "DEFAULT VALUES"

    def __repr__(self) -> str:
        return f"SQLiteDialect(update_delete_limit={self._update_delete_limit})"


class PostgreSQLDialect:
    """PostgreSQL dialect: ``%s`` placeholders (psycopg), ``RETURNING``.

    PostgreSQL has no ``LIMIT`` on ``UPDATE``/``DELETE``.
    """

    @property
    def name(self) -> str:
        return "postgresql"

    @property
    def supports_update_delete_limit(self) -> bool:
        return False

    @property
    def no_limit(self) -> str | None:
        return None

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def returning(self, column: str) -> str | None:
        return f"RETURNING {self.quote(column)}"

    def default_values(self) -> str:
        return "DEFAULT VALUES"


class MySQLDialect:
    """MySQL dialect: ``%s`` placeholders, backtick identifiers.

    Compatible with ``mysql.connector`` and ``PyMySQL``. MySQL accepts
    ``LIMIT`` on ``UPDATE``/``DELETE``.
    """

    @property
    def name(self) -> str:
        return "mysql"

    @property
    def supports_update_delete_limit(self) -> bool:
        return True

    @property
    def no_limit(self) -> str | None:
        return "18446744073709551615"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def quote(self, identifier: str) -> str:
        return "`" + identifier.replace("`", "``") + "`"

    def returning(self, column: str) -> str | None:  # noqa: ARG002
        return None

    def default_values(self) -> str:
        return "() VALUES ()"


# =========================================================================
# Placeholder scanning
# =========================================================================

_LITERAL_RE = re.compile(r"""('(?:[^']|'')*'|"(?:[^"]|"")*")""")


def split_placeholders(sql: str, marker: str) -> list[str]:
    """Split ``sql`` on ``marker`` outside quoted literals and identifiers.

    The result always has one more item than there are markers:

        >>> split_placeholders("title = 'What?' AND id = ?", "?")
        ["title = 'What?' AND id = ", '']
    """
    parts = [""]
    for index, chunk in enumerate(_LITERAL_RE.split(sql)):
        if index % 2:
            parts[-1] += chunk
            continue
        pieces = chunk.split(marker)
        parts[-1] += pieces[0]
        parts.extend(pieces[1:])
    return parts


# =========================================================================
# Registry / Factory
# =========================================================================

_DIALECTS: dict[str, type] = {
    "sqlite": SQLiteDialect,
    "postgresql": PostgreSQLDialect,
    "postgres": PostgreSQLDialect,  # alias
    "mysql": MySQLDialect,
    "mariadb": MySQLDialect,  # alias
}


def get_dialect(db_type: str, **options: Any) -> Dialect:
    """Get a dialect by database type name.

    Args:
        db_type: One of ``'sqlite'``, ``'postgresql'``, ``'postgres'``,
                 ``'mysql'``, ``'mariadb'`` or a registered name.
        **options: Forwarded to the dialect constructor
                   (e.g. ``update_delete_limit=True`` for SQLite).

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres', 'mariadb'})}"
        )
    return _DIALECTS[key](**options)


def register_dialect(name: str, dialect_class: type) -> None:
    """Register a custom dialect implementation.

    Useful for third-party database drivers or test doubles.
    """
    _DIALECTS[name.lower()] = dialect_class


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "get_dialect",
    "register_dialect",
    "split_placeholders",
]
