"""
Database: entry point that owns the connection and the tables.

Manifesto:
    - **Schema at runtime:** Tables and fields come from a schema
      provider the first time they are used
    - **One dialect:** Builders ask the database's dialect for every
      backend-specific fragment
    - **Scoped cursors:** ``execute`` closes the cursor on every path
      and wraps driver failures in ``QueryError``

Architecture:
    ::

        Database
          ├── connection     Connection protocol (sqlite3 / SQLAlchemy)
          ├── scheme         SchemeProvider (tables + field info)
          ├── dialect        placeholders, quoting, UPDATE/DELETE LIMIT
          ├── field_types    FieldTypeRegistry
          ├── relations      RelationResolver (per-pair cache)
          ├── identity_map   IdentityMap ((table, id) -> Row)
          └── tables         name -> Table, built lazily

Examples:
    >>> db = Database.connect("blog.db")
    >>> db.tables
    ['category', 'comment', 'post', 'post_tag', 'tag']
    >>> db.set_config(Database.CONFIG_LOCALE, "en")
    >>> db["post"].get(1)["title"]          # reads title_en
    'Hello'

Tags:
    database, schema, connection, rowspine
"""

from __future__ import annotations

import sqlite3
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from rowspine.core.connection import ConnectionInfo, create_connection
from rowspine.core.dialect import Dialect, get_dialect
from rowspine.core.errors import InvalidConfigError, QueryError, UnknownTableError
from rowspine.core.logging import get_logger
from rowspine.core.protocols import Connection, Cursor, SchemeProvider
from rowspine.core.settings import RowspineSettings, get_settings
from rowspine.fields import FieldDescriptor, FieldTypeRegistry
from rowspine.identity import IdentityMap
from rowspine.relations import RelationResolver
from rowspine.row import CONFIG_LOCALE
from rowspine.schema import SqlAlchemyScheme, SqliteScheme
from rowspine.table import Table

logger = get_logger(__name__)

DRIVER_ERRORS = (sqlite3.Error, SQLAlchemyError)
_READ_STATEMENTS = ("SELECT", "PRAGMA", "WITH")


class Database:
    """Tables of one database, reached through a single connection."""

    CONFIG_LOCALE = CONFIG_LOCALE

    def __init__(
        self,
        connection: Connection,
        scheme: SchemeProvider | None = None,
        *,
        dialect: Dialect | None = None,
        identity_map: IdentityMap | None = None,
        field_types: FieldTypeRegistry | None = None,
        settings: RowspineSettings | None = None,
    ) -> None:
        self.connection = connection
        self.settings = settings or get_settings()
        self.autocommit = self.settings.autocommit
        self.info: ConnectionInfo | None = None

        self.scheme = scheme if scheme is not None else self._default_scheme()
        self.dialect = dialect if dialect is not None else self._detect_dialect()
        self.identity_map = identity_map if identity_map is not None else IdentityMap()
        self.field_types = field_types if field_types is not None else FieldTypeRegistry()
        self.relations = RelationResolver(self)

        self._tables: dict[str, Table] = {}
        self._table_names: list[str] | None = None
        self._config: dict[str, Any] = {}
        if self.settings.locale:
            self._config[CONFIG_LOCALE] = self.settings.locale

    @classmethod
    def connect(
        cls,
        url: str | None = None,
        settings: RowspineSettings | None = None,
        **kwargs: Any,
    ) -> Database:
        """Open ``url`` (default: ``settings.database_url``) with :func:`create_connection`."""
        settings = settings or get_settings()
        connection, info = create_connection(url or settings.database_url)
        db = cls(connection, settings=settings, **kwargs)
        db.info = info
        return db

    @property
    def backend(self) -> str:
        return getattr(self.connection, "backend", "sqlite")

    def _default_scheme(self) -> SchemeProvider:
        engine = getattr(self.connection, "engine", None)
        if engine is not None:
            return SqlAlchemyScheme(engine)
        return SqliteScheme(self.connection)

    def _detect_dialect(self) -> Dialect:
        if self.backend != "sqlite":
            return get_dialect(self.backend)

        enabled = self.settings.update_delete_limit
        if enabled is None:
            with self.execute("PRAGMA compile_options") as cursor:
                options = {row[0] for row in cursor.fetchall()}
            enabled = "ENABLE_UPDATE_DELETE_LIMIT" in options
        return get_dialect("sqlite", update_delete_limit=enabled)

    # -- tables --------------------------------------------------------------

    @property
    def tables(self) -> list[str]:
        """Names of the tables, read once from the schema provider."""
        if self._table_names is None:
            self._table_names = list(self.scheme.get_tables())
        return list(self._table_names)

    def table(self, name: str) -> Table:
        if name not in self._tables:
            if name not in self:
                raise UnknownTableError(name)
            descriptors = [FieldDescriptor.from_info(f) for f in self.scheme.get_table_fields(name)]
            fields = {d.name: self.field_types.create(d) for d in descriptors}
            self._tables[name] = Table(self, name, fields)
            logger.debug("schema_loaded", table=name, fields=len(fields))
        return self._tables[name]

    def __getitem__(self, name: str) -> Table:
        return self.table(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self.tables

    def __iter__(self) -> Iterator[Table]:
        return (self.table(name) for name in self.tables)

    def reload_schema(self) -> None:
        """Forget the loaded tables and relations (after DDL)."""
        self._tables.clear()
        self._table_names = None
        self.relations.clear()

    # -- config --------------------------------------------------------------

    def get_config(self, key: str) -> Any:
        return self._config.get(key)

    def set_config(self, key: str, value: Any) -> None:
        if key == CONFIG_LOCALE and value is not None and not isinstance(value, str):
            raise InvalidConfigError(key, value, "The locale must be a string or None")
        self._config[key] = value

    # -- execution -----------------------------------------------------------

    @contextmanager
    def execute(self, sql: str, params: Sequence[Any] = ()) -> Iterator[Cursor]:
        """Run a statement and yield its cursor.

        The cursor is closed when the block exits. Writes are committed
        when ``autocommit`` is on.

        Raises:
            QueryError: The driver rejected the statement; the driver
                exception is the ``cause``.
        """
        params = list(params)
        started = time.perf_counter()
        try:
            cursor = self.connection.execute(sql, params)
        except (*DRIVER_ERRORS, ValueError) as e:
            raise QueryError(str(e), cause=e).with_context(sql=sql) from e

        logger.debug(
            "query_executed",
            sql=sql,
            params=len(params),
            elapsed_ms=round((time.perf_counter() - started) * 1000, 3),
        )
        try:
            yield cursor
            if self.autocommit and not sql.lstrip().upper().startswith(_READ_STATEMENTS):
                self.connection.commit()
        except DRIVER_ERRORS as e:
            raise QueryError(str(e), cause=e).with_context(sql=sql) from e
        finally:
            cursor.close()

    def close(self) -> None:
        close = getattr(self.connection, "close", None)
        if close is not None:
            close()

    def __repr__(self) -> str:
        return f"Database(backend={self.backend!r}, dialect={self.dialect.name!r})"


__all__ = ["Database"]
