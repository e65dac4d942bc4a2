"""Rowspine core -- infrastructure shared by the mapper.

Layer 1 -- Errors & contracts
    errors.py       Structured error hierarchy (RowspineError, SchemaError, ...)
    protocols.py    Connection, Cursor and SchemeProvider protocols

Layer 2 -- Database access
    dialect.py      SQL dialect abstraction (SQLite, PostgreSQL, MySQL)
    connection.py   Connection factory (create_connection)
    sqlite_conn.py  sqlite3 adapter
    session.py      SQLAlchemy session bridge

Layer 3 -- Cross-cutting concerns
    logging.py      Structured logging (structlog)
    settings.py     RowspineSettings (pydantic-settings)
"""

from rowspine.core.connection import ConnectionInfo, create_connection
from rowspine.core.dialect import (
    Dialect,
    MySQLDialect,
    PostgreSQLDialect,
    SQLiteDialect,
    get_dialect,
    register_dialect,
)
from rowspine.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    FieldValueError,
    InvalidConfigError,
    QueryError,
    RelationError,
    RowspineError,
    SchemaError,
    TablesNotRelatedError,
    UnknownFieldError,
    UnknownTableError,
    ValidationError,
)
from rowspine.core.logging import LogContext, configure_logging, get_logger
from rowspine.core.protocols import Connection, Cursor, SchemeProvider
from rowspine.core.settings import RowspineSettings, get_settings

__all__ = [
    # connection
    "ConnectionInfo",
    "create_connection",
    # dialect
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "get_dialect",
    "register_dialect",
    # errors
    "ErrorCategory",
    "ErrorContext",
    "RowspineError",
    "SchemaError",
    "UnknownTableError",
    "UnknownFieldError",
    "RelationError",
    "TablesNotRelatedError",
    "ValidationError",
    "FieldValueError",
    "DatabaseError",
    "QueryError",
    "DatabaseConnectionError",
    "ConfigError",
    "InvalidConfigError",
    # logging
    "configure_logging",
    "get_logger",
    "LogContext",
    # protocols
    "Connection",
    "Cursor",
    "SchemeProvider",
    # settings
    "RowspineSettings",
    "get_settings",
]
