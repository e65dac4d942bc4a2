"""Connection factory: create database connections from URL strings.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/blog.db``                          SQLite file
``postgresql``      ``postgresql://user:pw@host:port/db``        PostgreSQL
``mysql``           ``mysql+pymysql://user:pw@host/db``          MySQL
==================  ==========================================  ============

SQLite goes through the stdlib adapter
(:class:`~rowspine.core.sqlite_conn.SqliteConnection`); every other URL
is handed to SQLAlchemy and wrapped in
:class:`~rowspine.core.session.SAConnectionBridge`.

Usage
-----
::

    from rowspine.core.connection import create_connection

    conn, info = create_connection("blog.db")
    print(info)
    # ConnectionInfo(backend='sqlite', persistent=True, path='/abs/blog.db')

Connection failures raise
:class:`~rowspine.core.errors.DatabaseConnectionError`; there is no
fallback to another backend.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from rowspine.core.dialect import get_dialect
from rowspine.core.errors import DatabaseConnectionError
from rowspine.core.logging import get_logger

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"``, ``"postgresql"``, ``"mysql"``."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"


# ── Backends ─────────────────────────────────────────────────────────────


def _create_sqlite(path: str) -> tuple[Any, ConnectionInfo]:
    from rowspine.core.sqlite_conn import SqliteConnection

    if path == ":memory:":
        info = ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")
    else:
        file = Path(path)
        file.parent.mkdir(parents=True, exist_ok=True)
        path = str(file.resolve())
        info = ConnectionInfo(backend="sqlite", persistent=True, url=str(file), resolved_path=path)

    try:
        conn = SqliteConnection(path)
    except sqlite3.Error as e:
        raise DatabaseConnectionError(f"Failed to connect to SQLite: {e}", cause=e) from e
    return conn, info


def _create_sqlalchemy(url: str) -> tuple[Any, ConnectionInfo]:
    from sqlalchemy.orm import Session

    from rowspine.core.session import SAConnectionBridge, create_rowspine_engine

    backend = url.split("://", 1)[0].split("+", 1)[0]
    if backend == "postgres":
        backend = "postgresql"

    try:
        engine = create_rowspine_engine(url)
        session = Session(bind=engine, expire_on_commit=False)
        session.connection()
    except (SQLAlchemyError, ImportError) as e:
        raise DatabaseConnectionError(f"Cannot connect to {backend}: {e}", cause=e) from e

    placeholder = get_dialect(backend).placeholder(0)
    conn = SAConnectionBridge(session, backend=backend, placeholder=placeholder)
    return conn, ConnectionInfo(backend=backend, persistent=True, url=url)


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into (scheme, target).

    ``scheme`` is one of ``"sqlite"`` or ``"sqlalchemy"``; ``target`` is a
    SQLite path (``":memory:"`` for RAM) or the full SQLAlchemy URL.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "sqlite", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            return "sqlite", path if path else ":memory:"

    if "://" in db:
        return "sqlalchemy", db

    return "sqlite", db


# ── Main factory ─────────────────────────────────────────────────────────


def create_connection(
    db: str | None = None,
    *,
    data_dir: str | None = None,
) -> tuple[Any, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Parameters
    ----------
    db:
        ``None``/``"memory"`` for in-memory SQLite, a file path,
        ``sqlite:///path``, or any SQLAlchemy URL.
    data_dir:
        For relative SQLite paths, resolve within this directory.

    Returns
    -------
    tuple[Connection, ConnectionInfo]
    """
    scheme, target = _parse_url(db)

    if scheme == "sqlalchemy":
        conn, info = _create_sqlalchemy(target)
    else:
        if data_dir and target != ":memory:" and not Path(target).is_absolute():
            target = str(Path(data_dir) / target)
        conn, info = _create_sqlite(target)

    logger.debug("connection_created", backend=info.backend, persistent=info.persistent)
    return conn, info


__all__ = [
    "ConnectionInfo",
    "create_connection",
]
