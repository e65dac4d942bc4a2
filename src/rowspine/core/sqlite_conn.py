"""SQLite connection adapter.

Wraps a raw :class:`sqlite3.Connection` to satisfy the
:class:`~rowspine.core.protocols.Connection` protocol.

Every ``execute`` opens a fresh cursor; the caller owns it and
closes it when done.

Usage::

    from rowspine.core.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY)")
    cursor = conn.execute("INSERT INTO t DEFAULT VALUES")
    cursor.lastrowid               # 1
    conn.commit()
    conn.close()
"""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from typing import Any


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol."""

    backend = "sqlite"

    def __init__(self, path: str = ":memory:", *, timeout: float = 5.0) -> None:
        self._conn = sqlite3.connect(path, timeout=timeout, check_same_thread=False)
        self._conn.execute("PRAGMA foreign_keys = ON")

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        cursor = self._conn.cursor()
        try:
            cursor.execute(sql, tuple(params))
        except Exception:
            cursor.close()
            raise
        return cursor

    def executescript(self, script: str) -> None:
        self._conn.executescript(script)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    # -- convenience -------------------------------------------------------

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteConnection({self._conn!r})"
