"""SQLAlchemy engine factory and Connection bridge.

Lets the query builder run on any backend SQLAlchemy can reach
(PostgreSQL, MySQL, ...) while keeping the library's narrow
:class:`~rowspine.core.protocols.Connection` contract.

This module provides:

* ``create_rowspine_engine`` -- Create a SA engine from a URL.
* ``SAConnectionBridge``     -- Wraps a SA ``Session`` to satisfy the
  ``Connection`` protocol. Positional placeholders emitted by the dialect
  are rewritten into SA named parameters.

Tags:
    rowspine, sqlalchemy, session, engine, bridge, connection
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event, text
from sqlalchemy.engine import CursorResult, Engine
from sqlalchemy.orm import Session

from rowspine.core.dialect import split_placeholders


def create_rowspine_engine(url: str, *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql://…``, etc.)
    echo:
        If ``True``, log all SQL to stdout.
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = _sa_create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return _sa_create_engine(url, echo=echo, **kwargs)


def _rewrite_placeholders(sql: str, placeholder: str) -> tuple[str, int]:
    """Replace each positional ``placeholder`` token with ``:pN``.

    Tokens inside quoted literals (``LIKE '%sql%'``) are left alone.
    """
    parts = split_placeholders(sql, placeholder)
    rewritten = [parts[0]]
    for index, part in enumerate(parts[1:]):
        rewritten.append(f":p{index}")
        rewritten.append(part)
    return "".join(rewritten), len(parts) - 1


class _ResultCursor:
    """DB-API flavoured view over a SQLAlchemy ``CursorResult``."""

    def __init__(self, result: CursorResult) -> None:
        self._result = result

    @property
    def description(self) -> list[tuple[Any, ...]] | None:
        if not self._result.returns_rows:
            return None
        return [(k, None, None, None, None, None, None) for k in self._result.keys()]

    @property
    def rowcount(self) -> int:
        return self._result.rowcount

    @property
    def lastrowid(self) -> Any:
        return self._result.lastrowid

    def fetchone(self) -> tuple[Any, ...] | None:
        row = self._result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        return [tuple(r) for r in self._result.fetchall()]

    def close(self) -> None:
        self._result.close()


class SAConnectionBridge:
    """Adapter that makes a SQLAlchemy ``Session`` look like ``Connection``.

    ``placeholder`` is the token the active dialect emits (``?`` or
    ``%s``); each occurrence binds the next positional parameter.
    """

    def __init__(self, session: Session, *, backend: str, placeholder: str = "?") -> None:
        self._session = session
        self.backend = backend
        self._placeholder = placeholder

    def execute(self, sql: str, params: Sequence[Any] = ()) -> _ResultCursor:
        rewritten, count = _rewrite_placeholders(sql, self._placeholder)
        mapping = {f"p{i}": v for i, v in enumerate(params)}
        if count != len(mapping):
            raise ValueError(
                f"Statement has {count} placeholders but {len(mapping)} parameters were given"
            )
        result = self._session.execute(text(rewritten), mapping)
        return _ResultCursor(result)  # type: ignore[arg-type]

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    def close(self) -> None:
        self._session.close()

    @property
    def session(self) -> Session:
        """Access the underlying SA session."""
        return self._session

    @property
    def engine(self) -> Engine:
        return self._session.get_bind()  # type: ignore[return-value]


__all__ = [
    "create_rowspine_engine",
    "SAConnectionBridge",
]
