"""Tests for the connection factory and the connection adapters."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

from rowspine.core.connection import ConnectionInfo, _parse_url, create_connection
from rowspine.core.errors import DatabaseConnectionError
from rowspine.core.protocols import Connection
from rowspine.core.session import SAConnectionBridge, _rewrite_placeholders, create_rowspine_engine
from rowspine.core.sqlite_conn import SqliteConnection


class TestParseUrl:
    @pytest.mark.parametrize("url", [None, "", "memory", ":memory:", "sqlite://"])
    def test_memory(self, url) -> None:
        assert _parse_url(url) == ("sqlite", ":memory:")

    def test_sqlite_url(self) -> None:
        assert _parse_url("sqlite:///data/blog.db") == ("sqlite", "data/blog.db")

    def test_bare_path(self) -> None:
        assert _parse_url("./blog.db") == ("sqlite", "./blog.db")

    def test_sqlalchemy_url(self) -> None:
        url = "postgresql://user:pw@localhost/blog"
        assert _parse_url(url) == ("sqlalchemy", url)


class TestCreateConnection:
    def test_memory(self) -> None:
        conn, info = create_connection("memory")
        try:
            assert isinstance(conn, SqliteConnection)
            assert info.backend == "sqlite"
            assert info.persistent is False
        finally:
            conn.close()

    def test_file_in_data_dir(self, tmp_path: Path) -> None:
        conn, info = create_connection("nested/blog.db", data_dir=str(tmp_path))
        try:
            assert info.persistent is True
            assert info.resolved_path == str((tmp_path / "nested" / "blog.db").resolve())
            assert Path(info.resolved_path).exists()
        finally:
            conn.close()

    def test_sqlalchemy_url(self) -> None:
        conn, info = create_connection("sqlite+pysqlite:///:memory:")
        try:
            assert isinstance(conn, SAConnectionBridge)
            assert info.backend == "sqlite"
        finally:
            conn.close()

    def test_unreachable_backend(self) -> None:
        with pytest.raises(DatabaseConnectionError):
            create_connection("nosuchdriver://localhost/db")

    def test_info_repr(self) -> None:
        info = ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")
        assert repr(info) == "ConnectionInfo(backend='sqlite', persistent=False, url=':memory:')"
        assert info.is_sqlite


class TestSqliteConnection:
    def test_protocol(self) -> None:
        conn = SqliteConnection()
        try:
            assert isinstance(conn, Connection)
        finally:
            conn.close()

    def test_execute_returns_own_cursor(self) -> None:
        conn = SqliteConnection()
        try:
            conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
            cursor = conn.execute("INSERT INTO t (name) VALUES (?)", ["a"])
            assert cursor.lastrowid == 1
            cursor.close()
            conn.commit()
            cursor = conn.execute("SELECT name FROM t")
            assert cursor.fetchall() == [("a",)]
        finally:
            conn.close()

    def test_foreign_keys_enabled(self) -> None:
        conn = SqliteConnection()
        try:
            assert conn.execute("PRAGMA foreign_keys").fetchone() == (1,)
        finally:
            conn.close()

    def test_cursor_closed_when_statement_fails(self, monkeypatch: pytest.MonkeyPatch) -> None:
        conn = SqliteConnection()
        opened: list[_FailingCursor] = []

        class _Raw:
            def cursor(self) -> _FailingCursor:
                opened.append(_FailingCursor())
                return opened[-1]

        real = conn.raw
        monkeypatch.setattr(conn, "_conn", _Raw())
        try:
            with pytest.raises(sqlite3.OperationalError):
                conn.execute("SELECT * FROM nope")
            assert opened[0].closed is True
        finally:
            real.close()


class TestSAConnectionBridge:
    @pytest.fixture
    def bridge(self) -> SAConnectionBridge:
        engine = create_rowspine_engine("sqlite://")
        bridge = SAConnectionBridge(Session(bind=engine), backend="sqlite")
        yield bridge
        bridge.close()

    def test_rewrite_placeholders(self) -> None:
        assert _rewrite_placeholders("a = ? AND b IN (?, ?)", "?") == (
            "a = :p0 AND b IN (:p1, :p2)",
            3,
        )

    def test_execute_with_positional_params(self, bridge: SAConnectionBridge) -> None:
        bridge.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        cursor = bridge.execute("INSERT INTO t (name) VALUES (?)", ["a"])
        assert cursor.lastrowid == 1
        assert cursor.rowcount == 1
        cursor = bridge.execute("SELECT id, name FROM t WHERE name = ?", ["a"])
        assert [d[0] for d in cursor.description] == ["id", "name"]
        assert cursor.fetchall() == [(1, "a")]

    def test_description_none_without_rows(self, bridge: SAConnectionBridge) -> None:
        cursor = bridge.execute("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        assert cursor.description is None

    def test_markers_inside_literals_are_kept(self) -> None:
        assert _rewrite_placeholders("SELECT 'x' LIKE '%sql%' AND 1 = %s", "%s") == (
            "SELECT 'x' LIKE '%sql%' AND 1 = :p0",
            1,
        )
        assert _rewrite_placeholders("title = 'What?' AND \"a?b\" = ?", "?") == (
            "title = 'What?' AND \"a?b\" = :p0",
            1,
        )

    def test_percent_placeholder_with_like_literal(self) -> None:
        engine = create_rowspine_engine("sqlite://")
        bridge = SAConnectionBridge(Session(bind=engine), backend="postgresql", placeholder="%s")
        try:
            cursor = bridge.execute("SELECT 'mysql' LIKE '%sql%' AND 1 = %s", [1])
            assert cursor.fetchall() == [(1,)]
        finally:
            bridge.close()

    def test_param_count_mismatch(self, bridge: SAConnectionBridge) -> None:
        with pytest.raises(ValueError, match="2 placeholders"):
            bridge.execute("SELECT ?, ?", [1])

    def test_protocol(self, bridge: SAConnectionBridge) -> None:
        assert isinstance(bridge, Connection)


class _FailingCursor:
    closed = False

    def execute(self, sql: str, params: tuple) -> None:
        raise sqlite3.OperationalError("no such table: nope")

    def close(self) -> None:
        self.closed = True
