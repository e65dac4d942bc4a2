"""Tests for Database: tables, config, dialect detection and execution."""

from __future__ import annotations

from pathlib import Path

import pytest

from rowspine.core.dialect import PostgreSQLDialect, SQLiteDialect
from rowspine.core.errors import InvalidConfigError, QueryError, UnknownTableError
from rowspine.core.settings import RowspineSettings
from rowspine.core.sqlite_conn import SqliteConnection
from rowspine.database import Database
from rowspine.identity import IdentityMap
from rowspine.schema import SqliteScheme, StaticScheme
from rowspine.table import Table

from tests.conftest import RecordingConnection, fetch


class TestDatabaseTables:
    def test_table_names(self, db: Database) -> None:
        assert db.tables == ["category", "comment", "post", "post_tag", "setting", "tag"]

    def test_table_is_built_once(self, db: Database) -> None:
        post = db["post"]
        assert isinstance(post, Table)
        assert db.table("post") is post
        assert list(post.fields)[:3] == ["id", "title", "category_id"]

    def test_unknown_table(self, db: Database) -> None:
        with pytest.raises(UnknownTableError):
            db["nope"]

    def test_contains_and_iter(self, db: Database) -> None:
        assert "post" in db
        assert "nope" not in db
        assert 1 not in db
        assert [t.name for t in db] == db.tables

    def test_reload_schema(self, db: Database) -> None:
        before = db["post"]
        fetch(db, "CREATE TABLE author (id INTEGER PRIMARY KEY, name TEXT)")
        assert "author" not in db
        db.reload_schema()
        assert "author" in db
        assert db["post"] is not before

    def test_static_scheme(self, recorder: RecordingConnection, settings: RowspineSettings) -> None:
        scheme = StaticScheme({"post": [{"name": "id", "type": "integer"}, {"name": "title", "type": "varchar"}]})
        db = Database(recorder, scheme, settings=settings)
        assert db.tables == ["post"]
        assert list(db["post"].fields) == ["id", "title"]
        assert db["post"][1]["title"] == "Hello"


class TestDatabaseConfig:
    def test_locale_from_settings(self, recorder: RecordingConnection) -> None:
        db = Database(recorder, settings=RowspineSettings(_env_file=None, locale="es", update_delete_limit=False))
        assert db.get_config(Database.CONFIG_LOCALE) == "es"
        assert db["post"][1]["body"] == "Hola cuerpo"

    def test_set_config(self, db: Database) -> None:
        assert db.get_config("locale") is None
        db.set_config("locale", "en")
        assert db.get_config("locale") == "en"
        db.set_config("locale", None)
        assert db.get_config("locale") is None

    def test_invalid_locale(self, db: Database) -> None:
        with pytest.raises(InvalidConfigError):
            db.set_config(Database.CONFIG_LOCALE, 42)

    def test_custom_collaborators(self, recorder: RecordingConnection, settings: RowspineSettings) -> None:
        identity_map = IdentityMap()
        dialect = PostgreSQLDialect()
        db = Database(recorder, SqliteScheme(recorder), dialect=dialect, identity_map=identity_map, settings=settings)
        assert db.dialect is dialect
        assert db.identity_map is identity_map


class TestDialectDetection:
    def test_setting_wins(self, recorder: RecordingConnection) -> None:
        db = Database(recorder, settings=RowspineSettings(_env_file=None, update_delete_limit=True))
        assert isinstance(db.dialect, SQLiteDialect)
        assert db.dialect.supports_update_delete_limit is True
        assert not any("compile_options" in sql for sql, _ in recorder.statements)

    def test_reads_compile_options(self, recorder: RecordingConnection) -> None:
        db = Database(recorder, settings=RowspineSettings(_env_file=None))
        assert db.dialect.name == "sqlite"
        assert any(sql == "PRAGMA compile_options" for sql, _ in recorder.statements)

    def test_postgres_backend(self, recorder: RecordingConnection, settings: RowspineSettings) -> None:
        recorder.backend = "postgresql"
        db = Database(recorder, SqliteScheme(recorder), settings=settings)
        assert isinstance(db.dialect, PostgreSQLDialect)


class TestExecute:
    def test_yields_cursor(self, db: Database) -> None:
        with db.execute("SELECT name FROM tag WHERE id = ?", [1]) as cursor:
            assert cursor.fetchall() == [("python",)]

    def test_driver_error(self, db: Database) -> None:
        with pytest.raises(QueryError) as info:
            with db.execute("SELECT * FROM nope"):
                pass
        assert info.value.context.sql == "SELECT * FROM nope"
        assert "nope" in info.value.message

    def test_autocommit(self, tmp_path: Path, settings: RowspineSettings) -> None:
        path = tmp_path / "auto.db"
        db = Database(SqliteConnection(str(path)), settings=settings)
        with db.execute("CREATE TABLE t (id INTEGER PRIMARY KEY)"):
            pass
        with db.execute("INSERT INTO t (id) VALUES (1)"):
            pass
        other = SqliteConnection(str(path))
        cursor = other.execute("SELECT id FROM t")
        assert cursor.fetchall() == [(1,)]
        cursor.close()
        other.close()
        db.close()

    def test_repr(self, db: Database) -> None:
        assert repr(db) == "Database(backend='sqlite', dialect='sqlite')"


class TestConnect:
    def test_file(self, blog_file: Path, settings: RowspineSettings) -> None:
        db = Database.connect(str(blog_file), settings=settings)
        assert db.info.persistent is True
        assert db["post"].count() == 3
        db.close()

    def test_memory_from_settings(self, settings: RowspineSettings) -> None:
        db = Database.connect(settings=settings)
        assert db.tables == []
        db.close()

    def test_sqlalchemy_url(self, blog_file: Path, settings: RowspineSettings) -> None:
        db = Database.connect(f"sqlite+pysqlite:///{blog_file}", settings=settings)
        assert db.backend == "sqlite"
        assert "post_tag" in db.tables

        post = db["post"][1]
        assert post["pubdate"].year == 2024
        assert post["tag"].column("name") == ["python", "sql"]

        tag = db["tag"].create({"name": "orm"}).save()
        assert tag.id == 4
        post.relate(tag)
        assert fetch_file(blog_file, "SELECT tag_id FROM post_tag WHERE post_id = 1 ORDER BY tag_id") == [(1,), (2,), (4,)]
        assert db["tag"].update({"name": "ORM"}).where("id = ?", 4).run() == 1
        db.close()


def fetch_file(path: Path, sql: str) -> list[tuple]:
    conn = SqliteConnection(str(path))
    cursor = conn.execute(sql)
    try:
        return cursor.fetchall()
    finally:
        cursor.close()
        conn.close()
