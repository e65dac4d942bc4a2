"""
Shared pytest fixtures for rowspine tests.

This module provides:
- An in-memory SQLite blog database (category, post, tag, post_tag,
  comment and an unrelated setting table) with a few seeded rows
- A recording connection that keeps every executed statement
- Settings isolated from the environment
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from rowspine.core.settings import RowspineSettings, clear_settings_cache
from rowspine.core.sqlite_conn import SqliteConnection
from rowspine.database import Database

SCHEMA = """
CREATE TABLE category (
    id INTEGER PRIMARY KEY,
    name VARCHAR(100) NOT NULL
);

CREATE TABLE post (
    id INTEGER PRIMARY KEY,
    title VARCHAR(255),
    category_id INTEGER,
    pubdate DATETIME,
    type VARCHAR(20) NOT NULL DEFAULT 'text',
    body_en TEXT,
    body_es TEXT,
    is_published BOOLEAN NOT NULL DEFAULT 0
);

CREATE TABLE tag (
    id INTEGER PRIMARY KEY,
    name VARCHAR(50) NOT NULL
);

CREATE TABLE post_tag (
    id INTEGER PRIMARY KEY,
    post_id INTEGER NOT NULL,
    tag_id INTEGER NOT NULL
);

CREATE TABLE comment (
    id INTEGER PRIMARY KEY,
    post_id INTEGER,
    text TEXT,
    created_at TIMESTAMP
);

CREATE TABLE setting (
    id INTEGER PRIMARY KEY,
    key VARCHAR(50),
    value TEXT
);
"""

SEED = """
INSERT INTO category (id, name) VALUES (1, 'News'), (2, 'Tech');

INSERT INTO post (id, title, category_id, pubdate, type, body_en, body_es, is_published) VALUES
    (1, 'Hello', 1, '2024-05-01 10:30:00', 'text', 'Hello body', 'Hola cuerpo', 1),
    (2, 'Second', 1, '2024-05-02 09:00:00', 'video', NULL, NULL, 0),
    (3, 'Orphan', NULL, NULL, 'text', NULL, NULL, 0);

INSERT INTO tag (id, name) VALUES (1, 'python'), (2, 'sql'), (3, 'unused');

INSERT INTO post_tag (id, post_id, tag_id) VALUES (1, 1, 1), (2, 1, 2), (3, 2, 2);

INSERT INTO comment (id, post_id, text, created_at) VALUES
    (1, 1, 'Nice', '2024-05-02 08:00:00'),
    (2, 1, 'Agreed', '2024-05-02 09:00:00'),
    (3, 2, 'Meh', '2024-05-03 10:00:00');
"""


class RecordingConnection:
    """Connection wrapper that records every statement it executes."""

    backend = "sqlite"

    def __init__(self, inner: SqliteConnection) -> None:
        self.inner = inner
        self.statements: list[tuple[str, list[Any]]] = []

    def execute(self, sql: str, params: Sequence[Any] = ()) -> Any:
        self.statements.append((sql, list(params)))
        return self.inner.execute(sql, params)

    def commit(self) -> None:
        self.inner.commit()

    def rollback(self) -> None:
        self.inner.rollback()

    def close(self) -> None:
        self.inner.close()

    def reset(self) -> None:
        self.statements.clear()

    @property
    def writes(self) -> list[str]:
        return [
            sql for sql, _ in self.statements
            if sql.split(" ", 1)[0] in ("INSERT", "UPDATE", "DELETE")
        ]


def fetch(db: Database, sql: str, *params: Any) -> list[tuple]:
    """Raw query that bypasses the mapper."""
    cursor = db.connection.inner.execute(sql, params)
    try:
        return cursor.fetchall()
    finally:
        cursor.close()


def create_blog_file(path: Path) -> Path:
    """Write the seeded blog schema into a SQLite file."""
    conn = SqliteConnection(str(path))
    conn.executescript(SCHEMA + SEED)
    conn.commit()
    conn.close()
    return path


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep ROWSPINE_* variables of the developer's shell out of the tests."""
    for name in ("DATABASE_URL", "LOCALE", "AUTOCOMMIT", "UPDATE_DELETE_LIMIT", "LOG_LEVEL", "LOG_FORMAT"):
        monkeypatch.delenv(f"ROWSPINE_{name}", raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> RowspineSettings:
    return RowspineSettings(_env_file=None, update_delete_limit=False)


@pytest.fixture
def conn() -> SqliteConnection:
    c = SqliteConnection(":memory:")
    c.executescript(SCHEMA + SEED)
    c.commit()
    yield c
    c.close()


@pytest.fixture
def recorder(conn: SqliteConnection) -> RecordingConnection:
    return RecordingConnection(conn)


@pytest.fixture
def db(recorder: RecordingConnection, settings: RowspineSettings) -> Database:
    """Blog database; ``db.connection`` is the recording connection."""
    return Database(recorder, settings=settings)


@pytest.fixture
def blog_file(tmp_path: Path) -> Path:
    return create_blog_file(tmp_path / "blog.db")
