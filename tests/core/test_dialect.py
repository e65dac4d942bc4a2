"""Tests for the Dialect abstraction layer."""

from __future__ import annotations

import pytest

from rowspine.core.dialect import (
    Dialect,
    MySQLDialect,
    PostgreSQLDialect,
    SQLiteDialect,
    get_dialect,
    register_dialect,
    split_placeholders,
)


@pytest.fixture(params=["sqlite", "postgresql", "mysql"])
def dialect(request: pytest.FixtureRequest) -> Dialect:
    """Parametric fixture: run each test against every dialect."""
    return get_dialect(request.param)


class TestProtocol:
    def test_is_dialect(self, dialect: Dialect) -> None:
        assert isinstance(dialect, Dialect)

    def test_placeholders_count(self, dialect: Dialect) -> None:
        assert dialect.placeholders(3).count(dialect.placeholder(0)) == 3

    def test_quote_wraps_identifier(self, dialect: Dialect) -> None:
        quoted = dialect.quote("we'ird")
        assert "we'ird" in quoted
        assert quoted[0] == quoted[-1]


class TestSQLite:
    def test_placeholders(self) -> None:
        d = SQLiteDialect()
        assert d.placeholder(0) == "?"
        assert d.placeholders(2) == "?, ?"

    def test_quote(self) -> None:
        assert SQLiteDialect().quote('a"b') == '"a""b"'

    def test_update_delete_limit_is_opt_in(self) -> None:
        assert SQLiteDialect().supports_update_delete_limit is False
        assert SQLiteDialect(update_delete_limit=True).supports_update_delete_limit is True

    def test_no_limit_and_identity(self) -> None:
        d = SQLiteDialect()
        assert d.no_limit == "-1"
        assert d.returning("id") is None
        assert d.default_values() == "DEFAULT VALUES"


class TestPostgreSQL:
    def test_placeholders(self) -> None:
        assert PostgreSQLDialect().placeholders(2) == "%s, %s"

    def test_returning(self) -> None:
        assert PostgreSQLDialect().returning("id") == 'RETURNING "id"'

    def test_no_update_delete_limit(self) -> None:
        d = PostgreSQLDialect()
        assert d.supports_update_delete_limit is False
        assert d.no_limit is None


class TestMySQL:
    def test_backticks(self) -> None:
        assert MySQLDialect().quote("order") == "`order`"

    def test_limits(self) -> None:
        d = MySQLDialect()
        assert d.supports_update_delete_limit is True
        assert d.no_limit == "18446744073709551615"
        assert d.default_values() == "() VALUES ()"


class TestRegistry:
    @pytest.mark.parametrize(
        ("name", "cls"),
        [
            ("sqlite", SQLiteDialect),
            ("SQLite", SQLiteDialect),
            ("postgres", PostgreSQLDialect),
            ("mariadb", MySQLDialect),
        ],
    )
    def test_lookup(self, name: str, cls: type) -> None:
        assert isinstance(get_dialect(name), cls)

    def test_options_forwarded(self) -> None:
        assert get_dialect("sqlite", update_delete_limit=True).supports_update_delete_limit

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown dialect"):
            get_dialect("oracle")

    def test_register(self) -> None:
        class DuckDialect(SQLiteDialect):
            @property
            def name(self) -> str:
                return "duck"

        register_dialect("duck", DuckDialect)
        assert get_dialect("duck").name == "duck"


class TestSplitPlaceholders:
    def test_plain(self) -> None:
        assert split_placeholders("a = ? AND b = ?", "?") == ["a = ", " AND b = ", ""]

    @pytest.mark.parametrize(
        ("sql", "marker", "expected"),
        [
            ("title = 'What?'", "?", ["title = 'What?'"]),
            ("title = 'It''s ?' AND id = ?", "?", ["title = 'It''s ?' AND id = ", ""]),
            ('"odd?name" = ?', "?", ['"odd?name" = ', ""]),
            ("name LIKE '%sql%' AND id = %s", "%s", ["name LIKE '%sql%' AND id = ", ""]),
        ],
    )
    def test_quoted_text_is_skipped(self, sql: str, marker: str, expected: list[str]) -> None:
        assert split_placeholders(sql, marker) == expected

    def test_unterminated_quote_is_plain_text(self) -> None:
        assert split_placeholders("a = 'x ?", "?") == ["a = 'x ", ""]
