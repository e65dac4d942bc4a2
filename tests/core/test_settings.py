"""Tests for RowspineSettings and the settings cache."""

from __future__ import annotations

import pydantic
import pytest

from rowspine.core.settings import RowspineSettings, clear_settings_cache, get_settings


class TestDefaults:
    def test_defaults(self) -> None:
        s = RowspineSettings(_env_file=None)
        assert s.database_url == "memory"
        assert s.autocommit is True
        assert s.update_delete_limit is None
        assert s.locale is None
        assert s.log_level == "INFO"
        assert s.log_format == "console"


class TestEnvironment:
    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ROWSPINE_LOCALE", "en")
        monkeypatch.setenv("ROWSPINE_UPDATE_DELETE_LIMIT", "true")
        monkeypatch.setenv("ROWSPINE_AUTOCOMMIT", "false")
        s = RowspineSettings(_env_file=None)
        assert s.locale == "en"
        assert s.update_delete_limit is True
        assert s.autocommit is False

    def test_empty_locale_is_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ROWSPINE_LOCALE", "")
        assert RowspineSettings(_env_file=None).locale is None

    def test_invalid_log_format(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            RowspineSettings(_env_file=None, log_format="xml")


class TestCache:
    def test_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_force_reload(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_settings()
        monkeypatch.setenv("ROWSPINE_LOCALE", "es")
        reloaded = get_settings(_force_reload=True)
        assert reloaded is not first
        assert reloaded.locale == "es"

    def test_clear(self) -> None:
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first
