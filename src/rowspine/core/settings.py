"""
Centralized settings for rowspine.

:class:`RowspineSettings` is read from ``ROWSPINE_*`` environment
variables and ``.env`` files through pydantic-settings, validated once,
and cached by :func:`get_settings`.

Examples:
    >>> import os
    >>> os.environ["ROWSPINE_LOCALE"] = "en"
    >>> get_settings(_force_reload=True).locale
    'en'

Tags:
    settings, configuration, pydantic, environment, rowspine
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RowspineSettings(BaseSettings):
    """Rowspine configuration.

    Fields
    ──────
    database_url         : URL or path handed to ``create_connection``
    locale               : Suffix for localized fields (``title`` → ``title_en``)
    autocommit           : Commit after every insert/update/delete
    update_delete_limit  : Force LIMIT/OFFSET support on UPDATE/DELETE
                           (``None`` detects it from the database)
    log_level            : structlog level
    log_format           : ``json`` or ``console``
    """

    model_config = SettingsConfigDict(
        env_prefix="ROWSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="memory")
    autocommit: bool = Field(default=True)
    update_delete_limit: bool | None = Field(default=None)

    # ── Rows ─────────────────────────────────────────────────────
    locale: str | None = Field(default=None, description="Suffix used to resolve localized fields")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("locale")
    @classmethod
    def _empty_locale_is_none(cls, value: str | None) -> str | None:
        return value or None

    @field_validator("log_format")
    @classmethod
    def _known_log_format(cls, value: str) -> str:
        if value not in ("json", "console"):
            raise ValueError(f"log_format must be 'json' or 'console', got {value!r}")
        return value


_settings_cache: dict[str, RowspineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> RowspineSettings:
    """Load, validate, and cache a :class:`RowspineSettings` instance."""
    if _force_reload or "default" not in _settings_cache:
        _settings_cache["default"] = RowspineSettings()
    return _settings_cache["default"]


def clear_settings_cache() -> None:
    """Forget the cached settings (tests and reconfiguration)."""
    _settings_cache.clear()


__all__ = [
    "RowspineSettings",
    "get_settings",
    "clear_settings_cache",
]
