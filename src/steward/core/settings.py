"""Runtime settings for services that run schema-steward at startup.

The migration engine itself reads a single flag (``skip_migrations``);
everything else here is what the bootstrap needs to reach the database
and configure logging. The settings object is handed to every migration
body unchanged, so environment-specific migrations can read it.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not runtime
    - **Environment-driven:** ``STEWARD_*`` env vars and ``.env`` files
    - **Optional YAML file:** ``load_settings("config.yml")``; env vars win
    - **Sensible defaults:** A local SQLite database out of the box

Examples:
    >>> from steward.core.settings import StewardSettings
    >>> s = StewardSettings(database_url="sqlite:///:memory:")
    >>> s.skip_migrations
    False

Tags:
    settings, configuration, pydantic, environment, yaml, schema-steward

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from steward.core.errors import InvalidConfigError

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class StewardSettings(BaseSettings):
    """Settings consumed by the bootstrap and passed through to migrations.

    Fields
    ──────
    database_url     : SQLAlchemy URL of the database to migrate
    skip_migrations  : Skip the whole migration pass (sync included)
    db_max_conn      : Pool size for non-SQLite databases
    echo_sql         : Log every SQL statement (SQLAlchemy ``echo``)
    debug            : Development mode (console logs, SQL echo)
    log_level        : structlog log level
    json_logs        : Force JSON (True) / console (False); None = auto
    service_name     : ``service.name`` field on every log line
    """

    model_config = SettingsConfigDict(
        env_prefix="STEWARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///steward.db",
        description="SQLAlchemy database URL",
    )
    skip_migrations: bool = False
    db_max_conn: int = Field(default=2, ge=1)
    echo_sql: bool = False

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool | None = None
    service_name: str = "steward"

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return level

    @property
    def dialect(self) -> str:
        """Backend name from the URL scheme (``sqlite``, ``postgresql``, ...)."""
        return self.database_url.split(":", 1)[0].split("+", 1)[0]

    def is_dev(self) -> bool:
        return self.debug


class _YamlFileSource(PydanticBaseSettingsSource):
    """Settings source reading a flat or ``steward:``-nested YAML mapping."""

    def __init__(self, settings_cls: type[BaseSettings], data: dict[str, Any]):
        super().__init__(settings_cls)
        self._data = data

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return {k: v for k, v in self._data.items() if k in self.settings_cls.model_fields}


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise InvalidConfigError("config_path", str(path), f"Cannot read config file {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise InvalidConfigError("config_path", str(path), f"Config file {path} must contain a mapping")
    if isinstance(raw.get("steward"), dict):
        raw = raw["steward"]
    return raw


def load_settings(config_path: str | Path | None = None, **overrides: Any) -> StewardSettings:
    """Build settings from defaults, an optional YAML file, env vars and overrides.

    Precedence, lowest to highest: defaults, YAML file, ``.env`` file,
    environment variables, keyword ``overrides``.
    """
    if config_path is None:
        return StewardSettings(**overrides)

    data = _read_yaml(Path(config_path))

    class _FileBackedSettings(StewardSettings):
        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource,
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            return (
                init_settings,
                env_settings,
                dotenv_settings,
                _YamlFileSource(settings_cls, data),
                file_secret_settings,
            )

    return _FileBackedSettings(**overrides)


__all__ = ["StewardSettings", "load_settings"]
