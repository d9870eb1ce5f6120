"""Engine settings for strata.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Connection URL, SQL echo, cache bound and schema-generation policies
    are read once from ``STRATA_*`` environment variables (or a ``.env``
    file) and validated at startup, not at first use.

Features:
    - **StrataSettings:** database URL, SQL echo, cache bound, DDL options
    - **env_prefix:** ``STRATA_`` (e.g. ``STRATA_SHOW_SQL=true``)
    - **.env file support:** Automatic loading via pydantic-settings
    - **get_settings():** Cached process-wide instance

Examples:
    >>> from strata.core.settings import StrataSettings
    >>> settings = StrataSettings(database_url="sqlite:///library.db", show_sql=True)
    >>> settings.cache_max_size
    1000

Tags:
    settings, configuration, pydantic, environment, strata

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_FK_POLICIES = ("CASCADE", "RESTRICT", "SET NULL", "SET DEFAULT", "NO ACTION")


class StrataSettings(BaseSettings):
    """strata configuration.

    Fields
    ──────
    database_url    : Connection URL or SQLite file path
    show_sql        : Echo every generated statement through the logger
    cache_max_size  : Per-transaction entity cache bound (reset on overflow)
    drop_if_exists  : Drop registered tables before creating them
    print_ddl       : Log DDL statements as they are executed
    fk_on_delete    : ON DELETE policy for generated foreign keys
    fk_on_update    : ON UPDATE policy for generated foreign keys
    log_level       : Structlog log level
    log_format      : ``json`` or ``console``
    """

    model_config = SettingsConfigDict(
        env_prefix="STRATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///data/strata.db")
    show_sql: bool = Field(default=False)

    # ── Cache ────────────────────────────────────────────────────
    cache_max_size: int = Field(default=1000, gt=0)

    # ── Schema generation ────────────────────────────────────────
    drop_if_exists: bool = Field(default=True)
    print_ddl: bool = Field(default=True)
    fk_on_delete: str = Field(default="CASCADE")
    fk_on_update: str = Field(default="CASCADE")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("fk_on_delete", "fk_on_update")
    @classmethod
    def _check_policy(cls, value: str) -> str:
        policy = " ".join(value.upper().split())
        if policy not in _FK_POLICIES:
            raise ValueError(f"Unsupported foreign key policy {value!r}; expected one of {_FK_POLICIES}")
        return policy


@lru_cache(maxsize=1)
def get_settings() -> StrataSettings:
    """Return the cached process-wide settings."""
    return StrataSettings()


__all__ = [
    "StrataSettings",
    "get_settings",
]
