"""Tests for ``strata.core.settings``."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from strata.core.settings import StrataSettings, get_settings


class TestStrataSettings:
    def test_defaults(self, monkeypatch):
        for name in ("STRATA_DATABASE_URL", "STRATA_SHOW_SQL", "STRATA_CACHE_MAX_SIZE"):
            monkeypatch.delenv(name, raising=False)
        s = StrataSettings(_env_file=None)
        assert s.database_url == "sqlite:///data/strata.db"
        assert s.show_sql is False
        assert s.cache_max_size == 1000
        assert s.fk_on_delete == "CASCADE"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("STRATA_SHOW_SQL", "true")
        monkeypatch.setenv("STRATA_CACHE_MAX_SIZE", "5")
        s = StrataSettings(_env_file=None)
        assert s.show_sql is True
        assert s.cache_max_size == 5

    def test_fk_policy_normalized(self):
        s = StrataSettings(_env_file=None, fk_on_delete="set  null", fk_on_update="restrict")
        assert s.fk_on_delete == "SET NULL"
        assert s.fk_on_update == "RESTRICT"

    def test_fk_policy_rejected(self):
        with pytest.raises(ValidationError):
            StrataSettings(_env_file=None, fk_on_delete="EXPLODE")

    def test_cache_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            StrataSettings(_env_file=None, cache_max_size=0)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
