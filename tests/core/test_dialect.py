"""Tests for ``strata.core.dialect``."""

from __future__ import annotations

import pytest

from strata.core.dialect import (
    AnsiDialect,
    MySQLDialect,
    PostgreSQLDialect,
    SQLiteDialect,
    get_dialect,
    register_dialect,
)


class TestGetDialect:
    @pytest.mark.parametrize(
        ("name", "cls"),
        [
            ("ansi", AnsiDialect),
            ("sqlite", SQLiteDialect),
            ("SQLite", SQLiteDialect),
            ("postgres", PostgreSQLDialect),
            ("postgresql", PostgreSQLDialect),
            ("mariadb", MySQLDialect),
        ],
    )
    def test_lookup(self, name, cls):
        assert isinstance(get_dialect(name), cls)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown dialect"):
            get_dialect("oracle")

    def test_register_custom(self):
        class Custom(AnsiDialect):
            @property
            def name(self) -> str:
                return "custom"

        register_dialect("Custom", Custom())
        assert get_dialect("custom").name == "custom"


class TestIntegrityToggles:
    def test_ansi_has_none(self):
        d = AnsiDialect()
        assert d.disable_integrity() is None
        assert d.enable_integrity() is None
        assert d.supports_alter_constraint

    def test_sqlite(self):
        d = SQLiteDialect()
        assert d.disable_integrity() == "PRAGMA foreign_keys = OFF"
        assert d.enable_integrity() == "PRAGMA foreign_keys = ON"
        assert not d.supports_alter_constraint

    def test_postgres(self):
        d = PostgreSQLDialect()
        assert "replica" in d.disable_integrity()
        assert "origin" in d.enable_integrity()

    def test_mysql(self):
        d = MySQLDialect()
        assert d.disable_integrity() == "SET FOREIGN_KEY_CHECKS = 0"
        assert d.enable_integrity() == "SET FOREIGN_KEY_CHECKS = 1"
