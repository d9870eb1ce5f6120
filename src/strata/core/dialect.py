"""Backend-specific DDL fragments used by schema generation.

Provides a ``Dialect`` protocol and concrete implementations for the
backends strata can create schemas on.  Generated DML is always portable
(``?`` placeholders, rewritten by the SQLAlchemy bridge where needed), so
the only backend differences strata cares about are the statements that
switch referential integrity off and on around a bulk ``DROP`` and
whether ``ALTER TABLE … ADD CONSTRAINT`` is available.

Architecture::

    SchemaGenerator
          │  disable_integrity() / enable_integrity()
          ▼
    ┌──────────┐ ┌────────────────────────┐ ┌──────────────────────┐ ┌──────────┐
    │ ANSI     │ │ SQLite                 │ │ PostgreSQL           │ │ MySQL    │
    │ (none)   │ │ PRAGMA foreign_keys    │ │ session_replication_ │ │ FOREIGN_ │
    │          │ │ no ADD CONSTRAINT      │ │ role                 │ │ KEY_CHECKS│
    └──────────┘ └────────────────────────┘ └──────────────────────┘ └──────────┘

Examples:
    >>> from strata.core.dialect import get_dialect
    >>> get_dialect("sqlite").disable_integrity()
    'PRAGMA foreign_keys = OFF'
    >>> get_dialect("ansi").disable_integrity() is None
    True

Guardrails:
    ❌ DON'T: Hard-code PRAGMA statements in the schema generator
    ✅ DO: Ask the dialect and skip the step when it returns None

Tags:
    dialect, ddl, referential-integrity, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """DDL dialect contract."""

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    @property
    def supports_alter_constraint(self) -> bool:
        """Whether ``ALTER TABLE … ADD CONSTRAINT … FOREIGN KEY`` is accepted."""
        ...

    def disable_integrity(self) -> str | None:
        """Statement switching foreign-key enforcement off, or ``None``."""
        ...

    def enable_integrity(self) -> str | None:
        """Statement switching foreign-key enforcement back on, or ``None``."""
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class AnsiDialect:
    """Plain ANSI DDL, no integrity toggle."""

    @property
    def name(self) -> str:
        return "ansi"

    @property
    def supports_alter_constraint(self) -> bool:
        return True

    def disable_integrity(self) -> str | None:
        return None

    def enable_integrity(self) -> str | None:
        return None


class SQLiteDialect:
    """SQLite: ``PRAGMA foreign_keys``; constraints can only be declared inline."""

    @property
    def name(self) -> str:
        return "sqlite"

    @property
    def supports_alter_constraint(self) -> bool:
        return False

    def disable_integrity(self) -> str | None:
        return "PRAGMA foreign_keys = OFF"

    def enable_integrity(self) -> str | None:
        return "PRAGMA foreign_keys = ON"


class PostgreSQLDialect:
    """PostgreSQL: triggers (and so FK checks) suspended via replication role."""

    @property
    def name(self) -> str:
        return "postgresql"

    @property
    def supports_alter_constraint(self) -> bool:
        return True

    def disable_integrity(self) -> str | None:
        return "SET session_replication_role = replica"

    def enable_integrity(self) -> str | None:
        return "SET session_replication_role = origin"


class MySQLDialect:
    """MySQL / MariaDB: ``FOREIGN_KEY_CHECKS`` session variable."""

    @property
    def name(self) -> str:
        return "mysql"

    @property
    def supports_alter_constraint(self) -> bool:
        return True

    def disable_integrity(self) -> str | None:
        return "SET FOREIGN_KEY_CHECKS = 0"

    def enable_integrity(self) -> str | None:
        return "SET FOREIGN_KEY_CHECKS = 1"


# =========================================================================
# Registry / Factory
# =========================================================================

_DIALECTS: dict[str, Dialect] = {
    "ansi": AnsiDialect(),
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),
    "mysql": MySQLDialect(),
    "mariadb": MySQLDialect(),
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres', 'mariadb'})}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (third-party backends, test doubles)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "AnsiDialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "get_dialect",
    "register_dialect",
]
