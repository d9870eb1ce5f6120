"""
Canonical protocol definitions for strata.

The engine never imports a database driver directly. Everything it needs
from the outside world is described here as a structural protocol:
a DB-API style :class:`Cursor`, a :class:`Connection` that can leave
auto-commit mode, and the two-way :class:`AttributeConverter` used for
columns whose stored form differs from their domain form.

Architecture:
    ::

        protocols.py
        ├── Cursor              : fetchone/fetchall/rowcount/lastrowid/description
        ├── Connection          : execute/set_autocommit/commit/rollback/close
        ├── ConnectionFactory   : () -> Connection
        └── AttributeConverter  : to_stored(value) / to_domain(stored)

    Implementations:
        strata.core.sqlite_conn.SqliteConnection  (sqlite3)
        strata.core.bridge.SAConnection           (SQLAlchemy engine)

Guardrails:
    ❌ DON'T: Import sqlite3 or SQLAlchemy in repository code
    ✅ DO: Depend on Connection and let the factory pick the adapter

Tags:
    protocol, connection, cursor, converter, strata, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

S = TypeVar("S")
D = TypeVar("D")


@runtime_checkable
class Cursor(Protocol):
    """Result of one executed statement.

    ``rowcount`` is the update count for DML; ``description`` follows
    DB-API 2.0 (sequence of tuples whose first item is the column label).
    """

    @property
    def rowcount(self) -> int: ...

    @property
    def lastrowid(self) -> Any: ...

    @property
    def description(self) -> Sequence[Sequence[Any]] | None: ...

    def fetchone(self) -> Any: ...

    def fetchall(self) -> list[Any]: ...


@runtime_checkable
class Connection(Protocol):
    """
    Minimal synchronous connection used by the engine.

    ::

        ┌────────────────────────────────────────────────────────┐
        │ execute(sql, params)     → Cursor                      │
        │ set_autocommit(enabled)  → leave/enter auto-commit     │
        │ commit()                 → commit transaction          │
        │ rollback()               → rollback transaction        │
        │ close()                  → release the connection      │
        └────────────────────────────────────────────────────────┘

    Parameters are always positional and bound through ``?`` placeholders.
    """

    def execute(self, sql: str, params: Sequence[Any] = ()) -> Cursor: ...

    def set_autocommit(self, enabled: bool) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


ConnectionFactory = Callable[[], Connection]


@runtime_checkable
class AttributeConverter(Protocol[S, D]):
    """Two-way mapping between a column's stored form and its domain form."""

    def to_stored(self, value: D | None) -> S | None: ...

    def to_domain(self, stored: S | None) -> D | None: ...


__all__ = [
    "Cursor",
    "Connection",
    "ConnectionFactory",
    "AttributeConverter",
]
