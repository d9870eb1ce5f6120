"""SQLite connection adapter.

Wraps a raw :class:`sqlite3.Connection` to satisfy the
:class:`~strata.core.protocols.Connection` protocol.

Every ``execute`` runs on a fresh cursor, so a lazy relationship resolved
while the caller is still iterating an earlier result never clobbers that
result set.

Usage::

    from strata.core.sqlite_conn import SqliteConnection

    conn = SqliteConnection("library.db")
    conn.set_autocommit(False)
    conn.execute("INSERT INTO authors (name) VALUES (?)", ("Le Guin",))
    conn.commit()
    conn.close()
"""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from typing import Any


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol."""

    def __init__(self, path: str = ":memory:", *, row_factory: Any = sqlite3.Row) -> None:
        # isolation_level=None is sqlite3's auto-commit mode
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = row_factory
        self._path = path

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self._conn.execute(sql, tuple(params))

    def set_autocommit(self, enabled: bool) -> None:
        self._conn.isolation_level = None if enabled else "DEFERRED"

    @property
    def autocommit(self) -> bool:
        return self._conn.isolation_level is None

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    # -- convenience -------------------------------------------------------

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteConnection({self._path!r})"
