"""SQLAlchemy engine factory and Connection bridge.

Manifesto:
    Server databases (PostgreSQL, MySQL, …) are reached through a
    SQLAlchemy engine so strata never has to know a driver's parameter
    style.  ``SAConnection`` wraps one engine connection to satisfy the
    ``strata.core.protocols.Connection`` protocol.

This module provides:

* ``create_strata_engine``  -- Create a SA engine from a URL.
* ``SAConnection``          -- Wraps a SA ``Connection``; rewrites ``?``
  placeholders into named ``:pN`` parameters for ``text()``.
* ``SACursor``              -- DB-API style view over a SA ``Result``.

Tags:
    strata, sqlalchemy, engine, bridge, connection

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import text
from sqlalchemy.engine import Connection as SAConnectionType
from sqlalchemy.engine import CursorResult, Engine


def create_strata_engine(
    url: str,
    *,
    echo: bool = False,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``postgresql://…``, ``mysql+pymysql://…``, etc.)
    echo:
        If ``True``, SQLAlchemy logs all SQL itself.
    pool_size, max_overflow:
        Connection pool parameters (ignored for SQLite).
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        return _sa_create_engine(url, echo=echo, **kwargs)

    pool_kwargs: dict[str, Any] = {}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        pool_kwargs["max_overflow"] = max_overflow

    return _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)


def rewrite_placeholders(sql: str, parameters: Sequence[Any]) -> tuple[str, dict[str, Any]]:
    """Convert positional ``?`` placeholders into ``:p0, :p1, …`` for ``text()``.

    Question marks inside single-quoted literals are left alone.
    """
    rewritten: list[str] = []
    idx = 0
    in_literal = False
    for ch in sql:
        if ch == "'":
            in_literal = not in_literal
            rewritten.append(ch)
        elif ch == "?" and not in_literal:
            rewritten.append(f":p{idx}")
            idx += 1
        else:
            rewritten.append(ch)
    if idx != len(parameters):
        raise ValueError(f"SQL has {idx} placeholders but {len(parameters)} parameters were given")
    return "".join(rewritten), {f"p{i}": v for i, v in enumerate(parameters)}


class SACursor:
    """DB-API style cursor over a SQLAlchemy ``CursorResult``."""

    def __init__(self, result: CursorResult[Any]) -> None:
        self._result = result

    @property
    def rowcount(self) -> int:
        return self._result.rowcount

    @property
    def lastrowid(self) -> Any:
        try:
            return self._result.lastrowid
        except AttributeError:
            return None

    @property
    def description(self) -> list[tuple[Any, ...]] | None:
        if not self._result.returns_rows:
            return None
        # DB-API 2.0 description is a list of 7-tuples; only the name is used
        return [(k, None, None, None, None, None, None) for k in self._result.keys()]

    def fetchone(self) -> tuple[Any, ...] | None:
        row = self._result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        return [tuple(r) for r in self._result.fetchall()]


class SAConnection:
    """Adapter that makes a SQLAlchemy ``Connection`` look like ``strata.core.protocols.Connection``."""

    def __init__(self, connection: SAConnectionType) -> None:
        self._connection = connection

    @classmethod
    def connect(cls, engine: Engine) -> SAConnection:
        return cls(engine.connect())

    def execute(self, sql: str, params: Sequence[Any] = ()) -> SACursor:
        if params:
            rewritten, mapping = rewrite_placeholders(sql, params)
            result = self._connection.execute(text(rewritten), mapping)
        else:
            result = self._connection.execute(text(sql))
        return SACursor(result)

    def set_autocommit(self, enabled: bool) -> None:
        level = "AUTOCOMMIT" if enabled else self._connection.default_isolation_level
        self._connection = self._connection.execution_options(isolation_level=level)

    def commit(self) -> None:
        self._connection.commit()

    def rollback(self) -> None:
        self._connection.rollback()

    def close(self) -> None:
        self._connection.close()

    @property
    def raw(self) -> SAConnectionType:
        """Access the underlying SA connection."""
        return self._connection
