"""Connection factory: create database connections from URL strings.

This is the **single entry point** for creating database connections
throughout strata.  The transaction manager, the schema generator and
the CLI all go through ``create_connection()`` / ``connection_factory()``
rather than importing backend-specific classes directly.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/library.db``                        SQLite file
``postgresql``      ``postgresql://user:pw@host:port/db``        SQLAlchemy
``mysql``           ``mysql+pymysql://user:pw@host/db``          SQLAlchemy
==================  ==========================================  ============

Usage
-----
::

    from strata.core.connection import create_connection, connection_factory

    conn, info = create_connection("sqlite:///library.db")
    print(info)
    # ConnectionInfo(backend='sqlite', persistent=True, path='/abs/library.db')

    factory = connection_factory("library.db")
    conn = factory()            # one fresh connection per call

Every in-memory SQLite connection is its own database.  A factory over
``memory`` therefore hands out an empty database on every call; use a
file path when several connections must share data.

``run_statement()`` executes one statement and wraps driver failures in
:class:`~strata.core.errors.ExecutionError` carrying the SQL.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from strata.core.errors import ExecutionError
from strata.core.logging import get_logger
from strata.core.protocols import Connection, ConnectionFactory, Cursor

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"``, ``"postgresql"``, ``"mysql"``…"""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The URL or path as passed to ``create_connection``."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"


# ── Backends ─────────────────────────────────────────────────────────────


def _create_sqlite_memory() -> tuple[Connection, ConnectionInfo]:
    from strata.core.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    return conn, ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")


def _create_sqlite_file(path_str: str) -> tuple[Connection, ConnectionInfo]:
    from strata.core.sqlite_conn import SqliteConnection

    path = Path(path_str)
    path.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(path.resolve())

    conn = SqliteConnection(resolved)
    info = ConnectionInfo(
        backend="sqlite",
        persistent=True,
        url=path_str,
        resolved_path=resolved,
    )
    return conn, info


_ENGINES: dict[str, Any] = {}


def _create_sqlalchemy(url: str) -> tuple[Connection, ConnectionInfo]:
    """Open a connection through a (cached) SQLAlchemy engine."""
    from strata.core.bridge import SAConnection, create_strata_engine

    engine = _ENGINES.get(url)
    if engine is None:
        engine = _ENGINES[url] = create_strata_engine(url)
    backend = engine.dialect.name
    return SAConnection.connect(engine), ConnectionInfo(backend=backend, persistent=True, url=url)


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``.

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"sqlalchemy"``,
    ``"file"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if "://" in db:
        return "sqlalchemy", db

    # Bare file path: treat as SQLite file
    return "file", db


def backend_name(db: str | None) -> str:
    """Backend identifier for a URL without opening a connection."""
    scheme, target = _parse_url(db)
    if scheme in ("memory", "sqlite", "file"):
        return "sqlite"
    base = target.split("://", 1)[0].split("+", 1)[0]
    return "postgresql" if base == "postgres" else base


# ── Main factory ─────────────────────────────────────────────────────────


def create_connection(db: str | None = None) -> tuple[Connection, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Parameters
    ----------
    db:
        Database URL, file path, or keyword.  Options:

        - ``None`` or ``"memory"``: in-memory SQLite (default)
        - ``"path/to/file.db"``: file-based SQLite
        - ``"sqlite:///path/to/file.db"``: explicit SQLite URL
        - any other ``scheme://`` URL: opened through SQLAlchemy

    Returns
    -------
    tuple[Connection, ConnectionInfo]
        The connection (auto-commit enabled) and metadata about it.
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        conn, info = _create_sqlite_memory()
    elif scheme in ("sqlite", "file"):
        conn, info = _create_sqlite_file(target)
    else:
        conn, info = _create_sqlalchemy(target)

    logger.debug("connection_opened", backend=info.backend, url=info.url)
    return conn, info


def connection_factory(db: str | None = None) -> ConnectionFactory:
    """Return a zero-argument callable opening a new connection to ``db``."""

    def factory() -> Connection:
        conn, _ = create_connection(db)
        return conn

    return factory


def run_statement(conn: Connection, sql: str, params: Sequence[Any] = ()) -> Cursor:
    """Execute one statement, wrapping driver failures in ``ExecutionError``."""
    try:
        return conn.execute(sql, list(params))
    except Exception as e:
        raise ExecutionError(f"Statement failed: {e}", sql=sql, cause=e) from e


__all__ = [
    "ConnectionInfo",
    "backend_name",
    "create_connection",
    "connection_factory",
    "run_statement",
]
