"""
Transaction scoping for strata.

A :class:`TransactionManager` binds one connection, one reentrancy depth
counter and one :class:`~strata.core.cache.EntityCache` to the current
execution context.  Nested ``begin()`` calls reuse the connection and only
the outermost ``commit()``/``rollback()`` touches the database.

The binding lives in a :class:`contextvars.ContextVar`, so each thread and
each asyncio task sees its own transaction and nothing is shared.

Architecture:
    ::

        begin()      depth 0 → 1   open connection, autocommit off, new cache
        begin()      depth 1 → 2   (reuse)
        commit()     depth 2 → 1   (no-op on the database)
        commit()     depth 1 → 0   COMMIT, close connection, drop cache
        commit()     depth 0       NoActiveTransactionError

Examples:
    >>> tm = TransactionManager(connection_factory("library.db"))
    >>> with tm.transaction() as conn:
    ...     conn.execute("INSERT INTO authors (name) VALUES (?)", ["Le Guin"])

Guardrails:
    ❌ DON'T: Pair one begin() with two commit() calls
    ✅ DO: Use ``with tm.transaction():`` where the block structure allows

Tags:
    transaction, contextvars, unit-of-work, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field

from strata.core.cache import EntityCache
from strata.core.errors import NoActiveTransactionError
from strata.core.logging import get_logger
from strata.core.protocols import Connection, ConnectionFactory
from strata.core.settings import StrataSettings, get_settings

logger = get_logger(__name__)


@dataclass
class TransactionContext:
    """Per-execution-context transaction state."""

    connection: Connection
    depth: int = 0
    cache: EntityCache | None = field(default=None, repr=False)


class TransactionManager:
    """Nestable transaction boundary over a connection factory."""

    def __init__(self, connection_factory: ConnectionFactory, *, cache_max_size: int = 1000):
        self._factory = connection_factory
        self._cache_max_size = cache_max_size
        self._current: ContextVar[TransactionContext | None] = ContextVar(
            f"strata_transaction_{id(self):x}", default=None
        )

    @classmethod
    def from_settings(cls, settings: StrataSettings | None = None) -> TransactionManager:
        """Build a manager for ``settings.database_url`` (process settings by default)."""
        from strata.core.connection import connection_factory

        settings = settings or get_settings()
        return cls(
            connection_factory(settings.database_url),
            cache_max_size=settings.cache_max_size,
        )

    # ── boundaries ───────────────────────────────────────────────

    def begin(self) -> None:
        ctx = self._current.get()
        if ctx is None or ctx.depth == 0:
            conn = self._factory()
            conn.set_autocommit(False)
            ctx = TransactionContext(connection=conn, cache=EntityCache(self._cache_max_size))
            self._current.set(ctx)
            logger.debug("transaction_begin")
        ctx.depth += 1

    def commit(self) -> None:
        ctx = self._leave("commit")
        if ctx.depth == 0:
            try:
                ctx.connection.commit()
                logger.debug("transaction_commit")
            finally:
                self._release(ctx)

    def rollback(self) -> None:
        ctx = self._leave("rollback")
        if ctx.depth == 0:
            try:
                ctx.connection.rollback()
                logger.debug("transaction_rollback")
            finally:
                self._release(ctx)

    def _leave(self, operation: str) -> TransactionContext:
        ctx = self._current.get()
        if ctx is None or ctx.depth <= 0:
            raise NoActiveTransactionError(operation)
        ctx.depth -= 1
        return ctx

    def _release(self, ctx: TransactionContext) -> None:
        ctx.cache = None
        self._current.set(None)
        ctx.connection.close()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """``begin``; yield the connection; ``commit``, or ``rollback`` and re-raise."""
        self.begin()
        try:
            yield self.get_connection()
        except BaseException:
            self.rollback()
            raise
        else:
            self.commit()

    # ── accessors ────────────────────────────────────────────────

    def get_connection(self) -> Connection:
        ctx = self._current.get()
        if ctx is None or ctx.depth <= 0:
            raise NoActiveTransactionError("get_connection")
        return ctx.connection

    def get_cache(self) -> EntityCache:
        ctx = self._current.get()
        if ctx is None or ctx.depth <= 0 or ctx.cache is None:
            raise NoActiveTransactionError("get_cache")
        return ctx.cache

    @property
    def depth(self) -> int:
        ctx = self._current.get()
        return ctx.depth if ctx is not None else 0

    def in_transaction(self) -> bool:
        return self.depth > 0

    def open_connection(self) -> Connection:
        """Ad hoc auto-commit connection for reads outside a transaction.

        The caller owns it and must close it.
        """
        return self._factory()


__all__ = ["TransactionContext", "TransactionManager"]
