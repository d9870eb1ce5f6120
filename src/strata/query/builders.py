"""
SQL statement builders.

Each builder is bound to one entity (its :class:`EntityMetadata`) or to an
explicit table name and renders parameterized SQL text plus the ordered
list of values for its ``?`` placeholders.  Identifiers are concatenated;
values never are.

Architecture:
    ::

        _QueryBuilder (table binding, echo, render)
        ├── SelectBuilder   columns/distinct/alias/join/qualify/where/order_by/limit/offset
        ├── InsertBuilder   columns/values/row              (multi-row VALUES)
        ├── UpdateBuilder   set/where                       (SET binds before WHERE)
        └── DeleteBuilder   where

        where() accepts  "raw fragment", *values
                         ClauseBuilder
                         ClauseExpression

Examples:
    >>> sql, params = (
    ...     InsertBuilder("t").columns("a", "b").values(1, "x").values(2, "y").render()
    ... )
    >>> sql
    'INSERT INTO t (a, b) VALUES (?, ?), (?, ?)'
    >>> params
    [1, 'x', 2, 'y']

    >>> SelectBuilder(book_meta).where(ClauseBuilder().equal("id", 7)).build()
    'SELECT * FROM books WHERE id = ?'

SQL echo:
    ``set_sql_echo(True)`` (or ``STRATA_SHOW_SQL=true``) logs every rendered
    statement as a ``sql_generated`` event.  ``build(echo=…)`` overrides the
    process-wide toggle for one call.  Echo never changes the SQL returned.

Guardrails:
    ❌ DON'T: f-string user input into where()
    ✅ DO: where("title LIKE ?", pattern)

Tags:
    query, builder, select, insert, update, delete, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any

from strata.core.errors import (
    MissingColumnsError,
    MissingTableError,
    NoSetClauseError,
    ValueCountMismatchError,
)
from strata.core.logging import get_logger
from strata.core.settings import get_settings
from strata.metadata.model import EntityMetadata
from strata.query.clause import ClauseBuilder, ClauseExpression
from strata.query.paging import Order, Sort

logger = get_logger(__name__)

Predicate = str | ClauseBuilder | ClauseExpression | None

_LEADING_WHERE = re.compile(r"^\s*WHERE\s+", re.IGNORECASE)


# ── SQL echo toggle ──────────────────────────────────────────

_sql_echo: bool | None = None


def set_sql_echo(enabled: bool | None) -> None:
    """Turn SQL echo on/off for the process (``None`` falls back to settings)."""
    global _sql_echo
    _sql_echo = enabled


def sql_echo_enabled() -> bool:
    if _sql_echo is None:
        return get_settings().show_sql
    return _sql_echo


def _should_echo(echo: bool | None) -> bool:
    return sql_echo_enabled() if echo is None else echo


def _flatten(items: tuple[Any, ...]) -> list[Any]:
    if len(items) == 1 and isinstance(items[0], (list, tuple)):
        return list(items[0])
    return list(items)


# ── base ─────────────────────────────────────────────────────


class _QueryBuilder(ABC):
    statement = "SQL"

    def __init__(self, target: EntityMetadata | str | None = None):
        if isinstance(target, EntityMetadata):
            self._metadata: EntityMetadata | None = target
            self._table: str | None = target.table_name
        else:
            self._metadata = None
            self._table = target

    @property
    def table(self) -> str | None:
        return self._table

    @property
    def metadata(self) -> EntityMetadata | None:
        return self._metadata

    def _require_table(self) -> str:
        if not self._table:
            raise MissingTableError(f"Table name is required for {self.statement} query")
        return self._table

    @abstractmethod
    def _render(self) -> tuple[str, list[Any]]:
        raise NotImplementedError

    def render(self, echo: bool | None = None) -> tuple[str, list[Any]]:
        """Rendered SQL and its parameters."""
        sql, params = self._render()
        if _should_echo(echo):
            logger.info("sql_generated", statement=self.statement, sql=sql, parameters=len(params))
        return sql, params

    def build(self, echo: bool | None = None) -> str:
        return self.render(echo)[0]

    @property
    def parameters(self) -> list[Any]:
        return self._render()[1]

    def __str__(self) -> str:
        return self._render()[0]


class _FilteredBuilder(_QueryBuilder):
    def __init__(self, target: EntityMetadata | str | None = None):
        super().__init__(target)
        self._where = ""
        self._where_params: list[Any] = []

    def where(self, predicate: Predicate, *values: Any) -> Any:
        """Set the WHERE predicate (replaces any earlier one)."""
        if isinstance(predicate, (ClauseBuilder, ClauseExpression)):
            text = predicate.build()
            values = tuple(predicate.parameters)
        else:
            text = predicate or ""
        self._where = _LEADING_WHERE.sub("", text).strip()
        self._where_params = list(values) if self._where else []
        return self

    def _where_sql(self) -> str:
        return f" WHERE {self._where}" if self._where else ""


# ── SELECT ───────────────────────────────────────────────────


class SelectBuilder(_FilteredBuilder):
    """``SELECT … FROM …`` with optional join/where/order/limit/offset."""

    statement = "SELECT"

    def __init__(self, target: EntityMetadata | str | None = None):
        super().__init__(target)
        self._columns: list[str] = []
        self._distinct = False
        self._alias: str | None = None
        self._qualify = False
        self._joins: list[str] = []
        self._join_params: list[Any] = []
        self._orders: list[Order] = []
        self._limit: int | None = None
        self._offset: int | None = None

    def columns(self, *columns: str) -> SelectBuilder:
        self._columns = _flatten(columns)
        return self

    def distinct(self, enabled: bool = True) -> SelectBuilder:
        self._distinct = enabled
        return self

    def alias(self, alias: str | None) -> SelectBuilder:
        self._alias = alias or None
        return self

    def join(self, fragment: str, *values: Any) -> SelectBuilder:
        """Append a raw join, e.g. ``join("JOIN authors a ON a.id = b.author_id")``."""
        self._joins.append(fragment.strip())
        self._join_params.extend(values)
        return self

    def qualify(self, enabled: bool = True) -> SelectBuilder:
        """Prefix unqualified projection columns with the table alias."""
        self._qualify = enabled
        return self

    def order_by(self, *orders: Order | Sort | str) -> SelectBuilder:
        result: list[Order] = []
        for o in _flatten(orders):
            if isinstance(o, Sort):
                result.extend(o.orders)
            elif isinstance(o, Order):
                result.append(o)
            else:
                result.append(Order.asc(o))
        self._orders = result
        return self

    def limit(self, limit: int | None) -> SelectBuilder:
        self._limit = limit
        return self

    def offset(self, offset: int | None) -> SelectBuilder:
        self._offset = offset
        return self

    def _base(self) -> tuple[str, list[Any]]:
        table = self._require_table()
        use_alias = bool(self._joins) or self._qualify or self._alias is not None
        alias = self._alias or table

        if not self._columns:
            projection = "*"
        elif self._qualify:
            projection = ", ".join(c if "." in c or c == "*" else f"{alias}.{c}" for c in self._columns)
        else:
            projection = ", ".join(self._columns)

        sql = f"SELECT {'DISTINCT ' if self._distinct else ''}{projection} FROM {table}"
        if use_alias:
            sql += f" AS {alias}"
        for j in self._joins:
            sql += f" {j}"
        sql += self._where_sql()
        return sql, self._join_params + self._where_params

    def _render(self) -> tuple[str, list[Any]]:
        sql, params = self._base()
        if self._orders:
            sql += " ORDER BY " + ", ".join(o.render() for o in self._orders)
        if self._limit is not None:
            sql += f" LIMIT {int(self._limit)}"
        if self._offset is not None:
            sql += f" OFFSET {int(self._offset)}"
        return sql, params

    def count_wrapped(self, echo: bool | None = None) -> tuple[str, list[Any]]:
        """``SELECT COUNT(1)`` over this query, ignoring order/limit/offset."""
        base, params = self._base()
        sql = f"SELECT COUNT(1) AS total FROM ({base}) AS count_table"
        if _should_echo(echo):
            logger.info("sql_generated", statement="COUNT", sql=sql, parameters=len(params))
        return sql, params


# ── INSERT ───────────────────────────────────────────────────


class InsertBuilder(_QueryBuilder):
    """``INSERT INTO t (cols) VALUES (?, …)[, (?, …)]``."""

    statement = "INSERT"

    def __init__(self, target: EntityMetadata | str | None = None):
        super().__init__(target)
        self._columns: list[str] = []
        self._values: list[Any] = []

    def columns(self, *columns: str) -> InsertBuilder:
        self._columns = _flatten(columns)
        return self

    def values(self, *values: Any) -> InsertBuilder:
        """Append values; any multiple of the column count forms whole rows."""
        self._values.extend(values)
        return self

    def row(self, *values: Any) -> InsertBuilder:
        """Append exactly one row."""
        if self._columns and len(values) != len(self._columns):
            raise ValueCountMismatchError(len(self._columns), len(values))
        self._values.extend(values)
        return self

    def _render(self) -> tuple[str, list[Any]]:
        table = self._require_table()
        if not self._columns:
            raise MissingColumnsError("Columns are required for INSERT query")
        width = len(self._columns)
        if not self._values or len(self._values) % width:
            raise ValueCountMismatchError(width, len(self._values))
        group = "(" + ", ".join("?" for _ in self._columns) + ")"
        rows = ", ".join(group for _ in range(len(self._values) // width))
        sql = f"INSERT INTO {table} ({', '.join(self._columns)}) VALUES {rows}"
        return sql, list(self._values)


# ── UPDATE ───────────────────────────────────────────────────


class UpdateBuilder(_FilteredBuilder):
    """``UPDATE t SET a = ?, … [WHERE …]``."""

    statement = "UPDATE"

    def __init__(self, target: EntityMetadata | str | None = None):
        super().__init__(target)
        self._assignments: list[tuple[str, Any]] = []

    def set(self, column: str, value: Any) -> UpdateBuilder:
        """Append ``column = ?``; repeated columns are kept in call order."""
        self._assignments.append((column, value))
        return self

    def _render(self) -> tuple[str, list[Any]]:
        table = self._require_table()
        if not self._assignments:
            raise NoSetClauseError("SET clause is required for UPDATE query")
        assignments = ", ".join(f"{c} = ?" for c, _ in self._assignments)
        sql = f"UPDATE {table} SET {assignments}{self._where_sql()}"
        return sql, [v for _, v in self._assignments] + self._where_params


# ── DELETE ───────────────────────────────────────────────────


class DeleteBuilder(_FilteredBuilder):
    """``DELETE FROM t [WHERE …]``."""

    statement = "DELETE"

    def _render(self) -> tuple[str, list[Any]]:
        table = self._require_table()
        return f"DELETE FROM {table}{self._where_sql()}", list(self._where_params)


__all__ = [
    "SelectBuilder",
    "InsertBuilder",
    "UpdateBuilder",
    "DeleteBuilder",
    "set_sql_echo",
    "sql_echo_enabled",
]
