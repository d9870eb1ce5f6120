"""
WHERE-clause construction.

Two ways to build a predicate with positional ``?`` parameters:

* :class:`ClauseBuilder`: fluent and flat.  Consecutive conditions are
  joined with ``AND`` unless ``or_()`` / ``and_()`` is called in between;
  ``None`` values and empty ``IN`` sets skip the condition entirely, which
  makes optional search filters a one-liner each.
* :class:`ClauseExpression`: an immutable AND/OR tree for explicit
  precedence.  Rendering parenthesizes every leaf and every sub-tree whose
  operator differs from its parent's.

Examples:
    >>> c = ClauseBuilder().equal("genre", "SF").or_().greater("year", 1970)
    >>> c.build(), c.parameters
    ('genre = ? OR year > ?', ['SF', 1970])
    >>> ClauseBuilder().equal("age", None).build()
    ''

    >>> e = ClauseExpression.leaf("a = ?", 1).or_(ClauseExpression.leaf("b = ?", 2))
    >>> e.and_(ClauseExpression.leaf("c = ?", 3)).build()
    '((a = ?) OR (b = ?)) AND (c = ?)'

Guardrails:
    ❌ DON'T: Format values into the column argument
    ✅ DO: Pass values as arguments so they are bound, never concatenated

Tags:
    query, where, clause, builder, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from strata.core.errors import IllegalSequenceError


class ClauseBuilder:
    """Fluent flat predicate builder."""

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._parameters: list[Any] = []
        self._pending: str | None = None

    @classmethod
    def builder(cls) -> ClauseBuilder:
        return cls()

    # ── comparisons ──────────────────────────────────────────

    def equal(self, column: str, value: Any) -> ClauseBuilder:
        return self._condition(f"{column} = ?", value)

    def not_equal(self, column: str, value: Any) -> ClauseBuilder:
        return self._condition(f"{column} <> ?", value)

    def greater(self, column: str, value: Any) -> ClauseBuilder:
        return self._condition(f"{column} > ?", value)

    def less(self, column: str, value: Any) -> ClauseBuilder:
        return self._condition(f"{column} < ?", value)

    def greater_or_equal(self, column: str, value: Any) -> ClauseBuilder:
        return self._condition(f"{column} >= ?", value)

    def less_or_equal(self, column: str, value: Any) -> ClauseBuilder:
        return self._condition(f"{column} <= ?", value)

    def like(self, column: str, value: Any) -> ClauseBuilder:
        return self._condition(f"{column} LIKE ?", value)

    def in_(self, column: str, values: Iterable[Any] | None) -> ClauseBuilder:
        return self._membership(column, "IN", values)

    def not_in(self, column: str, values: Iterable[Any] | None) -> ClauseBuilder:
        return self._membership(column, "NOT IN", values)

    def is_null(self, column: str) -> ClauseBuilder:
        return self._raw(f"{column} IS NULL", ())

    # ── connectives ──────────────────────────────────────────

    def and_(self) -> ClauseBuilder:
        return self._connective("AND")

    def or_(self) -> ClauseBuilder:
        return self._connective("OR")

    def group(self, fn: Callable[[ClauseBuilder], Any]) -> ClauseBuilder:
        """Emit the predicate built by ``fn`` on a nested builder, parenthesized."""
        nested = ClauseBuilder()
        fn(nested)
        text = nested.build()
        if not text:
            return self
        return self._raw(f"({text})", nested.parameters)

    # ── output ───────────────────────────────────────────────

    def build(self) -> str:
        if self._pending is not None:
            raise IllegalSequenceError(f"Missing condition after {self._pending}")
        return "".join(self._parts)

    @property
    def parameters(self) -> list[Any]:
        return list(self._parameters)

    def __bool__(self) -> bool:
        return bool(self._parts)

    def __repr__(self) -> str:
        return f"ClauseBuilder({''.join(self._parts)!r}, {self._parameters!r})"

    # ── internals ────────────────────────────────────────────

    def _condition(self, sql: str, value: Any) -> ClauseBuilder:
        if value is None:
            return self
        return self._raw(sql, (value,))

    def _membership(self, column: str, op: str, values: Iterable[Any] | None) -> ClauseBuilder:
        items = list(values) if values is not None else []
        if not items:
            return self
        placeholders = ",".join("?" for _ in items)
        return self._raw(f"{column} {op} ({placeholders})", items)

    def _raw(self, sql: str, values: Iterable[Any]) -> ClauseBuilder:
        if self._parts:
            self._parts.append(f" {self._pending or 'AND'} ")
            self._pending = None
        self._parts.append(sql)
        self._parameters.extend(values)
        return self

    def _connective(self, op: str) -> ClauseBuilder:
        if not self._parts:
            raise IllegalSequenceError(f"Cannot use {op} without a preceding condition")
        self._pending = op
        return self


class _Combinator:
    """``ClauseExpression.and_(left, right)`` on the class, ``expr.and_(right)`` on an instance."""

    def __init__(self, operator: str):
        self.operator = operator

    def __get__(self, obj: ClauseExpression | None, owner: type[ClauseExpression]) -> Callable[..., ClauseExpression]:
        operator = self.operator
        if obj is None:

            def combine(left: ClauseExpression, right: ClauseExpression) -> ClauseExpression:
                return owner(operator=operator, left=left, right=right)

        else:

            def combine(right: ClauseExpression) -> ClauseExpression:  # type: ignore[misc]
                return owner(operator=operator, left=obj, right=right)

        return combine


@dataclass(frozen=True)
class ClauseExpression:
    """Immutable predicate tree: a leaf fragment or an AND/OR node."""

    text: str | None = None
    values: tuple[Any, ...] = ()
    operator: str | None = None
    left: ClauseExpression | None = field(default=None, repr=False)
    right: ClauseExpression | None = field(default=None, repr=False)

    @classmethod
    def leaf(cls, text: str, *values: Any) -> ClauseExpression:
        return cls(text=text, values=values)

    and_ = _Combinator("AND")
    or_ = _Combinator("OR")

    @property
    def is_leaf(self) -> bool:
        return self.operator is None

    def build(self) -> str:
        return self._render(parent=None)

    @property
    def parameters(self) -> list[Any]:
        if self.is_leaf:
            return list(self.values)
        assert self.left is not None and self.right is not None
        return self.left.parameters + list(self.values) + self.right.parameters

    def _render(self, parent: str | None) -> str:
        if self.is_leaf:
            return f"({self.text})"
        assert self.left is not None and self.right is not None
        text = f"{self.left._render(self.operator)} {self.operator} {self.right._render(self.operator)}"
        if parent is not None and parent != self.operator:
            return f"({text})"
        return text

    def __bool__(self) -> bool:
        return True


__all__ = ["ClauseBuilder", "ClauseExpression"]
