"""Query construction: clauses, statement builders and paging."""

from strata.query.builders import (
    DeleteBuilder,
    InsertBuilder,
    SelectBuilder,
    UpdateBuilder,
    set_sql_echo,
    sql_echo_enabled,
)
from strata.query.clause import ClauseBuilder, ClauseExpression
from strata.query.paging import Order, Page, PageRequest, Sort

__all__ = [
    "ClauseBuilder",
    "ClauseExpression",
    "SelectBuilder",
    "InsertBuilder",
    "UpdateBuilder",
    "DeleteBuilder",
    "set_sql_echo",
    "sql_echo_enabled",
    "Order",
    "Sort",
    "PageRequest",
    "Page",
]
