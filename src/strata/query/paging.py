"""
Ordering and pagination value objects.

Examples:
    >>> req = PageRequest.of(3, 10, Sort.by(Order.desc("published"), "title"))
    >>> req.offset
    20
    >>> page = Page(content=rows, total_elements=25, request=req)
    >>> page.total_pages, page.is_last
    (3, True)
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Order:
    """One ``column ASC|DESC`` item of an ORDER BY list."""

    column: str
    ascending: bool = True

    def __post_init__(self) -> None:
        if not self.column or not self.column.strip():
            raise ValueError("Column name must not be empty")

    @classmethod
    def asc(cls, column: str) -> Order:
        return cls(column, True)

    @classmethod
    def desc(cls, column: str) -> Order:
        return cls(column, False)

    def render(self) -> str:
        return f"{self.column} {'ASC' if self.ascending else 'DESC'}"


@dataclass(frozen=True)
class Sort:
    orders: tuple[Order, ...] = ()

    @classmethod
    def by(cls, *orders: Order | str) -> Sort:
        """Sort on the given orders; bare strings sort ascending."""
        if not orders:
            raise ValueError("Sort.by requires at least one order")
        return cls(tuple(o if isinstance(o, Order) else Order.asc(o) for o in orders))

    @classmethod
    def unsorted(cls) -> Sort:
        return cls()

    @property
    def is_sorted(self) -> bool:
        return bool(self.orders)

    def __iter__(self) -> Iterator[Order]:
        return iter(self.orders)


@dataclass(frozen=True)
class PageRequest:
    """A 1-indexed page of ``page_size`` rows with an optional sort."""

    page_number: int
    page_size: int
    sort: Sort = field(default_factory=Sort.unsorted)

    def __post_init__(self) -> None:
        if self.page_number < 1:
            raise ValueError("page_number must be >= 1")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")

    @classmethod
    def of(cls, page_number: int, page_size: int, sort: Sort | None = None) -> PageRequest:
        return cls(page_number, page_size, sort or Sort.unsorted())

    @property
    def offset(self) -> int:
        return (self.page_number - 1) * self.page_size

    def next(self) -> PageRequest:
        return PageRequest(self.page_number + 1, self.page_size, self.sort)

    def previous(self) -> PageRequest:
        return PageRequest(max(1, self.page_number - 1), self.page_size, self.sort)


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results plus the total row count of the whole query."""

    content: Sequence[T]
    total_elements: int
    request: PageRequest

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.request.page_size)

    @property
    def number(self) -> int:
        return self.request.page_number

    @property
    def is_first(self) -> bool:
        return self.request.page_number == 1

    @property
    def is_last(self) -> bool:
        return self.request.page_number >= self.total_pages

    @property
    def has_next(self) -> bool:
        return self.request.page_number < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.request.page_number > 1

    def __iter__(self) -> Iterator[T]:
        return iter(self.content)

    def __len__(self) -> int:
        return len(self.content)


__all__ = ["Order", "Sort", "PageRequest", "Page"]
