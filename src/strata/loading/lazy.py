"""
Deferred relationship values.

:class:`LazyReference` holds one related entity, :class:`LazyCollection`
an ordered sequence of them.  Both start unresolved with a zero-argument
resolver and switch to resolved on first access, running the resolver
exactly once even under concurrent access (per-instance lock with a
double check).  The resolver is dropped after success.  If it raises,
the wrapper stays unresolved and the error propagates to the caller.

Examples:
    >>> ref = LazyReference(lambda: authors.find_by_id(7), key=7)
    >>> ref.peek() is NOT_LOADED
    True
    >>> ref.get().name
    'Le Guin'
    >>> books = LazyCollection(lambda: book_repo.find_with_condition(clause))
    >>> len(books)       # triggers the query
    3

Tags:
    lazy-loading, proxy, thread-safety, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Sequence
from typing import Any, Generic, TypeVar, overload

T = TypeVar("T")


class _NotLoaded:
    _instance: _NotLoaded | None = None

    def __new__(cls) -> _NotLoaded:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_LOADED"

    def __bool__(self) -> bool:
        return False


NOT_LOADED: Any = _NotLoaded()


class LazyReference(Generic[T]):
    """A single related value resolved on first :meth:`get`."""

    __slots__ = ("_resolver", "_value", "_loaded", "_lock", "key")

    def __init__(self, resolver: Callable[[], T | None], *, key: Any = None):
        self._resolver: Callable[[], T | None] | None = resolver
        self._value: T | None = None
        self._loaded = False
        self._lock = threading.Lock()
        self.key = key

    @classmethod
    def resolved(cls, value: T | None, *, key: Any = None) -> LazyReference[T]:
        """A reference that is already loaded with ``value``."""
        ref: LazyReference[T] = cls.__new__(cls)
        ref._resolver = None
        ref._value = value
        ref._loaded = True
        ref._lock = threading.Lock()
        ref.key = key
        return ref

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def get(self) -> T | None:
        if not self._loaded:
            with self._lock:
                if not self._loaded:
                    assert self._resolver is not None
                    self._value = self._resolver()
                    self._resolver = None
                    self._loaded = True
        return self._value

    load = get

    def peek(self) -> T | None:
        """The value if resolved, else ``NOT_LOADED``. Never resolves."""
        return self._value if self._loaded else NOT_LOADED

    def __repr__(self) -> str:
        state = repr(self._value) if self._loaded else "unresolved"
        return f"LazyReference({state}, key={self.key!r})"


class LazyCollection(Sequence[T], Generic[T]):
    """An ordered sequence materialized in full on first use."""

    def __init__(self, resolver: Callable[[], Sequence[T] | None]):
        self._resolver: Callable[[], Sequence[T] | None] | None = resolver
        self._items: list[T] = []
        self._loaded = False
        self._lock = threading.Lock()

    @classmethod
    def resolved(cls, items: Sequence[T]) -> LazyCollection[T]:
        coll: LazyCollection[T] = cls(lambda: items)
        coll._materialize()
        return coll

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def _materialize(self) -> list[T]:
        if not self._loaded:
            with self._lock:
                if not self._loaded:
                    assert self._resolver is not None
                    result = self._resolver()
                    if result is None:
                        raise TypeError("LazyCollection resolver returned None")
                    self._items = list(result)
                    self._resolver = None
                    self._loaded = True
        return self._items

    def get(self) -> list[T]:
        """Resolve and return a copy of the items."""
        return list(self._materialize())

    load = get

    def peek(self) -> list[T] | Any:
        return list(self._items) if self._loaded else NOT_LOADED

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> list[T]: ...

    def __getitem__(self, index: int | slice) -> T | list[T]:
        return self._materialize()[index]

    def __len__(self) -> int:
        return len(self._materialize())

    def __iter__(self) -> Iterator[T]:
        return iter(self._materialize())

    def __contains__(self, item: object) -> bool:
        return item in self._materialize()

    def __reversed__(self) -> Iterator[T]:
        return reversed(self._materialize())

    def __repr__(self) -> str:
        state = repr(self._items) if self._loaded else "unresolved"
        return f"LazyCollection({state})"


def lazy_reference(resolver: Callable[[], T | None], *, key: Any = None) -> LazyReference[T]:
    return LazyReference(resolver, key=key)


def lazy_collection(resolver: Callable[[], Sequence[T] | None]) -> LazyCollection[T]:
    return LazyCollection(resolver)


__all__ = [
    "NOT_LOADED",
    "LazyReference",
    "LazyCollection",
    "lazy_reference",
    "lazy_collection",
]
