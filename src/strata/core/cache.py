"""
Per-transaction entity cache.

Each transaction gets its own :class:`EntityCache` mapping
``EntityKey(entity type, primary key)`` to the instance materialized for
that row, so that loading the same row twice inside one unit of work
yields the same object.

Manifesto:
    The cache lives exactly as long as the transaction that owns it and
    is never shared between execution contexts.  It is bounded, and the
    bound is enforced the simplest possible way: once full, the whole
    cache is dropped before the next insertion.

    - **Reset on overflow:** no LRU bookkeeping, no partial eviction
    - **Typed keys:** entity type + id, never string concatenation
    - **Bounded:** ``max_size`` from ``StrataSettings.cache_max_size``

Architecture:
    ::

        TransactionContext
        └── EntityCache(max_size=1000)
              {EntityKey(Book, 1): <Book 1>,
               EntityKey(Author, 7): <Author 7>, …}

        API: get(type, id) → instance | None
             put(type, id, instance)      (clears first when full)
             remove(type, id) / clear_type(type) / clear()

Examples:
    >>> cache = EntityCache(max_size=2)
    >>> cache.put(Book, 1, book1)
    >>> cache.put(Book, 2, book2)
    >>> cache.put(Book, 3, book3)     # full: cache reset, then insert
    >>> len(cache)
    1

Guardrails:
    ❌ DON'T: Hold on to an EntityCache after its transaction ended
    ✅ DO: Get it from ``TransactionManager.get_cache()`` each time

Tags:
    cache, identity-map, transaction, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class EntityKey:
    """Cache key: entity type plus primary-key value."""

    entity_type: type
    id: Any

    def __str__(self) -> str:
        return f"{self.entity_type.__name__}#{self.id!r}"


class EntityCache:
    """Bounded identity map with reset-on-overflow.

    Attributes:
        max_size: Entry count at which the cache is cleared before inserting.
    """

    def __init__(self, max_size: int = 1000):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._store: dict[EntityKey, Any] = {}
        self._lock = threading.Lock()
        self._max_size = max_size
        self._resets = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def resets(self) -> int:
        """How many times the cache was dropped because it was full."""
        return self._resets

    def get(self, entity_type: type, id: Any) -> Any | None:
        """Return the cached instance, or ``None``."""
        with self._lock:
            return self._store.get(EntityKey(entity_type, id))

    def put(self, entity_type: type, id: Any, instance: Any) -> None:
        """Store an instance, clearing everything first when the bound is reached.

        The reset happens even when ``(entity_type, id)`` is already cached.
        """
        with self._lock:
            if len(self._store) >= self._max_size:
                self._store.clear()
                self._resets += 1
            self._store[EntityKey(entity_type, id)] = instance

    def put_all(self, entity_type: type, items: Iterable[tuple[Any, Any]]) -> None:
        """Store ``(id, instance)`` pairs one by one."""
        for id, instance in items:
            self.put(entity_type, id, instance)

    def contains(self, entity_type: type, id: Any) -> bool:
        with self._lock:
            return EntityKey(entity_type, id) in self._store

    def remove(self, entity_type: type, id: Any) -> None:
        """Evict one entry. No-op if absent."""
        with self._lock:
            self._store.pop(EntityKey(entity_type, id), None)

    def clear_type(self, entity_type: type) -> None:
        """Evict every entry of one entity type."""
        with self._lock:
            for k in [k for k in self._store if k.entity_type is entity_type]:
                del self._store[k]

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def keys(self) -> list[EntityKey]:
        with self._lock:
            return list(self._store)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._store


__all__ = ["EntityKey", "EntityCache"]
