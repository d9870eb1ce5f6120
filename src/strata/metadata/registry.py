"""
Process-wide entity registry.

The registry scans each entity type exactly once and hands out the same
:class:`~strata.metadata.model.EntityMetadata` afterwards.  It is the only
intentionally global mutable state in strata; a re-entrant lock keeps
registration exactly-once under concurrent callers.

Examples:
    >>> from strata.metadata import registry
    >>> registry.register_all(Author, Book)
    >>> registry.get_metadata(Book).table_name
    'books'
    >>> [m.name for m in registry.all_registered()]
    ['Author', 'Book']

Tags:
    registry, metadata, singleton, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import threading
from collections.abc import Iterator

from strata.core.logging import get_logger
from strata.metadata.model import EntityMetadata, scan_entity

logger = get_logger(__name__)


class EntityRegistry:
    """Type → metadata map, populated lazily and idempotently."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[type, EntityMetadata] = {}
        self._names: dict[str, type] = {}

    def register(self, entity_type: type) -> EntityMetadata:
        """Scan and store ``entity_type``; a second call returns the stored metadata."""
        existing = self._entries.get(entity_type)
        if existing is not None:
            return existing
        with self._lock:
            existing = self._entries.get(entity_type)
            if existing is not None:
                return existing
            self._names.setdefault(entity_type.__name__, entity_type)
            metadata = scan_entity(entity_type, namespace=self._names)
            self._entries[entity_type] = metadata
            logger.debug(
                "entity_registered",
                entity=metadata.name,
                table=metadata.table_name,
                columns=len(metadata.columns),
                relationships=len(metadata.relationships),
            )
            return metadata

    def register_all(self, *entity_types: type) -> list[EntityMetadata]:
        """Register several types; their names resolve each other's forward references."""
        with self._lock:
            for t in entity_types:
                self._names.setdefault(t.__name__, t)
            return [self.register(t) for t in entity_types]

    def get(self, entity_type: type) -> EntityMetadata | None:
        return self._entries.get(entity_type)

    def require(self, entity_type: type) -> EntityMetadata:
        """Metadata for ``entity_type``, registering it on first use."""
        return self.get(entity_type) or self.register(entity_type)

    def all_registered(self) -> list[EntityMetadata]:
        """Every registered metadata, in registration order."""
        with self._lock:
            return list(self._entries.values())

    def is_empty(self) -> bool:
        return not self._entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._names.clear()

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[EntityMetadata]:
        return iter(self.all_registered())


# ── default registry ─────────────────────────────────────────

_default = EntityRegistry()


def default_registry() -> EntityRegistry:
    return _default


def register(entity_type: type) -> EntityMetadata:
    return _default.register(entity_type)


def register_all(*entity_types: type) -> list[EntityMetadata]:
    return _default.register_all(*entity_types)


def get_metadata(entity_type: type) -> EntityMetadata:
    """Metadata from the default registry, registering lazily."""
    return _default.require(entity_type)


def all_registered() -> list[EntityMetadata]:
    return _default.all_registered()


def clear_registry() -> None:
    """Forget every registered type. For test isolation only."""
    _default.clear()


__all__ = [
    "EntityRegistry",
    "default_registry",
    "register",
    "register_all",
    "get_metadata",
    "all_registered",
    "clear_registry",
]
