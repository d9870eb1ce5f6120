"""Entity type → repository lookup used to resolve relationships."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

from strata.core.errors import RepositoryNotFoundError

if TYPE_CHECKING:
    from strata.repository.crud import CrudRepository


class RepositoryRegistry:
    """Holds one repository per entity type; the last registration wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._repositories: dict[type, CrudRepository[Any]] = {}

    def register(self, entity_type: type, repository: CrudRepository[Any]) -> None:
        with self._lock:
            self._repositories[entity_type] = repository

    def unregister(self, entity_type: type) -> None:
        with self._lock:
            self._repositories.pop(entity_type, None)

    def get(self, entity_type: type) -> CrudRepository[Any] | None:
        return self._repositories.get(entity_type)

    def require(self, entity_type: type) -> CrudRepository[Any]:
        repository = self.get(entity_type)
        if repository is None:
            raise RepositoryNotFoundError(entity_type)
        return repository

    def clear(self) -> None:
        with self._lock:
            self._repositories.clear()

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._repositories

    def __len__(self) -> int:
        return len(self._repositories)


_default = RepositoryRegistry()


def default_repositories() -> RepositoryRegistry:
    return _default


__all__ = ["RepositoryRegistry", "default_repositories"]
