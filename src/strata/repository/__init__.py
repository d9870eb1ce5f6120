"""Generic repositories and the repository lookup used for relationships."""

from strata.repository.crud import CrudRepository
from strata.repository.registry import RepositoryRegistry, default_repositories

__all__ = ["CrudRepository", "RepositoryRegistry", "default_repositories"]
