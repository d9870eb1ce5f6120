"""Lazy relationship wrappers."""

from strata.loading.lazy import (
    NOT_LOADED,
    LazyCollection,
    LazyReference,
    lazy_collection,
    lazy_reference,
)

__all__ = [
    "NOT_LOADED",
    "LazyReference",
    "LazyCollection",
    "lazy_reference",
    "lazy_collection",
]
