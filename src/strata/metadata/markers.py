"""
Declarative markers for entity classes.

Markers only declare; they never act.  ``@entity`` tags a class (turning
it into a dataclass when it is not one already) and the field markers
store a :class:`ColumnMarker` or :class:`RelationshipMarker` in the
dataclass field metadata, where :func:`strata.metadata.model.scan_entity`
finds them.

Examples:
    >>> @entity(table_name="books")
    ... class Book:
    ...     id: int | None = key(type="INTEGER")
    ...     title: str | None = column(nullable=False, length=200)
    ...     author: LazyReference[Author] | None = many_to_one("author_id")
    ...     reviews: LazyCollection[Review] = one_to_many(mapped_by="book")

Tags:
    markers, dataclass, metadata, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from strata.core.protocols import AttributeConverter

MARKER_KEY = "strata"
ENTITY_ATTR = "__strata_entity__"


class FetchMode(str, Enum):
    """When a single-valued relationship is resolved."""

    EAGER = "eager"
    LAZY = "lazy"


EAGER = FetchMode.EAGER
LAZY = FetchMode.LAZY


class RelationshipKind(str, Enum):
    MANY_TO_ONE = "many-to-one"
    ONE_TO_MANY = "one-to-many"
    ONE_TO_ONE = "one-to-one"


@dataclass(frozen=True)
class EntityMarker:
    table_name: str | None = None


@dataclass(frozen=True)
class ColumnMarker:
    name: str | None = None
    type: str = "VARCHAR"
    nullable: bool = True
    length: int = 255
    unique: bool = False
    key: bool = False
    converter: AttributeConverter[Any, Any] | None = None


@dataclass(frozen=True)
class RelationshipMarker:
    kind: RelationshipKind
    join_column: str | None = None
    mapped_by: str | None = None
    fetch: FetchMode = FetchMode.LAZY
    target: type | None = None


# ── class marker ─────────────────────────────────────────────


def entity(cls: type | None = None, *, table_name: str | None = None) -> Any:
    """Mark a class as a persistent entity.

    Usable bare (``@entity``) or with options (``@entity(table_name="books")``).
    """

    def wrap(target: type) -> type:
        if not dataclasses.is_dataclass(target):
            target = dataclass(target)
        setattr(target, ENTITY_ATTR, EntityMarker(table_name=table_name))
        return target

    if cls is None:
        return wrap
    return wrap(cls)


def entity_marker(cls: type) -> EntityMarker | None:
    """The class's own entity marker (not inherited), or ``None``."""
    marker = cls.__dict__.get(ENTITY_ATTR)
    return marker if isinstance(marker, EntityMarker) else None


# ── field markers ────────────────────────────────────────────


def _field(marker: ColumnMarker | RelationshipMarker, default: Any, default_factory: Any) -> Any:
    if default_factory is not dataclasses.MISSING:
        return field(default_factory=default_factory, metadata={MARKER_KEY: marker})
    return field(default=default, metadata={MARKER_KEY: marker})


def column(
    name: str | None = None,
    *,
    type: str = "VARCHAR",
    nullable: bool = True,
    length: int = 255,
    unique: bool = False,
    key: bool = False,
    converter: AttributeConverter[Any, Any] | None = None,
    default: Any = None,
    default_factory: Any = dataclasses.MISSING,
) -> Any:
    """Map an attribute to a column (name defaults to the attribute name)."""
    marker = ColumnMarker(
        name=name,
        type=type.upper(),
        nullable=nullable,
        length=length,
        unique=unique,
        key=key,
        converter=converter,
    )
    return _field(marker, default, default_factory)


def key(name: str | None = None, *, type: str = "INTEGER", **kwargs: Any) -> Any:
    """Shorthand for ``column(..., key=True)``."""
    kwargs.setdefault("nullable", False)
    return column(name, type=type, key=True, **kwargs)


def many_to_one(
    join_column: str,
    *,
    fetch: FetchMode = LAZY,
    target: type | None = None,
) -> Any:
    """Owning side: ``join_column`` on this table references the target's key."""
    marker = RelationshipMarker(
        RelationshipKind.MANY_TO_ONE, join_column=join_column, fetch=FetchMode(fetch), target=target
    )
    return _field(marker, None, dataclasses.MISSING)


def one_to_many(
    mapped_by: str | None = None,
    *,
    join_column: str | None = None,
    fetch: FetchMode = LAZY,
    target: type | None = None,
) -> Any:
    """Collection side.

    ``mapped_by`` names the target attribute holding the inverse
    many-to-one; ``join_column`` names the foreign-key column on the
    target table directly.
    """
    marker = RelationshipMarker(
        RelationshipKind.ONE_TO_MANY,
        join_column=join_column,
        mapped_by=mapped_by,
        fetch=FetchMode(fetch),
        target=target,
    )
    return _field(marker, None, list)


def one_to_one(
    join_column: str | None = None,
    *,
    mapped_by: str | None = None,
    fetch: FetchMode = LAZY,
    target: type | None = None,
) -> Any:
    """Owning side with ``join_column``; inverse side with ``mapped_by``."""
    marker = RelationshipMarker(
        RelationshipKind.ONE_TO_ONE,
        join_column=join_column,
        mapped_by=mapped_by,
        fetch=FetchMode(fetch),
        target=target,
    )
    return _field(marker, None, dataclasses.MISSING)


__all__ = [
    "EAGER",
    "LAZY",
    "FetchMode",
    "RelationshipKind",
    "EntityMarker",
    "ColumnMarker",
    "RelationshipMarker",
    "entity",
    "entity_marker",
    "column",
    "key",
    "many_to_one",
    "one_to_many",
    "one_to_one",
]
