"""
Entity metadata: descriptors built by scanning marked classes.

Architecture:
    ::

        @entity class Book            scan_entity(Book)
          id     = key()        ──►   EntityMetadata
          title  = column()             ├── table_name   "books"
          author = many_to_one()        ├── columns      {id, title}  (declaration order)
                                        ├── key_column   id
                                        └── relationships (author → Author, "author_id")

    All descriptors are frozen; ``columns`` is a read-only mapping.

Examples:
    >>> meta = scan_entity(Book)
    >>> meta.table_name, meta.key_column_name
    ('books', 'id')
    >>> [r.join_column for r in meta.owning_relationships()]
    ['author_id']

Guardrails:
    ❌ DON'T: Call scan_entity on every query
    ✅ DO: Go through the registry, which scans each type once

Tags:
    metadata, reflection, descriptors, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import collections.abc
import dataclasses
import sys
import types
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Union, get_args, get_origin, get_type_hints

from strata.core.errors import (
    DuplicateColumnError,
    DuplicateKeyError,
    InvalidEntityError,
)
from strata.core.protocols import AttributeConverter
from strata.metadata.markers import (
    MARKER_KEY,
    ColumnMarker,
    FetchMode,
    RelationshipKind,
    RelationshipMarker,
    entity_marker,
)

_VARIABLE_WIDTH = frozenset({"VARCHAR", "CHAR", "NVARCHAR", "NCHAR", "VARBINARY", "BINARY"})


# ── descriptors ──────────────────────────────────────────────


@dataclass(frozen=True)
class ColumnDescriptor:
    """One scalar attribute mapped to one physical column."""

    attribute: str
    name: str
    sql_type: str = "VARCHAR"
    nullable: bool = True
    length: int = 255
    unique: bool = False
    key: bool = False
    converter: AttributeConverter[Any, Any] | None = field(default=None, compare=False)

    @property
    def is_variable_width(self) -> bool:
        return self.sql_type in _VARIABLE_WIDTH

    def ddl_type(self) -> str:
        if self.is_variable_width:
            return f"{self.sql_type}({self.length})"
        return self.sql_type

    def to_stored(self, value: Any) -> Any:
        return self.converter.to_stored(value) if self.converter is not None else value

    def to_domain(self, value: Any) -> Any:
        return self.converter.to_domain(value) if self.converter is not None else value


@dataclass(frozen=True)
class RelationshipDescriptor:
    """One association attribute."""

    kind: RelationshipKind
    attribute: str
    target: type
    join_column: str | None = None
    mapped_by: str | None = None
    multi_valued: bool = False
    fetch: FetchMode = FetchMode.LAZY

    @property
    def is_eager(self) -> bool:
        return self.fetch is FetchMode.EAGER

    @property
    def is_owning(self) -> bool:
        """Single-valued and holding the join column on this entity's table."""
        return not self.multi_valued and self.join_column is not None and self.mapped_by is None


@dataclass(frozen=True)
class EntityMetadata:
    """Structural description of one entity type."""

    entity_type: type
    table_name: str
    columns: Mapping[str, ColumnDescriptor]
    key_column: ColumnDescriptor | None = None
    relationships: tuple[RelationshipDescriptor, ...] = ()

    def __post_init__(self) -> None:
        if not self.table_name:
            raise InvalidEntityError(f"Entity {self.entity_type.__name__} has an empty table name")
        object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))

    @property
    def name(self) -> str:
        return self.entity_type.__name__

    @property
    def key_attribute(self) -> str | None:
        return self.key_column.attribute if self.key_column else None

    @property
    def key_column_name(self) -> str | None:
        return self.key_column.name if self.key_column else None

    def column_for(self, attribute: str) -> ColumnDescriptor | None:
        return self.columns.get(attribute)

    def column_by_name(self, name: str) -> ColumnDescriptor | None:
        """Look a column up by physical name, case-insensitively."""
        lowered = name.lower()
        for col in self.columns.values():
            if col.name.lower() == lowered:
                return col
        return None

    def column_names(self) -> list[str]:
        return [c.name for c in self.columns.values()]

    def relationship_for(self, attribute: str) -> RelationshipDescriptor | None:
        for rel in self.relationships:
            if rel.attribute == attribute:
                return rel
        return None

    def owning_relationships(self) -> list[RelationshipDescriptor]:
        return [r for r in self.relationships if r.is_owning]

    def foreign_key_columns(self) -> list[RelationshipDescriptor]:
        """Owning relationships whose join column is not a declared scalar column."""
        seen: set[str] = set()
        result = []
        for rel in self.owning_relationships():
            assert rel.join_column is not None
            lowered = rel.join_column.lower()
            if lowered in seen or self.column_by_name(rel.join_column) is not None:
                continue
            seen.add(lowered)
            result.append(rel)
        return result


# ── scanning ─────────────────────────────────────────────────


def default_table_name(cls: type) -> str:
    return cls.__name__.lower() + "s"


def _resolve_hints(cls: type, namespace: Mapping[str, type]) -> dict[str, Any]:
    module = sys.modules.get(cls.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    localns: dict[str, Any] = dict(namespace)
    localns.setdefault(cls.__name__, cls)
    try:
        return get_type_hints(cls, globalns, localns)
    except (NameError, TypeError, AttributeError):
        pass

    # One unresolvable annotation must not hide the others
    hints: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        hints[f.name] = _resolve_one(f.name, f.type, globalns, localns)
    return hints


def _resolve_one(name: str, annotation: Any, globalns: dict[str, Any], localns: dict[str, Any]) -> Any:
    """Resolve a single annotation; ``object`` when it cannot be resolved."""
    if not isinstance(annotation, str):
        return annotation
    holder = type("_Annotation", (), {"__annotations__": {name: annotation}})
    try:
        return get_type_hints(holder, globalns, localns)[name]
    except (NameError, SyntaxError, TypeError, AttributeError):
        return object


def _strip_optional(tp: Any) -> Any:
    if get_origin(tp) in (Union, types.UnionType):
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def _is_collection(tp: Any) -> bool:
    origin = get_origin(tp) or tp
    return (
        isinstance(origin, type)
        and issubclass(origin, collections.abc.Collection)
        and not issubclass(origin, (str, bytes))
    )


def _target_of(tp: Any) -> type:
    """Unwrap ``Optional``, lazy wrappers and collections down to the entity type."""
    tp = _strip_optional(tp)
    args = get_args(tp)
    if get_origin(tp) is not None and len(args) == 1:
        tp = _strip_optional(args[0])
    if isinstance(tp, type) and get_origin(tp) is None:
        return tp
    return object


def scan_entity(cls: type, *, namespace: Mapping[str, type] | None = None) -> EntityMetadata:
    """Build the :class:`EntityMetadata` for a marked class.

    ``namespace`` supplies extra names for resolving string annotations
    (typically every class already known to the registry).

    Raises:
        InvalidEntityError: not an entity, or a collection typed as many-to-one
        DuplicateKeyError: more than one key attribute
        DuplicateColumnError: two attributes map to the same column name
    """
    marker = entity_marker(cls) if isinstance(cls, type) else None
    if marker is None or not dataclasses.is_dataclass(cls):
        name = getattr(cls, "__name__", repr(cls))
        raise InvalidEntityError(f"{name} is not an entity").with_context(entity=name)

    hints = _resolve_hints(cls, namespace or {})
    columns: dict[str, ColumnDescriptor] = {}
    seen_names: dict[str, str] = {}
    keys: list[ColumnDescriptor] = []
    relationships: list[RelationshipDescriptor] = []

    for f in dataclasses.fields(cls):
        m = f.metadata.get(MARKER_KEY)
        if isinstance(m, ColumnMarker):
            col = ColumnDescriptor(
                attribute=f.name,
                name=m.name or f.name,
                sql_type=m.type,
                nullable=m.nullable and not m.key,
                length=m.length,
                unique=m.unique,
                key=m.key,
                converter=m.converter,
            )
            lowered = col.name.lower()
            if lowered in seen_names:
                raise DuplicateColumnError(cls.__name__, col.name)
            seen_names[lowered] = f.name
            columns[f.name] = col
            if col.key:
                keys.append(col)
        elif isinstance(m, RelationshipMarker):
            relationships.append(_relationship(cls, f.name, m, hints.get(f.name, object)))

    if len(keys) > 1:
        raise DuplicateKeyError(cls.__name__, [k.attribute for k in keys])

    return EntityMetadata(
        entity_type=cls,
        table_name=marker.table_name or default_table_name(cls),
        columns=columns,
        key_column=keys[0] if keys else None,
        relationships=tuple(relationships),
    )


def _relationship(cls: type, attribute: str, m: RelationshipMarker, hint: Any) -> RelationshipDescriptor:
    declared = _strip_optional(hint)
    multi = m.kind is RelationshipKind.ONE_TO_MANY
    if m.kind is RelationshipKind.MANY_TO_ONE and _is_collection(declared):
        raise InvalidEntityError(
            f"{cls.__name__}.{attribute} is a collection and cannot be many-to-one"
        ).with_context(entity=cls.__name__, attribute=attribute)
    if m.kind is RelationshipKind.ONE_TO_ONE and m.join_column is None and m.mapped_by is None:
        raise InvalidEntityError(
            f"{cls.__name__}.{attribute} one-to-one needs join_column or mapped_by"
        ).with_context(entity=cls.__name__, attribute=attribute)
    return RelationshipDescriptor(
        kind=m.kind,
        attribute=attribute,
        target=m.target or _target_of(declared),
        join_column=m.join_column,
        mapped_by=m.mapped_by,
        multi_valued=multi,
        fetch=m.fetch,
    )


__all__ = [
    "ColumnDescriptor",
    "RelationshipDescriptor",
    "EntityMetadata",
    "default_table_name",
    "scan_entity",
]
