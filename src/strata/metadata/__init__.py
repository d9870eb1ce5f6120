"""Entity metadata: markers, descriptors, scanning and the registry."""

from strata.metadata.converters import EnumConverter
from strata.metadata.markers import (
    EAGER,
    LAZY,
    FetchMode,
    RelationshipKind,
    column,
    entity,
    key,
    many_to_one,
    one_to_many,
    one_to_one,
)
from strata.metadata.model import (
    ColumnDescriptor,
    EntityMetadata,
    RelationshipDescriptor,
    scan_entity,
)
from strata.metadata.registry import (
    EntityRegistry,
    all_registered,
    clear_registry,
    default_registry,
    get_metadata,
    register,
    register_all,
)

__all__ = [
    "EAGER",
    "LAZY",
    "FetchMode",
    "RelationshipKind",
    "entity",
    "column",
    "key",
    "many_to_one",
    "one_to_many",
    "one_to_one",
    "ColumnDescriptor",
    "RelationshipDescriptor",
    "EntityMetadata",
    "scan_entity",
    "EntityRegistry",
    "default_registry",
    "register",
    "register_all",
    "get_metadata",
    "all_registered",
    "clear_registry",
    "EnumConverter",
]
