"""
strata: a small reflection-driven persistence engine for dataclasses.

Declare entities with markers, register them, generate their schema, and
read/write them through generic repositories inside context-scoped
transactions.

    from strata import CrudRepository, TransactionManager, connection_factory
    from strata import entity, key, column, many_to_one, LazyReference

    @entity(table_name="books")
    class Book:
        id: int | None = key()
        title: str | None = column(nullable=False)
        author: LazyReference[Author] | None = many_to_one("author_id")
"""

__version__ = "0.1.0"

from strata.core import (
    ConnectionInfo,
    EntityCache,
    EntityKey,
    StrataError,
    StrataSettings,
    TransactionManager,
    configure_logging,
    connection_factory,
    create_connection,
    get_logger,
    get_settings,
)
from strata.loading import NOT_LOADED, LazyCollection, LazyReference
from strata.metadata import (
    EAGER,
    LAZY,
    EntityMetadata,
    EntityRegistry,
    EnumConverter,
    FetchMode,
    column,
    entity,
    get_metadata,
    key,
    many_to_one,
    one_to_many,
    one_to_one,
    register,
    register_all,
)
from strata.query import (
    ClauseBuilder,
    ClauseExpression,
    DeleteBuilder,
    InsertBuilder,
    Order,
    Page,
    PageRequest,
    SelectBuilder,
    Sort,
    UpdateBuilder,
    set_sql_echo,
)
from strata.repository import CrudRepository, RepositoryRegistry
from strata.schema import SchemaGenerator, SchemaOptions, SchemaPlan

__all__ = [
    "__version__",
    # core
    "StrataError",
    "StrataSettings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "ConnectionInfo",
    "create_connection",
    "connection_factory",
    "EntityKey",
    "EntityCache",
    "TransactionManager",
    # metadata
    "entity",
    "column",
    "key",
    "many_to_one",
    "one_to_many",
    "one_to_one",
    "EAGER",
    "LAZY",
    "FetchMode",
    "EnumConverter",
    "EntityMetadata",
    "EntityRegistry",
    "register",
    "register_all",
    "get_metadata",
    # loading
    "NOT_LOADED",
    "LazyReference",
    "LazyCollection",
    # query
    "ClauseBuilder",
    "ClauseExpression",
    "SelectBuilder",
    "InsertBuilder",
    "UpdateBuilder",
    "DeleteBuilder",
    "set_sql_echo",
    "Order",
    "Sort",
    "PageRequest",
    "Page",
    # schema / repository
    "SchemaGenerator",
    "SchemaOptions",
    "SchemaPlan",
    "CrudRepository",
    "RepositoryRegistry",
]
