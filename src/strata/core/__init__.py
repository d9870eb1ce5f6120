"""Strata Core -- connections, transactions, errors and ambient plumbing.

Manifesto:
    ``strata.core`` is the layer every other strata package sits on.  It
    never knows about entities: it only knows how to open a connection,
    scope a transaction to the current execution context, cache
    materialized rows for that transaction, log, configure and fail.

    - **Protocol-first:** Connection, Cursor, Dialect are protocols
    - **Context-scoped:** transactions live in a ContextVar
    - **Driver-agnostic:** sqlite3 directly, everything else via SQLAlchemy

Architecture::

    Layer 1 -- Errors, logging, settings
        errors.py          StrataError hierarchy
        logging.py         structlog configuration
        settings.py        StrataSettings (pydantic-settings, STRATA_*)
        protocols.py       Connection / Cursor / AttributeConverter

    Layer 2 -- Database access
        sqlite_conn.py     sqlite3 adapter
        bridge.py          SQLAlchemy adapter
        connection.py      create_connection / connection_factory
        dialect.py         referential-integrity toggles

    Layer 3 -- Unit of work
        cache.py           EntityKey / EntityCache
        transaction.py     TransactionManager
"""

from strata.core.cache import EntityCache, EntityKey
from strata.core.connection import (
    ConnectionInfo,
    connection_factory,
    create_connection,
    run_statement,
)
from strata.core.dialect import Dialect, get_dialect
from strata.core.errors import (
    BuilderStateError,
    ConfigurationError,
    DuplicateColumnError,
    DuplicateKeyError,
    ErrorCategory,
    ErrorContext,
    ExecutionError,
    IllegalSequenceError,
    IllegalStateError,
    InvalidEntityError,
    MissingColumnsError,
    MissingTableError,
    NoActiveTransactionError,
    NoEntitiesRegisteredError,
    NoSetClauseError,
    RepositoryNotFoundError,
    StaleOrMissingEntityError,
    StrataError,
    TransactionError,
    ValueCountMismatchError,
)
from strata.core.logging import configure_logging, get_logger
from strata.core.protocols import AttributeConverter, Connection, ConnectionFactory, Cursor
from strata.core.settings import StrataSettings, get_settings
from strata.core.transaction import TransactionContext, TransactionManager

__all__ = [
    # errors
    "ErrorCategory",
    "ErrorContext",
    "StrataError",
    "ConfigurationError",
    "InvalidEntityError",
    "DuplicateKeyError",
    "DuplicateColumnError",
    "NoEntitiesRegisteredError",
    "IllegalStateError",
    "RepositoryNotFoundError",
    "BuilderStateError",
    "MissingTableError",
    "NoSetClauseError",
    "MissingColumnsError",
    "ValueCountMismatchError",
    "IllegalSequenceError",
    "TransactionError",
    "NoActiveTransactionError",
    "ExecutionError",
    "StaleOrMissingEntityError",
    # ambient
    "configure_logging",
    "get_logger",
    "StrataSettings",
    "get_settings",
    # connections
    "Connection",
    "ConnectionFactory",
    "Cursor",
    "AttributeConverter",
    "ConnectionInfo",
    "create_connection",
    "connection_factory",
    "run_statement",
    "Dialect",
    "get_dialect",
    # unit of work
    "EntityKey",
    "EntityCache",
    "TransactionContext",
    "TransactionManager",
]
