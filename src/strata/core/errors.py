"""
Structured error types for strata.

Every failure the engine can report is a :class:`StrataError` subclass that
carries a category and a structured context (entity, table, SQL) so callers
can tell a mis-declared entity apart from a mis-used builder, a broken
transaction discipline, a driver failure or a stale update.

Manifesto:
    - **Typed taxonomy:** one family per failure domain, never bare Exception
    - **Fail loud on configuration:** metadata and wiring errors are fatal
    - **Rich context:** errors carry the entity/table/SQL that triggered them
    - **Error chaining:** driver exceptions are preserved as ``__cause__``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────────┐
        │                          StrataError                              │
        │                 (category, context, cause)                        │
        ├──────────────────────────────────────────────────────────────────┤
        │                                                                   │
        │  ConfigurationError          BuilderStateError                    │
        │  (CONFIG)                    (BUILDER)                            │
        │     │                           │                                 │
        │  InvalidEntityError          MissingTableError                    │
        │  DuplicateKeyError           NoSetClauseError                     │
        │  DuplicateColumnError        MissingColumnsError                  │
        │  NoEntitiesRegisteredError   ValueCountMismatchError              │
        │  IllegalStateError           IllegalSequenceError                 │
        │  RepositoryNotFoundError                                          │
        │                                                                   │
        │  TransactionError            ExecutionError                       │
        │  (TRANSACTION)               (EXECUTION)                          │
        │     │                           │                                 │
        │  NoActiveTransactionError    StaleOrMissingEntityError            │
        └──────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = MissingTableError("Table name is required for SELECT query")
    >>> error.category
    <ErrorCategory.BUILDER: 'BUILDER'>
    >>> error.with_context(entity="Book").context.entity
    'Book'

Guardrails:
    ❌ DON'T: Catch StrataError to retry configuration errors
    ✅ DO: Fix the entity declaration or the builder call

    ❌ DON'T: Swallow driver exceptions
    ✅ DO: Wrap them in ExecutionError with cause= and the failing SQL

Tags:
    error-handling, exception-hierarchy, error-context, strata

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification and log routing."""

    CONFIG = "CONFIG"             # Entity declarations, registry, wiring
    BUILDER = "BUILDER"           # Query/clause builder misuse
    TRANSACTION = "TRANSACTION"   # begin/commit/rollback discipline
    EXECUTION = "EXECUTION"       # Driver / statement failures
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        entity: Name of the entity type involved
        table: Physical table name
        attribute: Attribute (field) name on the entity
        sql: SQL text being built or executed
        metadata: Additional key-value pairs
    """

    entity: str | None = None
    table: str | None = None
    attribute: str | None = None
    sql: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["entity", "table", "attribute", "sql"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class StrataError(Exception):
    """
    Base exception for all strata errors.

    Subclasses set ``default_category`` so the category never has to be
    passed explicitly.

    Examples:
        >>> error = StrataError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["error_type"]
        'StrataError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> StrataError:
        """
        Add context to this error (fluent API).

        Usage:
            raise InvalidEntityError("not an entity").with_context(entity="Book")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(StrataError):
    """
    Entity declaration or wiring error.

    Always fatal and never retried: the declaration must be fixed.
    """

    default_category = ErrorCategory.CONFIG


class InvalidEntityError(ConfigurationError):
    """Type is not an entity, or one of its relationship markers is invalid."""

    pass


class DuplicateKeyError(ConfigurationError):
    """More than one attribute is marked as the key column."""

    def __init__(self, entity: str, attributes: list[str] | None = None):
        self.entity = entity
        self.attributes = attributes or []
        detail = f" ({', '.join(self.attributes)})" if self.attributes else ""
        super().__init__(
            f"Duplicate key field in class {entity}{detail}",
            context=ErrorContext(entity=entity),
        )


class DuplicateColumnError(ConfigurationError):
    """Two attributes resolve to the same physical column name."""

    def __init__(self, entity: str, column: str):
        self.entity = entity
        self.column = column
        super().__init__(
            f"Duplicate column name {column} in class {entity}",
            context=ErrorContext(entity=entity, metadata={"column": column}),
        )


class NoEntitiesRegisteredError(ConfigurationError):
    """Schema generation was requested with an empty registry."""

    def __init__(self, message: str = "There is no entity registered in the entity registry"):
        super().__init__(message)


class IllegalStateError(ConfigurationError):
    """A component was constructed from metadata it cannot work with."""

    pass


class RepositoryNotFoundError(ConfigurationError):
    """No repository is available for a relationship's target entity."""

    def __init__(self, target: type | str, message: str | None = None):
        self.target = target
        name = target if isinstance(target, str) else target.__name__
        super().__init__(
            message or f"No repository registered for entity {name}",
            context=ErrorContext(entity=name),
        )


# =============================================================================
# BUILDER STATE ERRORS
# =============================================================================


class BuilderStateError(StrataError):
    """
    Query or clause builder was used incorrectly.

    Fatal to the current build call; the caller must fix the call.
    """

    default_category = ErrorCategory.BUILDER


class MissingTableError(BuilderStateError):
    """No table or entity is bound to the builder."""

    pass


class NoSetClauseError(BuilderStateError):
    """UPDATE rendered without any SET assignment."""

    pass


class MissingColumnsError(BuilderStateError):
    """INSERT rendered without any column."""

    pass


class ValueCountMismatchError(BuilderStateError):
    """INSERT value count is not a positive multiple of the column count."""

    def __init__(self, columns: int, values: int):
        self.columns = columns
        self.values = values
        super().__init__(
            f"Values must be provided for all columns in INSERT query "
            f"({values} values for {columns} columns)"
        )


class IllegalSequenceError(BuilderStateError):
    """AND/OR used without a preceding condition, or left dangling."""

    pass


# =============================================================================
# TRANSACTION ERRORS
# =============================================================================


class TransactionError(StrataError):
    """Transaction discipline error. Indicates a caller bug."""

    default_category = ErrorCategory.TRANSACTION


class NoActiveTransactionError(TransactionError):
    """commit/rollback/get_connection called with no active transaction."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"No active transaction for {operation}")


# =============================================================================
# EXECUTION ERRORS
# =============================================================================


class ExecutionError(StrataError):
    """Connection or statement failure reported by the driver."""

    default_category = ErrorCategory.EXECUTION

    def __init__(self, message: str, *, sql: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        if sql is not None:
            self.context.sql = sql

    @property
    def sql(self) -> str | None:
        return self.context.sql


class StaleOrMissingEntityError(ExecutionError):
    """An UPDATE expected to affect one row affected none."""

    def __init__(self, entity: str, key: Any, *, sql: str | None = None):
        self.entity = entity
        self.key = key
        super().__init__(
            f"No rows updated for {entity} with key {key!r}, entity may not exist",
            sql=sql,
        )
        self.context.entity = entity


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "StrataError",
    # Configuration
    "ConfigurationError",
    "InvalidEntityError",
    "DuplicateKeyError",
    "DuplicateColumnError",
    "NoEntitiesRegisteredError",
    "IllegalStateError",
    "RepositoryNotFoundError",
    # Builder
    "BuilderStateError",
    "MissingTableError",
    "NoSetClauseError",
    "MissingColumnsError",
    "ValueCountMismatchError",
    "IllegalSequenceError",
    # Transaction
    "TransactionError",
    "NoActiveTransactionError",
    # Execution
    "ExecutionError",
    "StaleOrMissingEntityError",
]
