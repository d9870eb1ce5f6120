"""
Generic CRUD repository.

One :class:`CrudRepository` per entity type turns the entity's metadata
into SQL through the query builders, runs it on the connection handed out
by the :class:`~strata.core.transaction.TransactionManager` and maps rows
back into entity instances.

Architecture:
    ::

        CrudRepository(Book, tm)
          │ metadata ◄── EntityRegistry.require(Book)
          │ registers itself in RepositoryRegistry
          │
          ├── writes   save / update / delete_by_id / delete_with_condition
          │            (active transaction required)
          ├── reads    find_by_id / find_all / find_with_condition / count / is_exist
          │            (transaction connection, else an ad hoc connection)
          └── mapping  row ──► Book.__new__ + dataclass defaults
                               scalar columns   (case-insensitive, converted)
                               many-to-one      eager: find_by_id now
                                                lazy:  LazyReference(find_by_id, key=fk)
                               one-to-many      LazyCollection(find_with_condition(fk = own key))
                               inverse 1-1      via the target's join column

    Outside a transaction each top-level read keeps its own identity map,
    so eager cycles close on the instances already mapped. The
    transaction's EntityCache is read by find_by_id, refreshed by
    reads/save/update and evicted by deletes.

Examples:
    >>> authors = CrudRepository(Author, tm)
    >>> books = CrudRepository(Book, tm)
    >>> with tm.transaction():
    ...     le_guin = authors.save(Author(name="Le Guin"))
    ...     books.save(Book(title="The Dispossessed", author=LazyReference.resolved(le_guin)))
    >>> page = books.find_all(PageRequest.of(1, 10, Sort.by("title")))
    >>> page.content[0].author.get().name
    'Le Guin'

Guardrails:
    ❌ DON'T: Call save()/update() outside begin()/commit()
    ✅ DO: Wrap writes in ``with tm.transaction():``

    ❌ DON'T: Mark both sides of a relationship eager
    ✅ DO: Keep one side lazy; eager resolution runs at mapping time

Tags:
    repository, crud, orm, mapping, pagination, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Generic, TypeVar

from strata.core.cache import EntityCache, EntityKey
from strata.core.connection import run_statement
from strata.core.errors import (
    IllegalStateError,
    InvalidEntityError,
    NoActiveTransactionError,
    RepositoryNotFoundError,
    StaleOrMissingEntityError,
)
from strata.core.logging import get_logger
from strata.core.protocols import Connection
from strata.core.transaction import TransactionManager
from strata.loading.lazy import LazyCollection, LazyReference, lazy_collection, lazy_reference
from strata.metadata.model import EntityMetadata, RelationshipDescriptor
from strata.metadata.registry import EntityRegistry, default_registry
from strata.query.builders import DeleteBuilder, InsertBuilder, SelectBuilder, UpdateBuilder
from strata.query.clause import ClauseBuilder, ClauseExpression
from strata.query.paging import Page, PageRequest
from strata.repository.registry import RepositoryRegistry, default_repositories

logger = get_logger(__name__)

E = TypeVar("E")

Condition = ClauseBuilder | ClauseExpression | str

# Instances mapped during the current top-level read, by key
_materialized: ContextVar[dict[EntityKey, Any] | None] = ContextVar(
    "strata_materialized", default=None
)


@contextmanager
def _read_scope() -> Iterator[dict[EntityKey, Any]]:
    """Share one identity map across a read and the eager loads it triggers."""
    current = _materialized.get()
    if current is not None:
        yield current
        return
    seen: dict[EntityKey, Any] = {}
    token = _materialized.set(seen)
    try:
        yield seen
    finally:
        _materialized.reset(token)


def _assign(instance: Any, attribute: str, value: Any) -> None:
    # object.__setattr__ also works for frozen dataclasses
    object.__setattr__(instance, attribute, value)


class CrudRepository(Generic[E]):
    """Create/read/update/delete for one entity type."""

    def __init__(
        self,
        entity_type: type[E],
        transactions: TransactionManager,
        *,
        registry: EntityRegistry | None = None,
        repositories: RepositoryRegistry | None = None,
    ):
        self.entity_type = entity_type
        self.transactions = transactions
        self.registry = registry or default_registry()
        self.metadata: EntityMetadata = self.registry.require(entity_type)
        if self.metadata.key_column is None:
            raise IllegalStateError(
                f"Entity {entity_type.__name__} has no key column"
            ).with_context(entity=entity_type.__name__, table=self.metadata.table_name)
        self.repositories = repositories if repositories is not None else default_repositories()
        self.repositories.register(entity_type, self)

    @property
    def _key_attribute(self) -> str:
        assert self.metadata.key_column is not None
        return self.metadata.key_column.attribute

    @property
    def _key_column(self) -> str:
        assert self.metadata.key_column is not None
        return self.metadata.key_column.name

    def resolve_repository(self, target_type: type) -> CrudRepository[Any] | None:
        """Repository used for relationships targeting ``target_type``."""
        return self.repositories.get(target_type)

    # ── connections ──────────────────────────────────────────

    def _write_connection(self, operation: str) -> Connection:
        if not self.transactions.in_transaction():
            raise NoActiveTransactionError(f"{self.metadata.name}.{operation}")
        return self.transactions.get_connection()

    @contextmanager
    def _read_connection(self) -> Iterator[Connection]:
        if self.transactions.in_transaction():
            yield self.transactions.get_connection()
            return
        conn = self.transactions.open_connection()
        try:
            yield conn
        finally:
            conn.close()

    def _cache(self) -> EntityCache | None:
        if self.transactions.in_transaction():
            return self.transactions.get_cache()
        return None

    def _query(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        with self._read_connection() as conn:
            cursor = run_statement(conn, sql, params)
            names = [d[0].lower() for d in (cursor.description or ())]
            rows = cursor.fetchall()
        return [dict(zip(names, row)) for row in rows]

    def _scalar(self, sql: str, params: list[Any]) -> Any:
        with self._read_connection() as conn:
            row = run_statement(conn, sql, params).fetchone()
        return row[0] if row is not None else None

    # ── writes ───────────────────────────────────────────────

    def save(self, entity: E) -> E:
        """INSERT ``entity``; a ``None`` key is filled from the generated row id."""
        conn = self._write_connection("save")
        columns, values = self._write_values(entity, include_key=True)
        sql, params = InsertBuilder(self.metadata).columns(columns).values(*values).render()
        cursor = run_statement(conn, sql, params)

        if getattr(entity, self._key_attribute) is None:
            _assign(entity, self._key_attribute, cursor.lastrowid)
        key = getattr(entity, self._key_attribute)
        cache = self._cache()
        if cache is not None:
            cache.put(self.entity_type, key, entity)
        logger.debug("entity_saved", entity=self.metadata.name, key=key)
        return entity

    def update(self, entity: E) -> E:
        """UPDATE every non-key column of ``entity`` by key."""
        conn = self._write_connection("update")
        key = getattr(entity, self._key_attribute)
        if key is None:
            raise StaleOrMissingEntityError(self.metadata.name, None)

        builder = UpdateBuilder(self.metadata)
        for column, value in zip(*self._write_values(entity, include_key=False)):
            builder.set(column, value)
        builder.where(ClauseBuilder().equal(self._key_column, key))
        sql, params = builder.render()

        cursor = run_statement(conn, sql, params)
        if cursor.rowcount == 0:
            raise StaleOrMissingEntityError(self.metadata.name, key, sql=sql)
        cache = self._cache()
        if cache is not None:
            cache.put(self.entity_type, key, entity)
        logger.debug("entity_updated", entity=self.metadata.name, key=key)
        return entity

    def delete_by_id(self, id: Any) -> bool:
        """DELETE by key; ``True`` when a row was removed."""
        conn = self._write_connection("delete_by_id")
        if id is None:
            return False
        sql, params = (
            DeleteBuilder(self.metadata).where(ClauseBuilder().equal(self._key_column, id)).render()
        )
        deleted = run_statement(conn, sql, params).rowcount > 0
        cache = self._cache()
        if cache is not None:
            cache.remove(self.entity_type, id)
        return deleted

    def delete_with_condition(self, condition: Condition, *values: Any) -> int:
        """DELETE every row matching ``condition``; returns the affected row count."""
        conn = self._write_connection("delete_with_condition")
        sql, params = DeleteBuilder(self.metadata).where(condition, *values).render()
        count = run_statement(conn, sql, params).rowcount
        cache = self._cache()
        if cache is not None:
            cache.clear_type(self.entity_type)
        return count

    def _write_values(self, entity: E, *, include_key: bool) -> tuple[list[str], list[Any]]:
        columns: list[str] = []
        values: list[Any] = []
        for col in self.metadata.columns.values():
            value = getattr(entity, col.attribute)
            if col.key and (not include_key or value is None):
                continue
            columns.append(col.name)
            values.append(col.to_stored(value))
        for rel in self.metadata.foreign_key_columns():
            assert rel.join_column is not None
            columns.append(rel.join_column)
            values.append(self._foreign_key_value(getattr(entity, rel.attribute, None)))
        return columns, values

    def _foreign_key_value(self, related: Any) -> Any:
        if related is None:
            return None
        if isinstance(related, LazyReference):
            if related.key is not None or not related.is_loaded:
                return related.key
            related = related.get()
            if related is None:
                return None
        meta = self.registry.get(type(related))
        if meta is None or meta.key_attribute is None:
            # a raw key value
            return related
        return getattr(related, meta.key_attribute)

    # ── reads ────────────────────────────────────────────────

    def find_by_id(self, id: Any) -> E | None:
        if id is None:
            return None
        cache = self._cache()
        if cache is not None:
            cached = cache.get(self.entity_type, id)
            if cached is not None:
                return cached
        with _read_scope() as seen:
            found = seen.get(EntityKey(self.entity_type, id))
            if found is not None:
                return found
            sql, params = (
                SelectBuilder(self.metadata).where(ClauseBuilder().equal(self._key_column, id)).render()
            )
            rows = self._query(sql, params)
            return self._map_row(rows[0]) if rows else None

    def is_exist(self, id: Any) -> bool:
        if id is None:
            return False
        cache = self._cache()
        if cache is not None and cache.contains(self.entity_type, id):
            return True
        sql, params = (
            SelectBuilder(self.metadata)
            .columns("COUNT(1) AS total")
            .where(ClauseBuilder().equal(self._key_column, id))
            .render()
        )
        return (self._scalar(sql, params) or 0) > 0

    def count(self) -> int:
        sql, params = SelectBuilder(self.metadata).columns("COUNT(1) AS total").render()
        return int(self._scalar(sql, params) or 0)

    def find_all(self, page_request: PageRequest | None = None) -> list[E] | Page[E]:
        """Every row, or one page of rows when ``page_request`` is given."""
        select = SelectBuilder(self.metadata)
        if page_request is not None:
            return self._paginate(select, page_request)
        return self._fetch(select)

    def find_with_condition(
        self, condition: Condition, *values: Any, page_request: PageRequest | None = None
    ) -> list[E] | Page[E]:
        """Rows matching ``condition``; ``values`` bind the ``?`` of a string condition.

        A trailing positional :class:`PageRequest` is taken as ``page_request``.
        """
        if page_request is None and values and isinstance(values[-1], PageRequest):
            page_request, values = values[-1], values[:-1]
        select = SelectBuilder(self.metadata).where(condition, *values)
        if page_request is not None:
            return self._paginate(select, page_request)
        return self._fetch(select)

    def _fetch(self, select: SelectBuilder) -> list[E]:
        sql, params = select.render()
        rows = self._query(sql, params)
        with _read_scope():
            return [self._map_row(row) for row in rows]

    def _paginate(self, select: SelectBuilder, request: PageRequest) -> Page[E]:
        count_sql, count_params = select.count_wrapped()
        total = int(self._scalar(count_sql, count_params) or 0)
        if request.sort.is_sorted:
            select.order_by(request.sort)
        select.limit(request.page_size).offset(request.offset)
        return Page(content=self._fetch(select), total_elements=total, request=request)

    # ── row mapping ──────────────────────────────────────────

    def _blank(self) -> E:
        instance = self.entity_type.__new__(self.entity_type)
        for f in dataclasses.fields(self.entity_type):  # type: ignore[arg-type]
            if f.default is not dataclasses.MISSING:
                value = f.default
            elif f.default_factory is not dataclasses.MISSING:
                value = f.default_factory()
            else:
                value = None
            _assign(instance, f.name, value)
        return instance

    def _map_row(self, row: dict[str, Any]) -> E:
        instance = self._blank()
        for col in self.metadata.columns.values():
            lowered = col.name.lower()
            if lowered in row:
                _assign(instance, col.attribute, col.to_domain(row[lowered]))

        key = getattr(instance, self._key_attribute)
        if key is not None:
            seen = _materialized.get()
            if seen is not None:
                mapped = seen.get(EntityKey(self.entity_type, key))
                if mapped is not None:
                    # already mapped by an eager load earlier in this read
                    return mapped
                seen[EntityKey(self.entity_type, key)] = instance
            # before wiring, so an eager back-reference finds this instance
            cache = self._cache()
            if cache is not None:
                cache.put(self.entity_type, key, instance)

        for rel in self.metadata.relationships:
            _assign(instance, rel.attribute, self._wire(instance, rel, row))
        return instance

    def _wire(self, instance: E, rel: RelationshipDescriptor, row: dict[str, Any]) -> Any:
        try:
            return self._relationship_value(instance, rel, row)
        except RepositoryNotFoundError:
            if rel.is_eager:
                raise
            logger.warning(
                "relationship_resolution_failed",
                entity=self.metadata.name,
                attribute=rel.attribute,
                reason="no repository for target",
                target=rel.target.__name__,
            )
        except RecursionError:
            raise
        except Exception:
            logger.warning(
                "relationship_resolution_failed",
                entity=self.metadata.name,
                attribute=rel.attribute,
                exc_info=True,
            )
        return None

    def _relationship_value(self, instance: E, rel: RelationshipDescriptor, row: dict[str, Any]) -> Any:
        target = self.resolve_repository(rel.target)
        if target is None:
            raise RepositoryNotFoundError(rel.target)
        own_key = getattr(instance, self._key_attribute)

        if rel.multi_valued:
            if own_key is None:
                return LazyCollection.resolved([])
            fk = self._inverse_column(rel, target.metadata)
            return lazy_collection(lambda: target.find_with_condition(ClauseBuilder().equal(fk, own_key)))

        if not rel.is_owning:
            fk = self._inverse_column(rel, target.metadata)

            def load_inverse() -> Any:
                if own_key is None:
                    return None
                found = target.find_with_condition(ClauseBuilder().equal(fk, own_key))
                return found[0] if found else None

            return load_inverse() if rel.is_eager else lazy_reference(load_inverse)

        assert rel.join_column is not None
        fk_value = row.get(rel.join_column.lower())
        if fk_value is None:
            return None if rel.is_eager else LazyReference.resolved(None)
        if rel.is_eager:
            return target.find_by_id(fk_value)
        return lazy_reference(lambda: target.find_by_id(fk_value), key=fk_value)

    def _inverse_column(self, rel: RelationshipDescriptor, target: EntityMetadata) -> str:
        """Column on the target's table that holds this entity's key."""
        if rel.join_column:
            return rel.join_column
        if rel.mapped_by:
            inverse = target.relationship_for(rel.mapped_by)
            if inverse is not None and inverse.join_column:
                return inverse.join_column
            column = target.column_for(rel.mapped_by)
            if column is not None:
                return column.name
        raise InvalidEntityError(
            f"{self.metadata.name}.{rel.attribute}: cannot find the join column on {target.name}"
        ).with_context(entity=self.metadata.name, attribute=rel.attribute)

    def __repr__(self) -> str:
        return f"CrudRepository({self.metadata.name}, table={self.metadata.table_name!r})"


__all__ = ["CrudRepository"]
