"""
Schema generation from registered entity metadata.

Manifesto:
    Tables are created fresh from the registry, never diffed.  The only
    interesting decision is ordering: a table holding a many-to-one join
    column must be created after the table it references.  When the
    references form a cycle there is no such order, so every table is
    created bare and the foreign keys are added afterwards.

Architecture:
    ::

        registry.all_registered()
              │
              ▼
        graph: edge B → A when A many-to-one B (A ≠ B)
              │
              ▼
        Kahn's sort (seeded in registration order)
              │
        ┌─────┴───────────────────────────────┐
        │ acyclic                             │ cycle
        │ CREATE TABLE … CONSTRAINT fk_…      │ CREATE TABLE … (no FKs)
        │ in sorted order                     │ in registration order
        │                                     │ ALTER TABLE … ADD CONSTRAINT fk_…
        └─────────────────────────────────────┘

        optional pre-step (drop_if_exists):
          integrity off → DROP TABLE IF EXISTS (reverse order) → integrity on

Examples:
    >>> gen = SchemaGenerator(options=SchemaOptions(drop_if_exists=False))
    >>> plan = gen.plan()
    >>> plan.table_order
    ['authors', 'books']
    >>> gen.generate_all(conn)

Guardrails:
    ❌ DON'T: Run generate_all against a database holding data you need
    ✅ DO: Use plan() to review the DDL first (``strata ddl MODULE``)

Tags:
    schema, ddl, topological-sort, foreign-keys, strata

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from strata.core.connection import run_statement
from strata.core.dialect import AnsiDialect, Dialect
from strata.core.errors import NoActiveTransactionError, NoEntitiesRegisteredError
from strata.core.logging import get_logger
from strata.core.protocols import Connection
from strata.core.settings import StrataSettings, get_settings
from strata.core.transaction import TransactionManager
from strata.metadata.markers import RelationshipKind
from strata.metadata.model import EntityMetadata, RelationshipDescriptor
from strata.metadata.registry import EntityRegistry, default_registry

logger = get_logger(__name__)


@dataclass(frozen=True)
class SchemaOptions:
    drop_if_exists: bool = True
    print_ddl: bool = True
    fk_on_delete: str = "CASCADE"
    fk_on_update: str = "CASCADE"

    @classmethod
    def from_settings(cls, settings: StrataSettings | None = None) -> SchemaOptions:
        settings = settings or get_settings()
        return cls(
            drop_if_exists=settings.drop_if_exists,
            print_ddl=settings.print_ddl,
            fk_on_delete=settings.fk_on_delete,
            fk_on_update=settings.fk_on_update,
        )


@dataclass(frozen=True)
class SchemaPlan:
    """Everything ``generate_all`` would execute, in execution order."""

    creation_order: tuple[EntityMetadata, ...]
    drop_statements: tuple[str, ...]
    create_statements: tuple[str, ...]
    alter_statements: tuple[str, ...]
    has_cycle: bool

    @property
    def statements(self) -> list[str]:
        return [*self.drop_statements, *self.create_statements, *self.alter_statements]

    @property
    def table_order(self) -> list[str]:
        return [m.table_name for m in self.creation_order]

    def script(self) -> str:
        return "".join(f"{s};\n" for s in self.statements)


@dataclass(frozen=True)
class _TopoResult:
    ordered: tuple[EntityMetadata, ...]
    has_cycle: bool


class SchemaGenerator:
    """Emit and run CREATE/DROP/ALTER DDL for every registered entity."""

    def __init__(
        self,
        registry: EntityRegistry | None = None,
        options: SchemaOptions | None = None,
        dialect: Dialect | None = None,
        transactions: TransactionManager | None = None,
    ):
        self.registry = registry or default_registry()
        self.options = options or SchemaOptions()
        self.dialect = dialect or AnsiDialect()
        self.transactions = transactions

    # ── planning ─────────────────────────────────────────────

    def plan(self) -> SchemaPlan:
        metas = self.registry.all_registered()
        if not metas:
            raise NoEntitiesRegisteredError()

        topo = self._topological_sort(metas)
        creation_order = tuple(metas) if topo.has_cycle else topo.ordered
        # SQLite accepts forward references inline but cannot ALTER in a constraint
        inline_fks = not topo.has_cycle or not self.dialect.supports_alter_constraint

        drops: list[str] = []
        if self.options.drop_if_exists:
            drops.extend(s for s in [self.dialect.disable_integrity()] if s)
            drops.extend(f"DROP TABLE IF EXISTS {m.table_name}" for m in reversed(creation_order))
            drops.extend(s for s in [self.dialect.enable_integrity()] if s)

        creates = [self._create_table(m, inline_fks) for m in creation_order]

        alters: list[str] = []
        if not inline_fks:
            for m in metas:
                for rel in self._constrained(m):
                    alters.append(f"ALTER TABLE {m.table_name} ADD {self._constraint(m, rel)}")

        return SchemaPlan(
            creation_order=creation_order,
            drop_statements=tuple(drops),
            create_statements=tuple(creates),
            alter_statements=tuple(alters),
            has_cycle=topo.has_cycle,
        )

    def _topological_sort(self, metas: list[EntityMetadata]) -> _TopoResult:
        by_type = {m.entity_type: m for m in metas}
        dependents: dict[type, list[type]] = {m.entity_type: [] for m in metas}
        indegree: dict[type, int] = {m.entity_type: 0 for m in metas}

        for m in metas:
            for rel in m.relationships:
                if rel.kind is not RelationshipKind.MANY_TO_ONE:
                    continue
                target = rel.target
                if target not in by_type or target is m.entity_type:
                    continue
                if m.entity_type in dependents[target]:
                    continue
                dependents[target].append(m.entity_type)
                indegree[m.entity_type] += 1

        queue = deque(m.entity_type for m in metas if indegree[m.entity_type] == 0)
        ordered: list[EntityMetadata] = []
        while queue:
            t = queue.popleft()
            ordered.append(by_type[t])
            for dep in dependents[t]:
                indegree[dep] -= 1
                if indegree[dep] == 0:
                    queue.append(dep)

        has_cycle = len(ordered) != len(metas)
        if has_cycle:
            stuck = [by_type[t].name for t, d in indegree.items() if d > 0]
            logger.warning("schema_cycle_detected", entities=stuck)
        return _TopoResult(tuple(ordered), has_cycle)

    # ── DDL fragments ────────────────────────────────────────

    def _constrained(self, meta: EntityMetadata) -> list[RelationshipDescriptor]:
        """Many-to-one relationships whose target is registered and keyed."""
        result = []
        for rel in meta.relationships:
            if rel.kind is not RelationshipKind.MANY_TO_ONE or not rel.join_column:
                continue
            target = self.registry.get(rel.target)
            if target is not None and target.key_column is not None:
                result.append(rel)
        return result

    def _constraint(self, meta: EntityMetadata, rel: RelationshipDescriptor) -> str:
        target = self.registry.get(rel.target)
        assert target is not None and target.key_column is not None and rel.join_column
        name = f"fk_{meta.table_name.lower()}_{rel.join_column.lower()}"
        return (
            f"CONSTRAINT {name} FOREIGN KEY ({rel.join_column}) "
            f"REFERENCES {target.table_name}({target.key_column.name}) "
            f"ON DELETE {self.options.fk_on_delete} ON UPDATE {self.options.fk_on_update}"
        )

    def _create_table(self, meta: EntityMetadata, include_fks: bool) -> str:
        defs: list[str] = []
        for col in meta.columns.values():
            d = f"{col.name} {col.ddl_type()}"
            if not col.nullable:
                d += " NOT NULL"
            if col.unique:
                d += " UNIQUE"
            defs.append(d)

        for rel in meta.foreign_key_columns():
            target = self.registry.get(rel.target)
            fk_type = (
                target.key_column.ddl_type()
                if target is not None and target.key_column is not None
                else "INTEGER"
            )
            defs.append(f"{rel.join_column} {fk_type}")

        if meta.key_column is not None:
            defs.append(f"PRIMARY KEY ({meta.key_column.name})")

        if include_fks:
            defs.extend(self._constraint(meta, rel) for rel in self._constrained(meta))

        return f"CREATE TABLE {meta.table_name} ({', '.join(defs)})"

    # ── execution ────────────────────────────────────────────

    def generate_all(self, connection: Connection | None = None) -> SchemaPlan:
        """Execute the plan on ``connection`` (or the active transaction's)."""
        plan = self.plan()
        conn = connection or self._transaction_connection()

        for sql in plan.statements:
            if self.options.print_ddl:
                logger.info("ddl", sql=sql)
            run_statement(conn, sql)

        logger.info("schema_generated", tables=plan.table_order, cycle=plan.has_cycle)
        return plan

    def _transaction_connection(self) -> Connection:
        if self.transactions is None or not self.transactions.in_transaction():
            raise NoActiveTransactionError("generate_all")
        return self.transactions.get_connection()


__all__ = ["SchemaOptions", "SchemaPlan", "SchemaGenerator"]
