"""Tests for ``strata.schema.generator``: DDL planning and execution."""

from __future__ import annotations

import pytest
from _support.entities import (
    Author,
    Book,
    Category,
    Department,
    Edition,
    Employee,
    Profile,
    Publisher,
    User,
)

from strata.core.dialect import MySQLDialect, SQLiteDialect
from strata.core.errors import NoActiveTransactionError, NoEntitiesRegisteredError
from strata.core.transaction import TransactionManager
from strata.metadata.markers import column, entity, key, many_to_one
from strata.metadata.registry import EntityRegistry
from strata.schema.generator import SchemaGenerator, SchemaOptions

QUIET = SchemaOptions(drop_if_exists=False, print_ddl=False)


@entity(table_name="a_table")
class A:
    id: int | None = key()
    b: B | None = many_to_one("b_id")


@entity(table_name="b_table")
class B:
    id: int | None = key()
    c: C | None = many_to_one("c_id")


@entity(table_name="c_table")
class C:
    id: int | None = key()
    name: str | None = column()


def _registry(*types: type) -> EntityRegistry:
    reg = EntityRegistry()
    reg.register_all(*types)
    return reg


class TestCreationOrder:
    def test_dependencies_created_first(self):
        plan = SchemaGenerator(_registry(A, B, C), QUIET).plan()
        assert plan.table_order == ["c_table", "b_table", "a_table"]
        assert not plan.has_cycle
        assert plan.alter_statements == ()

    def test_independent_entities_keep_registration_order(self):
        plan = SchemaGenerator(_registry(Publisher, C), QUIET).plan()
        assert plan.table_order == ["publishers", "c_table"]

    def test_self_reference_is_not_a_cycle(self):
        plan = SchemaGenerator(_registry(Category), QUIET).plan()
        assert not plan.has_cycle
        assert "REFERENCES categories(id)" in plan.create_statements[0]

    def test_empty_registry(self):
        with pytest.raises(NoEntitiesRegisteredError):
            SchemaGenerator(EntityRegistry(), QUIET).plan()


class TestCreateTable:
    def test_columns_key_and_foreign_key(self):
        plan = SchemaGenerator(_registry(Author, Book), QUIET).plan()
        authors, books = plan.create_statements
        assert authors == "CREATE TABLE authors (id INTEGER NOT NULL, name VARCHAR(100) NOT NULL, PRIMARY KEY (id))"
        assert books == (
            "CREATE TABLE books (id INTEGER NOT NULL, title VARCHAR(255) NOT NULL, genre VARCHAR(20), "
            "pages INTEGER, author_id INTEGER, PRIMARY KEY (id), "
            "CONSTRAINT fk_books_author_id FOREIGN KEY (author_id) REFERENCES authors(id) "
            "ON DELETE CASCADE ON UPDATE CASCADE)"
        )

    def test_unique_column(self):
        plan = SchemaGenerator(_registry(Publisher, Edition), QUIET).plan()
        assert "isbn VARCHAR(13) UNIQUE" in plan.create_statements[1]

    def test_fk_policies(self):
        options = SchemaOptions(drop_if_exists=False, print_ddl=False, fk_on_delete="SET NULL", fk_on_update="RESTRICT")
        plan = SchemaGenerator(_registry(Author, Book), options).plan()
        assert "ON DELETE SET NULL ON UPDATE RESTRICT" in plan.create_statements[1]

    def test_one_to_one_owner_gets_column_without_constraint(self):
        plan = SchemaGenerator(_registry(User, Profile), QUIET).plan()
        profiles = plan.create_statements[1]
        assert "user_id INTEGER" in profiles
        assert "FOREIGN KEY" not in profiles

    def test_keyless_entity_has_no_primary_key(self):
        @entity(table_name="notes")
        class Note:
            body: str | None = column()

        plan = SchemaGenerator(_registry(Note), QUIET).plan()
        assert plan.create_statements == ("CREATE TABLE notes (body VARCHAR(255))",)


class TestDropStatements:
    def test_drops_in_reverse_creation_order(self):
        options = SchemaOptions(drop_if_exists=True, print_ddl=False)
        plan = SchemaGenerator(_registry(A, B, C), options).plan()
        assert plan.drop_statements == (
            "DROP TABLE IF EXISTS a_table",
            "DROP TABLE IF EXISTS b_table",
            "DROP TABLE IF EXISTS c_table",
        )

    def test_dialect_integrity_toggles_wrap_drops(self):
        options = SchemaOptions(drop_if_exists=True, print_ddl=False)
        plan = SchemaGenerator(_registry(C), options, dialect=MySQLDialect()).plan()
        assert plan.drop_statements == (
            "SET FOREIGN_KEY_CHECKS = 0",
            "DROP TABLE IF EXISTS c_table",
            "SET FOREIGN_KEY_CHECKS = 1",
        )


class TestCycles:
    def test_cycle_uses_alter_statements(self):
        plan = SchemaGenerator(_registry(Employee, Department), QUIET).plan()
        assert plan.has_cycle
        assert plan.table_order == ["employees", "departments"]
        assert all("FOREIGN KEY" not in s for s in plan.create_statements)
        assert plan.alter_statements == (
            "ALTER TABLE employees ADD CONSTRAINT fk_employees_department_id FOREIGN KEY (department_id) "
            "REFERENCES departments(id) ON DELETE CASCADE ON UPDATE CASCADE",
            "ALTER TABLE departments ADD CONSTRAINT fk_departments_manager_id FOREIGN KEY (manager_id) "
            "REFERENCES employees(id) ON DELETE CASCADE ON UPDATE CASCADE",
        )

    def test_cycle_on_sqlite_inlines_constraints(self):
        plan = SchemaGenerator(_registry(Employee, Department), QUIET, dialect=SQLiteDialect()).plan()
        assert plan.has_cycle
        assert plan.alter_statements == ()
        assert "REFERENCES departments(id)" in plan.create_statements[0]

    def test_script(self):
        plan = SchemaGenerator(_registry(C), QUIET).plan()
        assert plan.script() == "CREATE TABLE c_table (id INTEGER NOT NULL, name VARCHAR(255), PRIMARY KEY (id));\n"


class TestGenerateAll:
    def test_runs_every_statement(self, recording_connection):
        options = SchemaOptions(drop_if_exists=True, print_ddl=True)
        plan = SchemaGenerator(_registry(A, B, C), options).generate_all(recording_connection)
        assert recording_connection.sql == plan.statements
        assert len(recording_connection.sql) == 6

    def test_uses_transaction_connection(self, recording_factory):
        opened, factory = recording_factory
        tm = TransactionManager(factory)
        generator = SchemaGenerator(_registry(C), QUIET, transactions=tm)
        with tm.transaction():
            generator.generate_all()
        assert opened[0].sql[0].startswith("CREATE TABLE c_table")

    def test_requires_a_connection(self):
        with pytest.raises(NoActiveTransactionError):
            SchemaGenerator(_registry(C), QUIET).generate_all()

    @pytest.mark.integration
    def test_creates_tables_in_sqlite(self, tm):
        options = SchemaOptions(drop_if_exists=True, print_ddl=False)
        generator = SchemaGenerator(_registry(Employee, Department, Author, Book), options, dialect=SQLiteDialect())
        with tm.transaction() as conn:
            generator.generate_all(conn)
            # generating twice with drop_if_exists succeeds
            generator.generate_all(conn)

        conn = tm.open_connection()
        try:
            names = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()}
        finally:
            conn.close()
        assert {"employees", "departments", "authors", "books"} <= names
