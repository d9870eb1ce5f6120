"""
Shared pytest fixtures and configuration for strata tests.

This module provides:
- Registry cleanup fixtures for test isolation
- SQLite-backed transaction managers on a temporary database file
- A recording connection for asserting on emitted SQL

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments:

    def test_something(tm, library_schema):
        ...
"""

import sys
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

# Ensure strata package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from strata.core.connection import connection_factory
from strata.core.dialect import SQLiteDialect
from strata.core.settings import get_settings
from strata.core.transaction import TransactionManager
from strata.metadata.registry import clear_registry, default_registry
from strata.query.builders import set_sql_echo
from strata.repository.registry import default_repositories
from strata.schema.generator import SchemaGenerator, SchemaOptions


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without an explicit marker as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Registry Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_registries_fixture() -> Generator[None, None, None]:
    """
    Clear the entity and repository registries before and after each test.

    Also resets the process SQL echo toggle and the cached settings so
    monkeypatched ``STRATA_*`` variables never leak between tests.
    """
    clear_registry()
    default_repositories().clear()
    set_sql_echo(None)
    get_settings.cache_clear()
    yield
    clear_registry()
    default_repositories().clear()
    set_sql_echo(None)
    get_settings.cache_clear()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "strata_test.db")


@pytest.fixture
def tm(db_path: str) -> TransactionManager:
    """Transaction manager over a fresh SQLite file."""
    return TransactionManager(connection_factory(db_path))


@pytest.fixture
def library_schema(tm: TransactionManager) -> TransactionManager:
    """Register the library entities and create their tables."""
    from _support.entities import Author, Book

    default_registry().register_all(Author, Book)
    generator = SchemaGenerator(
        options=SchemaOptions(drop_if_exists=True, print_ddl=False),
        dialect=SQLiteDialect(),
    )
    with tm.transaction() as conn:
        generator.generate_all(conn)
    return tm


# =============================================================================
# Recording Connection
# =============================================================================


class RecordingCursor:
    rowcount = 0
    lastrowid = None
    description = None

    def fetchone(self) -> Any:
        return None

    def fetchall(self) -> list[Any]:
        return []


class RecordingConnection:
    """Connection double that records every statement it is asked to run."""

    def __init__(self) -> None:
        self.statements: list[tuple[str, list[Any]]] = []
        self.autocommit = True
        self.committed = 0
        self.rolled_back = 0
        self.closed = False

    def execute(self, sql: str, params: Any = ()) -> RecordingCursor:
        self.statements.append((sql, list(params)))
        return RecordingCursor()

    def set_autocommit(self, enabled: bool) -> None:
        self.autocommit = enabled

    def commit(self) -> None:
        self.committed += 1

    def rollback(self) -> None:
        self.rolled_back += 1

    def close(self) -> None:
        self.closed = True

    @property
    def sql(self) -> list[str]:
        return [s for s, _ in self.statements]


@pytest.fixture
def recording_connection() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture
def recording_factory() -> tuple[list[RecordingConnection], Any]:
    """A connection factory handing out recording connections, plus the list of them."""
    opened: list[RecordingConnection] = []

    def factory() -> RecordingConnection:
        conn = RecordingConnection()
        opened.append(conn)
        return conn

    return opened, factory
