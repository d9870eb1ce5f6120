"""Tests for ``strata.core.connection``, the SQLite adapter and the SQLAlchemy bridge."""

from __future__ import annotations

import pytest

from strata.core.bridge import SAConnection, rewrite_placeholders
from strata.core.connection import (
    backend_name,
    connection_factory,
    create_connection,
    run_statement,
)
from strata.core.errors import ExecutionError
from strata.core.sqlite_conn import SqliteConnection


class TestUrlParsing:
    @pytest.mark.parametrize(
        ("url", "backend"),
        [
            (None, "sqlite"),
            ("memory", "sqlite"),
            ("sqlite:///data/app.db", "sqlite"),
            ("data/app.db", "sqlite"),
            ("postgresql://u@h/db", "postgresql"),
            ("postgres://u@h/db", "postgresql"),
            ("postgresql+psycopg2://u@h/db", "postgresql"),
            ("mysql+pymysql://u@h/db", "mysql"),
        ],
    )
    def test_backend_name(self, url, backend):
        assert backend_name(url) == backend


class TestCreateConnection:
    def test_memory(self):
        conn, info = create_connection()
        try:
            assert isinstance(conn, SqliteConnection)
            assert info.backend == "sqlite"
            assert info.persistent is False
            assert conn.autocommit is True
        finally:
            conn.close()

    def test_file_creates_parent_directories(self, tmp_path):
        target = tmp_path / "nested" / "dir" / "app.db"
        conn, info = create_connection(f"sqlite:///{target}")
        try:
            assert info.persistent is True
            assert info.is_sqlite
            assert info.resolved_path == str(target.resolve())
            assert target.parent.is_dir()
        finally:
            conn.close()

    def test_factory_opens_new_connections(self, db_path):
        factory = connection_factory(db_path)
        a, b = factory(), factory()
        try:
            assert a is not b
        finally:
            a.close()
            b.close()


class TestRunStatement:
    def test_wraps_driver_errors(self):
        conn, _ = create_connection()
        try:
            with pytest.raises(ExecutionError) as exc_info:
                run_statement(conn, "SELECT * FROM missing_table")
            assert exc_info.value.sql == "SELECT * FROM missing_table"
            assert exc_info.value.cause is not None
        finally:
            conn.close()

    def test_returns_cursor(self):
        conn, _ = create_connection()
        try:
            run_statement(conn, "CREATE TABLE t (x INTEGER)")
            cursor = run_statement(conn, "INSERT INTO t (x) VALUES (?)", [5])
            assert cursor.rowcount == 1
            assert run_statement(conn, "SELECT x FROM t").fetchone()[0] == 5
        finally:
            conn.close()


class TestRewritePlaceholders:
    def test_positional_to_named(self):
        sql, params = rewrite_placeholders("SELECT * FROM t WHERE a = ? AND b = ?", [1, "x"])
        assert sql == "SELECT * FROM t WHERE a = :p0 AND b = :p1"
        assert params == {"p0": 1, "p1": "x"}

    def test_question_mark_in_literal_untouched(self):
        sql, params = rewrite_placeholders("SELECT '?' FROM t WHERE a = ?", [1])
        assert sql == "SELECT '?' FROM t WHERE a = :p0"
        assert params == {"p0": 1}

    def test_count_mismatch(self):
        with pytest.raises(ValueError):
            rewrite_placeholders("SELECT ? , ?", [1])


class TestSQLAlchemyBridge:
    @pytest.mark.integration
    def test_round_trip_through_engine(self, tmp_path):
        url = f"sqlite+pysqlite:///{tmp_path / 'sa.db'}"
        conn, info = create_connection(url)
        try:
            assert isinstance(conn, SAConnection)
            assert info.backend == "sqlite"

            conn.set_autocommit(False)
            conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name VARCHAR(20))")
            cursor = conn.execute("INSERT INTO t (name) VALUES (?)", ["a"])
            assert cursor.lastrowid == 1
            conn.commit()

            cursor = conn.execute("SELECT id, name FROM t WHERE name = ?", ["a"])
            assert [d[0] for d in cursor.description] == ["id", "name"]
            assert cursor.fetchall() == [(1, "a")]
        finally:
            conn.close()
