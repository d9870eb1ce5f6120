"""Tests for ``strata.core.transaction``: nested, context-scoped transactions."""

from __future__ import annotations

import asyncio
import threading

import pytest

from strata.core.errors import NoActiveTransactionError
from strata.core.transaction import TransactionManager


class TestBeginCommit:
    def test_begin_opens_connection_with_autocommit_off(self, recording_factory):
        opened, factory = recording_factory
        tm = TransactionManager(factory)
        tm.begin()
        assert len(opened) == 1
        assert opened[0].autocommit is False
        assert tm.depth == 1
        assert tm.get_connection() is opened[0]
        tm.commit()

    def test_nested_commit_only_outermost_commits(self, recording_factory):
        opened, factory = recording_factory
        tm = TransactionManager(factory)
        tm.begin()
        tm.begin()
        conn = tm.get_connection()
        assert len(opened) == 1

        tm.commit()
        assert tm.in_transaction()
        assert tm.get_connection() is conn
        assert conn.committed == 0

        tm.commit()
        assert not tm.in_transaction()
        assert conn.committed == 1
        assert conn.closed

        with pytest.raises(NoActiveTransactionError):
            tm.commit()

    def test_rollback_outermost(self, recording_factory):
        opened, factory = recording_factory
        tm = TransactionManager(factory)
        tm.begin()
        tm.rollback()
        assert opened[0].rolled_back == 1
        assert opened[0].closed
        assert tm.depth == 0

    def test_rollback_without_transaction(self, recording_factory):
        _, factory = recording_factory
        with pytest.raises(NoActiveTransactionError):
            TransactionManager(factory).rollback()

    def test_accessors_require_transaction(self, recording_factory):
        _, factory = recording_factory
        tm = TransactionManager(factory)
        with pytest.raises(NoActiveTransactionError):
            tm.get_connection()
        with pytest.raises(NoActiveTransactionError):
            tm.get_cache()

    def test_new_transaction_gets_new_connection(self, recording_factory):
        opened, factory = recording_factory
        tm = TransactionManager(factory)
        tm.begin()
        tm.commit()
        tm.begin()
        tm.commit()
        assert len(opened) == 2


class TestTransactionCache:
    def test_cache_lives_for_the_transaction(self, recording_factory):
        _, factory = recording_factory
        tm = TransactionManager(factory, cache_max_size=5)
        tm.begin()
        cache = tm.get_cache()
        assert cache.max_size == 5
        tm.begin()
        assert tm.get_cache() is cache
        tm.commit()
        tm.commit()

        tm.begin()
        assert tm.get_cache() is not cache
        tm.commit()


class TestTransactionContextManager:
    def test_commits_on_success(self, recording_factory):
        opened, factory = recording_factory
        tm = TransactionManager(factory)
        with tm.transaction() as conn:
            conn.execute("SELECT 1")
        assert opened[0].committed == 1

    def test_rolls_back_and_reraises(self, recording_factory):
        opened, factory = recording_factory
        tm = TransactionManager(factory)
        with pytest.raises(RuntimeError):
            with tm.transaction():
                raise RuntimeError("boom")
        assert opened[0].rolled_back == 1
        assert not tm.in_transaction()


class TestIsolation:
    def test_threads_do_not_share_transactions(self, recording_factory):
        opened, factory = recording_factory
        tm = TransactionManager(factory)
        tm.begin()
        seen: list[bool] = []

        def other() -> None:
            seen.append(tm.in_transaction())

        t = threading.Thread(target=other)
        t.start()
        t.join()
        tm.commit()
        assert seen == [False]

    def test_tasks_get_their_own_connection(self, recording_factory):
        opened, factory = recording_factory
        tm = TransactionManager(factory)

        async def unit() -> object:
            tm.begin()
            conn = tm.get_connection()
            await asyncio.sleep(0)
            assert tm.get_connection() is conn
            tm.commit()
            return conn

        async def main() -> list[object]:
            return await asyncio.gather(unit(), unit())

        first, second = asyncio.run(main())
        assert first is not second
        assert len(opened) == 2

    def test_managers_are_independent(self, recording_factory):
        _, factory = recording_factory
        a, b = TransactionManager(factory), TransactionManager(factory)
        a.begin()
        assert not b.in_transaction()
        a.commit()


class TestSQLiteTransactions:
    @pytest.mark.integration
    def test_rollback_discards_writes(self, tm):
        with tm.transaction() as conn:
            conn.execute("CREATE TABLE t (x INTEGER)")

        tm.begin()
        tm.get_connection().execute("INSERT INTO t (x) VALUES (?)", [1])
        tm.rollback()

        conn = tm.open_connection()
        try:
            assert conn.execute("SELECT COUNT(*) FROM t").fetchone()[0] == 0
        finally:
            conn.close()


class TestFromSettings:
    def test_uses_database_url_and_cache_size(self, tmp_path):
        from strata.core.settings import StrataSettings

        settings = StrataSettings(_env_file=None, database_url=str(tmp_path / "s.db"), cache_max_size=3)
        tm = TransactionManager.from_settings(settings)
        with tm.transaction():
            assert tm.get_cache().max_size == 3
        assert (tmp_path / "s.db").exists()
