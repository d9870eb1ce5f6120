"""Tests for ``strata.core.cache``: the per-transaction entity cache."""

from __future__ import annotations

import threading

import pytest

from strata.core.cache import EntityCache, EntityKey


class Book:
    pass


class Author:
    pass


class TestEntityKey:
    def test_equality_by_type_and_id(self):
        assert EntityKey(Book, 1) == EntityKey(Book, 1)
        assert EntityKey(Book, 1) != EntityKey(Author, 1)

    def test_str(self):
        assert str(EntityKey(Book, 3)) == "Book#3"


class TestEntityCacheBasics:
    def test_put_get(self):
        cache = EntityCache()
        b = Book()
        cache.put(Book, 1, b)
        assert cache.get(Book, 1) is b
        assert cache.contains(Book, 1)
        assert EntityKey(Book, 1) in cache

    def test_miss_returns_none(self):
        assert EntityCache().get(Book, 1) is None

    def test_same_id_different_type(self):
        cache = EntityCache()
        b, a = Book(), Author()
        cache.put(Book, 1, b)
        cache.put(Author, 1, a)
        assert cache.get(Book, 1) is b
        assert cache.get(Author, 1) is a

    def test_remove_and_clear_type(self):
        cache = EntityCache()
        cache.put_all(Book, [(1, Book()), (2, Book())])
        cache.put(Author, 1, Author())
        cache.remove(Book, 1)
        assert not cache.contains(Book, 1)
        cache.clear_type(Book)
        assert len(cache) == 1
        assert cache.keys() == [EntityKey(Author, 1)]

    def test_invalid_max_size(self):
        with pytest.raises(ValueError):
            EntityCache(max_size=0)


class TestEntityCacheOverflow:
    def test_reset_on_overflow_keeps_only_newest(self):
        cache = EntityCache(max_size=2)
        cache.put(Book, 1, Book())
        cache.put(Book, 2, Book())
        third = Book()
        cache.put(Book, 3, third)

        assert len(cache) == 1
        assert cache.get(Book, 3) is third
        assert cache.get(Book, 1) is None
        assert cache.resets == 1

    def test_overwrite_when_full_still_resets(self):
        cache = EntityCache(max_size=2)
        cache.put(Book, 1, Book())
        cache.put(Book, 2, Book())
        cache.put(Book, 2, Book())
        assert len(cache) == 1

    def test_never_exceeds_bound_under_concurrency(self):
        cache = EntityCache(max_size=10)
        seen: list[int] = []

        def worker(offset: int) -> None:
            for i in range(200):
                cache.put(Book, offset * 1000 + i, Book())
                seen.append(len(cache))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert max(seen) <= 10
