"""Tests for ``strata.loading.lazy``: lazy references and collections."""

from __future__ import annotations

import threading
import time

import pytest

from strata.loading.lazy import NOT_LOADED, LazyCollection, LazyReference, lazy_collection, lazy_reference


class TestLazyReference:
    def test_resolves_once(self):
        calls = []

        def resolver():
            calls.append(1)
            return "value"

        ref = lazy_reference(resolver, key=7)
        assert not ref.is_loaded
        assert ref.key == 7
        assert ref.get() == "value"
        assert ref.get() == "value"
        assert ref.is_loaded
        assert calls == [1]

    def test_peek_never_resolves(self):
        ref = LazyReference(lambda: "value")
        assert ref.peek() is NOT_LOADED
        assert not NOT_LOADED
        ref.load()
        assert ref.peek() == "value"

    def test_none_result_is_cached(self):
        calls = []
        ref = LazyReference(lambda: calls.append(1))
        assert ref.get() is None
        assert ref.get() is None
        assert calls == [1]

    def test_resolved(self):
        ref = LazyReference.resolved("x", key=1)
        assert ref.is_loaded
        assert ref.get() == "x"

    def test_failed_resolution_can_retry(self):
        attempts = []

        def resolver():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("transient")
            return "ok"

        ref = LazyReference(resolver)
        with pytest.raises(RuntimeError):
            ref.get()
        assert not ref.is_loaded
        assert ref.get() == "ok"

    def test_concurrent_get_runs_resolver_once(self):
        calls = []

        def slow():
            calls.append(1)
            time.sleep(0.05)
            return object()

        ref = LazyReference(slow)
        results = []
        threads = [threading.Thread(target=lambda: results.append(ref.get())) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert calls == [1]
        assert all(r is results[0] for r in results)


class TestLazyCollection:
    def test_materializes_on_first_use(self):
        calls = []

        def resolver():
            calls.append(1)
            return ["a", "b", "c"]

        coll = lazy_collection(resolver)
        assert not coll.is_loaded
        assert coll.peek() is NOT_LOADED
        assert len(coll) == 3
        assert coll[0] == "a"
        assert coll[1:] == ["b", "c"]
        assert "b" in coll
        assert list(reversed(coll)) == ["c", "b", "a"]
        assert calls == [1]

    def test_get_returns_copy(self):
        coll = LazyCollection.resolved(["a"])
        items = coll.get()
        items.append("b")
        assert len(coll) == 1

    def test_none_from_resolver_is_an_error(self):
        coll = LazyCollection(lambda: None)
        with pytest.raises(TypeError):
            len(coll)

    def test_empty(self):
        coll = LazyCollection.resolved([])
        assert coll.is_loaded
        assert list(coll) == []
        assert coll.peek() == []
