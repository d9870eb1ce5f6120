"""SQL emitted by ``CrudRepository``, checked against a recording connection."""

from __future__ import annotations

import pytest
from _support.entities import Author, Book

from strata.core.errors import StaleOrMissingEntityError
from strata.core.transaction import TransactionManager
from strata.query.clause import ClauseBuilder
from strata.query.paging import PageRequest, Sort
from strata.repository.crud import CrudRepository


@pytest.fixture
def recorded(recording_factory):
    opened, factory = recording_factory
    tm = TransactionManager(factory)
    CrudRepository(Author, tm)
    return opened, tm, CrudRepository(Book, tm)


def _all_sql(opened) -> list[tuple[str, list]]:
    return [stmt for conn in opened for stmt in conn.statements]


class TestEmittedSql:
    def test_page_three_of_ten(self, recorded):
        opened, _, books = recorded
        page = books.find_all(PageRequest.of(3, 10, Sort.by("title")))
        assert _all_sql(opened) == [
            ("SELECT COUNT(1) AS total FROM (SELECT * FROM books) AS count_table", []),
            ("SELECT * FROM books ORDER BY title ASC LIMIT 10 OFFSET 20", []),
        ]
        assert page.total_elements == 0
        assert all(conn.closed for conn in opened)

    def test_find_by_id(self, recorded):
        opened, _, books = recorded
        assert books.find_by_id(5) is None
        assert _all_sql(opened) == [("SELECT * FROM books WHERE id = ?", [5])]

    def test_save_omits_missing_key(self, recorded):
        opened, tm, books = recorded
        with tm.transaction():
            books.save(Book(title="Dune", pages=412))
        assert opened[0].statements == [
            (
                "INSERT INTO books (title, genre, pages, author_id) VALUES (?, ?, ?, ?)",
                ["Dune", None, 412, None],
            )
        ]

    def test_update_binds_set_before_key(self, recorded):
        opened, tm, books = recorded
        with tm.transaction():
            # the recording cursor reports zero affected rows
            with pytest.raises(StaleOrMissingEntityError):
                books.update(Book(id=3, title="Dune", pages=412))
        sql, params = opened[0].statements[0]
        assert sql == "UPDATE books SET title = ?, genre = ?, pages = ?, author_id = ? WHERE id = ?"
        assert params == ["Dune", None, 412, None, 3]

    def test_delete_with_condition(self, recorded):
        opened, tm, books = recorded
        with tm.transaction():
            books.delete_with_condition(ClauseBuilder().less("pages", 10))
        assert opened[0].statements == [("DELETE FROM books WHERE pages < ?", [10])]
