"""Entity classes shared by the test suite.

Kept at module level so string annotations resolve against module globals.
"""

from __future__ import annotations

from enum import Enum

from strata.loading.lazy import LazyCollection, LazyReference
from strata.metadata.converters import EnumConverter
from strata.metadata.markers import EAGER, column, entity, key, many_to_one, one_to_many, one_to_one


class Genre(Enum):
    FICTION = "fiction"
    SCIENCE = "science"
    HISTORY = "history"


# ── library: lazy many-to-one + one-to-many ──────────────────


@entity(table_name="authors")
class Author:
    id: int | None = key()
    name: str | None = column(nullable=False, length=100)
    books: LazyCollection[Book] = one_to_many(mapped_by="author")


@entity(table_name="books")
class Book:
    id: int | None = key()
    title: str | None = column(nullable=False)
    genre: Genre | None = column(converter=EnumConverter(Genre), length=20)
    pages: int | None = column(type="INTEGER")
    author: LazyReference[Author] | None = many_to_one("author_id")


# ── eager many-to-one ────────────────────────────────────────


@entity(table_name="publishers")
class Publisher:
    id: int | None = key()
    name: str | None = column()


@entity(table_name="editions")
class Edition:
    id: int | None = key()
    isbn: str | None = column(unique=True, length=13)
    publisher: Publisher | None = many_to_one("publisher_id", fetch=EAGER)


# ── cycle: employees <-> departments ─────────────────────────


@entity(table_name="employees")
class Employee:
    id: int | None = key()
    name: str | None = column()
    department: LazyReference[Department] | None = many_to_one("department_id")


@entity(table_name="departments")
class Department:
    id: int | None = key()
    name: str | None = column()
    manager: LazyReference[Employee] | None = many_to_one("manager_id")


# ── self reference ───────────────────────────────────────────


@entity(table_name="categories")
class Category:
    id: int | None = key()
    name: str | None = column()
    parent: LazyReference[Category] | None = many_to_one("parent_id")


@entity(table_name="nodes")
class Node:
    id: int | None = key()
    label: str | None = column()
    next: Node | None = many_to_one("next_id", fetch=EAGER)


# ── one-to-one, both sides ───────────────────────────────────


@entity(table_name="users")
class User:
    id: int | None = key()
    login: str | None = column(unique=True)
    profile: LazyReference[Profile] | None = one_to_one(mapped_by="user")


@entity(table_name="profiles")
class Profile:
    id: int | None = key()
    bio: str | None = column(length=500)
    user: LazyReference[User] | None = one_to_one("user_id")


# ── keyless ──────────────────────────────────────────────────


@entity(table_name="audit_log")
class AuditEntry:
    message: str | None = column()
