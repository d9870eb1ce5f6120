"""Reference attribute converters."""

from __future__ import annotations

from enum import Enum
from typing import Generic, Literal, TypeVar

E = TypeVar("E", bound=Enum)


class EnumConverter(Generic[E]):
    """Store an enum member by its ``name`` (default) or its ``value``.

    ``None`` passes through unchanged in both directions.

    Example:
        >>> conv = EnumConverter(Genre)
        >>> conv.to_stored(Genre.FANTASY)
        'FANTASY'
        >>> conv.to_domain("FANTASY")
        <Genre.FANTASY: 'fantasy'>
    """

    def __init__(self, enum_type: type[E], by: Literal["name", "value"] = "name"):
        if by not in ("name", "value"):
            raise ValueError(f"by must be 'name' or 'value', got {by!r}")
        self.enum_type = enum_type
        self.by = by

    def to_stored(self, value: E | None) -> object | None:
        if value is None:
            return None
        return value.name if self.by == "name" else value.value

    def to_domain(self, stored: object | None) -> E | None:
        if stored is None:
            return None
        if self.by == "name":
            return self.enum_type[str(stored)]
        return self.enum_type(stored)

    def __repr__(self) -> str:
        return f"EnumConverter({self.enum_type.__name__}, by={self.by!r})"


__all__ = ["EnumConverter"]
