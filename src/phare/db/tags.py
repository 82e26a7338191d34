"""Tag filters for content ideas.

A content idea can be restricted to some restaurant types, content types or
thematic categories. Each restriction is a ``TagFilter`` in one of two explicit
states:

* ``ANY``: no restriction, the idea matches every value (stored as NULL).
* ``ONLY``: a non-empty set of allowed values.

An empty list coming from storage or an admin form is normalised to ``ANY`` so
that "empty" and "unrestricted" can never drift apart.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class TagMode(str, Enum):
    ANY = "any"
    ONLY = "only"


@dataclass(frozen=True)
class TagFilter:
    mode: TagMode
    values: frozenset[Any] = frozenset()

    def __post_init__(self) -> None:
        if self.mode is TagMode.ANY and self.values:
            raise ValueError("An unrestricted filter cannot carry values")
        if self.mode is TagMode.ONLY and not self.values:
            raise ValueError("A restricted filter needs at least one value")

    @classmethod
    def any(cls) -> TagFilter:
        return cls(TagMode.ANY)

    @classmethod
    def only(cls, values: Iterable[Hashable]) -> TagFilter:
        return cls(TagMode.ONLY, frozenset(values))

    @classmethod
    def from_storage(
        cls,
        raw: list[Any] | None,
        coerce: Callable[[Any], Hashable] = str,
    ) -> TagFilter:
        """Build a filter from a JSON column value (None or list)."""
        if not raw:
            return cls.any()
        if not isinstance(raw, list):
            raise ValueError(f"Tag list must be a JSON array, got {type(raw).__name__}")
        return cls.only(coerce(value) for value in raw)

    def to_storage(self) -> list[Any] | None:
        if self.mode is TagMode.ANY:
            return None
        return sorted(self.values, key=str)

    @property
    def is_unrestricted(self) -> bool:
        return self.mode is TagMode.ANY

    def matches(self, value: Hashable | None) -> bool:
        """True when ``value`` is allowed. A missing value only passes an unrestricted filter."""
        if self.mode is TagMode.ANY:
            return True
        return value is not None and value in self.values
