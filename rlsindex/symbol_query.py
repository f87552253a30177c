"""Case-insensitive symbol search over sorted name indexes."""

from __future__ import annotations

import bisect
import heapq
import itertools
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, replace
from enum import Enum
from typing import TypeVar

_T = TypeVar("_T")


class Mode(Enum):
    """How a query string is matched against a symbol name."""

    PREFIX = "prefix"
    SUBSEQUENCE = "subsequence"


@dataclass(frozen=True)
class IndexedValue:
    """A value found in one of several indexes searched together."""

    index: int
    value: int


class SymbolIndex:
    """An immutable map from strictly increasing string keys to non-negative integers."""

    __slots__ = ("_keys", "_values")

    def __init__(self, items: Iterable[tuple[str, int]] = ()) -> None:
        keys: list[str] = []
        values: list[int] = []
        for key, value in items:
            if keys and key <= keys[-1]:
                raise ValueError(
                    f"keys must be unique and in sorted order: {key!r} after {keys[-1]!r}"
                )
            if value < 0:
                raise ValueError(f"values must be non-negative, got {value}")
            keys.append(key)
            values.append(value)
        self._keys = keys
        self._values = values

    @classmethod
    def from_items(cls, items: Iterable[tuple[str, int]]) -> SymbolIndex:
        """Build an index from ``(key, value)`` pairs sorted by key."""
        return cls(items)

    def keys(self) -> list[str]:
        return list(self._keys)

    def get(self, key: str) -> int | None:
        pos = bisect.bisect_left(self._keys, key)
        if pos < len(self._keys) and self._keys[pos] == key:
            return self._values[pos]
        return None

    def _items_after(self, lower_bound: str) -> Iterator[tuple[str, int]]:
        start = bisect.bisect_right(self._keys, lower_bound)
        return zip(self._keys[start:], self._values[start:])

    def __iter__(self) -> Iterator[tuple[str, int]]:
        return zip(self._keys, self._values)

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"SymbolIndex({len(self)} keys)"


@dataclass(frozen=True)
class SymbolQuery:
    """A predicate selecting symbols by name.

    Matching is case-insensitive, by prefix or by subsequence. ``limit`` is an
    approximate cap on the number of results; combined with ``greater_than`` it
    allows paging through results.
    """

    query_string: str
    mode: Mode
    max_results: int | None = None
    lower_bound: str = ""

    @classmethod
    def subsequence(cls, query_string: str) -> SymbolQuery:
        return cls(query_string.lower(), Mode.SUBSEQUENCE)

    @classmethod
    def prefix(cls, query_string: str) -> SymbolQuery:
        return cls(query_string.lower(), Mode.PREFIX)

    def limit(self, limit: int) -> SymbolQuery:
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        return replace(self, max_results=limit)

    def greater_than(self, greater_than: str) -> SymbolQuery:
        return replace(self, lower_bound=greater_than.lower())

    def matches(self, key: str) -> bool:
        """Whether ``key`` satisfies the query, comparing UTF-8 bytes."""
        query = self.query_string.encode("utf-8")
        state = 0
        for byte in key.encode("utf-8"):
            if state == len(query):
                return True
            if byte == query[state]:
                state += 1
            elif self.mode is Mode.PREFIX:
                return False
        return state == len(query)

    def stream(self, indexes: Iterable[SymbolIndex]) -> Iterator[tuple[str, list[IndexedValue]]]:
        """Yield matching keys in sorted order with their values from every index."""

        def matching(position: int, index: SymbolIndex) -> Iterator[tuple[str, int, int]]:
            for key, value in index._items_after(self.lower_bound):
                if self.matches(key):
                    yield key, position, value

        merged = heapq.merge(*(matching(i, index) for i, index in enumerate(indexes)))
        for key, group in itertools.groupby(merged, key=lambda entry: entry[0]):
            yield key, [IndexedValue(position, value) for _, position, value in group]

    def search(
        self,
        indexes: Iterable[SymbolIndex],
        f: Callable[[list[_T], IndexedValue], None],
    ) -> list[_T]:
        """Feed every match to ``f``, which extends the result list, until the limit is reached."""
        results: list[_T] = []
        for _, entries in self.stream(indexes):
            for entry in entries:
                f(results, entry)
            if self.max_results is not None and len(results) >= self.max_results:
                break
        return results