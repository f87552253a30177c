"""Source positions, ranges and spans with explicit zero- or one-based indexing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import TypeVar


class Indexing(IntEnum):
    """Whether a coordinate counts from zero or from one."""

    ZERO = 0
    ONE = 1


_C = TypeVar("_C", bound="_Coordinate")


@dataclass(frozen=True, order=True)
class _Coordinate:
    """A non-negative line or column number tagged with its indexing base."""

    value: int
    indexing: Indexing

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"{type(self).__name__} value must be non-negative, got {self.value}")
        object.__setattr__(self, "indexing", Indexing(self.indexing))

    def __index__(self) -> int:
        return self.value

    def __int__(self) -> int:
        return self.value

    def __add__(self: _C, other: object) -> _C:
        if not isinstance(other, int):
            return NotImplemented
        return type(self)(self.value + other, self.indexing)

    def __sub__(self: _C, other: object) -> _C:
        if not isinstance(other, int):
            return NotImplemented
        return type(self)(self.value - other, self.indexing)

    def _to_zero(self: _C) -> _C:
        if self.indexing is not Indexing.ONE:
            raise ValueError(f"{type(self).__name__} is already zero-indexed")
        if self.value == 0:
            raise ValueError(f"one-indexed {type(self).__name__} cannot be 0")
        return type(self)(self.value - 1, Indexing.ZERO)

    def _to_one(self: _C) -> _C:
        if self.indexing is not Indexing.ZERO:
            raise ValueError(f"{type(self).__name__} is already one-indexed")
        return type(self)(self.value + 1, Indexing.ONE)


class Row(_Coordinate):
    """A line number."""

    @classmethod
    def new_one_indexed(cls, value: int) -> Row:
        return cls(value, Indexing.ONE)

    @classmethod
    def new_zero_indexed(cls, value: int) -> Row:
        return cls(value, Indexing.ZERO)

    def zero_indexed(self) -> Row:
        """Convert a one-based row to zero-based."""
        return self._to_zero()

    def one_indexed(self) -> Row:
        """Convert a zero-based row to one-based."""
        return self._to_one()


class Column(_Coordinate):
    """A character column."""

    @classmethod
    def new_one_indexed(cls, value: int) -> Column:
        return cls(value, Indexing.ONE)

    @classmethod
    def new_zero_indexed(cls, value: int) -> Column:
        return cls(value, Indexing.ZERO)

    def zero_indexed(self) -> Column:
        """Convert a one-based column to zero-based."""
        return self._to_zero()

    def one_indexed(self) -> Column:
        """Convert a zero-based column to one-based."""
        return self._to_one()


@dataclass(frozen=True, order=True)
class Position:
    row: Row
    col: Column

    def zero_indexed(self) -> Position:
        return Position(self.row.zero_indexed(), self.col.zero_indexed())

    def one_indexed(self) -> Position:
        return Position(self.row.one_indexed(), self.col.one_indexed())


@dataclass(frozen=True, order=True)
class Range:
    row_start: Row
    row_end: Row
    col_start: Column
    col_end: Column

    @classmethod
    def from_positions(cls, start: Position, end: Position) -> Range:
        return cls(start.row, end.row, start.col, end.col)

    def start(self) -> Position:
        return Position(self.row_start, self.col_start)

    def end(self) -> Position:
        return Position(self.row_end, self.col_end)

    def zero_indexed(self) -> Range:
        return Range(
            self.row_start.zero_indexed(),
            self.row_end.zero_indexed(),
            self.col_start.zero_indexed(),
            self.col_end.zero_indexed(),
        )

    def one_indexed(self) -> Range:
        return Range(
            self.row_start.one_indexed(),
            self.row_end.one_indexed(),
            self.col_start.one_indexed(),
            self.col_end.one_indexed(),
        )


@dataclass(frozen=True, order=True)
class Location:
    file: Path
    position: Position

    def __post_init__(self) -> None:
        object.__setattr__(self, "file", Path(self.file))

    @classmethod
    def from_position(cls, position: Position, file: str | Path) -> Location:
        return cls(Path(file), position)

    def zero_indexed(self) -> Location:
        return Location(self.file, self.position.zero_indexed())

    def one_indexed(self) -> Location:
        return Location(self.file, self.position.one_indexed())


@dataclass(frozen=True, order=True)
class Span:
    file: Path
    range: Range

    def __post_init__(self) -> None:
        object.__setattr__(self, "file", Path(self.file))

    @classmethod
    def new(
        cls,
        row_start: Row,
        row_end: Row,
        col_start: Column,
        col_end: Column,
        file: str | Path,
    ) -> Span:
        return cls(Path(file), Range(row_start, row_end, col_start, col_end))

    @classmethod
    def from_range(cls, range: Range, file: str | Path) -> Span:
        return cls(Path(file), range)

    @classmethod
    def from_positions(cls, start: Position, end: Position, file: str | Path) -> Span:
        return cls(Path(file), Range.from_positions(start, end))

    def zero_indexed(self) -> Span:
        return Span(self.file, self.range.zero_indexed())

    def one_indexed(self) -> Span:
        return Span(self.file, self.range.one_indexed())