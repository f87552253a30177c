"""In-memory database of lowered symbol information, organised per crate."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TypeVar

from .data import DefKind, GlobalCrateId
from .span import Column, Row, Span
from .symbol_query import IndexedValue, SymbolIndex, SymbolQuery

log = logging.getLogger(__name__)

_T = TypeVar("_T")

_U32_MAX = 0xFFFF_FFFF
_U64_MAX = 0xFFFF_FFFF_FFFF_FFFF


@dataclass(frozen=True)
class Id:
    """A definition id that is unique across all crates of a project.

    The high 32 bits hold a global crate number, the low 32 bits the
    crate-local index.
    """

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= _U64_MAX:
            raise ValueError(f"id out of range: {self.value}")

    @classmethod
    def from_crate_and_local(cls, crate_id: int, local_id: int) -> Id:
        if not 0 <= crate_id <= _U32_MAX:
            raise ValueError(f"crate number out of range: {crate_id}")
        if not 0 <= local_id <= _U32_MAX:
            raise ValueError(f"local index out of range: {local_id}")
        return cls((crate_id << 32) | local_id)

    def __str__(self) -> str:
        return str(self.value)


NULL_ID = Id(_U64_MAX)
"""Marks a missing index."""


@dataclass(frozen=True)
class Ref:
    """What a span refers to: one def, two defs, or several (only the first kept).

    ``count`` is 1 for a single def, 2 for a pair (``second`` is then set) and
    3 or more when only the first def and the total number are recorded.
    """

    first: Id
    second: Id | None = None
    count: int = 1

    @property
    def is_unique(self) -> bool:
        return self.count == 1

    def some_id(self) -> Id:
        return self.first

    def add_id(self, def_id: Id) -> Ref:
        """A new reference that also accounts for ``def_id``."""
        if self.count == 1:
            return Ref(self.first, def_id, 2)
        return Ref(self.first, None, self.count + 1)


@dataclass
class Def:
    kind: DefKind
    span: Span
    name: str
    qualname: str
    distro_crate: bool = False
    parent: Id | None = None
    value: str = ""
    docs: str = ""


class IdentKind(Enum):
    DEF = "def"
    REF = "ref"


@dataclass(frozen=True)
class IdentBound:
    """The rest of an identifier, stored under its line and starting column."""

    column_end: Column
    id: Id
    kind: IdentKind


@dataclass(frozen=True)
class Ident:
    """A syntactic identifier; look up ``id`` for semantic information."""

    span: Span
    id: Id
    kind: IdentKind


@dataclass
class SigElement:
    id: Id
    start: int
    end: int


@dataclass
class Signature:
    span: Span
    text: str
    ident_start: int
    ident_end: int
    defs: list[SigElement] = field(default_factory=list)
    refs: list[SigElement] = field(default_factory=list)


@dataclass
class Glob:
    value: str


IdentsByColumn = dict[Column, IdentBound]
IdentsByLine = dict[Row, IdentsByColumn]


@dataclass
class PerCrateAnalysis:
    """Lowered data of one crate, keyed by global ids."""

    timestamp: float
    path: Path | None = None
    def_id_for_span: dict[Span, Ref] = field(default_factory=dict)
    defs: dict[Id, Def] = field(default_factory=dict)
    defs_per_file: dict[Path, list[Id]] = field(default_factory=dict)
    children: dict[Id, set[Id]] = field(default_factory=dict)
    def_names: dict[str, list[Id]] = field(default_factory=dict)
    def_fst: SymbolIndex = field(default_factory=SymbolIndex)
    def_fst_values: list[list[Id]] = field(default_factory=list)
    ref_spans: dict[Id, list[Span]] = field(default_factory=dict)
    globs: dict[Span, Glob] = field(default_factory=dict)
    impls: dict[Id, list[Span]] = field(default_factory=dict)
    ident_index: dict[Path, IdentsByLine] = field(default_factory=dict)
    root_id: Id | None = None
    global_crate_num: int = 0

    def __post_init__(self) -> None:
        if self.path is not None:
            self.path = Path(self.path)

    def has_congruent_def(self, local_id: int, span: Span) -> bool:
        """Whether this crate has a def with the same local id and span."""
        existing = self.defs.get(Id.from_crate_and_local(self.global_crate_num, local_id))
        return existing is not None and existing.span == span

    def idents(self, span: Span) -> list[Ident]:
        """All identifiers overlapping ``span``, roughly in order of appearance."""
        by_line = self.ident_index.get(span.file)
        if not by_line:
            return []
        rng = span.range
        result: list[Ident] = []
        for offset in range(rng.row_end.value - rng.row_start.value + 1):
            line = rng.row_start + offset
            by_col = by_line.get(line)
            if not by_col:
                continue
            for col_start in sorted(by_col):
                bound = by_col[col_start]
                if col_start <= rng.col_end and bound.column_end >= rng.col_start:
                    result.append(
                        Ident(
                            Span.new(line, line, col_start, bound.column_end, span.file),
                            bound.id,
                            bound.kind,
                        )
                    )
        return result


@dataclass
class Analysis:
    """All collected symbol information of a project, per crate."""

    per_crate: dict[GlobalCrateId, PerCrateAnalysis] = field(default_factory=dict)
    # Defs imported under an alias; renaming through an alias must not rename the def.
    aliased_imports: set[Id] = field(default_factory=set)
    crate_names: dict[str, list[GlobalCrateId]] = field(default_factory=dict)
    doc_url_base: str = "https://doc.rust-lang.org/nightly"
    src_url_base: str = "https://github.com/rust-lang/rust/blob/master"

    def timestamps(self) -> dict[Path, float]:
        return {c.path: c.timestamp for c in self.per_crate.values() if c.path is not None}

    def update(self, crate_id: GlobalCrateId, per_crate: PerCrateAnalysis) -> None:
        self.per_crate[crate_id] = per_crate

    def has_def(self, id: Id) -> bool:
        return any(id in c.defs for c in self.per_crate.values())

    def for_each_crate(self, f: Callable[[PerCrateAnalysis], _T | None]) -> _T | None:
        """The first non-None result of ``f`` over the crates."""
        for per_crate in self.per_crate.values():
            result = f(per_crate)
            if result is not None:
                return result
        return None

    def for_all_crates(self, f: Callable[[PerCrateAnalysis], list[_T] | None]) -> list[_T]:
        result: list[_T] = []
        for per_crate in self.per_crate.values():
            found = f(per_crate)
            if found is not None:
                result.extend(found)
        return result

    def def_id_for_span(self, span: Span) -> Id | None:
        ref = self.ref_for_span(span)
        return None if ref is None else ref.some_id()

    def ref_for_span(self, span: Span) -> Ref | None:
        return self.for_each_crate(lambda c: c.def_id_for_span.get(span))

    def local_def_id_for_span(self, span: Span) -> Id | None:
        """Like :meth:`def_id_for_span`, but only for defs in the span's own crate."""

        def local(c: PerCrateAnalysis) -> Id | None:
            ref = c.def_id_for_span.get(span)
            if ref is None:
                return None
            id = ref.some_id()
            return id if id in c.defs else None

        return self.for_each_crate(local)

    def with_defs(self, id: Id, f: Callable[[Def], _T]) -> _T | None:
        def apply(c: PerCrateAnalysis) -> _T | None:
            found = c.defs.get(id)
            return None if found is None else f(found)

        return self.for_each_crate(apply)

    def with_defs_and_then(self, id: Id, f: Callable[[Def], _T | None]) -> _T | None:
        return self.with_defs(id, f)

    def with_globs(self, span: Span, f: Callable[[Glob], _T]) -> _T | None:
        def apply(c: PerCrateAnalysis) -> _T | None:
            glob = c.globs.get(span)
            return None if glob is None else f(glob)

        return self.for_each_crate(apply)

    def for_each_child(self, id: Id, f: Callable[[Id, Def], _T]) -> list[_T]:
        """Apply ``f`` to every child def of ``id`` in the first crate that lists any."""
        for per_crate in self.per_crate.values():
            children = per_crate.children.get(id)
            if children is None:
                continue
            result: list[_T] = []
            for child in sorted(children, key=lambda c: c.value):
                found = per_crate.defs.get(child)
                if found is None:
                    log.info("def not found for %s", child)
                    continue
                result.append(f(child, found))
            return result
        return []

    def with_ref_spans(self, id: Id, f: Callable[[list[Span]], _T | None]) -> _T | None:
        def apply(c: PerCrateAnalysis) -> _T | None:
            spans = c.ref_spans.get(id)
            return None if spans is None else f(spans)

        return self.for_each_crate(apply)

    def with_defs_per_file(self, file: str | Path, f: Callable[[list[Id]], _T]) -> _T | None:
        path = Path(file)

        def apply(c: PerCrateAnalysis) -> _T | None:
            ids = c.defs_per_file.get(path)
            return None if ids is None else f(ids)

        return self.for_each_crate(apply)

    def idents(self, span: Span) -> list[Ident]:
        found = self.for_each_crate(lambda c: c.idents(span) or None)
        return found if found is not None else []

    def query_defs(self, query: SymbolQuery) -> list[Def]:
        crates = list(self.per_crate.values())

        def collect(acc: list[Def], entry: IndexedValue) -> None:
            c = crates[entry.index]
            acc.extend(
                copy.copy(c.defs[id]) for id in c.def_fst_values[entry.value] if id in c.defs
            )

        return query.search([c.def_fst for c in crates], collect)

    def with_def_names(self, name: str, f: Callable[[list[Id]], list[_T]]) -> list[_T]:
        def apply(c: PerCrateAnalysis) -> list[_T] | None:
            ids = c.def_names.get(name)
            return None if ids is None else f(ids)

        return self.for_all_crates(apply)