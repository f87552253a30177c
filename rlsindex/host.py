"""The analysis host: loads save-analysis data and answers queries over it."""

from __future__ import annotations

import copy
import logging
import os
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from .analysis import Analysis, Def, Id, Ident, PerCrateAnalysis
from .data import Analysis as RawAnalysis
from .data import DefKind, GlobalCrateId
from .loader import AnalysisLoader, CargoAnalysisLoader, Target
from .lowering import lower
from .raw import Crate, name_space_for_def_kind, read_analysis_from_files
from .span import Span
from .symbol_query import SymbolQuery

log = logging.getLogger(__name__)

_T = TypeVar("_T")

_MEMBER_KINDS = frozenset(
    {
        DefKind.FIELD,
        DefKind.METHOD,
        DefKind.TUPLE,
        DefKind.TUPLE_VARIANT,
        DefKind.STRUCT_VARIANT,
    }
)


class AnalysisError(Exception):
    """Raised when a query has no answer or no analysis data is loaded."""

    def __init__(self, message: str = "unknown error") -> None:
        super().__init__(message)


@dataclass
class SymbolResult:
    """A definition found in a file."""

    id: Id
    name: str
    kind: DefKind
    span: Span
    parent: Id | None

    @classmethod
    def from_def(cls, id: Id, definition: Def) -> SymbolResult:
        return cls(id, definition.name, definition.kind, definition.span, definition.parent)


def _record(host: AnalysisHost, per_crate: PerCrateAnalysis, crate_id: GlobalCrateId) -> None:
    if host.analysis is None:
        raise AnalysisError("host holds no analysis")
    host.analysis.update(crate_id, per_crate)


def _def_span(a: Analysis, id: Id) -> Span | None:
    return a.with_defs(id, lambda d: d.span)


class AnalysisHost:
    """Holds the lowered analysis of a project and the loader that feeds it."""

    def __init__(self, loader: AnalysisLoader) -> None:
        self.loader = loader
        self.analysis: Analysis | None = None
        self.master_crate_map: dict[GlobalCrateId, int] = {}
        self._lock = threading.RLock()

    @classmethod
    def for_target(cls, target: Target) -> AnalysisHost:
        """A host reading Cargo-emitted data for the given build target."""
        return cls(CargoAnalysisLoader(target))

    # Loading

    def reload_from_analysis(
        self,
        analysis: Iterable[RawAnalysis],
        path_prefix: str | os.PathLike[str],
        base_dir: str | os.PathLike[str],
        blacklist: Iterable[str] = (),
    ) -> None:
        """Reload on-disk data, then lower the given analysis data on top of it."""
        self.reload_with_blacklist(path_prefix, base_dir, blacklist)
        now = time.time()
        crates = [Crate.from_analysis(a, now, None, None) for a in analysis]
        with self._lock:
            lower(crates, Path(base_dir), self, _record)

    def reload(
        self, path_prefix: str | os.PathLike[str], base_dir: str | os.PathLike[str]
    ) -> None:
        self.reload_with_blacklist(path_prefix, base_dir, ())

    def reload_with_blacklist(
        self,
        path_prefix: str | os.PathLike[str],
        base_dir: str | os.PathLike[str],
        blacklist: Iterable[str] = (),
    ) -> None:
        blacklist = list(blacklist)
        log.debug("reload_with_blacklist %s %s %r", path_prefix, base_dir, blacklist)
        with self._lock:
            if self.analysis is None or self.loader.needs_hard_reload(path_prefix):
                self.hard_reload_with_blacklist(path_prefix, base_dir, blacklist)
                return
            timestamps = self.analysis.timestamps()
            raw = read_analysis_from_files(self.loader, timestamps, blacklist)
            lower(raw, Path(base_dir), self, _record)

    def hard_reload(
        self, path_prefix: str | os.PathLike[str], base_dir: str | os.PathLike[str]
    ) -> None:
        """Reload the entire project's analysis data."""
        self.hard_reload_with_blacklist(path_prefix, base_dir, ())

    def hard_reload_with_blacklist(
        self,
        path_prefix: str | os.PathLike[str],
        base_dir: str | os.PathLike[str],
        blacklist: Iterable[str] = (),
    ) -> None:
        log.debug("hard_reload %s %s", path_prefix, base_dir)
        # Fill a fresh host, then swap its state in at once so that a failure
        # part-way leaves this host untouched.
        with self._lock:
            fresh = self.loader.fresh_host()
        fresh.analysis = Analysis()
        fresh.loader.set_path_prefix(path_prefix)
        raw = read_analysis_from_files(fresh.loader, {}, list(blacklist))
        lower(raw, Path(base_dir), fresh, _record)

        with self._lock:
            self.analysis = fresh.analysis
            self.master_crate_map = fresh.master_crate_map
            self.loader = fresh.loader

    # Queries

    def _with_analysis(self, f: Callable[[Analysis], _T | None]) -> _T:
        with self._lock:
            if self.analysis is None:
                raise AnalysisError()
            result = f(self.analysis)
        if result is None:
            raise AnalysisError()
        return result

    def has_def(self, id: Id) -> bool:
        """Whether a def with this id is known; it may still lack a usable span."""
        with self._lock:
            return self.analysis is not None and self.analysis.has_def(id)

    def get_def(self, id: Id) -> Def:
        return self._with_analysis(lambda a: a.with_defs(id, copy.copy))

    def goto_def(self, span: Span) -> Span:
        def find(a: Analysis) -> Span | None:
            id = a.def_id_for_span(span)
            return None if id is None else _def_span(a, id)

        return self._with_analysis(find)

    def for_each_child_def(self, id: Id, f: Callable[[Id, Def], _T]) -> list[_T]:
        return self._with_analysis(lambda a: a.for_each_child(id, f))

    def def_parents(self, id: Id) -> list[tuple[Id, str]]:
        """The chain of ancestors of ``id``, outermost first."""

        def parents(a: Analysis) -> list[tuple[Id, str]]:
            result: list[tuple[Id, str]] = []
            current = id
            seen = {current}
            while True:
                parent = a.with_defs_and_then(current, lambda d: d.parent)
                if parent is None:
                    return result
                name = a.with_defs(parent, lambda d: d.name)
                if name is None or parent in seen:
                    return result
                result.insert(0, (parent, name))
                seen.add(parent)
                current = parent

        return self._with_analysis(parents)

    def def_roots(self) -> list[tuple[Id, str]]:
        """The root module id and name of every crate."""
        return self._with_analysis(
            lambda a: [
                (data.root_id, crate_id.name)
                for crate_id, data in a.per_crate.items()
                if data.root_id is not None
            ]
        )

    def id(self, span: Span) -> Id:
        return self._with_analysis(lambda a: a.def_id_for_span(span))

    def crate_local_id(self, span: Span) -> Id:
        """Like :meth:`id`, but only for a def in the same crate as ``span``."""
        return self._with_analysis(lambda a: a.local_def_id_for_span(span))

    def find_all_refs(
        self, span: Span, include_decl: bool, force_unique_spans: bool
    ) -> list[Span]:
        """All references to the def at ``span``.

        With ``include_decl`` the declaration comes first. With
        ``force_unique_spans`` the result is empty if any reference points at
        more than one def, or if the def is imported under an alias.
        """
        started = time.perf_counter()

        def compute(a: Analysis) -> list[Span] | None:
            id = a.def_id_for_span(span)
            if id is None:
                return None
            if force_unique_spans and id in a.aliased_imports:
                return []
            decl = _def_span(a, id) if include_decl else None

            def collect(refs: list[Span]) -> list[Span] | None:
                if force_unique_spans:
                    for r in refs:
                        ref = a.ref_for_span(r)
                        if ref is None or not ref.is_unique:
                            return None
                return list(refs)

            refs = a.with_ref_spans(id, collect)
            if refs is None:
                return []
            return ([decl] if decl is not None else []) + refs

        try:
            return self._with_analysis(compute)
        finally:
            log.info("find_all_refs: %fs", time.perf_counter() - started)

    def show_type(self, span: Span) -> str:
        def find(a: Analysis) -> str | None:
            id = a.def_id_for_span(span)
            if id is not None:
                value = a.with_defs(id, lambda d: d.value)
                if value is not None:
                    return value
            return a.with_globs(span, lambda g: g.value)

        return self._with_analysis(find)

    def docs(self, span: Span) -> str:
        def find(a: Analysis) -> str | None:
            id = a.def_id_for_span(span)
            return None if id is None else a.with_defs(id, lambda d: d.docs)

        return self._with_analysis(find)

    def matching_defs(self, stem: str) -> list[Def]:
        """Defs whose names start with ``stem``, ignoring case."""
        return self.query_defs(SymbolQuery.prefix(stem))

    def query_defs(self, query: SymbolQuery) -> list[Def]:
        started = time.perf_counter()

        def run(a: Analysis) -> list[Def]:
            defs = a.query_defs(query)
            log.info("query_defs %r", defs)
            return defs

        try:
            return self._with_analysis(run)
        finally:
            log.info("query_defs: %f", time.perf_counter() - started)

    @staticmethod
    def _spans_for_id(a: Analysis, id: Id) -> list[Span] | None:
        decl = _def_span(a, id)
        head = [decl] if decl is not None else []
        spans = a.with_ref_spans(id, lambda refs: head + list(refs))
        if spans is not None:
            return spans
        return None if decl is None else [decl]

    def search(self, name: str) -> list[Span]:
        """Spans of the defs named ``name`` and of their references."""
        started = time.perf_counter()

        def spans_for(a: Analysis, ids: list[Id]) -> list[Span]:
            log.info("defs: %r", ids)
            result: list[Span] = []
            for id in ids:
                result.extend(self._spans_for_id(a, id) or [])
            return result

        try:
            return self._with_analysis(
                lambda a: a.with_def_names(name, lambda ids: spans_for(a, ids))
            )
        finally:
            log.info("search: %fs", time.perf_counter() - started)

    def find_all_refs_by_id(self, id: Id) -> list[Span]:
        """The def's span followed by all its references."""
        started = time.perf_counter()
        try:
            return self._with_analysis(lambda a: self._spans_for_id(a, id))
        finally:
            log.info("find_all_refs_by_id: %fs", time.perf_counter() - started)

    def find_impls(self, id: Id) -> list[Span]:
        return self._with_analysis(
            lambda a: a.for_all_crates(lambda c: c.impls.get(id))
        )

    def search_for_id(self, name: str) -> list[Id]:
        """Ids of all defs named ``name``."""
        return self._with_analysis(lambda a: a.with_def_names(name, list))

    def idents(self, span: Span) -> list[Ident]:
        """All identifiers overlapping ``span``."""
        return self._with_analysis(lambda a: a.idents(span))

    def symbols(self, file_name: str | os.PathLike[str]) -> list[SymbolResult]:
        def build(a: Analysis, ids: list[Id]) -> list[SymbolResult]:
            result = []
            for id in ids:
                symbol = a.with_defs(id, lambda d, id=id: SymbolResult.from_def(id, d))
                if symbol is None:
                    raise AnalysisError(f"def not found for {id}")
                result.append(symbol)
            return result

        return self._with_analysis(
            lambda a: a.with_defs_per_file(Path(file_name), lambda ids: build(a, ids))
        )

    def doc_url(self, span: Span) -> str:
        def find(a: Analysis) -> str | None:
            id = a.def_id_for_span(span)
            if id is None:
                return None
            return a.with_defs_and_then(id, lambda d: self._mk_doc_url(d, a))

        return self._with_analysis(find)

    def src_url(self, span: Span) -> str:
        with self._lock:
            path_prefix = self.loader.abs_path_prefix()

        def find(a: Analysis) -> str | None:
            id = a.def_id_for_span(span)
            if id is None:
                return None
            return a.with_defs_and_then(id, lambda d: self._mk_src_url(d, path_prefix, a))

        return self._with_analysis(find)

    @classmethod
    def _mk_doc_url(cls, definition: Def, analysis: Analysis) -> str | None:
        if not definition.distro_crate:
            return None
        if definition.parent is None and "<" in definition.qualname:
            log.debug("mk_doc_url, bailing, found generic qualname: `%s`", definition.qualname)
            return None

        ns = name_space_for_def_kind(definition.kind)
        if definition.parent is None:
            qualpath = definition.qualname.replace("::", "/")
            return f"{analysis.doc_url_base}/{qualpath}.{ns}.html"

        def from_parent(parent: Def) -> str:
            if definition.kind in _MEMBER_KINDS:
                base = cls._mk_doc_url(parent, analysis) or ""
                return f"{base}#{definition.name}.{ns}"
            parent_qualpath = parent.qualname.replace("::", "/")
            if definition.kind is DefKind.MOD:
                return (
                    f"{analysis.doc_url_base}/{parent_qualpath.rstrip('/')}/{definition.name}/"
                )
            return f"{analysis.doc_url_base}/{parent_qualpath}/{definition.name}.{ns}.html"

        return analysis.with_defs(definition.parent, from_parent)

    @staticmethod
    def _mk_src_url(
        definition: Def, path_prefix: Path | None, analysis: Analysis
    ) -> str | None:
        if not definition.distro_crate or path_prefix is None:
            return None
        try:
            relative = definition.span.file.relative_to(path_prefix)
        except ValueError:
            return None
        rng = definition.span.range
        return (
            f"{analysis.src_url_base}/{relative.as_posix()}"
            f"#L{rng.row_start.one_indexed().value}-L{rng.row_end.one_indexed().value}"
        )