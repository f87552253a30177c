"""Turning raw save-analysis data into the in-memory per-crate representation."""

from __future__ import annotations

import itertools
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from .analysis import (
    NULL_ID,
    Analysis,
    Def,
    Glob,
    Id,
    IdentBound,
    IdentKind,
    PerCrateAnalysis,
    Ref,
)
from .data import DefKind, GlobalCrateId
from .span import Column, Row, Span
from .symbol_query import SymbolIndex
from .util import get_resident

if TYPE_CHECKING:
    from .raw import Crate

log = logging.getLogger(__name__)

_U32_MAX = 0xFFFF_FFFF


class _Host(Protocol):
    analysis: Analysis | None
    master_crate_map: dict[GlobalCrateId, int]

    def has_def(self, id: Id) -> bool: ...


RecordFn = Callable[[Any, PerCrateAnalysis, GlobalCrateId], None]


def lower(
    raw_analysis: Iterable[Crate],
    base_dir: str | Path,
    host: _Host,
    record: RecordFn,
) -> None:
    """Lower every raw crate and hand each result to ``record(host, per_crate, crate_id)``."""
    rss_before = get_resident() or 0
    started = time.perf_counter()
    base_dir = Path(base_dir)

    crates = list(raw_analysis)
    # Crates about to be overwritten: their existing defs must not suppress new ones.
    invalidated = [c.id for c in crates]

    for krate in crates:
        crate_started = time.perf_counter()
        per_crate, crate_id = CrateReader.read_crate(host, krate, base_dir, invalidated)
        invalidated = [c for c in invalidated if c != crate_id]

        log.info(
            "Lowering %s (%r) in %.2fs",
            crate_id.name,
            crate_id.disambiguator,
            time.perf_counter() - crate_started,
        )
        log.info("    defs:  %d", len(per_crate.defs))
        log.info("    refs:  %d", len(per_crate.ref_spans))
        log.info("    globs: %d", len(per_crate.globs))

        record(host, per_crate, crate_id)

    rss_diff = (get_resident() or 0) - rss_before
    log.info("Total lowering time: %.2fs", time.perf_counter() - started)
    log.info("Diff in rss: %.2fKB", rss_diff / 1000.0)


def lower_span(raw_span: Any, base_dir: str | Path, path_rewrite: str | Path | None) -> Span:
    """Convert a one-indexed raw span into an absolute, zero-indexed span."""
    file_name = Path(raw_span.file_name)
    if path_rewrite is not None:
        file_name = Path(path_rewrite) / file_name
    elif not file_name.is_absolute():
        file_name = Path(base_dir) / file_name

    return Span.new(
        Row.new_one_indexed(int(raw_span.line_start)).zero_indexed(),
        Row.new_one_indexed(int(raw_span.line_end)).zero_indexed(),
        Column.new_one_indexed(int(raw_span.column_start)).zero_indexed(),
        Column.new_one_indexed(int(raw_span.column_end)).zero_indexed(),
        file_name,
    )


def build_index(defs: Iterable[tuple[str, Id]]) -> tuple[SymbolIndex, list[list[Id]]]:
    """Index defs by (lowercased) name; the index maps each name to a slot in the value list."""
    ordered = sorted(defs, key=lambda pair: pair[0])
    values: list[list[Id]] = []
    items: list[tuple[str, int]] = []
    for name, group in itertools.groupby(ordered, key=lambda pair: pair[0]):
        items.append((name, len(values)))
        values.append([id for _, id in group])
    return SymbolIndex.from_items(items), values


def bad_span(span: Any, is_mod: bool) -> bool:
    """Whether a raw span points into generated code or nowhere at all."""
    if str(span.file_name).endswith(">"):
        return True
    return not is_mod and span.byte_start == 0 and span.byte_end == 0


def _is_impl_relation(kind: Any) -> bool:
    flag = getattr(kind, "is_impl", None)
    if isinstance(flag, bool):
        return flag
    if isinstance(kind, Enum):
        name = kind.name
    elif isinstance(kind, str):
        name = kind
    else:
        name = getattr(kind, "name", None) or getattr(kind, "kind", None) or type(kind).__name__
    return str(name).replace("_", "").lower().startswith("impl")


def _relation_source(relation: Any) -> Any:
    source = getattr(relation, "from_", None)
    return source if source is not None else getattr(relation, "from_id")


def _relation_target(relation: Any) -> Any:
    target = getattr(relation, "to", None)
    return target if target is not None else getattr(relation, "to_id")


def _record_ident(analysis: PerCrateAnalysis, span: Span, id: Id, kind: IdentKind) -> None:
    rng = span.range
    by_line = analysis.ident_index.setdefault(span.file, {})
    by_col = by_line.setdefault(rng.row_start, {})
    by_col.setdefault(rng.col_start, IdentBound(rng.col_end, id, kind))


def _abs_ref_id(id: Id, analysis: PerCrateAnalysis, host: _Host) -> Id | None:
    if host.has_def(id) or id in analysis.defs:
        return id
    return None


@dataclass
class CrateReader:
    """Lowers one crate, translating crate-local ids into global ones."""

    crate_map: list[int]
    base_dir: Path
    crate_name: str
    path_rewrite: Path | None
    crate_homonyms: list[GlobalCrateId]
    invalidated_crates: Sequence[GlobalCrateId]

    @classmethod
    def from_prelude(
        cls,
        prelude: Any,
        master_crate_map: dict[GlobalCrateId, int],
        base_dir: str | Path,
        path_rewrite: str | Path | None,
        invalidated_crates: Sequence[GlobalCrateId],
    ) -> CrateReader:
        """Register the crate and its dependencies globally and build the local map.

        The local crate has number 0; external crates must be numbered 1..n.
        """

        def fetch_index(crate_id: GlobalCrateId) -> int:
            return master_crate_map.setdefault(crate_id, len(master_crate_map))

        crate_id = prelude.crate_id
        log.debug("building crate map for %r", crate_id)
        crate_map = [fetch_index(crate_id)]

        for external in sorted(prelude.external_crates, key=lambda c: c.num):
            if external.num != len(crate_map):
                raise ValueError(
                    f"external crate numbers must be contiguous from 1, "
                    f"got {external.num} at position {len(crate_map)}"
                )
            crate_map.append(fetch_index(external.id))
            log.debug("  %s -> %d", external.id.name, master_crate_map[external.id])

        return cls(
            crate_map=crate_map,
            base_dir=Path(base_dir),
            crate_name=crate_id.name,
            path_rewrite=None if path_rewrite is None else Path(path_rewrite),
            crate_homonyms=[c for c in master_crate_map if c.name == crate_id.name],
            invalidated_crates=invalidated_crates,
        )

    @classmethod
    def read_crate(
        cls,
        host: _Host,
        krate: Crate,
        base_dir: str | Path,
        invalidated_crates: Sequence[GlobalCrateId],
    ) -> tuple[PerCrateAnalysis, GlobalCrateId]:
        """Lower ``krate`` against the data already held by ``host``."""
        raw = krate.analysis
        if raw.prelude is None:
            raise ValueError("analysis data has no crate prelude")
        reader = cls.from_prelude(
            raw.prelude,
            host.master_crate_map,
            base_dir,
            krate.path_rewrite,
            invalidated_crates,
        )

        per_crate = PerCrateAnalysis(timestamp=krate.timestamp, path=krate.path)
        reader.read_defs(raw.defs, per_crate, raw.config.distro_crate, host)
        reader.read_imports(raw.imports, per_crate, host)
        reader.read_refs(raw.refs, per_crate, host)
        reader.read_impls(raw.relations, per_crate, host)
        per_crate.global_crate_num = reader.crate_map[0]

        project = cls._project(host)
        project.crate_names.setdefault(krate.id.name, []).append(krate.id)

        return per_crate, krate.id

    @staticmethod
    def _project(host: _Host) -> Analysis:
        if host.analysis is None:
            raise ValueError("host holds no analysis")
        return host.analysis

    def _lower(self, raw_span: Any) -> Span:
        return lower_span(raw_span, self.base_dir, self.path_rewrite)

    def read_imports(self, imports: Iterable[Any], analysis: PerCrateAnalysis, host: _Host) -> None:
        for imp in imports:
            span = self._lower(imp.span)
            if imp.value:
                # A glob import.
                if not self._has_congruent_glob(span, host):
                    glob = Glob(imp.value)
                    log.debug("record glob %r %r", span, glob)
                    analysis.globs[span] = glob
            elif imp.ref_id is not None:
                def_id = self.id_from_compiler_id(imp.ref_id)
                self._record_ref(def_id, span, analysis, host)
                if imp.alias_span is not None:
                    self._record_ref(def_id, self._lower(imp.alias_span), analysis, host)
                    self._project(host).aliased_imports.add(def_id)

    def _record_ref(self, def_id: Id, span: Span, analysis: PerCrateAnalysis, host: _Host) -> None:
        if def_id == NULL_ID or not (host.has_def(def_id) or def_id in analysis.defs):
            return
        log.debug("record_ref %r %s", span, def_id)
        existing = analysis.def_id_for_span.get(span)
        analysis.def_id_for_span[span] = (
            Ref(def_id) if existing is None else existing.add_id(def_id)
        )
        _record_ident(analysis, span, def_id, IdentKind.REF)
        analysis.ref_spans.setdefault(def_id, []).append(span)

    # The same crate may be analysed twice (e.g. as bin and test targets): crates
    # share a name but differ in disambiguator. A def already present in such a
    # crate with the same local id and span is recorded only once.
    def _has_congruent_def(self, local_id: int, span: Span, host: _Host) -> bool:
        return self._has_congruent_item(host, lambda c: c.has_congruent_def(local_id, span))

    def _has_congruent_glob(self, span: Span, host: _Host) -> bool:
        return self._has_congruent_item(host, lambda c: span in c.globs)

    def _has_congruent_item(
        self, host: _Host, pred: Callable[[PerCrateAnalysis], bool]
    ) -> bool:
        if not self.crate_homonyms:
            return False
        project = self._project(host)
        for homonym in self.crate_homonyms:
            if homonym in self.invalidated_crates:
                continue
            per_crate = project.per_crate.get(homonym)
            if per_crate is not None and pred(per_crate):
                return True
        return False

    def read_defs(
        self,
        defs: Iterable[Any],
        analysis: PerCrateAnalysis,
        distro_crate: bool,
        host: _Host,
    ) -> None:
        to_index: list[tuple[str, Id]] = []
        for d in defs:
            is_mod = d.kind is DefKind.MOD
            if bad_span(d.span, is_mod):
                continue
            span = self._lower(d.span)
            if self._has_congruent_def(d.id.index, span, host):
                log.debug("read_defs: congruent def %d at %r, skipping", d.id.index, span)
                continue

            id = self.id_from_compiler_id(d.id)
            if id == NULL_ID or id in analysis.defs:
                continue

            analysis.defs_per_file.setdefault(span.file, []).append(id)
            if d.decl_id is not None:
                decl_id = self.id_from_compiler_id(d.decl_id)
                analysis.ref_spans.setdefault(decl_id, []).append(span)
                ref = Ref(decl_id)
            else:
                ref = Ref(id)
            if span in analysis.def_id_for_span:
                log.debug("def already exists at span: %r %r", span, d)
            else:
                analysis.def_id_for_span[span] = ref

            analysis.def_names.setdefault(d.name, []).append(id)
            # Implicit modules have no name; they are not searchable.
            if d.name:
                to_index.append((d.name.lower(), id))

            parent = None if d.parent is None else self.id_from_compiler_id(d.parent)
            if parent is not None:
                analysis.children.setdefault(parent, set()).add(id)
            if d.children:
                analysis.children.setdefault(id, set()).update(
                    self.id_from_compiler_id(child) for child in d.children
                )

            _record_ident(analysis, span, id, IdentKind.DEF)

            lowered = Def(
                kind=d.kind,
                span=span,
                name=d.name,
                qualname=f"{self.crate_name}{d.qualname}",
                distro_crate=distro_crate,
                parent=parent,
                value=d.value,
                docs=d.docs,
            )
            log.debug("record def: %s/%r: %r", id, d.id, lowered)

            if is_mod and lowered.name == "":
                if analysis.root_id is not None:
                    raise ValueError("crate has more than one root module")
                analysis.root_id = id

            analysis.defs[id] = lowered

        analysis.def_fst, analysis.def_fst_values = build_index(to_index)

        # Save-analysis often omits parent info, so derive it from the children.
        for parent, children in analysis.children.items():
            for child in children:
                child_def = analysis.defs.get(child)
                if child_def is not None:
                    child_def.parent = parent

    def read_refs(self, refs: Iterable[Any], analysis: PerCrateAnalysis, host: _Host) -> None:
        for r in refs:
            if str(r.span.file_name).endswith(">"):
                continue
            def_id = self.id_from_compiler_id(r.ref_id)
            self._record_ref(def_id, self._lower(r.span), analysis, host)

    def read_impls(
        self, relations: Iterable[Any], analysis: PerCrateAnalysis, host: _Host
    ) -> None:
        for r in relations:
            if not _is_impl_relation(r.kind):
                continue
            self_id = self.id_from_compiler_id(_relation_source(r))
            trait_id = self.id_from_compiler_id(_relation_target(r))
            span = self._lower(r.span)
            for target in (self_id, trait_id):
                if target == NULL_ID:
                    continue
                found = _abs_ref_id(target, analysis, host)
                if found is not None:
                    log.debug("record impl %r for %s", span, found)
                    analysis.impls.setdefault(found, []).append(span)

    def id_from_compiler_id(self, id: Any) -> Id:
        """Map a crate-local compiler id onto a global id."""
        if id.krate == _U32_MAX or id.index == _U32_MAX:
            return NULL_ID
        return Id.from_crate_and_local(self.crate_map[id.krate], id.index)