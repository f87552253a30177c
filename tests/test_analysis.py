from pathlib import Path

import pytest

from rlsindex.analysis import (
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
from rlsindex.data import DefKind, GlobalCrateId
from rlsindex.span import Column, Row, Span
from rlsindex.symbol_query import SymbolIndex, SymbolQuery

FILE = Path("src/main.rs")


def make_span(row, col_start, col_end, file=FILE):
    return Span.new(
        Row.new_zero_indexed(row),
        Row.new_zero_indexed(row),
        Column.new_zero_indexed(col_start),
        Column.new_zero_indexed(col_end),
        file,
    )


def make_def(name, span, kind=DefKind.FUNCTION, **kwargs):
    return Def(kind=kind, span=span, name=name, qualname="krate::" + name, **kwargs)


def crate_with(num, defs, timestamp=1.0, path=None):
    c = PerCrateAnalysis(timestamp=timestamp, path=path, global_crate_num=num)
    for local, d in defs.items():
        id = Id.from_crate_and_local(num, local)
        c.defs[id] = d
        c.def_id_for_span[d.span] = Ref(id)
        c.def_names.setdefault(d.name, []).append(id)
    return c


def test_id_packs_crate_and_local():
    id = Id.from_crate_and_local(5, 9)
    assert id.value >> 32 == 5
    assert id.value & 0xFFFFFFFF == 9


def test_id_rejects_out_of_range():
    with pytest.raises(ValueError):
        Id.from_crate_and_local(-1, 0)
    with pytest.raises(ValueError):
        Id.from_crate_and_local(0, 1 << 32)


def test_id_display_and_null():
    assert str(Id(42)) == "42"
    assert NULL_ID.value == 2**64 - 1


def test_ref_add_id_progression():
    a, b, c = Id(1), Id(2), Id(3)
    single = Ref(a)
    assert single.is_unique
    double = single.add_id(b)
    assert (double.first, double.second, double.count) == (a, b, 2)
    multi = double.add_id(c)
    assert multi.count == 3
    assert multi.some_id() == a
    assert multi.add_id(c).count == 4
    assert not multi.is_unique


def test_has_congruent_def():
    span = make_span(0, 3, 8)
    c = crate_with(2, {7: make_def("foo", span)})
    assert c.has_congruent_def(7, span)
    assert not c.has_congruent_def(7, make_span(1, 3, 8))
    assert not c.has_congruent_def(8, span)


def test_per_crate_idents_overlap():
    c = PerCrateAnalysis(timestamp=0.0)
    row = Row.new_zero_indexed(2)
    id1, id2 = Id(10), Id(11)
    c.ident_index[FILE] = {
        row: {
            Column.new_zero_indexed(0): IdentBound(Column.new_zero_indexed(3), id1, IdentKind.DEF),
            Column.new_zero_indexed(10): IdentBound(Column.new_zero_indexed(14), id2, IdentKind.REF),
        }
    }
    found = c.idents(make_span(2, 2, 5))
    assert [i.id for i in found] == [id1]
    assert found[0].span == make_span(2, 0, 3)
    assert found[0].kind is IdentKind.DEF
    everything = c.idents(make_span(2, 0, 20))
    assert [i.id for i in everything] == [id1, id2]
    assert c.idents(make_span(3, 0, 20)) == []
    assert c.idents(make_span(2, 0, 20, file=Path("other.rs"))) == []


def test_analysis_defaults():
    a = Analysis()
    assert a.doc_url_base == "https://doc.rust-lang.org/nightly"
    assert a.src_url_base == "https://github.com/rust-lang/rust/blob/master"
    assert a.per_crate == {}


def test_timestamps_only_for_crates_with_paths():
    a = Analysis()
    a.update(GlobalCrateId("a", (0, 0)), crate_with(0, {}, timestamp=5.0, path=Path("x.json")))
    a.update(GlobalCrateId("b", (0, 1)), crate_with(1, {}, timestamp=6.0))
    assert a.timestamps() == {Path("x.json"): 5.0}


def test_update_replaces_crate():
    a = Analysis()
    key = GlobalCrateId("a", (1, 2))
    span = make_span(0, 0, 3)
    a.update(key, crate_with(0, {1: make_def("foo", span)}))
    a.update(key, crate_with(0, {}))
    assert len(a.per_crate) == 1
    assert not a.has_def(Id.from_crate_and_local(0, 1))


def test_lookup_by_span_and_id():
    a = Analysis()
    span = make_span(0, 3, 8)
    d = make_def("foo", span, docs="doc text")
    a.update(GlobalCrateId("a", (0, 0)), crate_with(0, {1: d}))
    id = Id.from_crate_and_local(0, 1)
    assert a.has_def(id)
    assert a.def_id_for_span(span) == id
    assert a.ref_for_span(span) == Ref(id)
    assert a.local_def_id_for_span(span) == id
    assert a.with_defs(id, lambda x: x.docs) == "doc text"
    assert a.with_defs_and_then(id, lambda x: None) is None
    assert a.def_id_for_span(make_span(9, 0, 1)) is None


def test_local_def_id_ignores_foreign_defs():
    a = Analysis()
    foreign = Id.from_crate_and_local(3, 4)
    c = crate_with(0, {})
    ref_span = make_span(4, 0, 2)
    c.def_id_for_span[ref_span] = Ref(foreign)
    a.update(GlobalCrateId("a", (0, 0)), c)
    assert a.def_id_for_span(ref_span) == foreign
    assert a.local_def_id_for_span(ref_span) is None


def test_with_globs():
    a = Analysis()
    c = crate_with(0, {})
    span = make_span(0, 4, 10)
    c.globs[span] = Glob("Read, Write")
    a.update(GlobalCrateId("a", (0, 0)), c)
    assert a.with_globs(span, lambda g: g.value) == "Read, Write"
    assert a.with_globs(make_span(1, 0, 1), lambda g: g.value) is None


def test_for_each_child():
    a = Analysis()
    parent = make_def("Foo", make_span(0, 7, 10), kind=DefKind.STRUCT)
    child = make_def("f", make_span(1, 4, 5), kind=DefKind.FIELD)
    c = crate_with(0, {1: parent, 2: child})
    pid = Id.from_crate_and_local(0, 1)
    cid = Id.from_crate_and_local(0, 2)
    c.children[pid] = {cid, Id.from_crate_and_local(0, 99)}
    a.update(GlobalCrateId("a", (0, 0)), c)
    assert a.for_each_child(pid, lambda id, d: (id, d.name)) == [(cid, "f")]
    assert a.for_each_child(cid, lambda id, d: id) == []


def test_ref_spans_and_defs_per_file():
    a = Analysis()
    span = make_span(0, 3, 8)
    c = crate_with(0, {1: make_def("foo", span)})
    id = Id.from_crate_and_local(0, 1)
    refs = [make_span(5, 0, 3), make_span(6, 0, 3)]
    c.ref_spans[id] = refs
    c.defs_per_file[FILE] = [id]
    a.update(GlobalCrateId("a", (0, 0)), c)
    assert a.with_ref_spans(id, lambda spans: list(spans)) == refs
    assert a.with_ref_spans(Id(0), lambda spans: spans) is None
    assert a.with_defs_per_file("src/main.rs", lambda ids: list(ids)) == [id]


def test_with_def_names_collects_across_crates():
    a = Analysis()
    a.update(GlobalCrateId("a", (0, 0)), crate_with(0, {1: make_def("main", make_span(0, 0, 4))}))
    a.update(GlobalCrateId("b", (0, 1)), crate_with(1, {1: make_def("main", make_span(0, 0, 4))}))
    ids = a.with_def_names("main", list)
    assert set(ids) == {Id.from_crate_and_local(0, 1), Id.from_crate_and_local(1, 1)}
    assert a.with_def_names("absent", list) == []


def test_idents_through_analysis():
    a = Analysis()
    c = crate_with(0, {})
    row = Row.new_zero_indexed(0)
    c.ident_index[FILE] = {
        row: {Column.new_zero_indexed(1): IdentBound(Column.new_zero_indexed(4), Id(7), IdentKind.REF)}
    }
    a.update(GlobalCrateId("a", (0, 0)), c)
    assert [i.id for i in a.idents(make_span(0, 0, 2))] == [Id(7)]
    assert a.idents(make_span(1, 0, 2)) == []


def test_query_defs():
    a = Analysis()
    names = {1: "print_hello", 2: "main", 3: "name"}
    c = crate_with(0, {k: make_def(n, make_span(k, 0, 3)) for k, n in names.items()})
    ordered = sorted(names.items(), key=lambda kv: kv[1])
    c.def_fst = SymbolIndex.from_items((n, i) for i, (_, n) in enumerate(ordered))
    c.def_fst_values = [[Id.from_crate_and_local(0, k)] for k, _ in ordered]
    a.update(GlobalCrateId("a", (0, 0)), c)
    assert [d.name for d in a.query_defs(SymbolQuery.prefix("pri"))] == ["print_hello"]
    assert {d.name for d in a.query_defs(SymbolQuery.prefix(""))} == set(names.values())
    assert a.query_defs(SymbolQuery.prefix("goodbye")) == []