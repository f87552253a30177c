import json
from pathlib import Path

import pytest

from rlsindex.data import (
    FORMAT_VERSION,
    Analysis,
    Attribute,
    CompilationOptions,
    Config,
    CratePreludeData,
    Def,
    DefKind,
    ExternalCrateData,
    GlobalCrateId,
    Id,
    Impl,
    ImplKind,
    Import,
    ImportKind,
    MacroRef,
    Ref,
    RefKind,
    Relation,
    RelationKind,
    SigElement,
    Signature,
    SpanData,
)
from rlsindex.span import Column, Indexing, Row


def _span(line=1):
    return SpanData(
        file_name=Path("src/main.rs"),
        byte_start=10,
        byte_end=20,
        line_start=Row.new_one_indexed(line),
        line_end=Row.new_one_indexed(line),
        column_start=Column.new_one_indexed(4),
        column_end=Column.new_one_indexed(15),
    )


def _analysis():
    crate = GlobalCrateId("hello", (11, 22))
    return Analysis(
        config=Config(output_file="out.json", distro_crate=True),
        version=FORMAT_VERSION,
        compilation=CompilationOptions(Path("/work"), "rustc", ["--edition", "2018"], Path("/work/out")),
        prelude=CratePreludeData(
            crate_id=crate,
            crate_root="src",
            external_crates=[ExternalCrateData("src/main.rs", 1, GlobalCrateId("std", (1, 2)))],
            span=_span(),
        ),
        imports=[Import(ImportKind.USE, Id(1, 3), _span(2), None, "io", "", None)],
        defs=[
            Def(
                kind=DefKind.FUNCTION,
                id=Id(0, 5),
                span=_span(3),
                name="print_hello",
                qualname="::print_hello",
                value="fn ()",
                children=[Id(0, 6)],
                sig=Signature("fn print_hello()", [SigElement(Id(0, 5), 3, 14)], []),
                attributes=[Attribute("inline", _span(3))],
            )
        ],
        impls=[Impl(1, ImplKind("Deref", ("Target", Id(0, 9))), _span(4), "impl")],
        refs=[Ref(RefKind.FUNCTION, _span(7), Id(0, 5))],
        macro_refs=[MacroRef(_span(3), "println", _span(1))],
        relations=[Relation(_span(5), RelationKind(4), Id(0, 5), Id(1, 2))],
    )


def test_full_round_trip_through_json():
    original = _analysis()
    assert Analysis.from_json(original.to_json()) == original


def test_new_sets_format_version():
    analysis = Analysis.new(Config())
    assert analysis.version == FORMAT_VERSION
    assert analysis.defs == [] and analysis.prelude is None


def test_default_config_is_all_off():
    config = Config()
    assert config.output_file is None
    assert not any(
        [config.full_docs, config.pub_only, config.reachable_only,
         config.distro_crate, config.signatures, config.borrow_data]
    )
    assert Config.from_dict(config.to_dict()) == config


def test_id_dict_shape():
    assert Id(1, 2).to_dict() == {"krate": 1, "index": 2}
    assert Id.from_dict({"krate": 1, "index": 2}) == Id(1, 2)


def test_global_crate_id_round_trip_and_hash():
    cid = GlobalCrateId("hello", (11, 22))
    data = cid.to_dict()
    assert data["disambiguator"] == [11, 22]
    assert GlobalCrateId.from_dict(data) == cid
    assert {cid: 1}[GlobalCrateId("hello", (11, 22))] == 1


def test_bad_disambiguator():
    with pytest.raises(ValueError):
        GlobalCrateId.from_dict({"name": "x", "disambiguator": [1]})


def test_span_data_is_one_indexed():
    span = SpanData.from_dict(_span(3).to_dict())
    assert span.line_start.indexing is Indexing.ONE
    assert span == _span(3)


def test_relation_kind_encoding():
    data = _analysis().to_dict()
    assert data["relations"][0]["kind"] == {"Impl": {"id": 4}}
    assert "from" in data["relations"][0]
    data["relations"][0]["kind"] = "SuperTrait"
    parsed = Analysis.from_dict(data)
    assert parsed.relations[0].kind.is_impl is False


def test_impl_kind_encoding():
    data = _analysis().to_dict()
    assert data["impls"][0]["kind"] == ["Target", {"krate": 0, "index": 9}] or data["impls"][0]["kind"] == {
        "Deref": ["Target", {"krate": 0, "index": 9}]
    }
    data["impls"][0]["kind"] = "Inherent"
    assert Analysis.from_dict(data).impls[0].kind == ImplKind("Inherent")


def test_invalid_impl_kind():
    with pytest.raises(ValueError):
        ImplKind("Sideways")
    with pytest.raises(ValueError):
        ImplKind("Deref")


def test_def_kind_values_are_wire_names():
    data = _analysis().to_dict()
    assert data["defs"][0]["kind"] == "Function"
    data["defs"][0]["kind"] = "NotAKind"
    with pytest.raises(ValueError):
        Analysis.from_dict(data)


def test_missing_field_rejected():
    data = _analysis().to_dict()
    del data["defs"]
    with pytest.raises(ValueError):
        Analysis.from_dict(data)


def test_optional_fields_may_be_absent():
    data = _analysis().to_dict()
    del data["compilation"]
    del data["version"]
    parsed = Analysis.from_dict(data)
    assert parsed.compilation is None and parsed.version is None


def test_non_object_json_rejected():
    with pytest.raises(ValueError):
        Analysis.from_json(json.dumps([1, 2]))
    with pytest.raises(ValueError):
        Analysis.from_json("{not json")