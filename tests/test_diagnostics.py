import copy
from pathlib import Path

import pytest

from rlsindex.diagnostics import (
    DiagnosticSpan,
    DiagnosticSpanLine,
    DiagnosticSpanMacroExpansion,
)
from rlsindex.span import Indexing

SAMPLE = {
    "file_name": "src/main.rs",
    "byte_start": 21,
    "byte_end": 22,
    "line_start": 2,
    "line_end": 3,
    "column_start": 9,
    "column_end": 10,
    "is_primary": True,
    "text": [{"text": "    let x = 3;", "highlight_start": 9, "highlight_end": 10}],
    "label": "unused variable",
    "suggested_replacement": None,
    "expansion": None,
}


def test_from_dict_reads_fields():
    span = DiagnosticSpan.from_dict(SAMPLE)
    assert span.file_name == SAMPLE["file_name"]
    assert span.byte_start == SAMPLE["byte_start"]
    assert span.is_primary is True
    assert span.label == SAMPLE["label"]
    assert span.text[0].text == SAMPLE["text"][0]["text"]
    assert span.expansion is None


def test_rls_span_is_one_indexed():
    span = DiagnosticSpan.from_dict(SAMPLE).rls_span()
    assert span.file == Path(SAMPLE["file_name"])
    assert span.range.row_start.value == SAMPLE["line_start"]
    assert span.range.row_end.value == SAMPLE["line_end"]
    assert span.range.col_start.value == SAMPLE["column_start"]
    assert span.range.col_end.value == SAMPLE["column_end"]
    assert span.range.row_start.indexing is Indexing.ONE
    assert span.zero_indexed().one_indexed() == span


def test_optional_fields_may_be_missing():
    data = {k: v for k, v in SAMPLE.items() if k not in ("label", "suggested_replacement", "expansion")}
    span = DiagnosticSpan.from_dict(data)
    assert span.label is None
    assert span.suggested_replacement is None


def test_missing_required_field():
    data = dict(SAMPLE)
    del data["line_start"]
    with pytest.raises(ValueError):
        DiagnosticSpan.from_dict(data)


def test_nested_expansion():
    data = copy.deepcopy(SAMPLE)
    inner = copy.deepcopy(SAMPLE)
    inner["file_name"] = "<println macros>"
    data["expansion"] = {
        "span": inner,
        "macro_decl_name": "println!",
        "def_site_span": None,
    }
    span = DiagnosticSpan.from_dict(data)
    assert isinstance(span.expansion, DiagnosticSpanMacroExpansion)
    assert span.expansion.macro_decl_name == "println!"
    assert span.expansion.span.file_name == "<println macros>"
    assert span.expansion.def_site_span is None


def test_expansion_requires_span():
    with pytest.raises(ValueError):
        DiagnosticSpanMacroExpansion.from_dict({"macro_decl_name": "vec!"})


def test_span_line_from_dict():
    line = DiagnosticSpanLine.from_dict(SAMPLE["text"][0])
    assert (line.highlight_start, line.highlight_end) == (
        SAMPLE["text"][0]["highlight_start"],
        SAMPLE["text"][0]["highlight_end"],
    )


def test_non_object_rejected():
    with pytest.raises(ValueError):
        DiagnosticSpanLine.from_dict(["text"])