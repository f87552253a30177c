"""Span structures emitted by the compiler in JSON diagnostics."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .span import Column, Row, Span


def _require(data: Mapping[str, Any], name: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object")
    try:
        return data[name]
    except KeyError:
        raise ValueError(f"missing field `{name}`") from None


@dataclass
class DiagnosticSpanLine:
    """One line of source text with a highlighted, one-based character range."""

    text: str
    highlight_start: int
    highlight_end: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DiagnosticSpanLine:
        return cls(
            text=str(_require(data, "text")),
            highlight_start=int(_require(data, "highlight_start")),
            highlight_end=int(_require(data, "highlight_end")),
        )


@dataclass
class DiagnosticSpan:
    """A span in a compiler diagnostic; lines and columns are one-based."""

    file_name: str
    byte_start: int
    byte_end: int
    line_start: int
    line_end: int
    column_start: int
    column_end: int
    is_primary: bool
    text: list[DiagnosticSpanLine] = field(default_factory=list)
    label: str | None = None
    suggested_replacement: str | None = None
    expansion: DiagnosticSpanMacroExpansion | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DiagnosticSpan:
        expansion = data.get("expansion") if isinstance(data, Mapping) else None
        return cls(
            file_name=str(_require(data, "file_name")),
            byte_start=int(_require(data, "byte_start")),
            byte_end=int(_require(data, "byte_end")),
            line_start=int(_require(data, "line_start")),
            line_end=int(_require(data, "line_end")),
            column_start=int(_require(data, "column_start")),
            column_end=int(_require(data, "column_end")),
            is_primary=bool(_require(data, "is_primary")),
            text=[DiagnosticSpanLine.from_dict(line) for line in _require(data, "text")],
            label=data.get("label"),
            suggested_replacement=data.get("suggested_replacement"),
            expansion=(
                DiagnosticSpanMacroExpansion.from_dict(expansion)
                if expansion is not None
                else None
            ),
        )

    def rls_span(self) -> Span:
        """The one-indexed span this diagnostic covers."""
        return Span.new(
            Row.new_one_indexed(self.line_start),
            Row.new_one_indexed(self.line_end),
            Column.new_one_indexed(self.column_start),
            Column.new_one_indexed(self.column_end),
            Path(self.file_name),
        )


@dataclass
class DiagnosticSpanMacroExpansion:
    """The macro invocation that produced the code at a diagnostic span."""

    span: DiagnosticSpan
    macro_decl_name: str
    def_site_span: DiagnosticSpan | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DiagnosticSpanMacroExpansion:
        def_site = data.get("def_site_span") if isinstance(data, Mapping) else None
        return cls(
            span=DiagnosticSpan.from_dict(_require(data, "span")),
            macro_decl_name=str(_require(data, "macro_decl_name")),
            def_site_span=DiagnosticSpan.from_dict(def_site) if def_site is not None else None,
        )