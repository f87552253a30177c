"""Save-analysis data model and its JSON representation."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

from .span import Column, Row

FORMAT_VERSION = "0.19.1"

_T = TypeVar("_T")


def _require(data: Mapping[str, Any], name: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object")
    try:
        return data[name]
    except KeyError:
        raise ValueError(f"missing field `{name}`") from None


def _optional(data: Mapping[str, Any], name: str, convert: Callable[[Any], _T]) -> _T | None:
    value = data.get(name)
    return None if value is None else convert(value)


def _list(data: Mapping[str, Any], name: str, convert: Callable[[Any], _T]) -> list[_T]:
    value = _require(data, name)
    if not isinstance(value, list):
        raise ValueError(f"field `{name}` must be a list")
    return [convert(item) for item in value]


def _dump(value: Any) -> Any:
    return None if value is None else value.to_dict()


@dataclass
class Config:
    """Options used to produce save-analysis data."""

    output_file: str | None = None
    full_docs: bool = False
    pub_only: bool = False
    reachable_only: bool = False
    distro_crate: bool = False
    signatures: bool = False
    borrow_data: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Config:
        return cls(
            output_file=_optional(data, "output_file", str),
            full_docs=bool(_require(data, "full_docs")),
            pub_only=bool(_require(data, "pub_only")),
            reachable_only=bool(_require(data, "reachable_only")),
            distro_crate=bool(_require(data, "distro_crate")),
            signatures=bool(_require(data, "signatures")),
            borrow_data=bool(_require(data, "borrow_data")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "output_file": self.output_file,
            "full_docs": self.full_docs,
            "pub_only": self.pub_only,
            "reachable_only": self.reachable_only,
            "distro_crate": self.distro_crate,
            "signatures": self.signatures,
            "borrow_data": self.borrow_data,
        }


@dataclass(frozen=True)
class Id:
    """A crate-local definition id as emitted by the compiler."""

    krate: int
    index: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Id:
        return cls(int(_require(data, "krate")), int(_require(data, "index")))

    def to_dict(self) -> dict[str, Any]:
        return {"krate": self.krate, "index": self.index}


@dataclass(frozen=True)
class GlobalCrateId:
    """Crate name plus its 128-bit disambiguator."""

    name: str
    disambiguator: tuple[int, int]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GlobalCrateId:
        dis = _require(data, "disambiguator")
        if not isinstance(dis, (list, tuple)) or len(dis) != 2:
            raise ValueError("disambiguator must be a pair of integers")
        return cls(str(_require(data, "name")), (int(dis[0]), int(dis[1])))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "disambiguator": list(self.disambiguator)}


@dataclass
class SpanData:
    """A raw span with one-based lines and columns."""

    file_name: Path
    byte_start: int
    byte_end: int
    line_start: Row
    line_end: Row
    column_start: Column
    column_end: Column

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SpanData:
        return cls(
            file_name=Path(str(_require(data, "file_name"))),
            byte_start=int(_require(data, "byte_start")),
            byte_end=int(_require(data, "byte_end")),
            line_start=Row.new_one_indexed(int(_require(data, "line_start"))),
            line_end=Row.new_one_indexed(int(_require(data, "line_end"))),
            column_start=Column.new_one_indexed(int(_require(data, "column_start"))),
            column_end=Column.new_one_indexed(int(_require(data, "column_end"))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": str(self.file_name),
            "byte_start": self.byte_start,
            "byte_end": self.byte_end,
            "line_start": self.line_start.value,
            "line_end": self.line_end.value,
            "column_start": self.column_start.value,
            "column_end": self.column_end.value,
        }


@dataclass
class CompilationOptions:
    directory: Path
    program: str
    arguments: list[str]
    output: Path

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> CompilationOptions:
        return cls(
            directory=Path(str(_require(data, "directory"))),
            program=str(_require(data, "program")),
            arguments=_list(data, "arguments", str),
            output=Path(str(_require(data, "output"))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "directory": str(self.directory),
            "program": self.program,
            "arguments": list(self.arguments),
            "output": str(self.output),
        }


@dataclass
class ExternalCrateData:
    """An external crate referenced from a crate's prelude."""

    file_name: str
    num: int
    id: GlobalCrateId

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> ExternalCrateData:
        return cls(
            file_name=str(_require(data, "file_name")),
            num=int(_require(data, "num")),
            id=GlobalCrateId.from_dict(_require(data, "id")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"file_name": self.file_name, "num": self.num, "id": self.id.to_dict()}


@dataclass
class CratePreludeData:
    crate_id: GlobalCrateId
    crate_root: str
    external_crates: list[ExternalCrateData]
    span: SpanData

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> CratePreludeData:
        return cls(
            crate_id=GlobalCrateId.from_dict(_require(data, "crate_id")),
            crate_root=str(_require(data, "crate_root")),
            external_crates=_list(data, "external_crates", ExternalCrateData._from_dict),
            span=SpanData.from_dict(_require(data, "span")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "crate_id": self.crate_id.to_dict(),
            "crate_root": self.crate_root,
            "external_crates": [c.to_dict() for c in self.external_crates],
            "span": self.span.to_dict(),
        }


class ImportKind(Enum):
    EXTERN_CRATE = "ExternCrate"
    USE = "Use"
    GLOB_USE = "GlobUse"


@dataclass
class Import:
    kind: ImportKind
    ref_id: Id | None
    span: SpanData
    alias_span: SpanData | None
    name: str
    value: str
    parent: Id | None

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> Import:
        return cls(
            kind=ImportKind(_require(data, "kind")),
            ref_id=_optional(data, "ref_id", Id.from_dict),
            span=SpanData.from_dict(_require(data, "span")),
            alias_span=_optional(data, "alias_span", SpanData.from_dict),
            name=str(_require(data, "name")),
            value=str(_require(data, "value")),
            parent=_optional(data, "parent", Id.from_dict),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "ref_id": _dump(self.ref_id),
            "span": self.span.to_dict(),
            "alias_span": _dump(self.alias_span),
            "name": self.name,
            "value": self.value,
            "parent": _dump(self.parent),
        }


class DefKind(Enum):
    ENUM = "Enum"
    TUPLE_VARIANT = "TupleVariant"
    STRUCT_VARIANT = "StructVariant"
    TUPLE = "Tuple"
    STRUCT = "Struct"
    UNION = "Union"
    TRAIT = "Trait"
    FUNCTION = "Function"
    FOREIGN_FUNCTION = "ForeignFunction"
    METHOD = "Method"
    MACRO = "Macro"
    MOD = "Mod"
    TYPE = "Type"
    LOCAL = "Local"
    STATIC = "Static"
    FOREIGN_STATIC = "ForeignStatic"
    CONST = "Const"
    FIELD = "Field"
    EXTERN_TYPE = "ExternType"


@dataclass
class SigElement:
    id: Id
    start: int
    end: int

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> SigElement:
        return cls(
            id=Id.from_dict(_require(data, "id")),
            start=int(_require(data, "start")),
            end=int(_require(data, "end")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id.to_dict(), "start": self.start, "end": self.end}


@dataclass
class Signature:
    text: str
    defs: list[SigElement]
    refs: list[SigElement]

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> Signature:
        return cls(
            text=str(_require(data, "text")),
            defs=_list(data, "defs", SigElement._from_dict),
            refs=_list(data, "refs", SigElement._from_dict),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "defs": [e.to_dict() for e in self.defs],
            "refs": [e.to_dict() for e in self.refs],
        }


@dataclass
class Attribute:
    value: str
    span: SpanData

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> Attribute:
        return cls(str(_require(data, "value")), SpanData.from_dict(_require(data, "span")))

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "span": self.span.to_dict()}


@dataclass
class Def:
    kind: DefKind
    id: Id
    span: SpanData
    name: str
    qualname: str
    value: str
    parent: Id | None = None
    children: list[Id] = field(default_factory=list)
    decl_id: Id | None = None
    docs: str = ""
    sig: Signature | None = None
    attributes: list[Attribute] = field(default_factory=list)

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> Def:
        return cls(
            kind=DefKind(_require(data, "kind")),
            id=Id.from_dict(_require(data, "id")),
            span=SpanData.from_dict(_require(data, "span")),
            name=str(_require(data, "name")),
            qualname=str(_require(data, "qualname")),
            value=str(_require(data, "value")),
            parent=_optional(data, "parent", Id.from_dict),
            children=_list(data, "children", Id.from_dict),
            decl_id=_optional(data, "decl_id", Id.from_dict),
            docs=str(_require(data, "docs")),
            sig=_optional(data, "sig", Signature._from_dict),
            attributes=_list(data, "attributes", Attribute._from_dict),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "id": self.id.to_dict(),
            "span": self.span.to_dict(),
            "name": self.name,
            "qualname": self.qualname,
            "value": self.value,
            "parent": _dump(self.parent),
            "children": [c.to_dict() for c in self.children],
            "decl_id": _dump(self.decl_id),
            "docs": self.docs,
            "sig": _dump(self.sig),
            "attributes": [a.to_dict() for a in self.attributes],
        }


_UNIT_IMPL_KINDS = ("Inherent", "Direct", "Indirect", "Blanket")


@dataclass(frozen=True)
class ImplKind:
    """The kind of an impl; ``Deref`` carries the target's name and id."""

    variant: str
    deref: tuple[str, Id] | None = None

    def __post_init__(self) -> None:
        if self.variant == "Deref":
            if self.deref is None:
                raise ValueError("Deref impl kind needs a target name and id")
        elif self.variant in _UNIT_IMPL_KINDS:
            if self.deref is not None:
                raise ValueError(f"{self.variant} impl kind carries no data")
        else:
            raise ValueError(f"unknown impl kind {self.variant!r}")

    @classmethod
    def _from_value(cls, value: Any) -> ImplKind:
        if isinstance(value, str):
            return cls(value)
        if isinstance(value, Mapping) and set(value) == {"Deref"}:
            payload = value["Deref"]
            if not isinstance(payload, (list, tuple)) or len(payload) != 2:
                raise ValueError("Deref impl kind needs a name and an id")
            return cls("Deref", (str(payload[0]), Id.from_dict(payload[1])))
        raise ValueError(f"invalid impl kind {value!r}")

    def _to_value(self) -> Any:
        if self.deref is None:
            return self.variant
        name, target = self.deref
        return {"Deref": [name, target.to_dict()]}


@dataclass
class Impl:
    id: int
    kind: ImplKind
    span: SpanData
    value: str
    parent: Id | None = None
    children: list[Id] = field(default_factory=list)
    docs: str = ""
    sig: Signature | None = None
    attributes: list[Attribute] = field(default_factory=list)

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> Impl:
        return cls(
            id=int(_require(data, "id")),
            kind=ImplKind._from_value(_require(data, "kind")),
            span=SpanData.from_dict(_require(data, "span")),
            value=str(_require(data, "value")),
            parent=_optional(data, "parent", Id.from_dict),
            children=_list(data, "children", Id.from_dict),
            docs=str(_require(data, "docs")),
            sig=_optional(data, "sig", Signature._from_dict),
            attributes=_list(data, "attributes", Attribute._from_dict),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind._to_value(),
            "span": self.span.to_dict(),
            "value": self.value,
            "parent": _dump(self.parent),
            "children": [c.to_dict() for c in self.children],
            "docs": self.docs,
            "sig": _dump(self.sig),
            "attributes": [a.to_dict() for a in self.attributes],
        }


class RefKind(Enum):
    FUNCTION = "Function"
    MOD = "Mod"
    TYPE = "Type"
    VARIABLE = "Variable"


@dataclass
class Ref:
    kind: RefKind
    span: SpanData
    ref_id: Id

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> Ref:
        return cls(
            kind=RefKind(_require(data, "kind")),
            span=SpanData.from_dict(_require(data, "span")),
            ref_id=Id.from_dict(_require(data, "ref_id")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "span": self.span.to_dict(), "ref_id": self.ref_id.to_dict()}


@dataclass
class MacroRef:
    span: SpanData
    qualname: str
    callee_span: SpanData

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> MacroRef:
        return cls(
            span=SpanData.from_dict(_require(data, "span")),
            qualname=str(_require(data, "qualname")),
            callee_span=SpanData.from_dict(_require(data, "callee_span")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "span": self.span.to_dict(),
            "qualname": self.qualname,
            "callee_span": self.callee_span.to_dict(),
        }


@dataclass(frozen=True)
class RelationKind:
    """An ``Impl`` relation when ``impl_id`` is set, otherwise ``SuperTrait``."""

    impl_id: int | None = None

    @property
    def is_impl(self) -> bool:
        return self.impl_id is not None

    @classmethod
    def _from_value(cls, value: Any) -> RelationKind:
        if value == "SuperTrait":
            return cls()
        if isinstance(value, Mapping) and set(value) == {"Impl"}:
            return cls(int(_require(value["Impl"], "id")))
        raise ValueError(f"invalid relation kind {value!r}")

    def _to_value(self) -> Any:
        if self.impl_id is None:
            return "SuperTrait"
        return {"Impl": {"id": self.impl_id}}


@dataclass
class Relation:
    span: SpanData
    kind: RelationKind
    from_: Id
    to: Id

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> Relation:
        return cls(
            span=SpanData.from_dict(_require(data, "span")),
            kind=RelationKind._from_value(_require(data, "kind")),
            from_=Id.from_dict(_require(data, "from")),
            to=Id.from_dict(_require(data, "to")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "span": self.span.to_dict(),
            "kind": self.kind._to_value(),
            "from": self.from_.to_dict(),
            "to": self.to.to_dict(),
        }


@dataclass
class Analysis:
    """All save-analysis data emitted for one crate."""

    config: Config = field(default_factory=Config)
    version: str | None = None
    compilation: CompilationOptions | None = None
    prelude: CratePreludeData | None = None
    imports: list[Import] = field(default_factory=list)
    defs: list[Def] = field(default_factory=list)
    impls: list[Impl] = field(default_factory=list)
    refs: list[Ref] = field(default_factory=list)
    macro_refs: list[MacroRef] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)

    @classmethod
    def new(cls, config: Config) -> Analysis:
        """An empty analysis stamped with the current format version."""
        return cls(config=config, version=FORMAT_VERSION)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Analysis:
        return cls(
            config=Config.from_dict(_require(data, "config")),
            version=_optional(data, "version", str),
            compilation=_optional(data, "compilation", CompilationOptions._from_dict),
            prelude=_optional(data, "prelude", CratePreludeData._from_dict),
            imports=_list(data, "imports", Import._from_dict),
            defs=_list(data, "defs", Def._from_dict),
            impls=_list(data, "impls", Impl._from_dict),
            refs=_list(data, "refs", Ref._from_dict),
            macro_refs=_list(data, "macro_refs", MacroRef._from_dict),
            relations=_list(data, "relations", Relation._from_dict),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "version": self.version,
            "compilation": _dump(self.compilation),
            "prelude": _dump(self.prelude),
            "imports": [i.to_dict() for i in self.imports],
            "defs": [d.to_dict() for d in self.defs],
            "impls": [i.to_dict() for i in self.impls],
            "refs": [r.to_dict() for r in self.refs],
            "macro_refs": [m.to_dict() for m in self.macro_refs],
            "relations": [r.to_dict() for r in self.relations],
        }

    @classmethod
    def from_json(cls, text: str) -> Analysis:
        """Parse analysis JSON; raises ValueError on malformed input."""
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("analysis JSON must be an object at the root")
        return cls.from_dict(data)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())