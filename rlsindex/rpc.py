"""Data exchanged between the language server and compiler instances."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any


class Edition(Enum):
    """Language edition a crate is compiled in; editions order chronologically."""

    EDITION_2015 = "Edition2015"
    EDITION_2018 = "Edition2018"
    EDITION_2021 = "Edition2021"

    @property
    def _rank(self) -> int:
        return list(Edition).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Edition):
            return NotImplemented
        return self._rank < other._rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Edition):
            return NotImplemented
        return self._rank <= other._rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Edition):
            return NotImplemented
        return self._rank > other._rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Edition):
            return NotImplemented
        return self._rank >= other._rank


def _require(data: Mapping[str, Any], name: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object")
    try:
        return data[name]
    except KeyError:
        raise ValueError(f"missing field `{name}`") from None


@dataclass(frozen=True)
class Crate:
    """A build-system-agnostic compilation unit."""

    name: str
    src_path: Path | None
    edition: Edition
    disambiguator: tuple[int, int]

    def __post_init__(self) -> None:
        if self.src_path is not None:
            object.__setattr__(self, "src_path", Path(self.src_path))
        object.__setattr__(self, "disambiguator", tuple(self.disambiguator))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Crate:
        dis = _require(data, "disambiguator")
        if not isinstance(dis, (list, tuple)) or len(dis) != 2:
            raise ValueError("disambiguator must be a pair of integers")
        src_path = data.get("src_path")
        return cls(
            name=str(_require(data, "name")),
            src_path=None if src_path is None else Path(str(src_path)),
            edition=Edition(_require(data, "edition")),
            disambiguator=(int(dis[0]), int(dis[1])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "src_path": None if self.src_path is None else str(self.src_path),
            "edition": self.edition.value,
            "disambiguator": list(self.disambiguator),
        }


def encode_input_files(
    input_files: Mapping[str | os.PathLike[str], Iterable[Crate]],
) -> dict[str, list[dict[str, Any]]]:
    """Serialise a map of input file to the crates it belongs to."""
    return {
        str(path): [
            crate.to_dict()
            for crate in sorted(set(crates), key=lambda c: (c.name, c.disambiguator))
        ]
        for path, crates in input_files.items()
    }


def decode_input_files(data: Mapping[str, Iterable[Mapping[str, Any]]]) -> dict[Path, set[Crate]]:
    """Inverse of :func:`encode_input_files`."""
    if not isinstance(data, Mapping):
        raise ValueError("input files must be a JSON object")
    return {
        Path(path): {Crate.from_dict(crate) for crate in crates}
        for path, crates in data.items()
    }