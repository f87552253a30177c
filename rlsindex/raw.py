"""Reading raw save-analysis files from disk."""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .data import Analysis, Config, DefKind, GlobalCrateId
from .listings import DirectoryListing

log = logging.getLogger(__name__)


class _SearchDirectory(Protocol):
    path: Path
    prefix_rewrite: Path | None


class _Loader(Protocol):
    def search_directories(self) -> Iterable[_SearchDirectory]: ...


@dataclass
class Crate:
    """Raw analysis data of one crate together with where and when it was read."""

    id: GlobalCrateId
    analysis: Analysis
    timestamp: float
    path: Path | None = None
    path_rewrite: Path | None = None

    @classmethod
    def from_analysis(
        cls,
        analysis: Analysis,
        timestamp: float,
        path: str | os.PathLike[str] | None,
        path_rewrite: str | os.PathLike[str] | None,
    ) -> Crate:
        """Wrap ``analysis``; raises ValueError if it has no crate prelude."""
        if analysis.prelude is None:
            raise ValueError("analysis data has no crate prelude")
        return cls(
            id=analysis.prelude.crate_id,
            analysis=analysis,
            timestamp=timestamp,
            path=None if path is None else Path(path),
            path_rewrite=None if path_rewrite is None else Path(path_rewrite),
        )


def read_analysis_from_files(
    loader: _Loader,
    crate_timestamps: Mapping[Path, float] | None = None,
    crate_blacklist: Iterable[str] = (),
) -> list[Crate]:
    """Read fresh, non-blacklisted crates from every directory the loader names."""
    timestamps = crate_timestamps or {}
    blacklist = list(crate_blacklist)
    result: list[Crate] = []

    for directory in loader.search_directories():
        dir_path = Path(directory.path)
        log.debug("Considering analysis files at %s", dir_path)
        try:
            listing = DirectoryListing.from_path(dir_path)
        except OSError:
            continue

        started = time.perf_counter()
        for entry in listing.files:
            log.info("Considering %r", entry)
            if not entry.kind.is_file:
                continue
            if ignore_data(entry.name, blacklist):
                continue
            path = dir_path / entry.name
            modified = entry.kind.modified
            previous = timestamps.get(path)
            if previous is not None and not modified > previous:
                continue
            analysis = read_crate_data(path)
            if analysis is not None:
                result.append(
                    Crate.from_analysis(analysis, modified, path, directory.prefix_rewrite)
                )

        log.info(
            "reading %d crates from %s in %.9fs",
            len(result),
            dir_path,
            time.perf_counter() - started,
        )

    return result


def ignore_data(file_name: str, crate_blacklist: Iterable[str]) -> bool:
    """Whether ``file_name`` holds data of a blacklisted crate."""
    return any(file_name.startswith(f"lib{name}-") for name in crate_blacklist)


def _report_version_mismatch(text: str) -> None:
    try:
        parsed = json.loads(text)
    except ValueError as err:
        log.warning("Data file was not valid JSON: %r", err)
        return
    if not isinstance(parsed, dict):
        log.warning("Data file didn't have a JSON object at the root")
        return
    expected = Analysis.new(Config()).version
    actual = parsed.get("version")
    if expected != actual:
        log.warning(
            "Data file version mismatch; expected %r but got %r", expected, actual
        )


def read_crate_data(path: str | os.PathLike[str]) -> Analysis | None:
    """Read and decode an analysis JSON file, or None if that fails."""
    path = Path(path)
    log.debug("read_crate_data %s", path)
    started = time.perf_counter()
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        log.warning("couldn't read file: %s", err)
        return None
    try:
        analysis = Analysis.from_json(text)
    except (ValueError, TypeError) as err:
        log.warning("deserialisation error: %r", err)
        _report_version_mismatch(text)
        return None
    log.info("reading %s %.9fs", path, time.perf_counter() - started)
    return analysis


_TYPE_KINDS = frozenset(
    {
        DefKind.ENUM,
        DefKind.STRUCT,
        DefKind.UNION,
        DefKind.TYPE,
        DefKind.EXTERN_TYPE,
        DefKind.TRAIT,
    }
)


def name_space_for_def_kind(kind: DefKind) -> str:
    """The documentation namespace letter for a definition kind."""
    if kind in _TYPE_KINDS:
        return "t"
    if kind is DefKind.MACRO:
        return "m"
    return "v"