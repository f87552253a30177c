"""Print the id and data version of every crate in a save-analysis directory."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .host import AnalysisHost
from .loader import AnalysisLoader, SearchDirectory
from .raw import read_analysis_from_files


@dataclass
class DirectoryLoader(AnalysisLoader):
    """Reads analysis files from a single directory, always hard-reloading."""

    deps_dir: Path

    def __post_init__(self) -> None:
        self.deps_dir = Path(self.deps_dir)

    def needs_hard_reload(self, path_prefix: str | os.PathLike[str]) -> bool:
        return True

    def fresh_host(self) -> AnalysisHost:
        return AnalysisHost(DirectoryLoader(self.deps_dir))

    def set_path_prefix(self, path_prefix: str | os.PathLike[str]) -> None:
        pass

    def abs_path_prefix(self) -> Path | None:
        return None

    def search_directories(self) -> list[SearchDirectory]:
        return [SearchDirectory(self.deps_dir, None)]


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig()
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("Usage: print-crate-id <save-analysis-dir>")
        return 1
    loader = DirectoryLoader(Path(args[0]))
    for krate in read_analysis_from_files(loader, {}, []):
        print(f"Crate {krate.id!r} data version {krate.analysis.version!r}")
    return 0


if __name__ == "__main__":
    sys.exit(main())