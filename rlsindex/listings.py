"""Directory listings with modification times."""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass
from pathlib import Path


@functools.total_ordering
@dataclass(frozen=True)
class ListingKind:
    """A directory, or a file with its modification time; directories sort first."""

    modified: float | None = None

    @classmethod
    def directory(cls) -> ListingKind:
        return cls(None)

    @classmethod
    def file(cls, modified: float) -> ListingKind:
        return cls(float(modified))

    @property
    def is_directory(self) -> bool:
        return self.modified is None

    @property
    def is_file(self) -> bool:
        return self.modified is not None

    def _key(self) -> tuple[int, float]:
        return (0, 0.0) if self.modified is None else (1, self.modified)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ListingKind):
            return NotImplemented
        return self._key() < other._key()


@dataclass(frozen=True, order=True)
class Listing:
    kind: ListingKind
    name: str


@dataclass
class DirectoryListing:
    """The directories and regular files directly inside a directory, sorted."""

    path: list[str]
    files: list[Listing]

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> DirectoryListing:
        """List ``path``; raises OSError if it cannot be read."""
        path = Path(path)
        files: list[Listing] = []
        with os.scandir(path) as entries:
            for entry in entries:
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                    is_file = entry.is_file(follow_symlinks=False)
                except OSError:
                    continue
                if is_dir:
                    files.append(Listing(ListingKind.directory(), entry.name))
                elif is_file:
                    modified = entry.stat(follow_symlinks=False).st_mtime
                    files.append(Listing(ListingKind.file(modified), entry.name))
        files.sort()
        return cls(path=list(path.parts), files=files)