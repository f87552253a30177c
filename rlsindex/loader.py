"""Where save-analysis files are looked for, and the default Cargo-based layout."""

from __future__ import annotations

import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .host import AnalysisHost


class Target(Enum):
    RELEASE = "release"
    DEBUG = "debug"

    def __str__(self) -> str:
        return self.value


@dataclass
class SearchDirectory:
    """A directory of analysis files.

    When ``prefix_rewrite`` is set, spans read from there are re-based onto it,
    e.g. for standard library sources built elsewhere but installed locally.
    """

    path: Path
    prefix_rewrite: Path | None = None

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        if self.prefix_rewrite is not None:
            self.prefix_rewrite = Path(self.prefix_rewrite)


class AnalysisLoader(ABC):
    """Decides from where and which analysis files are read on reload."""

    @abstractmethod
    def needs_hard_reload(self, path_prefix: str | os.PathLike[str]) -> bool: ...

    @abstractmethod
    def fresh_host(self) -> AnalysisHost: ...

    @abstractmethod
    def set_path_prefix(self, path_prefix: str | os.PathLike[str]) -> None: ...

    @abstractmethod
    def abs_path_prefix(self) -> Path | None: ...

    @abstractmethod
    def search_directories(self) -> list[SearchDirectory]:
        """Every directory in which analysis files are to be considered."""


@dataclass
class CargoAnalysisLoader(AnalysisLoader):
    """Reads analysis files where Cargo and the toolchain put them."""

    target: Target
    path_prefix: Path | None = None

    def __post_init__(self) -> None:
        if self.path_prefix is not None:
            self.path_prefix = Path(self.path_prefix)

    def needs_hard_reload(self, path_prefix: str | os.PathLike[str]) -> bool:
        return self.path_prefix is None or self.path_prefix != Path(path_prefix)

    def fresh_host(self) -> AnalysisHost:
        from .host import AnalysisHost

        return AnalysisHost(CargoAnalysisLoader(self.target, self.path_prefix))

    def set_path_prefix(self, path_prefix: str | os.PathLike[str]) -> None:
        self.path_prefix = Path(path_prefix)

    def abs_path_prefix(self) -> Path | None:
        """The canonical prefix; raises OSError if it does not exist."""
        if self.path_prefix is None:
            return None
        return self.path_prefix.resolve(strict=True)

    def search_directories(self) -> list[SearchDirectory]:
        if self.path_prefix is None:
            raise ValueError("path prefix has not been set")
        deps_path = (
            self.path_prefix / "target" / "rls" / str(self.target) / "deps" / "save-analysis"
        )
        root = sys_root_path()
        triple = extract_target_triple(root)
        libs_path = root / "lib" / "rustlib" / triple / "analysis"
        src_path = root / "lib" / "rustlib" / "src" / "rust"
        return [SearchDirectory(libs_path, src_path), SearchDirectory(deps_path, None)]


def _rustc() -> str:
    return os.environ.get("RUSTC", "rustc")


def extract_target_triple(sys_root_path: str | os.PathLike[str]) -> str:
    """The host triple from the compiler, falling back on the toolchain directory name."""
    triple = extract_rustc_host_triple()
    return triple if triple is not None else extract_rustup_target_triple(sys_root_path)


def extract_rustc_host_triple() -> str | None:
    """The ``host:`` line of ``rustc --verbose --version``, or None."""
    try:
        out = subprocess.run(
            [_rustc(), "--verbose", "--version"], capture_output=True, check=False
        )
        text = out.stdout.decode("utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    for line in text.splitlines():
        if line.startswith("host: "):
            parts = line.split()
            return parts[1] if len(parts) > 1 else None
    return None


def extract_rustup_target_triple(sys_root_path: str | os.PathLike[str]) -> str:
    """The triple from a toolchain path such as ``.../toolchains/nightly-<triple>``."""
    parts = PurePath(sys_root_path).parts
    if not parts:
        raise ValueError("extracting toolchain failed")
    return parts[-1].split("-", 1)[-1]


def sys_root_path() -> Path:
    """The toolchain sysroot from ``SYSROOT`` or ``rustc --print sysroot``."""
    env_root = os.environ.get("SYSROOT")
    if env_root is not None:
        return Path(env_root)
    try:
        out = subprocess.run(
            [_rustc(), "--print", "sysroot"], capture_output=True, check=False
        )
        text = out.stdout.decode("utf-8")
    except (OSError, UnicodeDecodeError):
        raise RuntimeError(
            "need to specify SYSROOT or RUSTC env vars, or rustc must be in PATH"
        ) from None
    return Path(text.strip())