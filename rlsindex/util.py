"""Process resource helpers."""

from __future__ import annotations

import os
from pathlib import Path

_IS_UNIX = os.name == "posix"
_STATM_PATH = Path("/proc/self/statm")
_PAGE_SIZE = 4096


def get_resident() -> int | None:
    """Resident set size of this process in bytes, or None where unavailable."""
    if not _IS_UNIX:
        return None
    try:
        contents = _STATM_PATH.read_text()
    except (OSError, UnicodeDecodeError):
        return None
    fields = contents.split()
    if len(fields) < 2:
        return None
    try:
        pages = int(fields[1])
    except ValueError:
        return None
    if pages < 0:
        return None
    return pages * _PAGE_SIZE