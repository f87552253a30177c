"""Lint-tool preference handling for compiler invocations."""

from __future__ import annotations

import os
from collections.abc import Iterable
from enum import Enum

_ENV_VAR = "RLS_CLIPPY_PREFERENCE"


class ClippyPreference(Enum):
    """Whether the lint tool is off, opt-in (lints allowed by default) or on."""

    OFF = "off"
    OPT_IN = "optin"
    ON = "on"

    @classmethod
    def parse(cls, text: str) -> ClippyPreference:
        """Parse permissively: case-insensitive, accepting ``opt-in`` and ``optin``."""
        lowered = text.lower()
        if lowered == "off":
            return cls.OFF
        if lowered in ("optin", "opt-in"):
            return cls.OPT_IN
        if lowered == "on":
            return cls.ON
        raise ValueError(f"unknown clippy preference {text!r}")


def preference() -> ClippyPreference | None:
    """The preference from the environment, or None if unset or unrecognised."""
    value = os.environ.get(_ENV_VAR)
    if value is None:
        return None
    try:
        return ClippyPreference.parse(value)
    except ValueError:
        return None


def adjust_args(args: Iterable[str], preference: ClippyPreference) -> list[str]:
    """Append the compiler arguments that the preference calls for."""
    result = list(args)
    if preference is ClippyPreference.OFF:
        return result
    result += ["--cfg", 'feature="cargo-clippy"']
    if preference is ClippyPreference.OPT_IN:
        result += ["-A", "clippy::all"]
    return result