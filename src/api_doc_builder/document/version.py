"""Version counter: increment rules, build stamps and display format."""

import time
from typing import Callable, Literal

from api_doc_builder.document.base import Version

IncrementKind = Literal["major", "minor", "patch"]

INCREMENT_KINDS = ("major", "minor", "patch")
UNKNOWN_VERSION = "v?.?.?.?"


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class BuildClock:
    """Time-based build stamps that strictly increase per clock instance."""

    def __init__(self, now: Callable[[], int] | None = None):
        self._now = now or _epoch_millis
        self._last = 0

    def __call__(self) -> int:
        stamp = max(self._now(), self._last + 1)
        self._last = stamp
        return stamp


default_build_clock = BuildClock()


def initial_version(build: int | None = None) -> Version:
    """Version 1.0.0 stamped with the current build."""
    return Version(major=1, minor=0, patch=0, build=build if build is not None else default_build_clock())


def increment(version: Version, kind: IncrementKind, build: int | None = None) -> Version:
    """Return a new Version bumped by ``kind``; lower counters reset to 0."""
    if build is None:
        build = default_build_clock()

    if kind == "major":
        return Version(major=version.major + 1, minor=0, patch=0, build=build)
    elif kind == "minor":
        return Version(major=version.major, minor=version.minor + 1, patch=0, build=build)
    elif kind == "patch":
        return Version(major=version.major, minor=version.minor, patch=version.patch + 1, build=build)
    raise ValueError(f"Unknown version increment {kind!r}, expected one of {INCREMENT_KINDS}")


def format_version(version: Version | None) -> str:
    if version is None:
        return UNKNOWN_VERSION
    return f"v{version.major}.{version.minor}.{version.patch}.{version.build}"
