from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum


_VERSION_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")
_STABLE_TAG_RE = re.compile(r"^v(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


class BumpLevel(IntEnum):
    """Magnitude of a version increment; ordering is significance."""

    NONE = 0
    PATCH = 1
    MINOR = 2
    MAJOR = 3

    def __str__(self) -> str:
        return self.name.lower()

    def __format__(self, format_spec: str) -> str:
        return format(str(self), format_spec)

    @classmethod
    def parse(cls, text: str) -> BumpLevel | None:
        try:
            return cls[text.strip().upper()]
        except KeyError:
            return None


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def to_tag(self) -> str:
        return f"v{self}"

    def bump(self, level: BumpLevel) -> SemVer:
        match level:
            case BumpLevel.MAJOR:
                return SemVer(self.major + 1, 0, 0)
            case BumpLevel.MINOR:
                return SemVer(self.major, self.minor + 1, 0)
            case BumpLevel.PATCH:
                return SemVer(self.major, self.minor, self.patch + 1)
            case _:
                raise AssertionError(f"cannot bump by {level}")


INITIAL_RELEASE = SemVer(1, 0, 0)


def parse_version(text: str) -> SemVer | None:
    """Parse `X.Y.Z` (a leading `v` is accepted)."""
    s = text.strip()
    if s.startswith("v"):
        s = s[1:]
    m = _VERSION_RE.match(s)
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def parse_stable_tag(tag: str) -> SemVer | None:
    m = _STABLE_TAG_RE.match(tag)
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def latest_stable_tag(tags: list[str]) -> tuple[str, SemVer] | None:
    """Highest `vX.Y.Z` tag by version order; prerelease-like tags are ignored."""
    best: tuple[str, SemVer] | None = None
    for tag in tags:
        version = parse_stable_tag(tag)
        if version is None:
            continue
        if best is None or version > best[1]:
            best = (tag, version)
    return best
