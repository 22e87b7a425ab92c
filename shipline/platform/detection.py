"""Host operating system and CPU architecture detection.

Names follow the build matrix vocabulary (`linux` / `macos`, `x86_64` /
`aarch64`); anything else is reported as None.
"""

from __future__ import annotations

import platform as _platform
import sys as _sys
from dataclasses import dataclass
from functools import lru_cache

__all__ = ["HostPlatform", "detect_arch", "detect_host", "detect_os"]


@dataclass(frozen=True, slots=True)
class HostPlatform:
    os: str | None
    arch: str | None

    def __str__(self) -> str:
        return f"{self.os or 'unknown'}/{self.arch or 'unknown'}"


@lru_cache(maxsize=1)
def detect_os() -> str | None:
    """Detect the current operating system (cached)."""
    system = _sys.platform.lower()
    if system.startswith("linux"):
        return "linux"
    if system.startswith("darwin"):
        return "macos"
    return None


@lru_cache(maxsize=1)
def detect_arch() -> str | None:
    """Detect the current CPU architecture (cached)."""
    machine = _platform.machine().lower()
    if machine in ("x86_64", "amd64"):
        return "x86_64"
    if machine in ("aarch64", "arm64"):
        return "aarch64"
    return None


def detect_host() -> HostPlatform:
    return HostPlatform(os=detect_os(), arch=detect_arch())
