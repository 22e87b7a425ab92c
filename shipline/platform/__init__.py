"""Platform abstraction layer."""

from .detection import HostPlatform, detect_host
from .process import ProcessError, run, tail

__all__ = [
    "HostPlatform",
    "ProcessError",
    "detect_host",
    "run",
    "tail",
]
