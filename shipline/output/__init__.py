"""Output abstraction layer."""

from .console import (
    ConsoleProtocol,
    MockConsole,
    RichConsole,
    Style,
    mask_secrets,
)

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "RichConsole",
    "Style",
    "mask_secrets",
]
