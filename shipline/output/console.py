"""Console output abstraction.

Pipeline stages report progress through `ConsoleProtocol` rather than a
logging framework: the output is read by humans in a CI log, and tests swap
in `MockConsole` to assert on what a stage reported.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "mask_secrets",
]

_MASK = "***"


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()  # echoed commands, hints
    BOLD = auto()
    HEADER = auto()  # stage banner

    def __str__(self) -> str:
        return self.name.lower()


def mask_secrets(text: str, secrets: Iterable[str]) -> str:
    """Replace every non-empty secret in text with a fixed mask."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, _MASK)
    return text


class ConsoleProtocol(Protocol):
    """Protocol for console output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None:
        """Print a stage banner."""
        ...

    def command(self, cmd: list[str], *, secrets: Iterable[str] = ()) -> None:
        """Echo a command line before it runs, with secrets masked."""
        ...

    def newline(self) -> None: ...


class RichConsole:
    """Console implementation using Rich library."""

    def __init__(self) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console

        self._console = Console(highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        # Command output and notes may contain [brackets]; never parse as markup.
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def success(self, message: str) -> None:
        self._console.print("[green]OK[/green] ", end="")
        self._console.print(message, markup=False)

    def error(self, message: str) -> None:
        self._console.print("[red bold]error:[/red bold] ", end="")
        self._console.print(message, markup=False)

    def warning(self, message: str) -> None:
        self._console.print("[yellow]warning:[/yellow] ", end="")
        self._console.print(message, markup=False)

    def info(self, message: str) -> None:
        self._console.print("[cyan]info:[/cyan] ", end="")
        self._console.print(message, markup=False)

    def header(self, message: str) -> None:
        self._console.print()
        self._console.rule(message, style="blue bold", align="left")

    def command(self, cmd: list[str], *, secrets: Iterable[str] = ()) -> None:
        self.print("$ " + mask_secrets(" ".join(cmd), secrets), Style.DIM)

    def newline(self) -> None:
        self._console.print()


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def command(self, cmd: list[str], *, secrets: Iterable[str] = ()) -> None:
        self.outputs.append(OutputRecord("$ " + mask_secrets(" ".join(cmd), secrets), Style.DIM))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    # Test helper methods

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    @property
    def commands(self) -> list[str]:
        """Echoed command lines, without the leading '$ '."""
        return [o.message[2:] for o in self.outputs if o.message.startswith("$ ")]

    @property
    def headers(self) -> list[str]:
        return [o.message for o in self.outputs if o.style == Style.HEADER]

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]
