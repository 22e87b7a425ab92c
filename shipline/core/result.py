"""Result type for explicit error handling.

Every fallible pipeline operation returns a Result instead of raising, so the
orchestrator can decide per stage whether a failure is fatal, reported, or a
clean no-op.

Usage:
    def parse_version(text: str) -> Result[SemVer, str]:
        parsed = parse_version_text(text)
        if parsed is None:
            return Err(f"not a version: {text}")
        return Ok(parsed)

    match parse_version("1.4.7"):
        case Ok(version):
            print(version.bump(BumpLevel.PATCH))
        case Err(error):
            print(f"error: {error}")
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful result carrying a value."""

    value: T

    def unwrap(self) -> T:
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed result carrying an error payload."""

    error: E

    def unwrap(self) -> None:
        """Raise ValueError; an Err has no value.

        Raises:
            ValueError: Always, with the error in the message.
        """
        raise ValueError(f"called unwrap on Err: {self.error}")

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
