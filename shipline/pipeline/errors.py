from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


PipelineErrorKind = Literal[
    "validation_failed",
    "build_failed",
    "aggregation_failed",
    "publish_failed",
    "tag_exists",
    "propagation_failed",
    "anchor_missing",
    "gh_missing",
    "git_failed",
    "invalid_input",
]


@dataclass(frozen=True, slots=True)
class PipelineError:
    """Canonical pipeline error payload.

    Stages return this in `Err`; the CLI renders `message` and `hint` and maps
    `kind` to an exit code. A "no release warranted" outcome is never an error.
    """

    kind: PipelineErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
