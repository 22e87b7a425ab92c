"""Subprocess execution with Result-based error handling.

Every external tool the pipeline drives (git, gh, cargo, just, nix) goes
through `run`, which captures output and returns structured errors instead
of raising.

Usage:
    result = run(["git", "rev-parse", "HEAD"], cwd=project_root)
    match result:
        case Ok(stdout):
            print(stdout.strip())
        case Err(error):
            print(f"Failed: {error.stderr}")
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from shipline.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "tail"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: The exit code of the process (-1 if it never ran or timed out).
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"

    def detail(self, *, max_lines: int = 20) -> str | None:
        """Best diagnostic text: stderr if present, else stdout, trimmed."""
        text = self.stderr.strip() or self.stdout.strip()
        if not text:
            return None
        return tail(text, max_lines=max_lines)


def tail(text: str, *, max_lines: int) -> str:
    lines = text.splitlines()
    if len(lines) <= max_lines:
        return text
    return "\n".join(["...", *lines[-max_lines:]])


def run(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return stdout or error.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory for the command.
        env: Extra environment variables, layered over the current environment.
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(stdout) on success, Err(ProcessError) on failure.
    """
    full_env: dict[str, str] | None = None
    if env:
        full_env = {**os.environ, **env}

    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=full_env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        stdout = e.stdout if isinstance(e.stdout, str) else ""
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=stdout,
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout="",
                stderr=str(e),
            )
        )

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)
