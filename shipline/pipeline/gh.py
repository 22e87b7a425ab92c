from __future__ import annotations

import shutil
from collections.abc import Sequence
from pathlib import Path
from time import sleep

from shipline.core.result import Err, Ok, Result
from shipline.output.console import ConsoleProtocol
from shipline.pipeline.errors import PipelineError, PipelineErrorKind
from shipline.pipeline.model import BuildArtifact
from shipline.pipeline.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
    GH_UPLOAD_TIMEOUT_SECONDS,
)
from shipline.platform.process import ProcessError
from shipline.platform.process import run as run_process


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "tls handshake timeout",
        "network is unreachable",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    if error.returncode == -1 and "timed out" in text:
        return True
    return any(marker in text for marker in markers)


def _is_not_found(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    return "not found" in text or "http 404" in text


def run_gh_read(
    *,
    cwd: Path,
    cmd: list[str],
    kind: PipelineErrorKind,
    message: str,
    hint: str | None = None,
    timeout: float = GH_TIMEOUT_SECONDS,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, PipelineError | ProcessError]:
    """Run a read-only gh command, retrying transient network errors.

    Returns the raw ProcessError for non-transient failures so callers can
    tell "not found" apart from real errors.
    """
    attempts = max(1, retry_attempts)
    for attempt in range(attempts):
        result = run_process(cmd, cwd=cwd, timeout=timeout)
        if isinstance(result, Ok):
            return result

        error = result.error
        if attempt < attempts - 1 and _is_transient_gh_error(error):
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue

        if _is_transient_gh_error(error):
            return Err(PipelineError(kind=kind, message=message, hint=error.detail() or hint))
        return Err(error)

    return Err(PipelineError(kind=kind, message=message, hint=hint))


def ensure_gh_available() -> Result[None, PipelineError]:
    if shutil.which("gh") is None:
        return Err(
            PipelineError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def release_exists(*, cwd: Path, repo: str, tag: str) -> Result[bool, PipelineError]:
    result = run_gh_read(
        cwd=cwd,
        cmd=["gh", "release", "view", tag, "--repo", repo, "--json", "tagName"],
        kind="publish_failed",
        message=f"failed to query release {tag}",
    )
    if isinstance(result, Ok):
        return Ok(True)

    error = result.error
    if isinstance(error, PipelineError):
        return Err(error)
    if _is_not_found(error):
        return Ok(False)
    return Err(
        PipelineError(
            kind="publish_failed",
            message=f"failed to query release {tag}",
            hint=error.detail(),
        )
    )


def asset_args(artifacts: Sequence[BuildArtifact]) -> list[str]:
    """`path#label` upload arguments, one per artifact."""
    return [f"{a.path}#{a.name}" for a in artifacts]


def create_release(
    *,
    cwd: Path,
    repo: str,
    tag: str,
    notes_file: Path,
    artifacts: Sequence[BuildArtifact],
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[str | None, PipelineError]:
    """Create the release for an already pushed tag and upload its assets.

    Not retried: a half-created release must be inspected by a human.
    """
    cmd = [
        "gh",
        "release",
        "create",
        tag,
        "--repo",
        repo,
        "--title",
        tag,
        "--notes-file",
        str(notes_file),
        "--verify-tag",
        *asset_args(artifacts),
    ]
    console.command(cmd)
    if dry_run:
        return Ok(None)

    result = run_process(cmd, cwd=cwd, timeout=GH_UPLOAD_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        e = result.error
        return Err(
            PipelineError(
                kind="publish_failed",
                message=f"failed to create release {tag}",
                hint=e.detail(),
            )
        )

    url = result.value.strip().splitlines()[-1] if result.value.strip() else None
    return Ok(url)


def download_release_assets(
    *,
    cwd: Path,
    repo: str,
    tag: str,
    names: Sequence[str],
    dest: Path,
    console: ConsoleProtocol,
) -> Result[Path, PipelineError]:
    cmd = ["gh", "release", "download", tag, "--repo", repo, "--dir", str(dest), "--clobber"]
    for name in names:
        cmd.extend(["--pattern", name])
    console.command(cmd)

    result = run_gh_read(
        cwd=cwd,
        cmd=cmd,
        kind="propagation_failed",
        message=f"failed to download assets of {tag}",
        timeout=GH_UPLOAD_TIMEOUT_SECONDS,
    )
    if isinstance(result, Err):
        error = result.error
        if isinstance(error, PipelineError):
            return Err(error)
        return Err(
            PipelineError(
                kind="propagation_failed",
                message=f"failed to download assets of {tag}",
                hint=error.detail(),
            )
        )
    return Ok(dest)
