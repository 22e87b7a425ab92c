"""Artifact Aggregator.

Artifact download recreates one directory per artifact name; the aggregator
flattens them into the release directory as `<project>-<os>-<arch>` files.

Once a release is published from the directory, `RELEASE_TAG_FILE` records
its tag. Aggregating again removes the marker, so only binaries that were
actually published under a tag are ever read back for it.
"""

from __future__ import annotations

import shutil
import stat
from collections.abc import Sequence
from pathlib import Path

from shipline.core.result import Err, Ok, Result
from shipline.output.console import ConsoleProtocol
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.model import BuildArtifact, TargetDescriptor


RELEASE_TAG_FILE = ".release-tag"


def read_release_tag(release_dir: Path) -> str | None:
    try:
        return (release_dir / RELEASE_TAG_FILE).read_text(encoding="utf-8").strip() or None
    except OSError:
        return None


def write_release_tag(release_dir: Path, tag: str) -> Result[None, PipelineError]:
    try:
        (release_dir / RELEASE_TAG_FILE).write_text(tag + "\n", encoding="utf-8")
    except OSError as e:
        return Err(
            PipelineError(
                kind="publish_failed",
                message=f"cannot record release tag {tag}: {e}",
                hint=str(release_dir),
            )
        )
    return Ok(None)


def locate_artifact(download_dir: Path, name: str, binary: str) -> Path | None:
    """Find a downloaded artifact: `<dir>/<name>/<binary>` or a flat `<dir>/<name>`."""
    nested = download_dir / name / binary
    if nested.is_file():
        return nested
    flat = download_dir / name
    if flat.is_file():
        return flat
    return None


def _make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def aggregate_artifacts(
    *,
    download_dir: Path,
    release_dir: Path,
    cells: Sequence[TargetDescriptor],
    project: str,
    binary: str,
    console: ConsoleProtocol,
) -> Result[dict[str, BuildArtifact], PipelineError]:
    """Collect one non-empty binary per cell, failing fast on the first gap.

    Returns:
        Ok(platform id -> artifact), in matrix order.
    """
    found: list[tuple[TargetDescriptor, Path]] = []
    for cell in cells:
        name = cell.artifact_name(project)
        path = locate_artifact(download_dir, name, binary)
        if path is None:
            return Err(
                PipelineError(
                    kind="aggregation_failed",
                    message=f"missing artifact: {name}",
                    hint=f"expected {download_dir / name / binary}",
                )
            )
        if path.stat().st_size == 0:
            return Err(
                PipelineError(
                    kind="aggregation_failed",
                    message=f"empty artifact: {name}",
                    hint=str(path),
                )
            )
        found.append((cell, path))

    artifacts: dict[str, BuildArtifact] = {}
    try:
        release_dir.mkdir(parents=True, exist_ok=True)
        (release_dir / RELEASE_TAG_FILE).unlink(missing_ok=True)
        for cell, src in found:
            name = cell.artifact_name(project)
            dest = release_dir / name
            shutil.copyfile(src, dest)
            _make_executable(dest)
            artifact = BuildArtifact.from_file(platform_id=cell.platform_id, name=name, path=dest)
            artifacts[cell.platform_id] = artifact
            console.print(f"{name}  {artifact.sha256}  {artifact.size} bytes")
    except OSError as e:
        return Err(
            PipelineError(
                kind="aggregation_failed",
                message=f"failed to prepare release binaries: {e}",
                hint=str(release_dir),
            )
        )

    return Ok(artifacts)
