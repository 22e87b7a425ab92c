"""Build Matrix Executor.

One generic build function consumes the descriptor table; the only
per-cell difference (cross-compiled outputs land under a target triple
subdirectory) lives in `TargetDescriptor`. Cells share no mutable state:
each gets its own cargo target directory and its own artifact directory.
A native cell only builds on a host of its own os and arch, a cross cell on
a host of its own os.
"""

from __future__ import annotations

import concurrent.futures
import shutil
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from shipline.core.result import Err, Ok, Result
from shipline.output.console import ConsoleProtocol, Style
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.model import TargetDescriptor
from shipline.pipeline.timeouts import BUILD_TIMEOUT_SECONDS
from shipline.platform.detection import HostPlatform, detect_host
from shipline.platform.process import run as run_process


@dataclass(frozen=True, slots=True)
class BuildSettings:
    project: str
    binary: str
    command: tuple[str, ...]
    work_dir: Path  # per-cell target dirs live under here
    artifacts_dir: Path  # upload destination, one subdirectory per artifact name


@dataclass(frozen=True, slots=True)
class CellOutcome:
    cell: TargetDescriptor
    artifact: Path | None
    error: PipelineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def find_cell(matrix: Sequence[TargetDescriptor], platform_id: str) -> TargetDescriptor | None:
    for cell in matrix:
        if cell.platform_id == platform_id:
            return cell
    return None


def upload_path(settings: BuildSettings, cell: TargetDescriptor) -> Path:
    return settings.artifacts_dir / cell.artifact_name(settings.project) / settings.binary


def check_host(cell: TargetDescriptor, host: HostPlatform) -> Result[None, PipelineError]:
    """A native cell needs a host of its own os and arch; a cross cell needs its os."""
    if cell.is_cross:
        if host.os == cell.os:
            return Ok(None)
        needed = f"a {cell.os} runner"
    else:
        if (host.os, host.arch) == (cell.os, cell.arch):
            return Ok(None)
        needed = f"a {cell.os}/{cell.arch} runner"
    return Err(
        PipelineError(
            kind="build_failed",
            message=f"{cell.platform_id} needs {needed} (host is {host})",
            hint=f"Run this cell on {cell.runner}: shipline build --cell {cell.platform_id}",
        )
    )


def build_cell(
    *,
    project_root: Path,
    cell: TargetDescriptor,
    settings: BuildSettings,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[Path, PipelineError]:
    """Build one cell and upload its binary under the cell's artifact name."""
    target_dir = settings.work_dir / cell.platform_id
    cmd = [*settings.command, *cell.cargo_args()]
    dest = upload_path(settings, cell)

    host_ok = check_host(cell, detect_host())
    if isinstance(host_ok, Err):
        return host_ok

    console.command(cmd)
    console.print(f"[{cell.platform_id}] CARGO_TARGET_DIR={target_dir}", Style.DIM)
    if dry_run:
        return Ok(dest)

    result = run_process(
        cmd,
        cwd=project_root,
        env={"CARGO_TARGET_DIR": str(target_dir)},
        timeout=BUILD_TIMEOUT_SECONDS,
    )
    if isinstance(result, Err):
        e = result.error
        return Err(
            PipelineError(
                kind="build_failed",
                message=f"{cell.platform_id}: {e}",
                hint=e.detail(),
            )
        )

    output = cell.output_path(target_dir, settings.binary)
    if not output.is_file():
        return Err(
            PipelineError(
                kind="build_failed",
                message=f"{cell.platform_id}: build produced no binary",
                hint=str(output),
            )
        )

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(output, dest)
    except OSError as e:
        return Err(
            PipelineError(
                kind="build_failed",
                message=f"{cell.platform_id}: failed to upload artifact: {e}",
                hint=str(dest),
            )
        )

    console.success(f"{cell.artifact_name(settings.project)} -> {dest}")
    return Ok(dest)


def execute_matrix(
    *,
    project_root: Path,
    cells: Sequence[TargetDescriptor],
    settings: BuildSettings,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[list[CellOutcome], PipelineError]:
    """Run every cell in parallel and wait for all of them.

    A failing cell never cancels its siblings. The stage fails if any cell
    failed; the error names every failed cell.
    """
    outcomes: dict[str, CellOutcome] = {}
    with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, len(cells))) as executor:
        futures = {
            executor.submit(
                build_cell,
                project_root=project_root,
                cell=cell,
                settings=settings,
                console=console,
                dry_run=dry_run,
            ): cell
            for cell in cells
        }

        for future in concurrent.futures.as_completed(futures):
            cell = futures[future]
            try:
                result = future.result()
            except Exception as e:
                outcomes[cell.platform_id] = CellOutcome(
                    cell=cell,
                    artifact=None,
                    error=PipelineError(kind="build_failed", message=f"{cell.platform_id}: {e}"),
                )
                continue

            if isinstance(result, Err):
                outcomes[cell.platform_id] = CellOutcome(cell=cell, artifact=None, error=result.error)
            else:
                outcomes[cell.platform_id] = CellOutcome(cell=cell, artifact=result.value)

    ordered = [outcomes[cell.platform_id] for cell in cells]
    failed = [o for o in ordered if not o.ok]
    if failed:
        for outcome in failed:
            assert outcome.error is not None
            console.error(outcome.error.message)
        return Err(
            PipelineError(
                kind="build_failed",
                message=f"{len(failed)} of {len(ordered)} matrix cells failed: "
                + ", ".join(o.cell.platform_id for o in failed),
                hint="\n".join(o.error.pretty() for o in failed if o.error is not None),
            )
        )
    return Ok(ordered)


def github_matrix(cells: Sequence[TargetDescriptor], *, project: str) -> dict[str, object]:
    """The table as a GitHub Actions `strategy.matrix` value."""
    include: list[dict[str, str]] = []
    for cell in cells:
        entry = {
            "cell": cell.platform_id,
            "os": cell.os,
            "arch": cell.arch,
            "runs-on": cell.runner,
            "artifact": cell.artifact_name(project),
        }
        if cell.target is not None:
            entry["target"] = cell.target
        include.append(entry)
    return {"include": include}
