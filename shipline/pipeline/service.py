"""Pipeline orchestration.

`PipelineService` exposes each stage on its own (the CLI runs them as
separate CI jobs) and `run`, which walks the stage DAG selected by the
triggering event. A stage only runs when all of its dependencies succeeded;
"no release warranted" stops the chain without failing it.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from shipline.core.project import Project
from shipline.core.result import Err, Ok, Result
from shipline.output.console import ConsoleProtocol, Style
from shipline.pipeline.aggregate import (
    aggregate_artifacts,
    locate_artifact,
    read_release_tag,
    write_release_tag,
)
from shipline.pipeline.config import PipelineConfig
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.gh import download_release_assets
from shipline.pipeline.matrix import BuildSettings, CellOutcome, execute_matrix
from shipline.pipeline.model import (
    BuildArtifact,
    PipelineEvent,
    ReleaseRecord,
    TargetDescriptor,
    VersionDecision,
)
from shipline.pipeline.propagate import (
    PropagationOutcome,
    PublishedRelease,
    SourceHashProvider,
    build_propagators,
    propagate_all,
)
from shipline.pipeline.publish import PublishSettings, publish_release
from shipline.pipeline.semver import parse_stable_tag
from shipline.pipeline.stages import STAGE_DEPENDENCIES, Stage, select_stages
from shipline.pipeline.validation import run_validation
from shipline.pipeline.versioning import resolve_version


StageStatus = Literal["ok", "failed", "skipped", "noop"]


@dataclass(frozen=True, slots=True)
class StageReport:
    stage: Stage
    status: StageStatus
    error: PipelineError | None = None


@dataclass
class PipelineReport:
    stages: list[StageReport] = field(default_factory=lambda: [])
    decision: VersionDecision | None = None
    artifacts: dict[str, BuildArtifact] = field(default_factory=lambda: {})
    release: ReleaseRecord | None = None
    propagation: list[PropagationOutcome] = field(default_factory=lambda: [])

    def status_of(self, stage: Stage) -> StageStatus | None:
        for report in self.stages:
            if report.stage == stage:
                return report.status
        return None

    @property
    def failures(self) -> list[StageReport]:
        return [r for r in self.stages if r.status == "failed"]

    @property
    def ok(self) -> bool:
        return not self.failures


class PipelineService:
    def __init__(
        self,
        *,
        project: Project,
        config: PipelineConfig,
        console: ConsoleProtocol,
        push_token: str | None = None,
        source_hash: SourceHashProvider | None = None,
    ) -> None:
        self._project = project
        self._config = config
        self._console = console
        self._push_token = push_token
        self._source_hash = source_hash

    @property
    def root(self) -> Path:
        return self._project.root

    @property
    def artifacts_dir(self) -> Path:
        return self.root / self._config.artifacts_dir

    @property
    def release_dir(self) -> Path:
        return self.root / self._config.release_dir

    def build_settings(self) -> BuildSettings:
        return BuildSettings(
            project=self._config.project,
            binary=self._config.binary,
            command=self._config.build_command,
            work_dir=self._project.work_dir,
            artifacts_dir=self.artifacts_dir,
        )

    # -- single stages ---------------------------------------------------------

    def validate(self) -> Result[None, PipelineError]:
        return run_validation(
            project_root=self.root,
            steps=self._config.validation,
            console=self._console,
        )

    def build(
        self,
        cells: Sequence[TargetDescriptor] | None = None,
        *,
        dry_run: bool = False,
    ) -> Result[list[CellOutcome], PipelineError]:
        return execute_matrix(
            project_root=self.root,
            cells=self._config.matrix if cells is None else cells,
            settings=self.build_settings(),
            console=self._console,
            dry_run=dry_run,
        )

    def aggregate(self) -> Result[dict[str, BuildArtifact], PipelineError]:
        return aggregate_artifacts(
            download_dir=self.artifacts_dir,
            release_dir=self.release_dir,
            cells=self._config.matrix,
            project=self._config.project,
            binary=self._config.binary,
            console=self._console,
        )

    def plan(self) -> Result[VersionDecision, PipelineError]:
        return resolve_version(
            project_root=self.root,
            rules=self._config.rules,
            console=self._console,
        )

    def publish(
        self,
        decision: VersionDecision,
        artifacts: dict[str, BuildArtifact],
        *,
        dry_run: bool,
    ) -> Result[ReleaseRecord, PipelineError]:
        settings = PublishSettings(
            repo=self._config.repo,
            main_branch=self._config.main_branch,
            expected_platforms=tuple(c.platform_id for c in self._config.matrix),
            notes_dir=self._project.state_dir / "release-notes",
            identity=self._config.identity,
            manifest=self._config.manifest,
        )
        published = publish_release(
            project_root=self.root,
            decision=decision,
            artifacts=artifacts,
            settings=settings,
            console=self._console,
            dry_run=dry_run,
        )
        if isinstance(published, Ok) and not dry_run:
            marked = write_release_tag(self.release_dir, published.value.tag)
            if isinstance(marked, Err):
                self._console.warning(marked.error.message)
        return published

    def propagate(
        self,
        release: PublishedRelease,
        *,
        dry_run: bool,
        only: Sequence[str] | None = None,
    ) -> list[PropagationOutcome]:
        targets = [t for t in self._config.downstream if not only or t.id in only]
        propagators = build_propagators(
            targets,
            project=self._config.project,
            repo=self._config.repo,
            identity=self._config.identity,
            token=self._push_token,
            cwd=self.root,
            console=self._console,
            source_hash=self._source_hash,
        )
        return propagate_all(propagators, release, dry_run=dry_run, console=self._console)

    def published_release(self, tag: str) -> Result[PublishedRelease, PipelineError]:
        """Version and asset hashes of an already published release.

        Uses the local release directory only when it holds every asset and
        was published as this tag, otherwise downloads the assets from the
        GitHub release.
        """
        version = parse_stable_tag(tag)
        if version is None:
            return Err(
                PipelineError(
                    kind="invalid_input",
                    message=f"not a release tag: {tag}",
                    hint="Expected vX.Y.Z",
                )
            )

        local: dict[str, BuildArtifact] | None = None
        if read_release_tag(self.release_dir) == tag:
            local = self._collect_assets(self.release_dir)
        if local is not None:
            return Ok(PublishedRelease(version=version, tag=tag, artifacts=local))

        dest = self._project.state_dir / "downloads" / tag
        names = self._config.artifact_names()
        downloaded = download_release_assets(
            cwd=self.root,
            repo=self._config.repo,
            tag=tag,
            names=names,
            dest=dest,
            console=self._console,
        )
        if isinstance(downloaded, Err):
            return downloaded

        assets = self._collect_assets(dest)
        if assets is None:
            return Err(
                PipelineError(
                    kind="propagation_failed",
                    message=f"release {tag} is missing assets",
                    hint=f"expected: {', '.join(names)}",
                )
            )
        return Ok(PublishedRelease(version=version, tag=tag, artifacts=assets))

    def _collect_assets(self, directory: Path) -> dict[str, BuildArtifact] | None:
        out: dict[str, BuildArtifact] = {}
        for cell in self._config.matrix:
            name = cell.artifact_name(self._config.project)
            path = locate_artifact(directory, name, self._config.binary)
            if path is None or path.stat().st_size == 0:
                return None
            out[cell.platform_id] = BuildArtifact.from_file(
                platform_id=cell.platform_id, name=name, path=path
            )
        return out

    # -- chains ----------------------------------------------------------------

    def run(self, event: PipelineEvent, *, dry_run: bool) -> PipelineReport:
        """Run every stage the event selects, in dependency order."""
        stages = select_stages(event, main_branch=self._config.main_branch)
        self._console.print(
            f"event: {event.name} {event.ref} -> {', '.join(str(s) for s in stages)}",
            Style.DIM,
        )
        return self._run_stages(stages, dry_run=dry_run)

    def release(self, *, dry_run: bool) -> PipelineReport:
        """Aggregate already uploaded artifacts, then version, publish, propagate."""
        stages = (Stage.AGGREGATE, Stage.VERSION, Stage.PUBLISH, Stage.PROPAGATE)
        return self._run_stages(stages, dry_run=dry_run, assume_done=(Stage.BUILD,))

    def _run_stages(
        self,
        stages: Sequence[Stage],
        *,
        dry_run: bool,
        assume_done: Sequence[Stage] = (),
    ) -> PipelineReport:
        report = PipelineReport()
        succeeded: set[Stage] = set(assume_done)

        for stage in stages:
            blocked = [d for d in STAGE_DEPENDENCIES[stage] if d not in succeeded]
            if blocked:
                report.stages.append(StageReport(stage=stage, status="skipped"))
                continue

            self._console.header(str(stage))
            status, error = self._run_stage(stage, report, dry_run=dry_run)
            report.stages.append(StageReport(stage=stage, status=status, error=error))
            if status == "ok":
                succeeded.add(stage)

        return report

    def _run_stage(
        self,
        stage: Stage,
        report: PipelineReport,
        *,
        dry_run: bool,
    ) -> tuple[StageStatus, PipelineError | None]:
        match stage:
            case Stage.VALIDATE:
                result = self.validate()
                if isinstance(result, Err):
                    return self._failed(result.error)
                return ("ok", None)

            case Stage.BUILD:
                built = self.build()
                if isinstance(built, Err):
                    return self._failed(built.error)
                return ("ok", None)

            case Stage.AGGREGATE:
                aggregated = self.aggregate()
                if isinstance(aggregated, Err):
                    return self._failed(aggregated.error)
                report.artifacts = aggregated.value
                return ("ok", None)

            case Stage.VERSION:
                decided = self.plan()
                if isinstance(decided, Err):
                    return self._failed(decided.error)
                report.decision = decided.value
                if not decided.value.should_release:
                    self._console.success("no release-worthy commits; nothing to publish")
                    return ("noop", None)
                self._console.success(
                    f"{decided.value.bump_level} release: {decided.value.tag}"
                )
                return ("ok", None)

            case Stage.PUBLISH:
                assert report.decision is not None
                published = self.publish(report.decision, report.artifacts, dry_run=dry_run)
                if isinstance(published, Err):
                    return self._failed(published.error)
                report.release = published.value
                self._console.success(f"published {published.value.tag}")
                return ("ok", None)

            case Stage.PROPAGATE:
                assert report.release is not None
                release = PublishedRelease(
                    version=report.release.version,
                    tag=report.release.tag,
                    artifacts={a.platform_id: a for a in report.release.artifacts},
                )
                report.propagation = self.propagate(release, dry_run=dry_run)
                failed = [o for o in report.propagation if not o.ok]
                if failed:
                    return (
                        "failed",
                        PipelineError(
                            kind="propagation_failed",
                            message="propagation failed for: "
                            + ", ".join(o.target.id for o in failed),
                            hint=f"Re-run: shipline propagate --tag {report.release.tag}",
                        ),
                    )
                return ("ok", None)

    def _failed(self, error: PipelineError) -> tuple[StageStatus, PipelineError]:
        self._console.error(error.message)
        if error.hint:
            self._console.print(f"hint: {error.hint}", Style.DIM)
        return ("failed", error)
