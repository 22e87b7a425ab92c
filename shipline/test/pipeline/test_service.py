"""Stage chaining in PipelineService, with every stage stubbed."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

import shipline.pipeline.service as service_mod
from shipline.core.project import Project
from shipline.core.result import Err, Ok
from shipline.output.console import MockConsole
from shipline.pipeline.aggregate import read_release_tag, write_release_tag
from shipline.pipeline.config import PipelineConfig
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.model import BuildArtifact, PipelineEvent, ReleaseRecord, VersionDecision
from shipline.pipeline.propagate import PropagationOutcome
from shipline.pipeline.semver import BumpLevel, SemVer
from shipline.pipeline.stages import Stage

MAIN_PUSH = PipelineEvent(name="push", ref="refs/heads/main")


class Stubs:
    """Records which stage functions ran and what they return."""

    def __init__(self, monkeypatch: pytest.MonkeyPatch) -> None:
        self.calls: list[str] = []
        self.validation: Ok[None] | Err[PipelineError] = Ok(None)
        self.build: Ok[list[Any]] | Err[PipelineError] = Ok([])
        self.release = True
        self.propagation_error: PipelineError | None = None
        self.published: ReleaseRecord | None = None

        monkeypatch.setattr(service_mod, "run_validation", self._validate)
        monkeypatch.setattr(service_mod, "execute_matrix", self._build)
        monkeypatch.setattr(service_mod, "aggregate_artifacts", self._aggregate)
        monkeypatch.setattr(service_mod, "resolve_version", self._resolve)
        monkeypatch.setattr(service_mod, "publish_release", self._publish)
        monkeypatch.setattr(service_mod, "propagate_all", self._propagate)

    def _validate(self, **_kwargs: Any) -> Any:
        self.calls.append("validate")
        return self.validation

    def _build(self, **_kwargs: Any) -> Any:
        self.calls.append("build")
        return self.build

    def _aggregate(self, **_kwargs: Any) -> Any:
        self.calls.append("aggregate")
        return Ok({})

    def _resolve(self, **_kwargs: Any) -> Any:
        self.calls.append("version")
        if not self.release:
            return Ok(
                VersionDecision(
                    should_release=False,
                    bump_level=BumpLevel.NONE,
                    previous_version=SemVer(1, 4, 7),
                    next_version=None,
                )
            )
        return Ok(
            VersionDecision(
                should_release=True,
                bump_level=BumpLevel.PATCH,
                previous_version=SemVer(1, 4, 7),
                next_version=SemVer(1, 4, 8),
            )
        )

    def _publish(self, *, decision: VersionDecision, dry_run: bool, **_kwargs: Any) -> Any:
        self.calls.append("publish")
        assert decision.next_version is not None
        self.published = ReleaseRecord(
            version=decision.next_version,
            tag=decision.next_version.to_tag(),
            notes="",
            artifacts=(),
            url=None if dry_run else "https://example.invalid/release",
        )
        return Ok(self.published)

    def _propagate(self, propagators: Any, release: Any, **_kwargs: Any) -> list[PropagationOutcome]:
        self.calls.append("propagate")
        outcomes: list[PropagationOutcome] = []
        for i, propagator in enumerate(propagators):
            error = self.propagation_error if i == 0 else None
            outcomes.append(PropagationOutcome(target=propagator.target, changed=error is None, error=error))
        return outcomes


@pytest.fixture
def stubs(monkeypatch: pytest.MonkeyPatch) -> Stubs:
    return Stubs(monkeypatch)


def _service(tmp_path: Path, console: MockConsole | None = None) -> service_mod.PipelineService:
    return service_mod.PipelineService(
        project=Project(root=tmp_path),
        config=PipelineConfig(),
        console=console or MockConsole(),
    )


def test_main_push_runs_every_stage(tmp_path: Path, stubs: Stubs) -> None:
    report = _service(tmp_path).run(MAIN_PUSH, dry_run=False)

    assert stubs.calls == ["validate", "build", "aggregate", "version", "publish", "propagate"]
    assert report.ok
    assert report.release is not None
    assert report.release.tag == "v1.4.8"
    assert [o.target.id for o in report.propagation] == ["homebrew", "nixkit"]


def test_pull_request_only_validates(tmp_path: Path, stubs: Stubs) -> None:
    event = PipelineEvent(name="pull_request", ref="refs/pull/12/merge")

    report = _service(tmp_path).run(event, dry_run=False)

    assert stubs.calls == ["validate"]
    assert [r.stage for r in report.stages] == [Stage.VALIDATE]


def test_validation_failure_skips_everything_after(tmp_path: Path, stubs: Stubs) -> None:
    stubs.validation = Err(PipelineError(kind="validation_failed", message="lint failed"))

    report = _service(tmp_path).run(MAIN_PUSH, dry_run=False)

    assert stubs.calls == ["validate"]
    assert report.status_of(Stage.VALIDATE) == "failed"
    assert report.status_of(Stage.PUBLISH) == "skipped"
    assert not report.ok


def test_build_failure_never_publishes(tmp_path: Path, stubs: Stubs) -> None:
    stubs.build = Err(PipelineError(kind="build_failed", message="1 of 4 matrix cells failed"))
    console = MockConsole()

    report = _service(tmp_path, console).run(MAIN_PUSH, dry_run=False)

    assert stubs.calls == ["validate", "build"]
    assert [(r.stage, r.status) for r in report.stages] == [
        (Stage.VALIDATE, "ok"),
        (Stage.BUILD, "failed"),
        (Stage.AGGREGATE, "skipped"),
        (Stage.VERSION, "skipped"),
        (Stage.PUBLISH, "skipped"),
        (Stage.PROPAGATE, "skipped"),
    ]
    assert report.failures[0].error is not None
    assert report.failures[0].error.kind == "build_failed"
    assert console.has_error()
    assert "error: 1 of 4 matrix cells failed" in console.messages


def test_no_release_is_a_successful_noop(tmp_path: Path, stubs: Stubs) -> None:
    stubs.release = False

    report = _service(tmp_path).run(MAIN_PUSH, dry_run=False)

    assert "publish" not in stubs.calls
    assert report.status_of(Stage.VERSION) == "noop"
    assert report.status_of(Stage.PUBLISH) == "skipped"
    assert report.status_of(Stage.PROPAGATE) == "skipped"
    assert report.ok
    assert report.release is None


def test_propagation_failure_fails_the_stage(tmp_path: Path, stubs: Stubs) -> None:
    stubs.propagation_error = PipelineError(kind="anchor_missing", message="no url line")

    report = _service(tmp_path).run(MAIN_PUSH, dry_run=False)

    assert report.status_of(Stage.PUBLISH) == "ok"
    assert report.status_of(Stage.PROPAGATE) == "failed"
    error = report.failures[0].error
    assert error is not None
    assert error.kind == "propagation_failed"
    assert "homebrew" in error.message
    assert "nixkit" not in error.message
    assert error.hint == "Re-run: shipline propagate --tag v1.4.8"


def test_release_chain_skips_build(tmp_path: Path, stubs: Stubs) -> None:
    report = _service(tmp_path).release(dry_run=True)

    assert stubs.calls == ["aggregate", "version", "publish", "propagate"]
    assert [r.stage for r in report.stages] == [
        Stage.AGGREGATE,
        Stage.VERSION,
        Stage.PUBLISH,
        Stage.PROPAGATE,
    ]
    assert report.release is not None
    assert report.release.url is None


def test_propagate_only_selected_targets(tmp_path: Path, stubs: Stubs) -> None:
    service = _service(tmp_path)
    release = service_mod.PublishedRelease(version=SemVer(1, 4, 8), tag="v1.4.8", artifacts={})

    outcomes = service.propagate(release, dry_run=True, only=["nixkit"])

    assert [o.target.id for o in outcomes] == ["nixkit"]


def test_publish_marks_release_dir_with_the_tag(tmp_path: Path, stubs: Stubs) -> None:
    (tmp_path / "release-binaries").mkdir()
    service = _service(tmp_path)
    decision = VersionDecision(
        should_release=True,
        bump_level=BumpLevel.PATCH,
        previous_version=SemVer(1, 4, 7),
        next_version=SemVer(1, 4, 8),
    )

    assert isinstance(service.publish(decision, {}, dry_run=True), Ok)
    assert read_release_tag(tmp_path / "release-binaries") is None

    assert isinstance(service.publish(decision, {}, dry_run=False), Ok)
    assert read_release_tag(tmp_path / "release-binaries") == "v1.4.8"


class FakeDownload:
    def __init__(self) -> None:
        self.tags: list[str] = []

    def __call__(self, *, tag: str, names: list[str], dest: Path, **_kwargs: Any) -> Any:
        self.tags.append(tag)
        dest.mkdir(parents=True)
        for name in names:
            (dest / name).write_bytes(f"{name} from {tag}".encode())
        return Ok(dest)


class TestPublishedRelease:
    def _fill_release_dir(self, root: Path, tag: str | None) -> None:
        release_dir = root / "release-binaries"
        release_dir.mkdir()
        for name in PipelineConfig().artifact_names():
            (release_dir / name).write_bytes(f"local {name}".encode())
        if tag is not None:
            write_release_tag(release_dir, tag)

    def test_uses_local_assets_published_as_this_tag(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        self._fill_release_dir(tmp_path, "v1.4.8")
        download = FakeDownload()
        monkeypatch.setattr(service_mod, "download_release_assets", download)

        result = _service(tmp_path).published_release("v1.4.8")

        assert isinstance(result, Ok)
        published = result.value
        assert published.version == SemVer(1, 4, 8)
        artifact = published.artifacts["macos-aarch64"]
        assert isinstance(artifact, BuildArtifact)
        assert artifact.name == "opsops-macos-aarch64"
        assert artifact.read_bytes() == b"local opsops-macos-aarch64"
        assert download.tags == []

    def test_local_assets_of_another_tag_are_not_used(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        self._fill_release_dir(tmp_path, "v1.4.8")
        download = FakeDownload()
        monkeypatch.setattr(service_mod, "download_release_assets", download)

        result = _service(tmp_path).published_release("v1.3.0")

        assert isinstance(result, Ok)
        assert download.tags == ["v1.3.0"]
        artifact = result.value.artifacts["macos-aarch64"]
        assert artifact.read_bytes() == b"opsops-macos-aarch64 from v1.3.0"
        assert artifact.path.parent == tmp_path / ".shipline" / "downloads" / "v1.3.0"

    def test_unpublished_local_assets_are_not_used(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        self._fill_release_dir(tmp_path, None)
        download = FakeDownload()
        monkeypatch.setattr(service_mod, "download_release_assets", download)

        result = _service(tmp_path).published_release("v1.4.8")

        assert isinstance(result, Ok)
        assert download.tags == ["v1.4.8"]
        assert sorted(result.value.artifacts) == [
            "linux-aarch64",
            "linux-x86_64",
            "macos-aarch64",
            "macos-x86_64",
        ]

    def test_rejects_non_release_tag(self, tmp_path: Path) -> None:
        result = _service(tmp_path).published_release("v1.4.8-rc.1")

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_input"
