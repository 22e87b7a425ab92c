"""Release Publisher.

The only externally visible, non-idempotent step of the pipeline. The tag is
the correctness signal: if `v<version>` exists locally or on the remote, the
release already happened and publishing refuses to continue.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from shipline.core.result import Err, Ok, Result
from shipline.git.repository import GitIdentity, Repository
from shipline.output.console import ConsoleProtocol, Style
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.gh import create_release, ensure_gh_available, release_exists
from shipline.pipeline.model import BuildArtifact, ReleaseRecord, VersionDecision
from shipline.pipeline.notes import render_notes, write_release_notes
from shipline.pipeline.rewrite import set_manifest_version
from shipline.pipeline.semver import SemVer


@dataclass(frozen=True, slots=True)
class PublishSettings:
    repo: str  # owner/name
    main_branch: str
    expected_platforms: tuple[str, ...]
    notes_dir: Path
    identity: GitIdentity
    manifest: str | None = None


def ensure_tag_absent(*, project_root: Path, tag: str) -> Result[None, PipelineError]:
    repo = Repository(project_root)
    if repo.tag_exists(tag):
        return Err(
            PipelineError(
                kind="tag_exists",
                message=f"tag {tag} already exists locally",
                hint="This version was already released; push a new commit to release again.",
            )
        )

    remote = repo.remote_tag_exists(tag)
    if isinstance(remote, Err):
        return Err(
            PipelineError(
                kind="publish_failed",
                message=f"cannot check whether {tag} exists on origin",
                hint=remote.error.message,
            )
        )
    if remote.value:
        return Err(
            PipelineError(
                kind="tag_exists",
                message=f"tag {tag} already exists on origin",
                hint="Fetch tags (fetch-depth: 0) so the previous release is seen.",
            )
        )
    return Ok(None)


def check_assets(
    artifacts: Mapping[str, BuildArtifact],
    expected_platforms: tuple[str, ...],
) -> Result[list[BuildArtifact], PipelineError]:
    """Exactly one asset per expected platform, in matrix order, unique names."""
    missing = [p for p in expected_platforms if p not in artifacts]
    extra = sorted(set(artifacts) - set(expected_platforms))
    if missing or extra:
        return Err(
            PipelineError(
                kind="publish_failed",
                message="release assets do not match the build matrix",
                hint=f"missing: {', '.join(missing) or '-'}; unexpected: {', '.join(extra) or '-'}",
            )
        )

    ordered = [artifacts[p] for p in expected_platforms]
    names = [a.name for a in ordered]
    if len(set(names)) != len(names):
        return Err(
            PipelineError(
                kind="publish_failed",
                message=f"duplicate release asset names: {', '.join(names)}",
            )
        )
    return Ok(ordered)


def bump_manifest(
    *,
    project_root: Path,
    manifest: str,
    version: SemVer,
    main_branch: str,
    identity: GitIdentity,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[None, PipelineError]:
    """Write the version into the manifest and push a release commit to main."""
    path = project_root / manifest
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(PipelineError(kind="publish_failed", message=f"cannot read {manifest}: {e}"))

    updated = set_manifest_version(text, version=version)
    if isinstance(updated, Err):
        return updated
    if updated.value == text:
        console.print(f"{manifest} already at {version}", Style.DIM)
        return Ok(None)

    message = f"chore(release): {version} [skip ci]"
    console.command(["git", "commit", "-m", message, "--", manifest])
    console.command(["git", "push", "origin", f"HEAD:{main_branch}"])
    if dry_run:
        return Ok(None)

    try:
        path.write_text(updated.value, encoding="utf-8")
    except OSError as e:
        return Err(PipelineError(kind="publish_failed", message=f"cannot write {manifest}: {e}"))

    repo = Repository(project_root)
    done = repo.add(manifest)
    if isinstance(done, Ok):
        done = repo.commit(message, identity=identity)
    if isinstance(done, Ok):
        done = repo.push(f"HEAD:{main_branch}")
    if isinstance(done, Err):
        return Err(
            PipelineError(
                kind="publish_failed",
                message=f"release commit failed: git {done.error.command}",
                hint=done.error.message,
            )
        )
    return Ok(None)


def publish_release(
    *,
    project_root: Path,
    decision: VersionDecision,
    artifacts: Mapping[str, BuildArtifact],
    settings: PublishSettings,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[ReleaseRecord, PipelineError]:
    version = decision.next_version
    if not decision.should_release or version is None:
        return Err(
            PipelineError(
                kind="invalid_input",
                message="publish called without a release decision",
            )
        )
    tag = version.to_tag()

    assets = check_assets(artifacts, settings.expected_platforms)
    if isinstance(assets, Err):
        return assets

    if not dry_run:
        gh = ensure_gh_available()
        if isinstance(gh, Err):
            return gh

    absent = ensure_tag_absent(project_root=project_root, tag=tag)
    if isinstance(absent, Err):
        return absent

    if not dry_run:
        existing = release_exists(cwd=project_root, repo=settings.repo, tag=tag)
        if isinstance(existing, Err):
            return existing
        if existing.value:
            return Err(
                PipelineError(
                    kind="tag_exists",
                    message=f"a GitHub release for {tag} already exists",
                    hint="Delete the draft release or push a new commit to release again.",
                )
            )

    notes = render_notes(decision, repo=settings.repo)
    notes_path = write_release_notes(settings.notes_dir / f"{tag}.md", notes)
    if isinstance(notes_path, Err):
        return notes_path

    if settings.manifest is not None:
        bumped = bump_manifest(
            project_root=project_root,
            manifest=settings.manifest,
            version=version,
            main_branch=settings.main_branch,
            identity=settings.identity,
            console=console,
            dry_run=dry_run,
        )
        if isinstance(bumped, Err):
            return bumped

    console.command(["git", "tag", tag, "HEAD"])
    console.command(["git", "push", "origin", f"refs/tags/{tag}"])
    if not dry_run:
        repo = Repository(project_root)
        tagged = repo.create_tag(tag)
        if isinstance(tagged, Err):
            return Err(
                PipelineError(kind="publish_failed", message=f"cannot create tag {tag}", hint=tagged.error.message)
            )
        pushed = repo.push(f"refs/tags/{tag}")
        if isinstance(pushed, Err):
            return Err(
                PipelineError(
                    kind="publish_failed",
                    message=f"cannot push tag {tag}",
                    hint=pushed.error.message,
                )
            )

    url = create_release(
        cwd=project_root,
        repo=settings.repo,
        tag=tag,
        notes_file=notes_path.value,
        artifacts=assets.value,
        console=console,
        dry_run=dry_run,
    )
    if isinstance(url, Err):
        return url

    return Ok(
        ReleaseRecord(
            version=version,
            tag=tag,
            notes=notes,
            artifacts=tuple(assets.value),
            url=url.value,
        )
    )
