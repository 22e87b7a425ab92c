from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from shipline.pipeline.semver import BumpLevel, SemVer


OperatingSystem = Literal["linux", "macos"]
Architecture = Literal["x86_64", "aarch64"]
EventName = Literal["push", "pull_request"]
DownstreamKind = Literal["homebrew_formula", "nix_module"]


@dataclass(frozen=True, slots=True)
class ValidationStep:
    name: str  # fmt, lint, test
    command: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class TargetDescriptor:
    """One build matrix cell."""

    os: OperatingSystem
    arch: Architecture
    runner: str  # CI runner label the cell is scheduled on
    # Explicit cross-compilation triple; None builds for the host.
    target: str | None = None

    @property
    def platform_id(self) -> str:
        return f"{self.os}-{self.arch}"

    @property
    def is_cross(self) -> bool:
        return self.target is not None

    def artifact_name(self, project: str) -> str:
        return f"{project}-{self.platform_id}"

    def cargo_args(self) -> list[str]:
        if self.target is None:
            return []
        return ["--target", self.target]

    def output_path(self, target_dir: Path, binary: str) -> Path:
        # Cargo nests cross-compiled outputs under the triple.
        if self.target is None:
            return target_dir / "release" / binary
        return target_dir / self.target / "release" / binary


@dataclass(frozen=True, slots=True)
class CommitRecord:
    sha: str
    message: str
    type: str | None  # None: not a conventional commit
    scope: str | None
    subject: str
    breaking: bool = False

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


@dataclass(frozen=True, slots=True)
class VersionDecision:
    should_release: bool
    bump_level: BumpLevel
    previous_version: SemVer | None
    next_version: SemVer | None
    commits: tuple[CommitRecord, ...] = ()

    @property
    def tag(self) -> str | None:
        if self.next_version is None:
            return None
        return self.next_version.to_tag()


@dataclass(frozen=True, slots=True)
class BuildArtifact:
    platform_id: str
    name: str  # release asset name: <project>-<os>-<arch>
    path: Path
    sha256: str
    size: int

    @classmethod
    def from_file(cls, *, platform_id: str, name: str, path: Path) -> BuildArtifact:
        data = path.read_bytes()
        return cls(
            platform_id=platform_id,
            name=name,
            path=path,
            sha256=hashlib.sha256(data).hexdigest(),
            size=len(data),
        )

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    version: SemVer
    tag: str
    notes: str
    artifacts: tuple[BuildArtifact, ...]
    url: str | None = None

    def artifact_for(self, platform_id: str) -> BuildArtifact | None:
        for artifact in self.artifacts:
            if artifact.platform_id == platform_id:
                return artifact
        return None


@dataclass(frozen=True, slots=True)
class DownstreamTarget:
    """An external repository that mirrors the released version."""

    id: str
    repo_url: str
    branch: str
    file_path: str  # relative to the repository root
    kind: DownstreamKind


@dataclass(frozen=True, slots=True)
class PipelineEvent:
    name: EventName
    ref: str  # e.g. refs/heads/main, refs/pull/12/merge

    @property
    def branch(self) -> str | None:
        prefix = "refs/heads/"
        if self.ref.startswith(prefix):
            return self.ref[len(prefix) :]
        return None

    @property
    def is_pull_request(self) -> bool:
        return self.name == "pull_request"
