"""Pipeline settings.

Module-level constants are the defaults for the released project; any of
them can be overridden from `shipline.toml` at the project root:

    [project]
    name = "opsops"
    binary = "opsops"
    repo = "frostplexx/opsops"
    main_branch = "main"
    manifest = "Cargo.toml"        # optional version bump commit

    [validate]
    fmt = ["just", "fmt-check"]
    lint = ["just", "lint"]
    test = ["just", "test"]

    [build]
    command = ["cargo", "build", "--release"]
    artifacts_dir = "artifacts"
    release_dir = "release-binaries"

    [[release.rules]]              # replaces the whole default table
    type = "feat"
    release = "minor"

    [downstream.homebrew]
    repo = "https://github.com/frostplexx/homebrew-tap.git"
    path = "Formula/opsops.rb"

    [push]
    token_env = "RELEASE_TOKEN"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from shipline.core.config import ConfigError, load_toml
from shipline.core.result import Err, Ok, Result
from shipline.core.structured import StrDict, as_str_dict, get_bool, get_list, get_str, get_str_list, get_table
from shipline.git.repository import GitIdentity
from shipline.pipeline.model import DownstreamTarget, TargetDescriptor, ValidationStep
from shipline.pipeline.rules import DEFAULT_RELEASE_RULES, ReleaseRule
from shipline.pipeline.semver import BumpLevel


PROJECT_NAME = "opsops"
PROJECT_REPO = "frostplexx/opsops"
MAIN_BRANCH = "main"

VALIDATION_STEPS: tuple[ValidationStep, ...] = (
    ValidationStep(name="fmt", command=("just", "fmt-check")),
    ValidationStep(name="lint", command=("just", "lint")),
    ValidationStep(name="test", command=("just", "test")),
)

BUILD_COMMAND: tuple[str, ...] = ("cargo", "build", "--release")

# Fixed; the release asset set is derived from it.
BUILD_MATRIX: tuple[TargetDescriptor, ...] = (
    TargetDescriptor(os="linux", arch="x86_64", runner="ubuntu-latest"),
    TargetDescriptor(os="linux", arch="aarch64", runner="ubuntu-24.04-arm"),
    TargetDescriptor(os="macos", arch="x86_64", runner="macos-latest"),
    TargetDescriptor(
        os="macos",
        arch="aarch64",
        runner="macos-latest",
        target="aarch64-apple-darwin",
    ),
)

ARTIFACTS_DIR = "artifacts"
RELEASE_DIR = "release-binaries"

PUSH_TOKEN_ENV = "RELEASE_TOKEN"
COMMIT_IDENTITY = GitIdentity(name="GitHub Action", email="action@github.com")


def default_downstream_targets(project: str) -> tuple[DownstreamTarget, ...]:
    return (
        DownstreamTarget(
            id="homebrew",
            repo_url="https://github.com/frostplexx/homebrew-tap.git",
            branch="main",
            file_path=f"Formula/{project}.rb",
            kind="homebrew_formula",
        ),
        DownstreamTarget(
            id="nixkit",
            repo_url="https://github.com/frostplexx/nixkit.git",
            branch="main",
            file_path=f"modules/shared/{project}/default.nix",
            kind="nix_module",
        ),
    )


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    project: str = PROJECT_NAME
    binary: str = PROJECT_NAME
    repo: str = PROJECT_REPO  # owner/name on GitHub
    main_branch: str = MAIN_BRANCH
    manifest: str | None = None
    validation: tuple[ValidationStep, ...] = VALIDATION_STEPS
    build_command: tuple[str, ...] = BUILD_COMMAND
    matrix: tuple[TargetDescriptor, ...] = BUILD_MATRIX
    artifacts_dir: str = ARTIFACTS_DIR
    release_dir: str = RELEASE_DIR
    rules: tuple[ReleaseRule, ...] = DEFAULT_RELEASE_RULES
    downstream: tuple[DownstreamTarget, ...] = field(
        default_factory=lambda: default_downstream_targets(PROJECT_NAME)
    )
    push_token_env: str = PUSH_TOKEN_ENV
    identity: GitIdentity = COMMIT_IDENTITY

    def artifact_names(self) -> list[str]:
        return [cell.artifact_name(self.project) for cell in self.matrix]

    @property
    def repo_url(self) -> str:
        return f"https://github.com/{self.repo}"

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> PipelineConfig:
        """Create a config from parsed TOML.

        Raises:
            ValueError: On a malformed rule or downstream entry.
        """
        project_tbl: StrDict = get_table(data, "project") or {}
        validate_tbl: StrDict = get_table(data, "validate") or {}
        build_tbl: StrDict = get_table(data, "build") or {}
        release_tbl: StrDict = get_table(data, "release") or {}
        downstream_tbl: StrDict = get_table(data, "downstream") or {}
        push_tbl: StrDict = get_table(data, "push") or {}

        project = get_str(project_tbl, "name") or PROJECT_NAME
        base = cls(project=project, downstream=default_downstream_targets(project))

        validation = tuple(
            ValidationStep(
                name=step.name,
                command=tuple(get_str_list(validate_tbl, step.name) or step.command),
            )
            for step in VALIDATION_STEPS
        )

        identity_name = get_str(push_tbl, "user_name") or COMMIT_IDENTITY.name
        identity_email = get_str(push_tbl, "user_email") or COMMIT_IDENTITY.email

        return replace(
            base,
            binary=get_str(project_tbl, "binary") or project,
            repo=get_str(project_tbl, "repo") or PROJECT_REPO,
            main_branch=get_str(project_tbl, "main_branch") or MAIN_BRANCH,
            manifest=get_str(project_tbl, "manifest"),
            validation=validation,
            build_command=tuple(get_str_list(build_tbl, "command") or BUILD_COMMAND),
            artifacts_dir=get_str(build_tbl, "artifacts_dir") or ARTIFACTS_DIR,
            release_dir=get_str(build_tbl, "release_dir") or RELEASE_DIR,
            rules=_parse_rules(release_tbl),
            downstream=_parse_downstream(downstream_tbl, base.downstream),
            push_token_env=get_str(push_tbl, "token_env") or PUSH_TOKEN_ENV,
            identity=GitIdentity(name=identity_name, email=identity_email),
        )


def _parse_rules(release_tbl: StrDict) -> tuple[ReleaseRule, ...]:
    raw = get_list(release_tbl, "rules")
    if raw is None:
        return DEFAULT_RELEASE_RULES

    rules: list[ReleaseRule] = []
    for i, item in enumerate(raw):
        entry = as_str_dict(item)
        if entry is None:
            raise ValueError(f"release.rules[{i}] must be a table")
        rule_type = get_str(entry, "type")
        if rule_type is None:
            raise ValueError(f"release.rules[{i}].type is required")

        release_obj = entry.get("release")
        if release_obj is False:
            level = BumpLevel.NONE
        elif isinstance(release_obj, str) and (parsed := BumpLevel.parse(release_obj)) is not None:
            level = parsed
        else:
            raise ValueError(
                f"release.rules[{i}].release must be major, minor, patch or false"
            )
        rules.append(ReleaseRule(type=rule_type, scope=get_str(entry, "scope"), release=level))
    return tuple(rules)


def _parse_downstream(
    downstream_tbl: StrDict,
    defaults: tuple[DownstreamTarget, ...],
) -> tuple[DownstreamTarget, ...]:
    unknown = set(downstream_tbl) - {t.id for t in defaults}
    if unknown:
        raise ValueError(f"unknown downstream target(s): {', '.join(sorted(unknown))}")

    out: list[DownstreamTarget] = []
    for target in defaults:
        tbl = get_table(downstream_tbl, target.id)
        if tbl is None:
            out.append(target)
            continue
        if get_bool(tbl, "enabled") is False:
            continue
        out.append(
            replace(
                target,
                repo_url=get_str(tbl, "repo") or target.repo_url,
                branch=get_str(tbl, "branch") or target.branch,
                file_path=get_str(tbl, "path") or target.file_path,
            )
        )
    return tuple(out)


def load_pipeline_config(path: Path) -> Result[PipelineConfig, ConfigError]:
    """Load `shipline.toml`, or the defaults when the file does not exist."""
    if not path.exists():
        return Ok(PipelineConfig())

    result = load_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(PipelineConfig.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))
