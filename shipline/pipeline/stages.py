"""Stage graph and trigger selection.

Stages form a DAG with explicit dependency edges. Which stages a run selects
depends only on the triggering event: pull requests and pushes to other
branches validate; pushes to the main branch run the whole release chain.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import StrEnum

from shipline.core.result import Err, Ok, Result
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.model import PipelineEvent


class Stage(StrEnum):
    VALIDATE = "validate"
    BUILD = "build"
    AGGREGATE = "aggregate"
    VERSION = "version"
    PUBLISH = "publish"
    PROPAGATE = "propagate"


STAGE_DEPENDENCIES: Mapping[Stage, tuple[Stage, ...]] = {
    Stage.VALIDATE: (),
    Stage.BUILD: (Stage.VALIDATE,),
    Stage.AGGREGATE: (Stage.BUILD,),
    Stage.VERSION: (Stage.AGGREGATE,),
    Stage.PUBLISH: (Stage.VERSION,),
    Stage.PROPAGATE: (Stage.PUBLISH,),
}

RELEASE_CHAIN: tuple[Stage, ...] = (
    Stage.BUILD,
    Stage.AGGREGATE,
    Stage.VERSION,
    Stage.PUBLISH,
    Stage.PROPAGATE,
)


def select_stages(event: PipelineEvent, *, main_branch: str) -> tuple[Stage, ...]:
    """Stages a run executes for event, in dependency order."""
    selected = {Stage.VALIDATE}
    if not event.is_pull_request and event.name == "push" and event.branch == main_branch:
        selected.update(RELEASE_CHAIN)
    return topological_order(selected)


def topological_order(stages: set[Stage]) -> tuple[Stage, ...]:
    """Order stages so that each one follows all of its dependencies.

    Raises:
        ValueError: If a stage depends on one outside the selection.
    """
    ordered: list[Stage] = []
    visiting: set[Stage] = set()

    def visit(stage: Stage) -> None:
        if stage in ordered:
            return
        if stage in visiting:
            raise ValueError(f"dependency cycle at stage {stage}")
        visiting.add(stage)
        for dep in STAGE_DEPENDENCIES[stage]:
            if dep not in stages:
                raise ValueError(f"stage {stage} requires {dep}, which is not selected")
            visit(dep)
        visiting.discard(stage)
        ordered.append(stage)

    # Enum order keeps the result stable for independent stages.
    for stage in Stage:
        if stage in stages:
            visit(stage)
    return tuple(ordered)


def event_from_env(
    env: Mapping[str, str] | None = None,
    *,
    name: str | None = None,
    ref: str | None = None,
) -> Result[PipelineEvent, PipelineError]:
    """Build the triggering event from explicit values or GitHub Actions variables."""
    source = os.environ if env is None else env
    event_name = name or source.get("GITHUB_EVENT_NAME") or "push"
    event_ref = ref or source.get("GITHUB_REF") or ""

    if event_name == "pull_request_target":
        event_name = "pull_request"
    if event_name not in ("push", "pull_request"):
        return Err(
            PipelineError(
                kind="invalid_input",
                message=f"unsupported event: {event_name}",
                hint="Expected push or pull_request.",
            )
        )
    if not event_ref:
        return Err(
            PipelineError(
                kind="invalid_input",
                message="missing git ref for the triggering event",
                hint="Pass --ref refs/heads/<branch> or set GITHUB_REF.",
            )
        )
    if event_name == "push":
        return Ok(PipelineEvent(name="push", ref=event_ref))
    return Ok(PipelineEvent(name="pull_request", ref=event_ref))
