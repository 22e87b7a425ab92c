from __future__ import annotations

import os
from dataclasses import dataclass

import typer

from shipline.core.errors import ErrorCode
from shipline.core.project import Project, detect_project
from shipline.core.result import Err
from shipline.output.console import ConsoleProtocol, RichConsole
from shipline.pipeline.config import PipelineConfig, load_pipeline_config
from shipline.pipeline.service import PipelineService


@dataclass(frozen=True, slots=True)
class CLIContext:
    project: Project
    config: PipelineConfig
    console: ConsoleProtocol

    def push_token(self) -> str | None:
        return os.environ.get(self.config.push_token_env) or None

    def service(self) -> PipelineService:
        return PipelineService(
            project=self.project,
            config=self.config,
            console=self.console,
            push_token=self.push_token(),
        )


def build_context() -> CLIContext:
    project_result = detect_project()
    if isinstance(project_result, Err):
        typer.echo(f"error: {project_result.error.message}", err=True)
        if project_result.error.hint:
            typer.echo(f"hint: {project_result.error.hint}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    project = project_result.value
    config_result = load_pipeline_config(project.config_path)
    if isinstance(config_result, Err):
        error = config_result.error
        typer.echo(f"error: {error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        project=project,
        config=config_result.value,
        console=RichConsole(),
    )
