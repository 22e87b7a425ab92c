"""Core types shared by every layer: results, exit codes, config, project root."""

from .config import ConfigError, load_toml
from .errors import ErrorCode
from .project import Project, ProjectError, detect_project
from .result import Err, Ok, Result

__all__ = [
    # config
    "ConfigError",
    "load_toml",
    # errors
    "ErrorCode",
    # project
    "Project",
    "ProjectError",
    "detect_project",
    # result
    "Err",
    "Ok",
    "Result",
]
