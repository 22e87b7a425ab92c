"""TOML configuration file loading.

This module only knows how to turn a file into a validated string-keyed
table. Interpreting the table is left to the layer that owns the settings
(see `shipline.pipeline.config`).
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict

__all__ = ["ConfigError", "load_toml"]


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None
    hint: str | None = None


def load_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file into a table.

    Args:
        path: Path to the TOML file

    Returns:
        Ok(table) on success, Err(ConfigError) on failure
    """
    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)
