"""Configuration loading for sqlite-vacuum."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

log = logging.getLogger(__name__)


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(path)))


CONFIG_DIR = expand_path("~/.sqlite-vacuum")
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_EXTENSIONS = [".db", ".sqlite"]


class Settings(BaseModel):
    """User settings. Command-line flags take precedence."""

    extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS),
        description="File suffixes accepted in fast mode",
    )
    workers: Optional[int] = Field(
        None, ge=1, description="Worker thread count (default: CPU count)"
    )
    skip_directories: list[str] = Field(
        default_factory=list,
        description="Directory names never descended into",
    )
    aggressive: bool = Field(
        False, description="Inspect file headers instead of extensions"
    )

    @field_validator("extensions")
    @classmethod
    def _dotted(cls, value: list[str]) -> list[str]:
        return [ext if ext.startswith(".") else f".{ext}" for ext in value]


def load_settings(path: Path | None = None) -> Settings:
    """
    Load settings from a JSON file.

    A missing file gives defaults. An unreadable or invalid file is logged
    and also gives defaults.

    Args:
        path: Config file to read (default: ~/.sqlite-vacuum/config.json)

    Returns:
        Settings instance
    """
    config_file = path or CONFIG_FILE
    if not config_file.exists():
        return Settings()

    try:
        with open(config_file, encoding="utf-8") as f:
            data = json.load(f)
        return Settings.model_validate(data)
    except ValidationError as e:
        log.warning("Invalid config %s: %s", config_file, e)
    except (ValueError, OSError) as e:
        # ValueError covers malformed JSON and undecodable bytes
        log.warning("Could not read config %s: %s", config_file, e)
    return Settings()
