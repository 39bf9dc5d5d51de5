"""YAML + environment configuration.

Example ``kindlenotes.yaml``::

    notion:
      database_id: 0123abcd...
      title_property: Name
      author_property: Authors
    inbox:
      dir: ~/Downloads/kindle
      processed_dir: ~/Downloads/kindle/done
      sample_dir: ./samples
      max_files: 5
    output:
      dir: ./out

Secrets are best left out of the file: ``NOTION_TOKEN`` (and the other
``NOTION_*`` variables) override whatever the file says.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from kindlenotes import settings

# Environment variable → (section, key)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "NOTION_TOKEN": ("notion", "token"),
    "NOTION_DATABASE_ID": ("notion", "database_id"),
    "NOTION_TITLE_PROPERTY": ("notion", "title_property"),
    "NOTION_AUTHOR_PROPERTY": ("notion", "author_property"),
    "KINDLENOTES_INBOX": ("inbox", "dir"),
}


class ConfigError(ValueError):
    """Raised when the configuration file or environment is invalid."""


class NotionConfig(BaseModel):
    token: str = ""
    database_id: str = ""
    title_property: str = settings.NOTION_TITLE_PROPERTY
    author_property: str = settings.NOTION_AUTHOR_PROPERTY
    version: str = settings.NOTION_VERSION
    timeout: int = Field(default=settings.NOTION_TIMEOUT, gt=0)
    max_retries: int = Field(default=settings.NOTION_MAX_RETRIES, ge=0)
    batch_size: int = Field(default=settings.MAX_BLOCKS_PER_REQUEST, ge=2, le=100)
    batch_pause: float = Field(default=settings.BATCH_PAUSE_SECONDS, ge=0)


class InboxConfig(BaseModel):
    dir: Path = Path(settings.INBOX_DIR)
    processed_dir: Path | None = None
    sample_dir: Path | None = None
    max_html_size: int = Field(default=settings.MAX_HTML_SIZE, gt=0)
    max_sample_size: int = Field(default=settings.MAX_SAMPLE_SIZE, gt=0)
    max_files: int | None = Field(default=None, gt=0)
    time_budget: float | None = Field(default=None, gt=0)

    @field_validator("dir", "processed_dir", "sample_dir")
    @classmethod
    def expand_home(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else v


class OutputConfig(BaseModel):
    dir: Path | None = None


class AppConfig(BaseModel):
    notion: NotionConfig = Field(default_factory=NotionConfig)
    inbox: InboxConfig = Field(default_factory=InboxConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @property
    def notion_enabled(self) -> bool:
        return bool(self.notion.token and self.notion.database_id)


def _read_yaml(path: str | Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(Path(path).expanduser().read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load settings from *path* (optional) and apply environment overrides."""
    data = _read_yaml(path) if path else {}
    env = os.environ if environ is None else environ

    merged: dict[str, Any] = {}
    for section in ("notion", "inbox", "output"):
        value = data.get(section) or {}
        if not isinstance(value, dict):
            raise ConfigError(f"Config section {section!r} must be a mapping")
        merged[section] = dict(value)

    for var, (section, key) in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            merged[section][key] = value

    try:
        config = AppConfig(**merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    return config
