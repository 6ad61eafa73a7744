"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "config.yaml"


class Settings(BaseModel):
    site_title:     str = Field(default="",        description="Site name appended to page titles")
    source_dir:     str = Field(default=".",       description="Directory of markdown sources")
    output_dir:     str = Field(default="_site",   description="Directory for rendered HTML pages")
    layouts_dir:    Optional[str] = Field(default="_layouts", description="Directory of Jinja layout templates")
    default_layout: str = Field(default="default", description="Layout used when a page names none or an unknown one")
    base_url:       str = Field(default="",        description="Prefix for absolute URLs; empty keeps links site-relative")
    parser_config:  str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    db_url:         str = "sqlite:///mdsite.db"
    workers:        int = Field(default=1, ge=1,   description="Documents rendered in parallel")
    log_level:      str = Field(default="WARNING", pattern="^(DEBUG|INFO|WARNING|ERROR)$")


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then MDSITE_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping")

    for name in Settings.model_fields:
        if val := os.getenv(f"MDSITE_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
