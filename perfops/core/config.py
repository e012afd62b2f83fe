"""
Configuration management.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from perfops.api.client import API_ROOT

CONFIG_FILE_NAME = ".perfops.yaml"

DEFAULT_POLL_INTERVAL = 0.2
DEFAULT_RENDER_INTERVAL = 0.05


def load_config_file() -> dict[str, Any]:
    """
    Load optional config from ~/.perfops.yaml or ./.perfops.yaml.
    Returns dict with base_url, debug, location, poll_interval,
    render_interval and log_file. Missing keys are omitted so callers
    can use their own defaults.
    """
    result: dict[str, Any] = {}
    candidates = [
        Path.home() / CONFIG_FILE_NAME,
        Path.cwd() / CONFIG_FILE_NAME,
    ]
    raw: dict[str, Any] = {}
    for path in candidates:
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    raw = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Ignoring unreadable config file {path}: {e}")
                raw = {}
            break
    if not isinstance(raw, dict) or not raw:
        return result
    if "base_url" in raw:
        result["base_url"] = str(raw["base_url"])
    if "debug" in raw:
        result["debug"] = bool(raw["debug"])
    if "from" in raw:
        result["location"] = str(raw["from"])
    for key in ("poll_interval", "render_interval"):
        if key in raw:
            try:
                result[key] = float(raw[key])
            except (TypeError, ValueError):
                logger.warning(f"Ignoring invalid {key} in config file: {raw[key]!r}")
    if "log_file" in raw:
        result["log_file"] = Path(raw["log_file"]).expanduser()
    return result


class EnvSettings(BaseSettings):
    """Environment-driven settings (PERFOPS_API_KEY, PERFOPS_BASE_URL)."""

    model_config = SettingsConfigDict(env_prefix="PERFOPS_")

    api_key: str = ""
    base_url: Optional[str] = None


class RenderMode(str, Enum):
    """How partial results are presented while a test runs."""

    SNAPSHOT = "snapshot"  # redraw the whole result set in place
    STREAM = "stream"  # append each node's result once it is complete


@dataclass
class RunOptions:
    """Options for a single test run."""
    debug: bool = False
    output_json: bool = False
    mode: RenderMode = RenderMode.SNAPSHOT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    render_interval: float = DEFAULT_RENDER_INTERVAL
    output_file: Optional[Path] = None


class AppConfig(BaseModel):
    """Application configuration."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    api_key: str = ""
    base_url: str = API_ROOT
    debug: bool = False
    location: str = ""
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    render_interval: float = Field(default=DEFAULT_RENDER_INTERVAL, gt=0)
    log_file: Optional[Path] = None

    @field_validator("log_file", mode="before")
    @classmethod
    def validate_log_file(cls, v):
        """Accept strings for log_file; empty means no log file."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @classmethod
    def load(cls, api_key: Optional[str] = None, log_file: Optional[Path] = None) -> "AppConfig":
        """
        Build the configuration from CLI values, the environment and the
        optional config file, in that order of precedence.
        """
        values = load_config_file()
        env = EnvSettings()
        if env.base_url:
            values["base_url"] = env.base_url
        values["api_key"] = api_key if api_key is not None else env.api_key
        if log_file is not None:
            values["log_file"] = log_file
        return cls(**values)

    def run_options(
        self,
        mode: RenderMode = RenderMode.SNAPSHOT,
        output_json: bool = False,
        debug: bool = False,
        output_file: Optional[Path] = None,
    ) -> RunOptions:
        """Build the options for one test run."""
        return RunOptions(
            debug=debug or self.debug,
            output_json=output_json,
            mode=mode,
            poll_interval=self.poll_interval,
            render_interval=self.render_interval,
            output_file=output_file,
        )
