"""Configuration for the insights engine and service.

Loads from a YAML config file with environment variable overrides.
Pattern: CI_INSIGHTS__{KEY} overrides top-level YAML keys.
Example: CI_INSIGHTS__MIN_TYPE_PERCENTAGE=5
"""

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError
from .links import GitHubLinks, GitLabLinks, LinkBuilder

ENV_PREFIX = "CI_INSIGHTS"
DEFAULT_CONFIG_PATH = "config/ci-insights.yml"


class InsightsConfig(BaseModel):
    provider: Literal["gitlab", "github"] = "gitlab"
    project: str = ""  # group/project or owner/repo
    base_url: str = "https://gitlab.com"
    min_type_percentage: int = Field(default=1, ge=0, le=100, description="Min share to keep a pipeline type")
    log_level: str = "INFO"

    @property
    def provider_name(self) -> str:
        return "GitHub Actions" if self.provider == "github" else "GitLab"

    def link_builder(self) -> LinkBuilder:
        if self.provider == "github":
            base_url = self.base_url if "github" in self.base_url else "https://github.com"
            return GitHubLinks(self.project, base_url=base_url)
        return GitLabLinks(self.base_url, self.project)


def _apply_env_overrides(config_dict: dict, prefix: str = ENV_PREFIX) -> dict:
    """CI_INSIGHTS__KEY=value maps to config[key] = value."""
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}__"):
            continue
        config_dict[key[len(prefix) + 2:].lower()] = value
    return config_dict


def load_config(config_path: Optional[str] = None) -> InsightsConfig:
    """Load configuration from YAML file with env overrides.

    Priority: env vars > YAML file > defaults
    """
    config_dict = {}

    if config_path is None:
        config_path = os.getenv(f"{ENV_PREFIX}_CONFIG", DEFAULT_CONFIG_PATH)
    path = Path(config_path)
    if path.exists():
        try:
            with open(path) as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(config_dict, dict):
            raise ConfigError(f"{path} must contain a mapping")

    config_dict = _apply_env_overrides(config_dict)

    try:
        return InsightsConfig(**config_dict)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


_config: Optional[InsightsConfig] = None


def get_config() -> InsightsConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[str] = None) -> InsightsConfig:
    global _config
    _config = load_config(config_path)
    return _config
