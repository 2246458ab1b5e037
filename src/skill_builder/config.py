"""
Configuration for skill-builder.

This module defines the configuration options for:
- Skills built from llms.txt documentation
- The remote S3-compatible repository
- The local repository / cache

Configuration is JSON. Lookup order for ``Config.load_with_fallback``:
an explicit path, ``./skills.json``, then the global
``$SKILL_BUILDER_HOME/skills.config.json`` (``~/.skill-builder`` by default).
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

log = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = "skills.json"
GLOBAL_CONFIG_NAME = "skills.config.json"


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or parsed."""


def global_config_dir() -> Path:
    """Directory holding the global config and the default local repository."""
    home = os.getenv("SKILL_BUILDER_HOME")
    if home:
        return Path(home).expanduser()
    return Path.home() / ".skill-builder"


def global_config_path() -> Path:
    return global_config_dir() / GLOBAL_CONFIG_NAME


def default_local_repo_path() -> Path:
    return global_config_dir() / "local"


class SkillConfig(BaseModel):
    """A skill built from an llms.txt documentation index."""

    name: str = Field(description="Unique name for the skill")
    description: str = Field(default="", description="What the skill provides")
    llms_txt_url: str = Field(default="", description="URL to the llms.txt file")


class LocalRepositoryConfig(BaseModel):
    """Local repository configuration."""

    path: Optional[str] = Field(
        default=None,
        description="Repository directory (defaults to ~/.skill-builder/local)"
    )
    cache: bool = Field(
        default=False,
        description="Use the local repository as a read-through cache for remote downloads"
    )


class RepositoryConfig(BaseModel):
    """Repository configuration for S3-compatible and local skill storage."""

    name: Optional[str] = Field(
        default=None,
        description="Display name for the repository"
    )
    bucket_name: Optional[str] = Field(
        default=None,
        description="S3 bucket name"
    )
    region: str = Field(
        default="us-east-1",
        description="AWS region"
    )
    endpoint: Optional[str] = Field(
        default=None,
        description="Custom endpoint URL for S3-compatible providers"
    )
    prefix: str = Field(
        default="",
        description="Optional key prefix inside the bucket"
    )
    local: Optional[LocalRepositoryConfig] = Field(
        default=None,
        description="Local repository configuration"
    )

    def has_local(self) -> bool:
        return self.local is not None

    def has_remote(self) -> bool:
        return bool(self.bucket_name)

    def cache_enabled(self) -> bool:
        return self.local is not None and self.local.cache

    def local_repo_path(self) -> Path:
        if self.local is not None and self.local.path:
            return Path(self.local.path).expanduser()
        return default_local_repo_path()

    def with_env_overrides(self) -> "RepositoryConfig":
        """Apply S3_BUCKET_NAME, S3_REGION and S3_ENDPOINT_URL from the environment."""
        updates = {}
        if os.getenv("S3_BUCKET_NAME"):
            updates["bucket_name"] = os.environ["S3_BUCKET_NAME"]
        if os.getenv("S3_REGION"):
            updates["region"] = os.environ["S3_REGION"]
        if os.getenv("S3_ENDPOINT_URL"):
            updates["endpoint"] = os.environ["S3_ENDPOINT_URL"]
        return self.model_copy(update=updates) if updates else self


class Config(BaseModel):
    """
    Root configuration.

    Example:
    ```json
    {
      "skills": [
        {"name": "shadcn-svelte", "llms_txt_url": "https://www.shadcn-svelte.com/llms.txt"}
      ],
      "repository": {
        "bucket_name": "my-skills",
        "region": "eu-west-1",
        "endpoint": "https://s3.example.com",
        "local": {"cache": true}
      }
    }
    ```
    """

    skills: List[SkillConfig] = Field(
        default_factory=list,
        description="Skill definitions"
    )
    repository: Optional[RepositoryConfig] = Field(
        default=None,
        description="Repository configuration"
    )

    def find_skill(self, name: str) -> Optional[SkillConfig]:
        return next((s for s in self.skills if s.name == name), None)

    def skill_names(self) -> List[str]:
        return [s.name for s in self.skills]

    def effective_repository(self) -> RepositoryConfig:
        """Repository settings with environment overrides applied."""
        return (self.repository or RepositoryConfig()).with_env_overrides()

    @classmethod
    def parse(cls, content: str) -> "Config":
        """Parse configuration from a JSON string."""
        try:
            return cls.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigError(f"Failed to parse config: {e}") from e

    @classmethod
    def load(cls, path: str | os.PathLike) -> "Config":
        """Load configuration from a file path."""
        try:
            content = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e
        return cls.parse(content)

    @classmethod
    def load_with_fallback(cls, path: str | os.PathLike | None = None) -> "Config":
        """Load an explicit config, else the project config, else the global one."""
        if path is not None:
            return cls.load(path)

        for candidate in (Path.cwd() / PROJECT_CONFIG_NAME, global_config_path()):
            if candidate.is_file():
                log.debug("Using configuration file: %s", candidate)
                return cls.load(candidate)

        log.debug("No configuration file found, using defaults")
        return cls()
