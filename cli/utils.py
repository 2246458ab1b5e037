import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import click

from skill_builder.config import Config, ConfigError, RepositoryConfig
from skill_builder.repository import SkillRepository
from skill_builder.resolver import GitHubReleaseSource
from skill_builder.storage.factory import create_local_backend, create_remote_backend


def error_exit(message: str):
    """Print an error message to stderr in red and exit with status 1."""
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(1)


@dataclass
class CliContext:
    """Per-invocation state shared by every command through ``click.pass_obj``."""

    config_path: Optional[Path] = None
    _config: Optional[Config] = field(default=None, init=False, repr=False)

    @property
    def config(self) -> Config:
        if self._config is None:
            try:
                self._config = Config.load_with_fallback(self.config_path)
            except ConfigError as e:
                error_exit(f"Error: {e}")
        return self._config

    @property
    def repo_config(self) -> RepositoryConfig:
        return self.config.effective_repository()

    def local_repository(self, required: bool = False) -> Optional[SkillRepository]:
        """The local repository, or None when the config does not enable one."""
        if not required and not self.repo_config.has_local():
            return None
        return SkillRepository(create_local_backend(self.repo_config), label="local")

    def remote_repository(self, with_cache: bool = True) -> Optional[SkillRepository]:
        """
        The remote repository, or None when no bucket is configured.

        With ``with_cache`` and ``repository.local.cache`` enabled, downloads
        read through the local repository.
        """
        repo_config = self.repo_config
        if not repo_config.has_remote():
            return None
        cache = None
        if with_cache and repo_config.cache_enabled():
            cache = self.local_repository()
        return SkillRepository(create_remote_backend(repo_config), label="remote", cache=cache)

    def require_remote(self) -> SkillRepository:
        remote = self.remote_repository()
        if remote is None:
            error_exit(
                "Error: No remote repository configured.\n"
                "Set repository.bucket_name in skills.json or the S3_BUCKET_NAME environment variable."
            )
        return remote

    def github_source(self, repo: Optional[str] = None) -> GitHubReleaseSource:
        return GitHubReleaseSource(repo=repo)
