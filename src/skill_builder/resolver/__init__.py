"""Install source resolution across the local repository, remote repository and GitHub."""

from .github_source import DEFAULT_REPO, GitHubReleaseSource, get_release_url
from .install_resolver import (
    SOURCE_PRIORITY,
    InstallResolver,
    ResolutionError,
    ResolutionRequest,
    ResolutionResult,
    SourceAttempt,
    SourceKind,
    SourceUnavailableError,
)

__all__ = [
    "DEFAULT_REPO",
    "GitHubReleaseSource",
    "get_release_url",
    "SOURCE_PRIORITY",
    "InstallResolver",
    "ResolutionError",
    "ResolutionRequest",
    "ResolutionResult",
    "SourceAttempt",
    "SourceKind",
    "SourceUnavailableError",
]
