"""Fetch .skill release assets from GitHub releases."""

import logging
from typing import Optional

import httpx

from .. import __version__
from ..repository.skill_repository import SkillArtifact
from ..storage.exceptions import (
    StorageCorruptError,
    StorageError,
    StorageNotFoundError,
    StoragePermissionError,
    StorageTransientError,
)
from ..storage.retry import RetryPolicy

log = logging.getLogger(__name__)

DEFAULT_REPO = "antstanley/skill-builder"
GITHUB_URL = "https://github.com"
GITHUB_API_URL = "https://api.github.com"

_RETRYABLE_CLIENT_STATUS_CODES = {408, 429}


def get_release_url(skill_name: str, version: Optional[str] = None, repo: Optional[str] = None) -> str:
    """Download URL of a skill's release asset."""
    repo = repo or DEFAULT_REPO
    if version is None:
        return f"{GITHUB_URL}/{repo}/releases/latest/download/{skill_name}.skill"
    return f"{GITHUB_URL}/{repo}/releases/download/v{version}/{skill_name}.skill"


class GitHubReleaseSource:
    """
    Release-asset source for skills.

    Without an explicit version the latest release tag is looked up through
    the GitHub API so the resolved version is known.
    """

    def __init__(
        self,
        repo: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 60.0,
    ):
        self.repo = repo or DEFAULT_REPO
        self._client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": f"skill-builder/{__version__}"},
        )
        self._retry = retry_policy or RetryPolicy()

    def __repr__(self) -> str:
        return f"GitHubReleaseSource({self.repo!r})"

    def latest_version(self) -> str:
        url = f"{GITHUB_API_URL}/repos/{self.repo}/releases/latest"
        response = self._retry.call(self._request, url, "latest release")
        try:
            release = response.json()
        except ValueError as e:
            raise StorageCorruptError(
                f"Latest release response for {self.repo} is not JSON", key=url, cause=e
            ) from e
        if not isinstance(release, dict):
            raise StorageCorruptError(f"Unexpected latest release payload for {self.repo}", key=url)

        tag = release.get("tag_name")
        if tag is None or tag == "":
            raise StorageNotFoundError(f"No release tag found for {self.repo}", key=url)
        if not isinstance(tag, str):
            raise StorageCorruptError(f"Release tag for {self.repo} is not a string: {tag!r}", key=url)
        return tag[1:] if tag.startswith("v") else tag

    def get_artifact(self, name: str, version: Optional[str] = None) -> SkillArtifact:
        resolved = version if version is not None else self.latest_version()
        url = get_release_url(name, resolved, self.repo)
        log.info("Downloading %s", url)
        response = self._retry.call(self._request, url, f"{name}@{resolved}")
        return SkillArtifact(name=name, version=resolved, content=response.content)

    def _request(self, url: str, what: str) -> httpx.Response:
        try:
            response = self._client.get(url)
        except httpx.TransportError as e:
            raise StorageTransientError(f"Failed to fetch {what} from {url}: {e}", key=url, cause=e) from e
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to fetch {what} from {url}: {e}", key=url, cause=e) from e

        status = response.status_code
        if response.is_success:
            return response
        if status == 404:
            raise StorageNotFoundError(f"{what} not found in {self.repo} releases", key=url)
        if status in (401, 403):
            raise StoragePermissionError(f"HTTP {status} fetching {what} from {url}", key=url)
        if status in _RETRYABLE_CLIENT_STATUS_CODES or status >= 500:
            raise StorageTransientError(f"HTTP {status} fetching {what} from {url}", key=url)
        raise StorageError(f"HTTP {status} fetching {what} from {url}", key=url)
