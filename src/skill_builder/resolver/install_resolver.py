"""
Multi-source install resolution: local repository -> remote repository -> GitHub.

Sources are tried strictly in priority order and the first one that yields
an artifact wins; later sources are never contacted. Every failed attempt
is recorded so that a complete miss can report why each source failed.
Retries happen inside each source (see RetryPolicy), so an attempt here is
already final for its source.
"""

import logging
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Tuple

from ..repository.skill_repository import SkillArtifact, SkillRepository, skill_key
from ..storage.exceptions import StorageError
from ..storage.local_storage import LocalStorageBackend

log = logging.getLogger(__name__)


class SourceKind(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    GITHUB = "github"


SOURCE_PRIORITY: Tuple[SourceKind, ...] = (SourceKind.LOCAL, SourceKind.REMOTE, SourceKind.GITHUB)


class ArtifactSource(Protocol):
    def get_artifact(self, name: str, version: Optional[str] = None) -> SkillArtifact:
        ...


class SourceUnavailableError(StorageError):
    """Raised for a source that was requested but is not configured."""


@dataclass
class ResolutionRequest:
    """One install request; built per invocation and consumed once."""

    skill_name: str
    version: Optional[str] = None
    sources: Tuple[SourceKind, ...] = SOURCE_PRIORITY
    write_back: bool = True


@dataclass
class ResolutionResult:
    """Where a request was satisfied and the file holding the artifact."""

    source: SourceKind
    version: str
    path: Path


@dataclass
class SourceAttempt:
    """Outcome of asking one source for an artifact."""

    source: SourceKind
    artifact: Optional[SkillArtifact] = None
    error: Optional[StorageError] = None

    @property
    def ok(self) -> bool:
        return self.artifact is not None


class ResolutionError(Exception):
    """Every enabled source failed. Carries one attempt per source tried."""

    def __init__(self, skill_name: str, version: Optional[str], attempts: List[SourceAttempt]):
        self.skill_name = skill_name
        self.version = version
        self.attempts = attempts
        target = f"{skill_name}@{version}" if version else skill_name
        if attempts:
            details = "\n".join(
                f"  - {a.source.value}: {type(a.error).__name__}: {a.error}" for a in attempts
            )
            message = f"Could not resolve {target} from any source:\n{details}"
        else:
            message = f"Could not resolve {target}: no sources enabled"
        super().__init__(message)

    @property
    def errors(self) -> List[StorageError]:
        return [a.error for a in self.attempts]


def first_success(outcomes: Iterable[SourceAttempt], record: List[SourceAttempt]) -> Optional[SourceAttempt]:
    """Consume outcomes lazily, recording each, until one succeeds."""
    for outcome in outcomes:
        record.append(outcome)
        if outcome.ok:
            return outcome
    return None


@dataclass
class InstallResolver:
    """
    Chooses which source satisfies an install request.

    ``local`` doubles as the write-back cache: an artifact resolved from the
    remote repository or GitHub is uploaded into it when the request allows,
    so the next identical request resolves locally.
    """

    local: Optional[SkillRepository] = None
    remote: Optional[SkillRepository] = None
    github: Optional[ArtifactSource] = None
    staging_dir: Optional[Path] = None
    _sources: dict = field(init=False, repr=False)

    def __post_init__(self):
        self._sources = {
            SourceKind.LOCAL: self.local,
            SourceKind.REMOTE: self.remote,
            SourceKind.GITHUB: self.github,
        }

    def candidates(self, request: ResolutionRequest) -> List[SourceKind]:
        enabled = set(request.sources)
        return [source for source in SOURCE_PRIORITY if source in enabled]

    def resolve(self, request: ResolutionRequest) -> ResolutionResult:
        """
        Resolve a request to a local file.

        Raises:
            ResolutionError: If every enabled source failed
        """
        attempts: List[SourceAttempt] = []
        outcomes = (self._attempt(source, request) for source in self.candidates(request))
        winner = first_success(outcomes, attempts)
        if winner is None:
            raise ResolutionError(request.skill_name, request.version, attempts)

        log.info(
            "Resolved %s@%s from %s",
            request.skill_name,
            winner.artifact.version,
            winner.source.value,
        )
        return self._materialize(winner, request)

    def _attempt(self, source: SourceKind, request: ResolutionRequest) -> SourceAttempt:
        provider = self._sources[source]
        if provider is None:
            error = SourceUnavailableError(f"No {source.value} source configured")
            log.info("Skipping %s: %s", source.value, error)
            return SourceAttempt(source=source, error=error)

        log.info("Looking for %s in %s source...", request.skill_name, source.value)
        try:
            artifact = provider.get_artifact(request.skill_name, request.version)
        except StorageError as e:
            log.info(
                "%s not available from %s (%s), trying next source",
                request.skill_name,
                source.value,
                type(e).__name__,
            )
            return SourceAttempt(source=source, error=e)
        except Exception as e:
            log.warning(
                "Unexpected error from %s source for %s, trying next source: %s",
                source.value,
                request.skill_name,
                e,
                exc_info=True,
            )
            error = StorageError(f"{type(e).__name__}: {e}", key=request.skill_name, cause=e)
            return SourceAttempt(source=source, error=error)
        return SourceAttempt(source=source, artifact=artifact)

    def _materialize(self, winner: SourceAttempt, request: ResolutionRequest) -> ResolutionResult:
        artifact = winner.artifact
        path = None

        if winner.source is SourceKind.LOCAL:
            path = self._local_path(artifact)
        elif request.write_back and self.local is not None:
            try:
                self.local.upload(
                    artifact.name, artifact.version, artifact.content, uploaded_at=artifact.uploaded_at
                )
                path = self._local_path(artifact)
                log.info("Cached %s@%s in local repository", artifact.name, artifact.version)
            except StorageError as e:
                log.warning("Could not write %s back to local cache: %s", artifact.name, e)

        if path is None:
            path = self._stage(artifact)
        return ResolutionResult(source=winner.source, version=artifact.version, path=path)

    def _local_path(self, artifact: SkillArtifact) -> Optional[Path]:
        backend = self.local.backend if self.local is not None else None
        if isinstance(backend, LocalStorageBackend):
            return backend.path_for(skill_key(artifact.name, artifact.version))
        return None

    def _stage(self, artifact: SkillArtifact) -> Path:
        if self.staging_dir is None:
            self.staging_dir = Path(tempfile.mkdtemp(prefix="skill-builder-"))
        staging = LocalStorageBackend(self.staging_dir)
        key = f"{artifact.name}/{artifact.version}/{artifact.name}.skill"
        staging.put(key, artifact.content)
        return staging.path_for(key)
