"""
Skill repository operations over a storage backend and its index.

Storage root layout (identical for local and S3 roots):

    skills_index.json
    skills/<name>/<version>/<name>.skill
    skills/<name>/<version>/CHANGELOG.md
    source/<name>/<version>/<name>-source.zip
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from ..storage.base import StorageBackend
from ..storage.exceptions import (
    InvalidKeyError,
    StorageCorruptError,
    StorageError,
    StorageNotFoundError,
)
from .index import IndexStore, SkillEntry, VersionRecord

log = logging.getLogger(__name__)


def skill_key(name: str, version: str) -> str:
    return f"skills/{name}/{version}/{name}.skill"


def changelog_key(name: str, version: str) -> str:
    return f"skills/{name}/{version}/CHANGELOG.md"


def source_key(name: str, version: str) -> str:
    return f"source/{name}/{version}/{name}-source.zip"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_name(value: str, what: str = "name") -> str:
    """Reject skill names and versions that are not a single key segment."""
    if not isinstance(value, str) or value in ("", ".", "..") or "/" in value or "\\" in value:
        raise InvalidKeyError(f"Invalid skill {what}: {value!r}", key=value)
    return value


@dataclass
class SkillArtifact:
    """A resolved skill blob and the version it belongs to."""

    name: str
    version: str
    content: bytes
    uploaded_at: Optional[datetime] = None


class SkillRepository:
    """
    Skill-level operations on one storage root.

    When ``cache`` is given (a repository over the local cache root),
    downloads read the cache first and, with ``write_back`` enabled, copy
    whatever they fetch from this repository into the cache.
    """

    def __init__(
        self,
        backend: StorageBackend,
        label: str = "remote",
        cache: Optional["SkillRepository"] = None,
        write_back: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.backend = backend
        self.label = label
        self.index = IndexStore(backend)
        self.cache = cache
        self.write_back = write_back
        self._clock = clock

    def __repr__(self) -> str:
        return f"SkillRepository(label={self.label!r}, backend={self.backend!r})"

    def upload(
        self,
        name: str,
        version: str,
        artifact: bytes,
        changelog: Optional[str] = None,
        source_archive: Optional[bytes] = None,
        description: Optional[str] = None,
        llms_txt_url: Optional[str] = None,
        uploaded_at: Optional[datetime] = None,
    ) -> VersionRecord:
        """
        Store a skill version.

        Blobs are written before the index is updated, so an interrupted
        upload leaves at most an unreferenced blob, never an index entry
        pointing at a missing one. ``uploaded_at`` keeps the timestamp of a
        copy made from another repository; it defaults to now.
        """
        validate_name(name)
        validate_name(version, "version")
        log_prefix = f"[Repository:{self.label}:Upload:{name}/{version}] "

        record = VersionRecord(
            version=version,
            path=skill_key(name, version),
            uploaded_at=uploaded_at if uploaded_at is not None else self._clock(),
            size=len(artifact),
            sha256=hashlib.sha256(artifact).hexdigest(),
        )
        self.backend.put(record.path, artifact)
        log.info("%sUploaded %s (%d bytes)", log_prefix, record.path, len(artifact))

        if changelog is not None:
            record.changelog_path = changelog_key(name, version)
            self.backend.put(record.changelog_path, changelog.encode("utf-8"))
            log.info("%sUploaded %s", log_prefix, record.changelog_path)

        if source_archive is not None:
            record.source_path = source_key(name, version)
            self.backend.put(record.source_path, source_archive)
            log.info("%sUploaded %s", log_prefix, record.source_path)

        replaced = self.index.upsert_version(
            name, record, description=description, llms_txt_url=llms_txt_url
        )
        log.info("%s%s index entry", log_prefix, "Replaced" if replaced else "Added")
        return record

    def resolve_version(self, name: str, version: Optional[str] = None) -> VersionRecord:
        """Look up the index record for a version, or the latest one."""
        validate_name(name)
        if version is not None:
            validate_name(version, "version")
        index = self.index.load()
        entry = index.find_skill(name)
        if entry is None:
            raise StorageNotFoundError(f"Skill '{name}' not found in {self.label} repository")

        resolved = version if version is not None else index.latest_version(name)
        record = entry.find_version(resolved) if resolved is not None else None
        if record is None:
            raise StorageNotFoundError(
                f"Version '{version}' not found for skill '{name}' in {self.label} repository"
            )
        return record

    def get_artifact(self, name: str, version: Optional[str] = None) -> SkillArtifact:
        """Fetch a skill blob, consulting the cache first when one is configured."""
        log_prefix = f"[Repository:{self.label}:Download:{name}/{version or 'latest'}] "

        if self.cache is not None and version is not None:
            cached = self._from_cache(name, version)
            if cached is not None:
                return cached

        record = self.resolve_version(name, version)

        if self.cache is not None and version is None:
            cached = self._from_cache(name, record.version)
            if cached is not None:
                return cached

        content = self.backend.get(record.path)
        self._verify(record, content)
        log.info("%sFetched %s (%d bytes)", log_prefix, record.path, len(content))

        artifact = SkillArtifact(
            name=name, version=record.version, content=content, uploaded_at=record.uploaded_at
        )
        if self.cache is not None and self.write_back:
            self._write_back(artifact)
        return artifact

    def download(self, name: str, version: Optional[str] = None) -> bytes:
        """Return the .skill blob for a version (default: latest)."""
        return self.get_artifact(name, version).content

    def changelog(self, name: str, version: str) -> Optional[str]:
        record = self.resolve_version(name, version)
        if not record.changelog_path:
            return None
        return self.backend.get(record.changelog_path).decode("utf-8")

    def delete(self, name: str, version: Optional[str] = None) -> None:
        """
        Delete one version, or every version when ``version`` is omitted.

        The index is updated first; blobs are then removed best-effort. A
        failure after the index update leaves an orphaned blob, never a
        dangling index entry.
        """
        validate_name(name)
        if version is not None:
            validate_name(version, "version")
        log_prefix = f"[Repository:{self.label}:Delete:{name}/{version or '*'}] "
        index = self.index.load()
        entry = index.find_skill(name)
        if entry is None:
            raise StorageNotFoundError(f"Skill '{name}' not found in {self.label} repository")

        if version is not None:
            record = entry.find_version(version)
            if record is None:
                raise StorageNotFoundError(
                    f"Version '{version}' not found for skill '{name}' in {self.label} repository"
                )
            index.remove_version(name, version)
            self.index.save(index)
            keys = record.blob_keys()
            prefixes = (f"skills/{name}/{version}/", f"source/{name}/{version}/")
        else:
            index.remove_skill(name)
            self.index.save(index)
            keys = [k for r in entry.versions for k in r.blob_keys()]
            prefixes = (f"skills/{name}/", f"source/{name}/")

        try:
            keys += self._keys_under(*prefixes)
        except StorageError as e:
            log.warning("%sCould not list leftover blobs: %s", log_prefix, e)
        failed = self._delete_blobs(keys)
        if failed:
            log.warning("%sLeft %d orphaned blobs after index update", log_prefix, failed)
        log.info("%sDeleted from %s repository", log_prefix, self.label)

        if self.cache is not None:
            self._evict(name, version)

    def clear(self, name: Optional[str] = None) -> int:
        """Remove one skill or every skill. Returns the number of versions removed."""
        if name is not None:
            validate_name(name)
        index = self.index.load()
        names = [name] if name is not None else list(index.skills)
        removed = 0
        for skill in names:
            entry = index.skills.get(skill)
            if entry is None:
                continue
            removed += len(entry.versions)
            index.remove_skill(skill)
        self.index.save(index)

        if name is not None:
            prefixes = (f"skills/{name}/", f"source/{name}/")
        else:
            prefixes = ("skills/", "source/")
        self._delete_blobs(self._keys_under(*prefixes))
        log.info("[Repository:%s:Clear] Removed %d versions", self.label, removed)
        return removed

    def list(self, name: Optional[str] = None) -> Dict[str, SkillEntry]:
        """Index entries, optionally restricted to one skill."""
        skills = self.index.load().skills
        if name is None:
            return dict(sorted(skills.items()))
        return {name: skills[name]} if name in skills else {}

    def list_versions(self, name: Optional[str] = None) -> List[Tuple[str, str]]:
        return self.index.list(name)

    def _verify(self, record: VersionRecord, content: bytes) -> None:
        if record.sha256 and hashlib.sha256(content).hexdigest() != record.sha256:
            raise StorageCorruptError(
                f"Checksum mismatch for {record.path}", key=record.path
            )

    def _from_cache(self, name: str, version: str) -> Optional[SkillArtifact]:
        try:
            artifact = self.cache.get_artifact(name, version)
        except StorageNotFoundError:
            log.debug("Cache miss for %s@%s", name, version)
            return None
        except StorageError as e:
            log.warning("Ignoring unreadable cache entry %s@%s: %s", name, version, e)
            return None
        log.info("Using cached %s@%s", name, version)
        return artifact

    def _write_back(self, artifact: SkillArtifact) -> None:
        try:
            self.cache.upload(
                artifact.name, artifact.version, artifact.content, uploaded_at=artifact.uploaded_at
            )
        except StorageError as e:
            log.warning(
                "Could not cache %s@%s: %s", artifact.name, artifact.version, e
            )

    def _evict(self, name: str, version: Optional[str]) -> None:
        try:
            self.cache.delete(name, version)
        except StorageNotFoundError:
            pass
        except StorageError as e:
            log.warning("Could not clear cached %s: %s", name, e)

    def _keys_under(self, *prefixes: str) -> List[str]:
        keys = []
        for prefix in prefixes:
            keys.extend(self.backend.list(prefix))
        return keys

    def _delete_blobs(self, keys: List[str]) -> int:
        failed = 0
        for key in dict.fromkeys(keys):
            try:
                self.backend.delete(key)
            except StorageError as e:
                failed += 1
                log.warning("Failed to delete %s: %s", key, e)
        return failed
