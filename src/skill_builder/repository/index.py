"""
Skills index management.

A storage root holds a single ``skills_index.json`` document describing
every skill and version it contains. The index is the only source of truth
for what exists in a root: blobs it does not reference are orphans.

Every mutating call on ``IndexStore`` is a full load-mutate-save cycle. There
is no locking, so two processes updating the same remote index can race and
the later save wins (lost update). Blobs are never corrupted by this; a lost
index entry reappears once the version is uploaded again.
"""

import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from ..storage.base import StorageBackend
from ..storage.exceptions import StorageCorruptError, StorageNotFoundError

log = logging.getLogger(__name__)

INDEX_KEY = "skills_index.json"
INDEX_FORMAT_VERSION = 1


class VersionRecord(BaseModel):
    """A single uploaded version of a skill."""

    version: str
    path: str = Field(description="Key of the .skill blob")
    uploaded_at: datetime
    changelog_path: Optional[str] = None
    source_path: Optional[str] = None
    size: Optional[int] = None
    sha256: Optional[str] = None

    def blob_keys(self) -> List[str]:
        """All blob keys this record references."""
        return [k for k in (self.path, self.changelog_path, self.source_path) if k]


class SkillEntry(BaseModel):
    """All versions of one skill, in upload order."""

    description: str = ""
    llms_txt_url: str = ""
    versions: List[VersionRecord] = Field(default_factory=list)

    def find_version(self, version: str) -> Optional[VersionRecord]:
        return next((r for r in self.versions if r.version == version), None)

    def version_names(self) -> List[str]:
        return [r.version for r in self.versions]


class SkillsIndex(BaseModel):
    """The index document stored at the root of every storage root."""

    format_version: int = INDEX_FORMAT_VERSION
    skills: Dict[str, SkillEntry] = Field(default_factory=dict)

    def find_skill(self, name: str) -> Optional[SkillEntry]:
        return self.skills.get(name)

    def find_version(self, name: str, version: str) -> Optional[VersionRecord]:
        entry = self.skills.get(name)
        return entry.find_version(version) if entry else None

    def upsert_version(
        self,
        name: str,
        record: VersionRecord,
        description: Optional[str] = None,
        llms_txt_url: Optional[str] = None,
    ) -> bool:
        """Add or replace a version record. Returns True if it replaced one.

        A replaced record moves to the end, keeping ``versions`` in upload order.
        """
        entry = self.skills.setdefault(name, SkillEntry())
        if description is not None:
            entry.description = description
        if llms_txt_url is not None:
            entry.llms_txt_url = llms_txt_url

        existed = entry.find_version(record.version) is not None
        entry.versions = [r for r in entry.versions if r.version != record.version]
        entry.versions.append(record)
        return existed

    def remove_version(self, name: str, version: str) -> bool:
        """Remove one version; drops the skill entry when it was the last one."""
        entry = self.skills.get(name)
        if entry is None or entry.find_version(version) is None:
            return False
        entry.versions = [r for r in entry.versions if r.version != version]
        if not entry.versions:
            del self.skills[name]
        return True

    def remove_skill(self, name: str) -> bool:
        return self.skills.pop(name, None) is not None

    def pairs(self, name: Optional[str] = None) -> List[Tuple[str, str]]:
        """(name, version) pairs, optionally restricted to one skill."""
        names = [name] if name is not None else sorted(self.skills)
        return [
            (skill, record.version)
            for skill in names
            if skill in self.skills
            for record in self.skills[skill].versions
        ]

    def latest_version(self, name: str) -> Optional[str]:
        """The most recently uploaded version, by ``uploaded_at``.

        Version strings are not parsed or compared. On equal timestamps the
        record uploaded later (further down the list) wins.
        """
        entry = self.skills.get(name)
        if not entry or not entry.versions:
            return None
        latest = entry.versions[0]
        for record in entry.versions[1:]:
            if record.uploaded_at >= latest.uploaded_at:
                latest = record
        return latest.version


class IndexStore:
    """Reads and writes the index document of one storage root."""

    def __init__(self, backend: StorageBackend, key: str = INDEX_KEY):
        self.backend = backend
        self.key = key

    def load(self) -> SkillsIndex:
        """
        Load the index.

        A missing index is an empty index. Raises StorageCorruptError if the
        document exists but cannot be parsed.
        """
        try:
            raw = self.backend.get(self.key)
        except StorageNotFoundError:
            log.debug("No index at %s, starting empty", self.key)
            return SkillsIndex()

        try:
            return SkillsIndex.model_validate(json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            log.error("Skills index %s is corrupt: %s", self.key, e)
            raise StorageCorruptError(
                f"Failed to parse skills index: {e}", key=self.key, cause=e
            ) from e

    def save(self, index: SkillsIndex) -> None:
        content = index.model_dump_json(indent=2, exclude_none=True)
        self.backend.put(self.key, content.encode("utf-8"))
        log.debug("Saved index with %d skills", len(index.skills))

    def upsert_version(
        self,
        name: str,
        record: VersionRecord,
        description: Optional[str] = None,
        llms_txt_url: Optional[str] = None,
    ) -> bool:
        index = self.load()
        existed = index.upsert_version(name, record, description, llms_txt_url)
        self.save(index)
        return existed

    def remove_version(self, name: str, version: str) -> bool:
        index = self.load()
        removed = index.remove_version(name, version)
        if removed:
            self.save(index)
        return removed

    def remove_skill(self, name: str) -> bool:
        index = self.load()
        removed = index.remove_skill(name)
        if removed:
            self.save(index)
        return removed

    def list(self, name: Optional[str] = None) -> List[Tuple[str, str]]:
        return self.load().pairs(name)

    def latest(self, name: str) -> Optional[str]:
        return self.load().latest_version(name)
