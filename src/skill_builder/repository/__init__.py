"""Skill repositories: a storage backend plus its versioned index."""

from .index import INDEX_KEY, IndexStore, SkillEntry, SkillsIndex, VersionRecord
from .skill_repository import (
    SkillArtifact,
    SkillRepository,
    changelog_key,
    skill_key,
    source_key,
    validate_name,
)

__all__ = [
    "INDEX_KEY",
    "IndexStore",
    "SkillEntry",
    "SkillsIndex",
    "VersionRecord",
    "SkillArtifact",
    "SkillRepository",
    "changelog_key",
    "skill_key",
    "source_key",
    "validate_name",
]
