"""Extract a resolved .skill archive into an install directory."""

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Union

log = logging.getLogger(__name__)

DEFAULT_INSTALL_DIR = ".claude/skills"


class InstallError(Exception):
    """Raised when a .skill file cannot be unpacked."""


@dataclass
class InstallResult:
    skill_name: str
    install_path: Path
    files_extracted: int


def _safe_target(install_dir: Path, member: str) -> Path:
    parts = PurePosixPath(member.replace("\\", "/")).parts
    if not parts or parts[0] == "/" or ".." in parts or ":" in parts[0]:
        raise InstallError(f"Refusing to extract '{member}': path escapes install directory")
    target = install_dir.joinpath(*parts).resolve()
    if target != install_dir and install_dir not in target.parents:
        raise InstallError(f"Refusing to extract '{member}': path escapes install directory")
    return target


def install_from_file(
    skill_file: Union[str, Path], install_dir: Union[str, Path] = DEFAULT_INSTALL_DIR
) -> InstallResult:
    """
    Unpack a .skill zip into ``install_dir``.

    The skill name is the first path component of the first archive entry,
    so a package built as ``<name>/SKILL.md ...`` installs to
    ``install_dir/<name>``. Every entry is checked before anything is
    written, so an archive with a traversing entry extracts nothing.

    Raises:
        InstallError: If the file is missing, not a zip, or has unsafe entries
    """
    skill_file = Path(skill_file)
    install_dir = Path(install_dir)
    log_prefix = f"[Installer:{skill_file.name}] "

    try:
        archive = zipfile.ZipFile(skill_file)
    except FileNotFoundError as e:
        raise InstallError(f"Skill file not found: {skill_file}") from e
    except zipfile.BadZipFile as e:
        raise InstallError(f"Not a valid .skill archive: {skill_file}") from e

    with archive:
        members = archive.infolist()
        if not members:
            raise InstallError(f"Skill archive is empty: {skill_file}")

        install_dir.mkdir(parents=True, exist_ok=True)
        root = install_dir.resolve()
        targets = [(member, _safe_target(root, member.filename)) for member in members]

        skill_name = PurePosixPath(members[0].filename).parts[0]
        files_extracted = 0
        for member, target in targets:
            if member.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with archive.open(member) as src, open(target, "wb") as dst:
                dst.write(src.read())
            files_extracted += 1
            log.debug("%sExtracted %s", log_prefix, member.filename)

    install_path = install_dir / skill_name
    log.info("%sInstalled %s to %s (%d files)", log_prefix, skill_name, install_path, files_extracted)
    return InstallResult(skill_name=skill_name, install_path=install_path, files_extracted=files_extracted)
