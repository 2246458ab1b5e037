"""
Filesystem-based skill storage.

Maps storage keys onto files below a root directory, e.g. the key
``skills/foo/1.0.0/foo.skill`` lives at ``{root}/skills/foo/1.0.0/foo.skill``.
"""

import errno
import logging
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

from .base import StorageBackend, validate_key
from .exceptions import (
    StorageError,
    StorageNotFoundError,
    StoragePermissionError,
    StorageTransientError,
)

log = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"


def _is_temp_name(name: str) -> bool:
    return name.startswith(".") and name.endswith(TEMP_SUFFIX)


def _translate_os_error(error: OSError, key: str, action: str) -> StorageError:
    if isinstance(error, FileNotFoundError):
        return StorageNotFoundError(f"Object not found: {key}", key=key, cause=error)
    if isinstance(error, PermissionError) or error.errno in (errno.EACCES, errno.EPERM, errno.EROFS):
        return StoragePermissionError(f"Permission denied while trying to {action} {key}: {error}", key=key, cause=error)
    return StorageTransientError(f"Failed to {action} {key}: {error}", key=key, cause=error)


class LocalStorageBackend(StorageBackend):
    """
    Skill storage using the local filesystem.

    Writes go to a temporary sibling file which is fsynced and then renamed
    over the destination; the rename is the commit point.
    """

    def __init__(self, root: str | os.PathLike):
        if not str(root):
            raise ValueError("root cannot be empty")
        self.root = Path(root).expanduser().absolute()

    def __repr__(self) -> str:
        return f"LocalStorageBackend({str(self.root)!r})"

    def path_for(self, key: str) -> Path:
        """Return the filesystem path backing a key."""
        return self.root.joinpath(*validate_key(key).split("/"))

    def put(self, key: str, content: bytes) -> None:
        log_prefix = f"[LocalStorage:Put:{key}] "
        path = self.path_for(key)
        tmp_path = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=TEMP_SUFFIX
            )
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
            log.debug("%sWrote %d bytes", log_prefix, len(content))
        except OSError as e:
            log.error("%sFailed to write: %s", log_prefix, e)
            raise _translate_os_error(e, key, "write") from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    log.warning("%sCould not remove temporary file %s", log_prefix, tmp_path)

    def get(self, key: str) -> bytes:
        path = self.path_for(key)
        if path.is_dir():
            raise StorageNotFoundError(f"Object not found: {key}", key=key)
        try:
            return path.read_bytes()
        except OSError as e:
            raise _translate_os_error(e, key, "read") from e

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def list(self, prefix: str) -> Iterator[str]:
        # Start walking from the deepest directory fully named by the prefix.
        directory_part = prefix.rsplit("/", 1)[0] if "/" in prefix else ""
        if directory_part:
            validate_key(directory_part)
        start = self.root.joinpath(*directory_part.split("/")) if directory_part else self.root
        if not start.is_dir():
            return
        for dirpath, dirnames, filenames in os.walk(start):
            dirnames.sort()
            rel_dir = Path(dirpath).relative_to(self.root).as_posix()
            for filename in sorted(filenames):
                if _is_temp_name(filename):
                    continue
                key = filename if rel_dir == "." else f"{rel_dir}/{filename}"
                if key.startswith(prefix):
                    yield key

    def delete(self, key: str) -> None:
        log_prefix = f"[LocalStorage:Delete:{key}] "
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            log.debug("%sAlready absent", log_prefix)
            return
        except OSError as e:
            raise _translate_os_error(e, key, "delete") from e
        log.debug("%sDeleted", log_prefix)
        self._prune_empty_dirs(path.parent)

    def _prune_empty_dirs(self, directory: Path) -> None:
        """Remove empty parent directories up to, but not including, the root."""
        while directory != self.root and self.root in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                break
            directory = directory.parent
