"""Zip a skill's documentation source directory for upload alongside the artifact."""

import io
import zipfile
from pathlib import Path
from typing import Union


def create_source_archive(source_dir: Union[str, Path], name: str) -> bytes:
    """
    Return a deflated zip of ``source_dir`` with every entry under
    ``<name>-source/``. Entries are added in sorted order so the same tree
    always yields the same listing.
    """
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        raise NotADirectoryError(f"Source directory not found: {source_dir}")

    prefix = f"{name}-source"
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(source_dir.rglob("*")):
            arcname = f"{prefix}/{path.relative_to(source_dir).as_posix()}"
            if path.is_dir():
                zf.writestr(arcname + "/", b"")
            else:
                zf.write(path, arcname)
    return buffer.getvalue()
