"""
Container extraction.

Both package files (.zip) and app documents (.msapp) are zip archives.
App documents written by some authoring tool versions use backslashes as
path separators in member names; those are normalized here.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path, PurePosixPath

from canvaspkg.errors import ValidationError

logger = logging.getLogger(__name__)


def _member_path(dest: Path, name: str) -> Path:
    parts = PurePosixPath(name.replace("\\", "/")).parts
    if not parts or any(part == ".." for part in parts) or parts[0] == "/":
        raise ValidationError(f"Archive member escapes the extraction directory: {name}")
    return dest.joinpath(*parts)


def extract_archive(archive: Path, dest: Path, overwrite: bool = True) -> int:
    """
    Extract a zip archive into `dest`.

    Args:
        archive: Path of the .zip / .msapp file
        dest: Target directory, created if missing
        overwrite: Replace existing files; if False an existing file is an error

    Returns:
        Number of files extracted

    Raises:
        ValidationError: If the file is not a zip archive or a member escapes `dest`
        FileExistsError: If overwrite is False and a target file exists
    """
    archive = Path(archive)
    dest = Path(dest)
    if not zipfile.is_zipfile(archive):
        raise ValidationError(f"Not a zip archive: {archive}")

    dest.mkdir(parents=True, exist_ok=True)
    count = 0
    with zipfile.ZipFile(archive) as z:
        for info in z.infolist():
            target = _member_path(dest, info.filename)
            if info.is_dir() or info.filename.endswith("\\"):
                target.mkdir(parents=True, exist_ok=True)
                continue
            if target.exists() and not overwrite:
                raise FileExistsError(f"{target} already exists")
            target.parent.mkdir(parents=True, exist_ok=True)
            with z.open(info) as src, open(target, "wb") as out:
                out.write(src.read())
            count += 1
    logger.debug("Extracted %d files from %s", count, archive)
    return count


__all__ = ["extract_archive"]
