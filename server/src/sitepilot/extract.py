"""ZIP extraction with path traversal protection."""
from __future__ import annotations

import io
import logging
import shutil
import stat
import zipfile
from pathlib import Path

from .errors import UnsafeEntryError, ValidationError

logger = logging.getLogger(__name__)


def _is_symlink(info: zipfile.ZipInfo) -> bool:
    return stat.S_ISLNK(info.external_attr >> 16)


def _resolve_entry(root: Path, name: str) -> Path:
    """Canonical destination of an archive entry, or UnsafeEntryError."""
    destination = (root / name).resolve()
    if not destination.is_relative_to(root):
        raise UnsafeEntryError(name)
    return destination


def extract_archive(data: bytes, target_dir: str | Path) -> list[Path]:
    """Extract ZIP ``data`` into ``target_dir``.

    Every entry is checked before anything is written: if one of them
    resolves outside the target directory the whole archive is rejected
    with UnsafeEntryError. Symlink entries are written as regular files
    holding the link text, never as links.

    Returns the paths of the files written.
    """
    root = Path(target_dir).resolve()
    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile:
        raise ValidationError("Invalid ZIP file")

    written: list[Path] = []
    with zf:
        plan = [(info, _resolve_entry(root, info.filename)) for info in zf.infolist()]

        for info, destination in plan:
            if destination == root:
                continue
            if info.is_dir():
                destination.mkdir(parents=True, exist_ok=True)
                continue
            if _is_symlink(info):
                logger.warning("Writing symlink entry %s as a regular file", info.filename)
            destination.parent.mkdir(parents=True, exist_ok=True)
            try:
                with zf.open(info) as src, open(destination, "wb") as dst:
                    shutil.copyfileobj(src, dst)
            except zipfile.BadZipFile as e:
                raise ValidationError(f"Corrupt ZIP entry {info.filename!r}: {e}") from e
            written.append(destination)
    return written
