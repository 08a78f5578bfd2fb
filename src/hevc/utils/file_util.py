"""
File helpers for staging, publishing and cleaning up transcoder output.

Every write lands in a staging file first (the destination path plus a
temporary suffix) and only becomes visible at its final path through an atomic
rename. Staging files left behind by an interrupted run are garbage and can be
swept from the destination tree at any time.
"""
import os
import shutil
from pathlib import Path
from typing import Tuple

from hevc.utils import logger
from hevc.utils.constants import STAGING_SUFFIX, TARGET_EXTENSION
from hevc.utils.logger import LogLevel


class CopyError(Exception):
    """Raised when a byte-preserving copy into a staging file fails."""

    def __init__(self, src: Path, dst: Path, cause: Exception):
        super().__init__(f"cannot copy {src} to {dst}: {cause}")
        self.src = src
        self.dst = dst
        self.cause = cause


def destination_for(src: Path, src_root: Path, dst_root: Path) -> Tuple[Path, Path]:
    """
    Mirror ``src`` under ``dst_root`` with the target container extension.

    Returns:
        Tuple of (destination path, staging path)
    """
    rel = src.relative_to(src_root)
    target = (dst_root / rel).with_suffix(TARGET_EXTENSION)
    staging = target.with_name(target.name + STAGING_SUFFIX)
    return target, staging


def file_size(path: Path) -> int:
    """Size of ``path`` in bytes, or 0 when it cannot be read."""
    try:
        return path.stat().st_size
    except OSError:
        return 0


def copy_to_staging(src: Path, staging: Path) -> None:
    """Copy ``src`` to ``staging`` preserving contents and metadata."""
    try:
        shutil.copy2(str(src), str(staging))
    except (OSError, shutil.Error) as e:
        raise CopyError(src, staging, e) from e


def publish(staging: Path, target: Path) -> None:
    """Atomically promote a finished staging file to its final path."""
    os.replace(staging, target)


def discard(path: Path) -> None:
    """Remove a partial or unwanted file; a missing file is not an error."""
    try:
        path.unlink()
    except (FileNotFoundError, NotADirectoryError):
        pass
    except OSError as e:
        logger.log("file.discard_failed", LogLevel.WARN, file=str(path), error=str(e))


def sweep_staging_files(root: Path) -> int:
    """
    Delete every staging file under ``root``.

    Returns the number of files removed; a second sweep over the same tree
    removes nothing.
    """
    if not root.exists():
        return 0
    removed = 0
    for p in root.rglob(f"*{STAGING_SUFFIX}"):
        if not p.is_file():
            continue
        try:
            p.unlink()
            removed += 1
        except FileNotFoundError:
            pass
    return removed
