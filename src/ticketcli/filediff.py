"""File snapshot and change detection helpers for the edit loop."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

CHUNK_SIZE = 1024
BACKUP_SUFFIX = ".orig"


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def make_backup(path: Path) -> Path:
    """Copy ``path`` to its ``.orig`` sibling and return the copy's path."""
    backup = backup_path(path)
    shutil.copyfile(path, backup)
    return backup


def files_differ(old: Path, new: Path, chunk_size: int = CHUNK_SIZE) -> bool:
    """Return True if the two files differ in size or in any byte.

    Files of different size are reported changed without reading them.
    Otherwise both are read ``chunk_size`` bytes at a time; the first
    mismatching chunk (or read length) short-circuits.
    """
    if os.path.getsize(old) != os.path.getsize(new):
        return True
    with open(old, "rb") as old_fh, open(new, "rb") as new_fh:
        while True:
            old_chunk = old_fh.read(chunk_size)
            new_chunk = new_fh.read(chunk_size)
            if len(old_chunk) != len(new_chunk) or old_chunk != new_chunk:
                return True
            if not new_chunk:
                return False
