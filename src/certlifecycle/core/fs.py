"""Filesystem helpers for installing keys, certificates and hooks.

Files are written next to their destination and moved into place with
:func:`os.replace`, so readers never see a partially written file.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

PRIVATE_FILE_MODE = 0o600
PUBLIC_FILE_MODE = 0o644
EXECUTABLE_MODE = 0o755


def write_file_atomic(path: Path, data: bytes, mode: int) -> None:
    """Write *data* to *path* with permissions *mode*, replacing atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        tmp.chmod(mode)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def copy_file_atomic(src: Path, dst: Path, mode: int) -> None:
    """Copy *src* over *dst* with permissions *mode*."""
    write_file_atomic(dst, src.read_bytes(), mode)


def atomic_symlink(link_path: Path, target: Path) -> None:
    """Point *link_path* at *target*, replacing whatever was there."""
    link_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = link_path.with_name(link_path.name + ".tmp")
    tmp_path.unlink(missing_ok=True)
    tmp_path.symlink_to(target)
    os.replace(tmp_path, link_path)


def is_nonempty_file(path: Path) -> bool:
    return path.is_file() and path.stat().st_size > 0


def backup_file(path: Path) -> Path | None:
    """Copy *path* to ``<path>.bak``; returns the backup path or ``None``."""
    if not path.exists():
        return None
    backup = path.with_name(path.name + ".bak")
    shutil.copy2(path, backup)
    return backup


def restore_backup(backup: Path, path: Path) -> None:
    os.replace(backup, path)
