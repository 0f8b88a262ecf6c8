"""Crash-safe file replacement."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path


def _target_mode(path: Path) -> int:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to a sibling temp file, then rename it over ``path``.

    Readers observe either the previous file or the complete new one. The
    replacement keeps the previous file's permissions; a new file gets the
    usual ``0o666`` minus the process umask. On any failure the temp file is
    removed and the error propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = _target_mode(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


__all__ = ["atomic_write_text"]
