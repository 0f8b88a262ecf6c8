"""In-process cache of decoded records keyed by file identity."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


class RecordCache:
    """Maps a record path to its decoded value.

    An entry is only served while the file's ``(mtime_ns, size)`` still match
    the values seen when it was stored. Writers call :meth:`invalidate` after
    replacing a file; callers own the cache's lifetime.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[int, int, Any]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, path: Path, stat: os.stat_result) -> Optional[Any]:
        entry = self._entries.get(_key(path))
        if entry is None or entry[0] != stat.st_mtime_ns or entry[1] != stat.st_size:
            self.misses += 1
            return None
        self.hits += 1
        return entry[2]

    def store(self, path: Path, stat: os.stat_result, value: Any) -> None:
        self._entries[_key(path)] = (stat.st_mtime_ns, stat.st_size, value)

    def invalidate(self, path: Path) -> None:
        self._entries.pop(_key(path), None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, Path) and _key(path) in self._entries


def _key(path: Path) -> str:
    return str(path.resolve())


__all__ = ["RecordCache"]
