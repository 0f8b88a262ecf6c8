"""Base classes for source inspector plugins."""

from abc import ABC, abstractmethod
from typing import Sequence

from ..models import FileRecord


class SourceInspector(ABC):
    """Contract for plugins that extract exports, imports and size from one file."""

    def prepare(self, paths: Sequence[str], source_roots: Sequence[str] = ()) -> None:
        """Receive the full candidate file list before any file is inspected."""

    @abstractmethod
    def supports(self, path: str) -> bool:
        """Return True when this inspector understands ``path`` (POSIX, project-relative)."""

    @abstractmethod
    def inspect(self, path: str, source: str) -> FileRecord:
        """Produce the file's exports, classified imports and line count."""


def count_lines(source: str) -> int:
    if not source:
        return 0
    return source.count("\n") + (0 if source.endswith("\n") else 1)
