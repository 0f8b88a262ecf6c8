"""Exception types raised by featuremap."""

from __future__ import annotations

from typing import List, Sequence


class FeaturemapError(RuntimeError):
    """Base class for featuremap failures."""


class ConfigError(FeaturemapError):
    """Raised when ``.featuremap/config.yaml`` cannot be parsed."""


class RecordError(FeaturemapError):
    """Raised when a persisted record is malformed."""

    def __init__(self, path: str, errors: Sequence[str]) -> None:
        self.path = path
        self.errors: List[str] = list(errors)
        details = "\n".join(f"- {error}" for error in self.errors)
        super().__init__(f"Invalid record in {path}:\n{details}")


class RecordVersionError(FeaturemapError):
    """Raised when a record's schema version is missing or unsupported."""

    def __init__(
        self,
        path: str,
        *,
        kind: str,
        reason: str,
        file_version: int | None,
        minimum: int,
        supported: int,
        message: str,
    ) -> None:
        self.path = path
        self.kind = kind
        self.reason = reason
        self.file_version = file_version
        self.minimum = minimum
        self.supported = supported
        super().__init__(f"{path}: {message}")


class BatchValidationError(FeaturemapError):
    """Raised when a proposal batch fails validation; nothing is written."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "Batch validation failed")


__all__ = [
    "BatchValidationError",
    "ConfigError",
    "FeaturemapError",
    "RecordError",
    "RecordVersionError",
]
