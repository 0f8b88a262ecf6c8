"""Reading persisted records from disk with per-file error collection."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Generic, List, Optional, TypeVar

from ..errors import RecordError, RecordVersionError
from ..logging import get_logger
from ..records.codec import decode_record, parse_yaml
from .record_cache import RecordCache

T = TypeVar("T")

logger = get_logger("stores")


@dataclass
class LoadReport(Generic[T]):
    """Records that loaded, plus what was skipped and why."""

    records: Dict[str, T] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    version_errors: Dict[str, RecordVersionError] = field(default_factory=dict)


def load_record(path: Path, kind: str, cache: Optional[RecordCache] = None) -> Any:
    """Read, parse and validate one record file.

    Raises ``FileNotFoundError``, :class:`RecordError` or
    :class:`RecordVersionError`.
    """
    stat = path.stat()
    if cache is not None:
        cached = cache.get(path, stat)
        if cached is not None:
            return cached
    payload = parse_yaml(path.read_text(encoding="utf-8"), path=str(path))
    record = decode_record(kind, payload, path=str(path))
    if cache is not None:
        cache.store(path, stat, record)
    return record


def load_directory(directory: Path, kind: str, cache: Optional[RecordCache] = None) -> LoadReport[Any]:
    """Load every ``*.yaml`` record in ``directory`` keyed by record id.

    Malformed files are skipped with a warning. Version-incompatible files are
    collected in ``version_errors`` under their file stem.
    """
    report: LoadReport[Any] = LoadReport()
    if not directory.is_dir():
        return report
    for path in sorted(directory.glob("*.yaml")):
        try:
            record = load_record(path, kind, cache)
        except RecordVersionError as exc:
            logger.warning("%s", exc)
            report.version_errors[path.stem] = exc
            continue
        except RecordError as exc:
            message = f"Skipping malformed {kind} record {path.name}: {'; '.join(exc.errors)}"
            logger.warning("%s", message)
            report.warnings.append(message)
            continue
        if record.id in report.records:
            report.warnings.append(f"Duplicate {kind} id {record.id} in {path.name}; keeping the first")
            continue
        report.records[record.id] = record
    return report


__all__ = ["LoadReport", "load_directory", "load_record"]
