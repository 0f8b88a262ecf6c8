"""Feature and group record persistence."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from ..models import FeatureRecord, GroupRecord
from ..records.codec import dump_yaml, encode_feature
from .atomic import atomic_write_text
from .layout import FeaturemapLayout
from .loader import LoadReport, load_directory, load_record
from .record_cache import RecordCache


def load_feature_records(layout: FeaturemapLayout, cache: Optional[RecordCache] = None) -> LoadReport[FeatureRecord]:
    return load_directory(layout.features_dir, "feature", cache)


def load_feature(layout: FeaturemapLayout, feature_id: str, cache: Optional[RecordCache] = None) -> FeatureRecord:
    return load_record(layout.feature_path(feature_id), "feature", cache)


def write_feature_records(
    layout: FeaturemapLayout,
    records: Iterable[FeatureRecord],
    cache: Optional[RecordCache] = None,
) -> List[str]:
    written: List[str] = []
    for record in records:
        path = layout.feature_path(record.id)
        atomic_write_text(path, dump_yaml(encode_feature(record)))
        if cache is not None:
            cache.invalidate(path)
        written.append(record.id)
    return written


def load_group_records(layout: FeaturemapLayout, cache: Optional[RecordCache] = None) -> LoadReport[GroupRecord]:
    return load_directory(layout.groups_dir, "group", cache)


def dangling_group_references(
    groups: Mapping[str, GroupRecord],
    feature_ids: Iterable[str],
) -> List[str]:
    """Warn about groups that point at features which do not exist."""
    known = set(feature_ids)
    warnings: List[str] = []
    for group_id in sorted(groups):
        missing = sorted({feature_id for feature_id in groups[group_id].feature_ids if feature_id not in known})
        if missing:
            warnings.append(f'Group "{group_id}" references unknown features: {", ".join(missing)}')
    return warnings


__all__ = [
    "dangling_group_references",
    "load_feature",
    "load_feature_records",
    "load_group_records",
    "write_feature_records",
]
