"""All-or-nothing planning of feature proposal batches."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence

from ..errors import BatchValidationError
from ..logging import get_logger
from ..models import SCOPES, STATUSES, ClusterRecord, FeatureProposal, FeatureRecord, normalize_string_list
from .merge import CREATED, UPDATED, mark_feature_ignored, merge_feature

MODES = ("merge", "replace")

logger = get_logger("features")


@dataclass
class SavedFeatures:
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, List[str]]:
        return {"created": self.created, "updated": self.updated, "unchanged": self.unchanged}


@dataclass
class FeatureBatchPlan:
    """In-memory result of a batch; ``to_write`` holds only records that changed."""

    mode: str
    saved: SavedFeatures
    features: Dict[str, FeatureRecord]
    to_write: List[FeatureRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def find_duplicate_ids(ids: Iterable[str]) -> List[str]:
    counts = Counter(ids)
    return sorted(item for item, count in counts.items() if count > 1)


def validate_batch(
    proposals: Sequence[FeatureProposal],
    cluster_ids: Iterable[str],
    existing: Mapping[str, FeatureRecord],
    *,
    mode: str = "merge",
) -> List[str]:
    """Return every problem with ``proposals``; an empty list means the batch is valid."""
    errors: List[str] = []
    if mode not in MODES:
        errors.append(f'Unknown mode "{mode}"; expected one of: {", ".join(MODES)}')

    duplicates = find_duplicate_ids(proposal.id for proposal in proposals)
    if duplicates:
        errors.append(f"Duplicate feature ids: {', '.join(duplicates)}")

    known_clusters = set(cluster_ids)
    for proposal in proposals:
        if not proposal.id:
            errors.append("Feature proposal is missing an id")
            continue
        is_new = proposal.id not in existing
        if is_new and not proposal.name:
            errors.append(f'Feature "{proposal.id}" is missing a name')
        if is_new and not (proposal.description or proposal.purpose):
            errors.append(f'Feature "{proposal.id}" needs a description or purpose')
        if proposal.scope is not None and proposal.scope not in SCOPES:
            errors.append(f'Feature "{proposal.id}" has unknown scope "{proposal.scope}"')
        if proposal.status is not None and proposal.status not in STATUSES:
            errors.append(f'Feature "{proposal.id}" has unknown status "{proposal.status}"')
        missing = [
            cluster_id
            for cluster_id in normalize_string_list(proposal.clusters)
            if cluster_id not in known_clusters
        ]
        if missing:
            errors.append(f'Feature "{proposal.id}" references unknown clusters: {", ".join(missing)}')
    return errors


def plan_feature_batch(
    proposals: Sequence[FeatureProposal],
    existing: Mapping[str, FeatureRecord],
    clusters: Mapping[str, ClusterRecord],
    now: str,
    *,
    mode: str = "merge",
    proposer: str = "ai",
) -> FeatureBatchPlan:
    """Merge a proposal batch in memory.

    Raises :class:`BatchValidationError` carrying every validation error when
    the batch is rejected; in that case nothing has been computed for writing.
    In ``replace`` mode, features previously sourced from ``proposer`` that the
    batch omits are marked ``ignored``.
    """
    errors = validate_batch(proposals, clusters.keys(), existing, mode=mode)
    if errors:
        raise BatchValidationError(errors)

    saved = SavedFeatures()
    warnings: List[str] = []
    features: Dict[str, FeatureRecord] = dict(existing)
    to_write: List[FeatureRecord] = []

    for proposal in sorted(proposals, key=lambda item: item.id):
        outcome = merge_feature(
            existing.get(proposal.id),
            proposal,
            clusters,
            now,
            proposer=proposer,
            warnings=warnings,
        )
        if not outcome.changed:
            saved.unchanged.append(proposal.id)
            continue
        features[proposal.id] = outcome.feature
        to_write.append(outcome.feature)
        if outcome.status == CREATED:
            saved.created.append(proposal.id)
        else:
            saved.updated.append(proposal.id)

    if mode == "replace":
        proposed = {proposal.id for proposal in proposals}
        for feature_id in sorted(existing):
            record = existing[feature_id]
            if feature_id in proposed or record.source != proposer:
                continue
            outcome = mark_feature_ignored(record, now, proposer=proposer)
            if outcome.status != UPDATED:
                continue
            logger.info("Marking feature %s as ignored", feature_id)
            features[feature_id] = outcome.feature
            to_write.append(outcome.feature)
            saved.updated.append(feature_id)

    saved.created.sort()
    saved.updated.sort()
    saved.unchanged.sort()
    return FeatureBatchPlan(
        mode=mode,
        saved=saved,
        features=features,
        to_write=to_write,
        warnings=_dedupe(warnings),
    )


def _dedupe(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


__all__ = [
    "FeatureBatchPlan",
    "MODES",
    "SavedFeatures",
    "find_duplicate_ids",
    "plan_feature_batch",
    "validate_batch",
]
