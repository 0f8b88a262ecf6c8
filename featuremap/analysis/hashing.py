"""Order-independent composition hashes for clusters and features."""

from __future__ import annotations

import hashlib
from typing import Iterable, List, Mapping, Optional

HASH_LENGTH = 16
MISSING_MARKER = "missing"


def _digest(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def composition_hash_for(files: Iterable[str]) -> str:
    """Hash a file set; input order does not matter."""
    return _digest("\n".join(sorted(files)))


def has_composition_changed(previous: Optional[str], files: Iterable[str]) -> bool:
    """Return True when ``files`` no longer hash to ``previous`` (or nothing was stored)."""
    if not previous:
        return True
    return previous != composition_hash_for(files)


def feature_composition_hash(
    cluster_ids: Iterable[str],
    cluster_hashes: Mapping[str, str],
    warnings: Optional[List[str]] = None,
) -> str:
    """Hash a feature from the hashes of the clusters it references.

    A referenced cluster that is absent from ``cluster_hashes`` contributes a
    sentinel instead of being skipped, so losing a cluster still changes the hash.
    """
    parts: List[str] = []
    for cluster_id in sorted(set(cluster_ids)):
        signature = cluster_hashes.get(cluster_id)
        if signature is None:
            if warnings is not None:
                warnings.append(
                    f'Missing cluster data for "{cluster_id}" when computing composition hash.'
                )
            signature = MISSING_MARKER
        parts.append(f"{cluster_id}:{signature}")
    return _digest("|".join(parts))


__all__ = [
    "HASH_LENGTH",
    "MISSING_MARKER",
    "composition_hash_for",
    "feature_composition_hash",
    "has_composition_changed",
]
