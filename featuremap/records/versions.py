"""Schema version bounds for persisted records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

SUPPORTED_VERSIONS = {
    "config": 1,
    "cluster": 1,
    "feature": 1,
    "group": 1,
    "graph": 1,
}

MIN_SUPPORTED_VERSIONS = {
    "config": 1,
    "cluster": 1,
    "feature": 1,
    "group": 1,
    "graph": 1,
}


@dataclass(frozen=True)
class VersionCheck:
    """Outcome of comparing a record's version against the supported window."""

    valid: bool
    file_version: Optional[int]
    supported: int
    minimum: int
    error: Optional[str] = None
    message: Optional[str] = None


def check_version(kind: str, value: object) -> VersionCheck:
    """Classify ``value`` as a usable, missing, too old or too new version."""
    supported = SUPPORTED_VERSIONS[kind]
    minimum = MIN_SUPPORTED_VERSIONS[kind]

    if isinstance(value, bool) or not isinstance(value, int):
        return VersionCheck(
            valid=False,
            file_version=None,
            supported=supported,
            minimum=minimum,
            error="missing",
            message=f'Missing version field. Expected "version: {supported}".',
        )
    if value < minimum:
        return VersionCheck(
            valid=False,
            file_version=value,
            supported=supported,
            minimum=minimum,
            error="too_old",
            message=(
                f"Version {value} is too old. Minimum supported: {minimum}. "
                'Run "featuremap scan" to regenerate it.'
            ),
        )
    if value > supported:
        return VersionCheck(
            valid=False,
            file_version=value,
            supported=supported,
            minimum=minimum,
            error="too_new",
            message=(
                f"Version {value} is newer than supported ({supported}). "
                "Upgrade featuremap to read it."
            ),
        )
    return VersionCheck(valid=True, file_version=value, supported=supported, minimum=minimum)


__all__ = ["MIN_SUPPORTED_VERSIONS", "SUPPORTED_VERSIONS", "VersionCheck", "check_version"]
