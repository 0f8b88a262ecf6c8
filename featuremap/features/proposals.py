"""Parsing feature proposal payloads supplied by curators or AI grouping."""

from __future__ import annotations

from typing import Any, List, Optional

from ..errors import BatchValidationError
from ..models import FeatureProposal

_STRING_FIELDS = ("name", "description", "purpose", "scope", "status", "reasoning")
_LIST_FIELDS = (("clusters", "clusters"), ("dependsOn", "depends_on"))


def parse_proposals(payload: Any) -> List[FeatureProposal]:
    """Accept ``{"features": [...]}`` or a bare list of feature mappings."""
    if isinstance(payload, dict):
        payload = payload.get("features")
    if not isinstance(payload, list):
        raise BatchValidationError(["features: expected a list of feature mappings"])

    errors: List[str] = []
    proposals: List[FeatureProposal] = []
    for index, item in enumerate(payload):
        proposal = _parse_one(item, f"features[{index}]", errors)
        if proposal is not None:
            proposals.append(proposal)
    if errors:
        raise BatchValidationError(errors)
    return proposals


def _parse_one(item: Any, where: str, errors: List[str]) -> Optional[FeatureProposal]:
    if not isinstance(item, dict):
        errors.append(f"{where}: expected a mapping")
        return None
    feature_id = item.get("id")
    if not isinstance(feature_id, str) or not feature_id.strip():
        errors.append(f"{where}.id: is required")
        return None

    values = {}
    for key in _STRING_FIELDS:
        value = item.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            errors.append(f"{where}.{key}: expected a string")
            continue
        values[key] = value
    for key, attribute in _LIST_FIELDS:
        value = item.get(key)
        if value is None:
            continue
        if not isinstance(value, list) or not all(isinstance(entry, str) for entry in value):
            errors.append(f"{where}.{key}: expected a list of strings")
            continue
        values[attribute] = list(value)
    return FeatureProposal(id=feature_id.strip(), **values)


__all__ = ["parse_proposals"]
