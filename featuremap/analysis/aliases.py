"""Path-alias rules (``"@app/*" -> ["src/app/*"]``) used during import resolution."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class AliasRule:
    """One pattern with an optional ``*`` wildcard and its target templates."""

    pattern: str
    prefix: str
    suffix: str
    has_star: bool
    targets: Tuple[str, ...]
    order: int

    @property
    def specificity(self) -> int:
        return len(self.prefix) + len(self.suffix)

    def match(self, specifier: str) -> Optional[str]:
        """Return the wildcard capture when ``specifier`` matches, else None."""
        if not self.has_star:
            return "" if specifier == self.pattern else None
        if len(specifier) < len(self.prefix) + len(self.suffix):
            return None
        if not specifier.startswith(self.prefix) or not specifier.endswith(self.suffix):
            return None
        return specifier[len(self.prefix) : len(specifier) - len(self.suffix)]

    def expand(self, capture: str) -> List[str]:
        return [target.replace("*", capture) if "*" in target else target for target in self.targets]


def build_alias_rule(pattern: str, targets: Union[str, Sequence[str]], order: int) -> Optional[AliasRule]:
    if isinstance(targets, str):
        targets = [targets]
    cleaned = tuple(_clean_target(target) for target in targets if isinstance(target, str) and target.strip())
    if not pattern or not cleaned:
        return None
    index = pattern.find("*")
    if index == -1:
        prefix, suffix, has_star = pattern, "", False
    else:
        prefix, suffix, has_star = pattern[:index], pattern[index + 1 :], True
    return AliasRule(
        pattern=pattern,
        prefix=prefix,
        suffix=suffix,
        has_star=has_star,
        targets=cleaned,
        order=order,
    )


def rules_from_mapping(mapping: Mapping[str, object], *, base_dir: str = "") -> List[AliasRule]:
    """Build rules from a ``pattern -> target(s)`` mapping in declaration order."""
    rules: List[AliasRule] = []
    for order, (pattern, targets) in enumerate(mapping.items()):
        if not isinstance(targets, (str, list, tuple)):
            continue
        if base_dir:
            if isinstance(targets, str):
                targets = [targets]
            targets = [_join(base_dir, target) for target in targets if isinstance(target, str)]
        rule = build_alias_rule(str(pattern), targets, order)  # type: ignore[arg-type]
        if rule is not None:
            rules.append(rule)
    return rules


def matching_rules(rules: Iterable[AliasRule], specifier: str) -> List[Tuple[AliasRule, str]]:
    """Return ``(rule, capture)`` pairs, most specific first, then declaration order."""
    matches: List[Tuple[AliasRule, str]] = []
    for rule in rules:
        capture = rule.match(specifier)
        if capture is not None:
            matches.append((rule, capture))
    matches.sort(key=lambda item: (-item[0].specificity, item[0].order))
    return matches


def is_alias_specifier(rules: Iterable[AliasRule], specifier: str) -> bool:
    if not specifier or specifier.startswith("."):
        return False
    return any(rule.match(specifier) is not None for rule in rules)


def _clean_target(target: str) -> str:
    cleaned = target.strip().replace("\\", "/")
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return cleaned


def _join(base_dir: str, target: str) -> str:
    base = base_dir.strip("/").replace("\\", "/")
    cleaned = _clean_target(target)
    if not base or base == ".":
        return cleaned
    return posixpath.normpath(f"{base}/{cleaned}")


__all__ = [
    "AliasRule",
    "build_alias_rule",
    "is_alias_specifier",
    "matching_rules",
    "rules_from_mapping",
]
