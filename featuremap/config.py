"""Configuration loading for featuremap (``.featuremap/config.yaml``)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

import json5
import yaml

from .analysis.aliases import AliasRule, rules_from_mapping
from .analysis.clusters import DEFAULT_SOURCE_ROOTS
from .analysis.matching import DEFAULT_MATCH_THRESHOLD
from .errors import ConfigError
from .logging import get_logger
from .records.versions import check_version
from .stores.layout import FeaturemapLayout

logger = get_logger("config")


@dataclass
class ProjectConfig:
    name: Optional[str] = None
    root: str = "."


@dataclass
class ScanConfig:
    """File selection and import resolution settings."""

    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    source_roots: List[str] = field(default_factory=lambda: list(DEFAULT_SOURCE_ROOTS))
    aliases: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class MatchingConfig:
    threshold: float = DEFAULT_MATCH_THRESHOLD


@dataclass
class FeaturemapConfig:
    """Represents the settings defined in ``.featuremap/config.yaml``."""

    root: Path
    version: int = 1
    project: ProjectConfig = field(default_factory=ProjectConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)

    @property
    def scan_root(self) -> Path:
        return (self.root / self.project.root).resolve()


def load_config(root: Path) -> FeaturemapConfig:
    """Load configuration for the project at ``root``; a missing file yields defaults."""
    root = root.expanduser().resolve()
    config_file = FeaturemapLayout(root).config_path
    if not config_file.exists():
        return FeaturemapConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError("config.yaml must contain a mapping at the root")

    check = check_version("config", data.get("version"))
    if not check.valid:
        raise ConfigError(f"config.yaml: {check.message}")

    project_data = _as_dict(data.get("project"), "project")
    project = ProjectConfig(
        name=_as_str(project_data.get("name")),
        root=_as_str(project_data.get("root")) or ".",
    )

    scan_data = _as_dict(data.get("scan"), "scan")
    scan = ScanConfig(
        include=_as_str_list(scan_data.get("include"), "scan.include"),
        exclude=_as_str_list(scan_data.get("exclude"), "scan.exclude"),
        source_roots=_as_str_list(scan_data.get("source_roots"), "scan.source_roots")
        or list(DEFAULT_SOURCE_ROOTS),
        aliases=_as_aliases(scan_data.get("aliases")),
    )

    matching_data = _as_dict(data.get("matching"), "matching")
    threshold = matching_data.get("threshold", DEFAULT_MATCH_THRESHOLD)
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise ConfigError("matching.threshold must be a number")
    if not 0.0 <= float(threshold) <= 1.0:
        raise ConfigError(f"matching.threshold must be within [0, 1]; got {threshold}")

    return FeaturemapConfig(
        root=root,
        version=check.file_version or 1,
        project=project,
        scan=scan,
        matching=MatchingConfig(threshold=float(threshold)),
    )


def load_alias_rules(config: FeaturemapConfig) -> List[AliasRule]:
    """Alias rules from config, followed by ``tsconfig.json`` path mappings.

    ``extends`` chains are followed; a pattern redefined closer to the root
    tsconfig replaces the inherited one.
    """
    rules = rules_from_mapping(config.scan.aliases)
    offset = len(rules)
    inherited = _tsconfig_rules(config.scan_root / "tsconfig.json", config.scan_root, set())
    for index, rule in enumerate(inherited):
        rules.append(_reorder(rule, offset + index))
    return rules


def _reorder(rule: AliasRule, order: int) -> AliasRule:
    return AliasRule(
        pattern=rule.pattern,
        prefix=rule.prefix,
        suffix=rule.suffix,
        has_star=rule.has_star,
        targets=rule.targets,
        order=order,
    )


def _override(base: List[AliasRule], own: List[AliasRule]) -> List[AliasRule]:
    patterns = {rule.pattern for rule in own}
    return own + [rule for rule in base if rule.pattern not in patterns]


def _tsconfig_rules(path: Path, scan_root: Path, seen: Set[Path]) -> List[AliasRule]:
    path = path.resolve()
    if path in seen or not path.is_file():
        return []
    seen.add(path)
    data = _read_tsconfig(path)
    if data is None:
        return []

    extends = data.get("extends")
    parents = [extends] if isinstance(extends, str) else extends if isinstance(extends, list) else []
    inherited: List[AliasRule] = []
    for value in parents:
        parent = _extends_path(value, path.parent) if isinstance(value, str) else None
        if parent is not None:
            inherited = _override(inherited, _tsconfig_rules(parent, scan_root, seen))

    options = data.get("compilerOptions")
    if not isinstance(options, dict) or not isinstance(options.get("paths"), dict):
        return inherited
    base_url = _as_str(options.get("baseUrl")) or "."
    base_dir = Path(os.path.relpath(path.parent / base_url, scan_root)).as_posix()
    return _override(inherited, rules_from_mapping(options["paths"], base_dir=base_dir))


def _extends_path(value: str, from_dir: Path) -> Optional[Path]:
    value = value.strip()
    if not value:
        return None
    candidate = from_dir / value
    if candidate.suffix != ".json":
        candidate = candidate.with_name(candidate.name + ".json")
    return candidate if candidate.is_file() else None


def _read_tsconfig(path: Path) -> Optional[Dict[str, Any]]:
    try:
        data = json5.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Invalid tsconfig at %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Invalid tsconfig at %s: expected an object", path)
        return None
    return data


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any, name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping")
    return value


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_str_list(value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    raise ConfigError(f"{name} must be a list of strings")


def _as_aliases(value: Any) -> Dict[str, List[str]]:
    mapping = _as_dict(value, "scan.aliases")
    return {str(pattern): _as_str_list(targets, f"scan.aliases.{pattern}") for pattern, targets in mapping.items()}


__all__ = [
    "ConfigError",
    "FeaturemapConfig",
    "MatchingConfig",
    "ProjectConfig",
    "ScanConfig",
    "load_alias_rules",
    "load_config",
]
