"""Tests for featuremap.config."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from featuremap.analysis.matching import DEFAULT_MATCH_THRESHOLD
from featuremap.config import ConfigError, FeaturemapConfig, load_alias_rules, load_config


def _write_config(root: Path, text: str) -> None:
    config_dir = root / ".featuremap"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "config.yaml").write_text(text, encoding="utf-8")


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, FeaturemapConfig)
    assert config.root == tmp_path.resolve()
    assert config.project.name is None
    assert config.scan.include == []
    assert config.scan.exclude == []
    assert config.scan.source_roots == ["src", "lib"]
    assert config.scan.aliases == {}
    assert config.matching.threshold == DEFAULT_MATCH_THRESHOLD
    assert config.scan_root == tmp_path.resolve()


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
version: 1
project:
  name: shop
  root: app
scan:
  include: ["src/**"]
  exclude:
    - "**/*.test.ts"
  source_roots: [source]
  aliases:
    "@app/*": ["src/app/*"]
    "@config": src/config.ts
matching:
  threshold: 0.8
""",
    )

    config = load_config(tmp_path)

    assert config.project.name == "shop"
    assert config.scan_root == (tmp_path / "app").resolve()
    assert config.scan.include == ["src/**"]
    assert config.scan.exclude == ["**/*.test.ts"]
    assert config.scan.source_roots == ["source"]
    assert config.scan.aliases == {"@app/*": ["src/app/*"], "@config": ["src/config.ts"]}
    assert config.matching.threshold == 0.8


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    _write_config(tmp_path, "\n")

    assert load_config(tmp_path).scan.source_roots == ["src", "lib"]


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("- a\n- b\n", "mapping at the root"),
        ("project: {}\n", "Missing version field"),
        ("version: 2\n", "newer than supported"),
        ("version: 1\nscan: [1]\n", "scan must be a mapping"),
        ("version: 1\nmatching:\n  threshold: high\n", "must be a number"),
        ("version: 1\nmatching:\n  threshold: 1.5\n", "within [0, 1]"),
        ("version: 1\nscan:\n  include: 3\n", "scan.include must be a list"),
        ("version: [\n", "Failed to parse"),
    ],
)
def test_load_config_rejects_invalid_files(tmp_path: Path, text: str, message: str) -> None:
    _write_config(tmp_path, text)

    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path)

    assert message in str(excinfo.value)


def test_alias_rules_include_tsconfig_paths_after_config(tmp_path: Path) -> None:
    _write_config(tmp_path, 'version: 1\nscan:\n  aliases:\n    "@app/*": ["src/app/*"]\n')
    (tmp_path / "tsconfig.json").write_text(
        json.dumps({"compilerOptions": {"baseUrl": "web", "paths": {"~/*": ["./src/*"]}}}),
        encoding="utf-8",
    )

    rules = load_alias_rules(load_config(tmp_path))

    assert [(rule.pattern, rule.targets, rule.order) for rule in rules] == [
        ("@app/*", ("src/app/*",), 0),
        ("~/*", ("web/src/*",), 1),
    ]


def test_tsconfig_with_comments_and_trailing_commas_is_read(tmp_path: Path) -> None:
    (tmp_path / "tsconfig.json").write_text(
        "{\n"
        '  "compilerOptions": {\n'
        "    // project aliases\n"
        '    "paths": { "@app/*": ["src/app/*"], },\n'
        "    /* trailing comma below */\n"
        "  },\n"
        "}\n",
        encoding="utf-8",
    )

    rules = load_alias_rules(load_config(tmp_path))

    assert [rule.pattern for rule in rules] == ["@app/*"]
    assert rules[0].targets == ("src/app/*",)


def test_tsconfig_extends_chain_is_followed(tmp_path: Path) -> None:
    (tmp_path / "configs").mkdir()
    (tmp_path / "configs" / "tsconfig.base.json").write_text(
        json.dumps({"compilerOptions": {"paths": {"@lib/*": ["../lib/*"], "@app/*": ["../legacy/*"]}}}),
        encoding="utf-8",
    )
    (tmp_path / "tsconfig.json").write_text(
        json.dumps(
            {
                "extends": "./configs/tsconfig.base",
                "compilerOptions": {"paths": {"@app/*": ["src/app/*"]}},
            }
        ),
        encoding="utf-8",
    )

    rules = load_alias_rules(load_config(tmp_path))

    assert [(rule.pattern, rule.targets, rule.order) for rule in rules] == [
        ("@app/*", ("src/app/*",), 0),
        ("@lib/*", ("lib/*",), 1),
    ]


def test_cyclic_extends_terminates(tmp_path: Path) -> None:
    (tmp_path / "tsconfig.json").write_text(
        '{"extends": "./tsconfig.other.json", "compilerOptions": {"paths": {"~/*": ["src/*"]}}}',
        encoding="utf-8",
    )
    (tmp_path / "tsconfig.other.json").write_text('{"extends": "./tsconfig.json"}', encoding="utf-8")

    assert [rule.pattern for rule in load_alias_rules(load_config(tmp_path))] == ["~/*"]


def test_malformed_tsconfig_is_skipped(tmp_path: Path) -> None:
    (tmp_path / "tsconfig.json").write_text("{ not: [valid", encoding="utf-8")

    assert load_alias_rules(load_config(tmp_path)) == []
