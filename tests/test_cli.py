"""CLI parser and command behaviour tests."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from featuremap.cli import _build_parser, main
from tests._fixtures.repo_builder import RepoBuilder

PROJECT = {
    "src/api/routes/users.py": "from .helpers import paginate\n",
    "src/api/routes/helpers.py": "def paginate(items):\n    return items\n",
}


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "scan"])
    assert args.verbose is True
    assert args.command == "scan"
    assert args.path == "."


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["scan", "repo", "--verbose"])
    assert args.verbose is True
    assert args.path == "repo"


def test_cli_parses_save_features_options() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        ["save-features", "batch.yaml", "--path", "repo", "--mode", "replace", "--dry-run", "--source", "manual"]
    )
    assert args.command == "save-features"
    assert args.file == "batch.yaml"
    assert args.path == "repo"
    assert args.mode == "replace"
    assert args.dry_run is True
    assert args.source == "manual"


def test_cli_rejects_unknown_status() -> None:
    parser = _build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["update-feature", "auth", "--status", "paused"])


def test_scan_prints_summary(repo_builder: RepoBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    repo_builder.write(PROJECT)

    main(["scan", str(repo_builder.root)])

    summary = json.loads(capsys.readouterr().out)
    assert summary["clusters"] == ["api-routes"]
    assert summary["written"] == ["api-routes"]
    assert summary["graphWritten"] is True


def test_scan_missing_path_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["scan", str(tmp_path / "missing")])

    assert excinfo.value.code == 1


def test_save_features_from_file(
    repo_builder: RepoBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_builder.write(PROJECT)
    main(["scan", str(repo_builder.root)])
    capsys.readouterr()
    batch = tmp_path / "batch.yaml"
    batch.write_text(
        "mode: merge\n"
        "dryRun: true\n"
        "features:\n"
        "  - id: users\n"
        "    name: Users\n"
        "    description: User listing\n"
        "    clusters: [api-routes]\n",
        encoding="utf-8",
    )

    main(["save-features", str(batch), "--path", str(repo_builder.root)])

    result = json.loads(capsys.readouterr().out)
    assert result["saved"]["created"] == ["users"]
    assert result["meta"]["dryRun"] is True
    assert result["meta"]["mode"] == "merge"
    assert not repo_builder.layout.features_dir.exists()


def test_save_features_reads_stdin_and_reports_rejection(
    repo_builder: RepoBuilder,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    repo_builder.write(PROJECT)
    main(["scan", str(repo_builder.root)])
    capsys.readouterr()
    payload = json.dumps({"features": [{"id": "x", "name": "X", "description": "d", "clusters": ["nope"]}]})
    monkeypatch.setattr("sys.stdin", io.StringIO(payload))

    with pytest.raises(SystemExit) as excinfo:
        main(["save-features", "-", "--path", str(repo_builder.root)])

    assert excinfo.value.code == 1
    captured = capsys.readouterr()
    assert json.loads(captured.out)["errors"] == ['Feature "x" references unknown clusters: nope']
    assert "- Feature \"x\" references unknown clusters: nope" in captured.err


def test_malformed_proposals_exit(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    batch = tmp_path / "batch.yaml"
    batch.write_text("features:\n  - name: missing id\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["save-features", str(batch), "--path", str(tmp_path)])

    assert excinfo.value.code == 1
    assert "features[0].id: is required" in capsys.readouterr().err


def test_update_feature_requires_a_field(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["update-feature", "users", "--path", str(tmp_path)])

    assert excinfo.value.code == 1


def test_update_feature_prints_changes(repo_builder: RepoBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    repo_builder.write(PROJECT)
    root = str(repo_builder.root)
    main(["scan", root])
    batch = repo_builder.root / "batch.json"
    batch.write_text(
        json.dumps([{"id": "users", "name": "Users", "purpose": "List users", "clusters": ["api-routes"]}]),
        encoding="utf-8",
    )
    main(["save-features", str(batch), "--path", root])
    capsys.readouterr()

    main(["update-feature", "users", "--path", root, "--status", "deprecated", "--lock"])

    update = json.loads(capsys.readouterr().out)
    assert update["status"] == "updated"
    assert update["version"] == 2
    assert repo_builder.read_yaml("features/users.yaml")["locks"] == {"status": True}
