"""Tests for featuremap.repo_scanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from featuremap.repo_scanner import RepoScanner, glob_match


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_scan_lists_sorted_relative_paths(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()

    _write(repo_root / "src" / "app.py", "print('hi')\n")
    _write(repo_root / "src" / "api" / "routes.py", "\n")
    _write(repo_root / "README.md", "# Readme\n")
    _write(repo_root / ".venv" / "should_ignore.py", "print('nope')\n")
    _write(repo_root / "node_modules" / "react" / "index.js", "\n")
    _write(repo_root / ".featuremap" / "graph.yaml", "version: 1\n")

    files = RepoScanner().scan(str(repo_root))

    assert files == ["README.md", "src/api/routes.py", "src/app.py"]


def test_scan_rejects_missing_directory(tmp_path: Path) -> None:
    missing = tmp_path / "missing"

    with pytest.raises(FileNotFoundError) as excinfo:
        RepoScanner().scan(str(missing))

    assert str(missing) in str(excinfo.value)


def test_scan_rejects_files(tmp_path: Path) -> None:
    target = tmp_path / "file.txt"
    target.write_text("x", encoding="utf-8")

    with pytest.raises(NotADirectoryError):
        RepoScanner().scan(target)


def test_scan_respects_gitignore(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()

    _write(repo_root / ".gitignore", "generated/\n*.log\n!keep.log\n")
    _write(repo_root / "src" / "main.py", "print('ok')\n")
    _write(repo_root / "generated" / "artifact.ts", "export {}\n")
    _write(repo_root / "notes.log", "ignore me\n")
    _write(repo_root / "keep.log", "keep me\n")

    files = RepoScanner().scan(str(repo_root))

    assert "src/main.py" in files
    assert "generated/artifact.ts" not in files
    assert "notes.log" not in files
    assert "keep.log" in files


def test_include_and_exclude_globs(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    for relative in ("src/app.ts", "src/app.test.ts", "src/deep/x.ts", "scripts/build.ts", "README.md"):
        _write(repo_root / relative, "\n")

    scanner = RepoScanner(include=["src/**"], exclude=["**/*.test.ts"])

    assert scanner.scan(repo_root) == ["src/app.ts", "src/deep/x.ts"]


@pytest.mark.parametrize(
    ("path", "pattern", "expected"),
    [
        ("app.py", "**/*.py", True),
        ("src/app.py", "**/*.py", True),
        ("src/app.py", "src/**", True),
        ("lib/app.py", "src/**", False),
        ("src", "src/**", False),
        ("docs/readme.md", "/docs/*.md", True),
        ("anything", "", False),
    ],
)
def test_glob_match(path: str, pattern: str, expected: bool) -> None:
    assert glob_match(path, pattern) is expected
