from __future__ import annotations

import itertools
from pathlib import Path
from typing import Callable

import pytest

from featuremap.orchestrator import Orchestrator
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def ticking_clock() -> Callable[[], str]:
    """A clock returning a new, strictly increasing timestamp per call."""
    counter = itertools.count(1)
    return lambda: f"2024-01-01T00:00:{next(counter):02d}Z"


@pytest.fixture
def orchestrator(ticking_clock: Callable[[], str]) -> Orchestrator:
    return Orchestrator(clock=ticking_clock)
