"""Shared pytest fixtures for mili-mcp tests."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from mili_mcp.task_store import TaskStore
from mili_mcp.tasks import TaskController
from mili_mcp.types.tasks import ISOTimestamp


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty project root (no .mili/ yet)."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def clock() -> Callable[[], ISOTimestamp]:
    """Deterministic, strictly increasing timestamps one second apart."""
    counter = itertools.count()

    def _now() -> ISOTimestamp:
        n = next(counter)
        return ISOTimestamp(f"2026-01-01T00:{n // 60:02d}:{n % 60:02d}.000Z")

    return _now


@pytest.fixture
def store(project: Path) -> TaskStore:
    return TaskStore(project)


@pytest.fixture
def controller(store: TaskStore, clock: Callable[[], ISOTimestamp]) -> TaskController:
    return TaskController(store, clock=clock)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
