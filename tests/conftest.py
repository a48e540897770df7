"""Shared pytest fixtures for braid tests."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from braid.executors import ExecutionResult
from braid.models import WorkItem
from braid.sequencer import Sequencer


@pytest.fixture
def make_seq() -> Callable[..., Sequencer]:
    """Build a Sequencer from a {id: [blocker, ...]} mapping."""

    def _make(graph: dict[str, list[str]], *, max_attempts: int = 3) -> Sequencer:
        records = [{"id": item_id, "blockedBy": blockers} for item_id, blockers in graph.items()]
        return Sequencer.from_records(records, max_attempts=max_attempts)

    return _make


@pytest.fixture
def chain_seq(make_seq: Callable[..., Sequencer]) -> Sequencer:
    """A -> B -> C (A blocks B, B blocks C) plus an independent D."""
    return make_seq({"A": [], "B": ["A"], "C": ["B"], "D": []})


@pytest.fixture
def write_plan(tmp_path: Path) -> Callable[[Any], Path]:
    """Write a JSON plan file into tmp_path and return its path."""

    def _write(data: Any, name: str = "plan.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data))
        return path

    return _write


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _reset_braid_logger() -> Generator[None, None, None]:
    """Drop any file handlers tests attached to the braid logger."""
    yield
    logger = logging.getLogger("braid")
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


class ScriptedExecutor:
    """Executor that fails each item a scripted number of times, then succeeds.

    ``failures`` maps item id to how many attempts fail; ``-1`` fails forever.
    Records the order items were executed in.
    """

    def __init__(self, failures: dict[str, int] | None = None) -> None:
        self.failures = failures or {}
        self.calls: list[tuple[str, int]] = []

    def execute(self, item: WorkItem) -> ExecutionResult:
        self.calls.append((item.id, item.attempts))
        remaining = self.failures.get(item.id, 0)
        if remaining == -1 or item.attempts <= remaining:
            return ExecutionResult.failure(f"{item.id} broke on attempt {item.attempts}")
        return ExecutionResult.success()


@pytest.fixture
def scripted() -> Callable[..., ScriptedExecutor]:
    return ScriptedExecutor
