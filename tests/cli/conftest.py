"""Fixtures for CLI interface tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner


@pytest.fixture
def cli_in_project(tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> tuple[CliRunner, Path]:
    """Run CLI commands from an isolated tmp_path; return (runner, project_root)."""
    monkeypatch.chdir(tmp_path)
    return cli_runner, tmp_path


@pytest.fixture
def ticket_plan() -> list[dict]:
    """Schema blocks API and UI; API and UI both block Release."""
    return [
        {"id": "SCHEMA", "title": "Database schema", "blockedBy": []},
        {"id": "API", "title": "REST endpoints", "blockedBy": ["SCHEMA"]},
        {"id": "UI", "title": "Frontend", "blockedBy": ["SCHEMA"]},
        {"id": "RELEASE", "title": "Ship it", "blockedBy": ["API", "UI"]},
        {"id": "DOCS", "title": "Docs", "blockedBy": []},
    ]
