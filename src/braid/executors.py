"""Executors: the request/response boundary to whatever does the real work.

The sequencing core never runs work itself. The driver loop hands each
started item to an ``Executor`` and reports the ``ExecutionResult`` back
through ``complete``/``fail``.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from braid.models import WorkItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    ok: bool
    reason: str = ""

    @classmethod
    def success(cls) -> ExecutionResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> ExecutionResult:
        return cls(ok=False, reason=reason or "failed")


class Executor(Protocol):
    """Anything that can carry out one work item and say how it went."""

    def execute(self, item: WorkItem) -> ExecutionResult: ...


class CommandExecutor:
    """Run one external command per item.

    ``template`` is split with ``shlex`` and each token is formatted with
    ``{id}``, ``{title}`` and ``{attempt}``. The command runs without a shell
    and sees ``BRAID_ITEM_ID`` and ``BRAID_ATTEMPT`` in its environment. Exit
    status 0 is success; anything else, a timeout, or a missing binary is a
    failure. Stdout is discarded. Stderr is decoded leniently and its last
    line becomes the failure reason.

    Raises:
        ValueError: The template is empty, malformed, or names an unknown
            placeholder.
    """

    def __init__(self, template: str, *, timeout: float | None = None, cwd: Path | None = None) -> None:
        argv = shlex.split(template)
        if not argv:
            msg = "Command template must not be empty"
            raise ValueError(msg)
        self.template = template
        self.timeout = timeout
        self.cwd = cwd
        self._argv = argv
        # Reject bad templates before any item runs.
        self._format({"id": "", "title": "", "attempt": 0})

    def _format(self, fields: dict[str, object]) -> list[str]:
        try:
            return [token.format(**fields) for token in self._argv]
        except (KeyError, IndexError, AttributeError) as exc:
            msg = f"Unknown placeholder in command template {self.template!r}: {exc}"
            raise ValueError(msg) from exc
        except ValueError as exc:
            msg = f"Malformed command template {self.template!r}: {exc}"
            raise ValueError(msg) from exc

    def build_command(self, item: WorkItem) -> list[str]:
        return self._format({"id": item.id, "title": item.title, "attempt": item.attempts})

    def execute(self, item: WorkItem) -> ExecutionResult:
        cmd = self.build_command(item)
        env = {**os.environ, "BRAID_ITEM_ID": item.id, "BRAID_ATTEMPT": str(item.attempts)}
        logger.debug("Running %s for %s", shlex.join(cmd), item.id)
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                cwd=self.cwd,
                env=env,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return ExecutionResult.failure(f"timed out after {self.timeout}s")
        except FileNotFoundError:
            return ExecutionResult.failure(f"command not found: {cmd[0]}")
        except PermissionError:
            return ExecutionResult.failure(f"permission denied: {cmd[0]}")

        if result.returncode == 0:
            return ExecutionResult.success()
        return ExecutionResult.failure(_last_line(result.stderr) or f"exit code {result.returncode}")


def _last_line(text: str) -> str:
    for line in reversed(text.splitlines()):
        if line.strip():
            return line.strip()
    return ""
