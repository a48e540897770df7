"""Domain objects: work items, blocking edges, and lifecycle states."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from braid.types.core import WorkItemDict

ItemState = Literal["pending", "in_progress", "done", "blocked", "failed"]

PENDING: ItemState = "pending"
IN_PROGRESS: ItemState = "in_progress"
DONE: ItemState = "done"
BLOCKED: ItemState = "blocked"
FAILED: ItemState = "failed"

VALID_STATES: frozenset[str] = frozenset({PENDING, IN_PROGRESS, DONE, BLOCKED, FAILED})
TERMINAL_STATES: frozenset[str] = frozenset({DONE, FAILED})
UNTERMINATED_STATES: frozenset[str] = frozenset({PENDING, IN_PROGRESS, BLOCKED})
# last_error is only meaningful while the item sits in one of these
ERROR_STATES: frozenset[str] = frozenset({BLOCKED, FAILED})


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class WorkItem:
    id: str
    title: str = ""
    state: ItemState = PENDING
    attempts: int = 0
    last_error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def to_dict(self) -> WorkItemDict:
        return {
            "id": self.id,
            "title": self.title,
            "state": self.state,
            "attempts": self.attempts,
            "last_error": self.last_error,
        }


@dataclass(frozen=True)
class BlockingEdge:
    """``blocker`` must reach done before ``blocked`` may start."""

    blocker: str
    blocked: str
