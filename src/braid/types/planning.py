"""TypedDicts for graph.py, guard.py, lifecycle.py, and sequencer.py return types."""

from __future__ import annotations

from typing import Literal, TypeAlias, TypedDict

from braid.types.core import ISOTimestamp, WorkItemDict

# ---------------------------------------------------------------------------
# graph.py types
# ---------------------------------------------------------------------------


class CriticalPathNode(TypedDict):
    """Single node in the chain returned by ``GraphStore.critical_path()``."""

    id: str
    title: str
    state: str


# ---------------------------------------------------------------------------
# guard.py types
# ---------------------------------------------------------------------------


class DeadlockEntry(TypedDict):
    """One stuck item reported by ``RetryGuard.find_deadlock()``.

    ``unmet_blockers`` are the direct blockers that are not done;
    ``failed_blockers`` are the failed items (direct or transitive) that make
    the item permanently unready.
    """

    id: str
    state: str
    unmet_blockers: list[str]
    failed_blockers: list[str]


# ---------------------------------------------------------------------------
# lifecycle.py types
# ---------------------------------------------------------------------------


class EventRecord(TypedDict):
    """One lifecycle transition, returned by ``LifecycleTracker.get_events()``."""

    item_id: str
    event_type: str
    old_state: str
    new_state: str
    attempt: int
    comment: str
    created_at: ISOTimestamp


# ---------------------------------------------------------------------------
# sequencer.py types
# ---------------------------------------------------------------------------

RunStatus: TypeAlias = Literal["completed", "failed", "deadlocked"]


class RunReport(TypedDict):
    """Terminal report returned by ``Sequencer.run()``."""

    status: RunStatus
    completed: list[str]
    failed: list[WorkItemDict]
    deadlocked: list[DeadlockEntry]
    events: list[EventRecord]
