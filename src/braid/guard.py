"""RetryGuard: per-item retry bound and run-level deadlock detection."""

from __future__ import annotations

import logging
from collections import deque

from braid.errors import DeadlockError
from braid.graph import GraphStore
from braid.models import BLOCKED, DONE, FAILED, PENDING, ItemState, WorkItem
from braid.readiness import ReadinessEvaluator
from braid.types.planning import DeadlockEntry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


class RetryGuard:
    """Decides between retry and terminal failure, and spots stuck runs.

    ``max_attempts`` counts starts, not failures: an item that has been
    started ``max_attempts`` times and fails again is marked failed.
    """

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
            msg = f"max_attempts must be a positive integer, got {max_attempts!r}"
            raise ValueError(msg)
        self.max_attempts = max_attempts

    def on_failure(self, item: WorkItem) -> ItemState:
        """Move a just-failed item to blocked (retry later) or failed (terminal)."""
        if item.attempts < self.max_attempts:
            item.state = BLOCKED
            logger.info(
                "Item %s blocked for retry (attempt %d/%d): %s",
                item.id,
                item.attempts,
                self.max_attempts,
                item.last_error,
            )
        else:
            item.state = FAILED
            logger.warning(
                "Item %s failed after %d attempt(s): %s",
                item.id,
                item.attempts,
                item.last_error,
            )
        return item.state

    def find_deadlock(self, store: GraphStore) -> list[DeadlockEntry]:
        """Report pending/blocked items that can never become ready.

        Only meaningful when nothing is ready or retryable; returns an empty
        list otherwise. An item is stuck when some blocker, direct or
        transitive, has failed. Items waiting only on in-progress work are
        not stuck.
        """
        evaluator = ReadinessEvaluator(store)
        if evaluator.ready_items() or evaluator.retryable_items():
            return []

        entries: list[DeadlockEntry] = []
        for item in store.items():
            if item.state not in (PENDING, BLOCKED):
                continue
            failed = _failed_ancestors(store, item.id)
            if failed:
                entries.append(
                    DeadlockEntry(
                        id=item.id,
                        state=item.state,
                        unmet_blockers=evaluator.unmet_blockers(item.id),
                        failed_blockers=failed,
                    )
                )
        return entries

    def check_deadlock(self, store: GraphStore) -> None:
        """Raise ``DeadlockError`` listing every stuck item, if any."""
        entries = self.find_deadlock(store)
        if entries:
            logger.error("Deadlock detected: %s", ", ".join(e["id"] for e in entries))
            raise DeadlockError(entries)


def _failed_ancestors(store: GraphStore, item_id: str) -> list[str]:
    """BFS back through blockers that are not done, collecting failed ones."""
    failed: set[str] = set()
    visited: set[str] = set()
    queue = deque(store.blockers_of(item_id))
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        state = store.get_item(current).state
        if state == FAILED:
            failed.add(current)
        elif state != DONE:
            queue.extend(store.blockers_of(current))
    return sorted(failed)
