"""Sequencer: facade over the store, readiness, guard and lifecycle tracker.

Typical manual use::

    seq = Sequencer.from_records([{"id": "A", "blockedBy": []}, {"id": "B", "blockedBy": ["A"]}])
    for item in seq.ready_items():
        seq.start(item.id)
        ...  # do the work elsewhere
        seq.complete(item.id)

``run()`` drives the same loop against an ``Executor``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from braid.executors import ExecutionResult, Executor
from braid.graph import GraphStore
from braid.guard import DEFAULT_MAX_ATTEMPTS, RetryGuard
from braid.lifecycle import LifecycleTracker
from braid.loader import parse_records
from braid.models import DONE, FAILED, WorkItem
from braid.readiness import ReadinessEvaluator
from braid.types.core import ItemRecord, WorkItemView
from braid.types.planning import DeadlockEntry, EventRecord, RunReport, RunStatus

logger = logging.getLogger(__name__)


class Sequencer:
    """One sequencing run over one graph. Not reusable across runs."""

    def __init__(self, store: GraphStore, *, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        self.store = store
        self.readiness = ReadinessEvaluator(store)
        self.guard = RetryGuard(max_attempts)
        self.tracker = LifecycleTracker(store, self.guard)

    @classmethod
    def from_records(
        cls,
        records: Iterable[ItemRecord],
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> Sequencer:
        items, edges = parse_records(records)
        return cls(GraphStore.load(items, edges), max_attempts=max_attempts)

    # -- Queries -------------------------------------------------------------

    def ready_items(self) -> list[WorkItem]:
        return self.readiness.ready_items()

    def retryable_items(self) -> list[WorkItem]:
        return self.readiness.retryable_items()

    def get_item(self, item_id: str) -> WorkItem:
        return self.store.get_item(item_id)

    def is_finished(self) -> bool:
        """True once every item is done or failed."""
        return all(item.is_terminal for item in self.store.items())

    def find_deadlock(self) -> list[DeadlockEntry]:
        return self.guard.find_deadlock(self.store)

    def check_deadlock(self) -> None:
        self.guard.check_deadlock(self.store)

    def get_events(self, item_id: str | None = None) -> list[EventRecord]:
        return self.tracker.get_events(item_id)

    def snapshot(self) -> list[WorkItemView]:
        """Every item with its blockers, dependents and readiness, ascending id."""
        views: list[WorkItemView] = []
        for item in self.store.items():
            d = item.to_dict()
            views.append(
                WorkItemView(
                    id=d["id"],
                    title=d["title"],
                    state=d["state"],
                    attempts=d["attempts"],
                    last_error=d["last_error"],
                    blocked_by=sorted(self.store.blockers_of(item.id)),
                    blocks=sorted(self.store.dependents_of(item.id)),
                    is_ready=self.readiness.is_ready(item.id),
                )
            )
        return views

    # -- Transitions ---------------------------------------------------------

    def start(self, item_id: str) -> WorkItem:
        return self.tracker.start(item_id)

    def complete(self, item_id: str) -> WorkItem:
        return self.tracker.complete(item_id)

    def fail(self, item_id: str, reason: str) -> WorkItem:
        return self.tracker.fail(item_id, reason)

    # -- Driver loop ---------------------------------------------------------

    def run(self, executor: Executor, *, max_workers: int = 1) -> RunReport:
        """Dispatch ready and retryable items until nothing more can start.

        Items are started in the calling thread and executed on a pool of
        ``max_workers`` threads. Results are reported back as soon as each
        one finishes, so dependents start without waiting for the rest of
        their wave. Stops when no item is dispatchable and none is in flight.
        """
        if max_workers < 1:
            msg = f"max_workers must be at least 1, got {max_workers}"
            raise ValueError(msg)

        logger.info("Run started: %d items, max_workers=%d", len(self.store), max_workers)
        in_flight: dict[Future[ExecutionResult], WorkItem] = {}
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="braid") as pool:
            while True:
                free = max_workers - len(in_flight)
                if free > 0:
                    batch = sorted(self.ready_items() + self.retryable_items(), key=lambda i: i.id)
                    for item in batch[:free]:
                        self.start(item.id)
                        in_flight[pool.submit(_dispatch, executor, item)] = item

                if not in_flight:
                    break

                finished, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in sorted(finished, key=lambda f: in_flight[f].id):
                    item = in_flight.pop(future)
                    result = future.result()
                    if result.ok:
                        self.complete(item.id)
                    else:
                        self.fail(item.id, result.reason)

        return self._build_report()

    def _build_report(self) -> RunReport:
        items = self.store.items()
        deadlocked = self.find_deadlock()
        failed = [item.to_dict() for item in items if item.state == FAILED]
        status: RunStatus
        if deadlocked:
            status = "deadlocked"
        elif failed:
            status = "failed"
        else:
            status = "completed"
        report = RunReport(
            status=status,
            completed=[item.id for item in items if item.state == DONE],
            failed=failed,
            deadlocked=deadlocked,
            events=self.get_events(),
        )
        logger.info(
            "Run finished: %s (%d done, %d failed, %d stuck)",
            status,
            len(report["completed"]),
            len(failed),
            len(deadlocked),
        )
        return report


def _dispatch(executor: Executor, item: WorkItem) -> ExecutionResult:
    """Run one item, turning executor exceptions into a failed result."""
    started = time.monotonic()
    try:
        result = executor.execute(item)
    except Exception as exc:
        logger.exception("Executor raised for %s", item.id, extra={"item": item.id})
        result = ExecutionResult.failure(str(exc) or type(exc).__name__)
    duration_ms = round((time.monotonic() - started) * 1000, 1)
    logger.info(
        "Executed %s: %s",
        item.id,
        "ok" if result.ok else result.reason,
        extra={"item": item.id, "attempt": item.attempts, "duration_ms": duration_ms},
    )
    return result
