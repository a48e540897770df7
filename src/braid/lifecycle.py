"""LifecycleTracker: serialized state transitions for work items.

State machine::

    pending -> in_progress -> done
                           -> blocked -> in_progress   (retry)
                           -> failed                   (retries exhausted)

done and failed are terminal. Whether a failure lands in blocked or failed is
decided by the ``RetryGuard``. Every transition is recorded as an event.
"""

from __future__ import annotations

import logging
import threading

from braid.errors import NotReadyError, TransitionNotAllowedError
from braid.graph import GraphStore
from braid.guard import RetryGuard
from braid.models import BLOCKED, DONE, FAILED, IN_PROGRESS, PENDING, WorkItem, _now_iso
from braid.readiness import ReadinessEvaluator
from braid.types.core import ISOTimestamp
from braid.types.planning import EventRecord

logger = logging.getLogger(__name__)


class LifecycleTracker:
    """The only component that mutates ``WorkItem`` state.

    ``start``, ``complete`` and ``fail`` each run under one re-entrant lock so
    that the read-then-write state checks hold when a caller reports results
    from several worker threads.
    """

    def __init__(self, store: GraphStore, guard: RetryGuard) -> None:
        self.store = store
        self.guard = guard
        self.readiness = ReadinessEvaluator(store)
        self._lock = threading.RLock()
        self._events: list[EventRecord] = []

    # -- Events --------------------------------------------------------------

    def _record_event(
        self,
        item: WorkItem,
        event_type: str,
        *,
        old_state: str,
        comment: str = "",
    ) -> None:
        self._events.append(
            EventRecord(
                item_id=item.id,
                event_type=event_type,
                old_state=old_state,
                new_state=item.state,
                attempt=item.attempts,
                comment=comment,
                created_at=ISOTimestamp(_now_iso()),
            )
        )
        logger.info(
            "%s: %s -> %s",
            item.id,
            old_state,
            item.state,
            extra={"item": item.id, "event": event_type, "attempt": item.attempts},
        )

    def get_events(self, item_id: str | None = None) -> list[EventRecord]:
        """Transition history, oldest first, optionally for one item."""
        with self._lock:
            if item_id is None:
                return list(self._events)
            self.store.get_item(item_id)
            return [e for e in self._events if e["item_id"] == item_id]

    # -- Transitions ---------------------------------------------------------

    def start(self, item_id: str) -> WorkItem:
        """Move a ready pending item, or a retryable blocked item, to in_progress.

        Raises:
            KeyError: Unknown id.
            NotReadyError: Wrong state, or some blocker is not done.
        """
        with self._lock:
            item = self.store.get_item(item_id)
            if item.state not in (PENDING, BLOCKED):
                raise NotReadyError(item_id, item.state, [])
            unmet = self.readiness.unmet_blockers(item_id)
            if unmet:
                raise NotReadyError(item_id, item.state, unmet)

            old_state = item.state
            item.state = IN_PROGRESS
            item.attempts += 1
            item.last_error = None
            self._record_event(item, "retried" if old_state == BLOCKED else "started", old_state=old_state)
            return item

    def complete(self, item_id: str) -> WorkItem:
        """Mark an in-progress item done. Its dependents may become ready."""
        with self._lock:
            item = self.store.get_item(item_id)
            if item.state != IN_PROGRESS:
                raise TransitionNotAllowedError(item_id, item.state, DONE)

            item.state = DONE
            self._record_event(item, "completed", old_state=IN_PROGRESS)

            unblocked = [d for d in sorted(self.store.dependents_of(item_id)) if self.readiness.is_ready(d)]
            if unblocked:
                logger.debug("%s unblocked: %s", item_id, ", ".join(unblocked))
            return item

    def fail(self, item_id: str, reason: str) -> WorkItem:
        """Record a failed attempt; the guard chooses blocked or failed."""
        with self._lock:
            item = self.store.get_item(item_id)
            if item.state != IN_PROGRESS:
                raise TransitionNotAllowedError(item_id, item.state, FAILED)

            item.last_error = reason
            new_state = self.guard.on_failure(item)
            event_type = "retry_scheduled" if new_state == BLOCKED else "failed"
            self._record_event(item, event_type, old_state=IN_PROGRESS, comment=reason)
            return item
