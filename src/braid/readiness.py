"""ReadinessEvaluator: which items may start right now."""

from __future__ import annotations

from braid.graph import GraphStore
from braid.models import BLOCKED, DONE, PENDING, WorkItem


class ReadinessEvaluator:
    """Stateless view over a ``GraphStore``; every call reflects current states."""

    def __init__(self, store: GraphStore) -> None:
        self.store = store

    def unmet_blockers(self, item_id: str) -> list[str]:
        """Blockers of ``item_id`` that are not done, ascending id."""
        return sorted(b for b in self.store.blockers_of(item_id) if self.store.get_item(b).state != DONE)

    def is_ready(self, item_id: str) -> bool:
        item = self.store.get_item(item_id)
        return item.state == PENDING and not self.unmet_blockers(item_id)

    def ready_items(self) -> list[WorkItem]:
        """Pending items whose blockers are all done, ascending id."""
        return [item for item in self.store.items() if item.state == PENDING and not self.unmet_blockers(item.id)]

    def retryable_items(self) -> list[WorkItem]:
        """Blocked items eligible for another attempt, ascending id."""
        return [item for item in self.store.items() if item.state == BLOCKED and not self.unmet_blockers(item.id)]

    def waiting_items(self) -> list[WorkItem]:
        """Pending items held back by at least one blocker that is not done."""
        return [item for item in self.store.items() if item.state == PENDING and self.unmet_blockers(item.id)]
