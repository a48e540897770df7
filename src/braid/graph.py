"""GraphStore: the authoritative set of work items and blocking edges.

The store is built once per run by ``GraphStore.load()`` and owns the
``WorkItem`` objects for the lifetime of that run. Structural queries are
pure. State changes go through ``LifecycleTracker``; nothing else mutates
items.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable

from braid.errors import CycleError, DuplicateItemError, UnknownReferenceError
from braid.models import DONE, BlockingEdge, WorkItem
from braid.types.planning import CriticalPathNode

logger = logging.getLogger(__name__)


class GraphStore:
    """Work items keyed by id plus forward and reverse blocking adjacency."""

    def __init__(
        self,
        items: dict[str, WorkItem],
        blockers: dict[str, set[str]],
        dependents: dict[str, set[str]],
        order: list[str],
    ) -> None:
        self._items = items
        self._blockers = blockers
        self._dependents = dependents
        self._order = order

    @classmethod
    def load(cls, items: Iterable[WorkItem], edges: Iterable[BlockingEdge]) -> GraphStore:
        """Build a store, rejecting duplicate ids, dangling edges, and cycles.

        Raises:
            DuplicateItemError: Two items share an id.
            UnknownReferenceError: An edge names an id not present in ``items``.
            CycleError: The edges do not form a DAG (a self-edge counts).
        """
        by_id: dict[str, WorkItem] = {}
        for item in items:
            if item.id in by_id:
                raise DuplicateItemError(item.id)
            by_id[item.id] = item

        blockers: dict[str, set[str]] = {item_id: set() for item_id in by_id}
        dependents: dict[str, set[str]] = {item_id: set() for item_id in by_id}
        edge_count = 0
        for edge in edges:
            if edge.blocked not in by_id:
                raise UnknownReferenceError(edge.blocked, referenced_by=edge.blocker)
            if edge.blocker not in by_id:
                raise UnknownReferenceError(edge.blocker, referenced_by=edge.blocked)
            if edge.blocker not in blockers[edge.blocked]:
                edge_count += 1
            blockers[edge.blocked].add(edge.blocker)
            dependents[edge.blocker].add(edge.blocked)

        order = _topological_order(by_id, blockers, dependents)
        logger.debug("Loaded graph: %d items, %d edges", len(by_id), edge_count)
        return cls(by_id, blockers, dependents, order)

    # -- Lookup --------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def get_item(self, item_id: str) -> WorkItem:
        """Return the item with ``item_id``. Raises KeyError if not found."""
        try:
            return self._items[item_id]
        except KeyError:
            msg = f"Unknown item: {item_id}"
            raise KeyError(msg) from None

    def items(self) -> list[WorkItem]:
        """All items, ascending id."""
        return [self._items[item_id] for item_id in sorted(self._items)]

    def edges(self) -> list[BlockingEdge]:
        return sorted(
            (BlockingEdge(blocker=b, blocked=item_id) for item_id, bs in self._blockers.items() for b in bs),
            key=lambda e: (e.blocker, e.blocked),
        )

    # -- Structural queries --------------------------------------------------

    def blockers_of(self, item_id: str) -> frozenset[str]:
        """Ids that must be done before ``item_id`` may start."""
        self.get_item(item_id)
        return frozenset(self._blockers[item_id])

    def dependents_of(self, item_id: str) -> frozenset[str]:
        """Ids that cannot start until ``item_id`` is done."""
        self.get_item(item_id)
        return frozenset(self._dependents[item_id])

    def topological_order(self) -> list[str]:
        """Every id, blockers before dependents; ties broken by ascending id."""
        return list(self._order)

    def execution_waves(self) -> list[list[str]]:
        """Group ids by the length of their longest blocker chain.

        Every item in wave ``n`` depends only on items in waves ``< n``, so a
        wave can be dispatched in parallel once the previous waves are done.
        """
        depth: dict[str, int] = {}
        for item_id in self._order:
            depth[item_id] = max((depth[b] + 1 for b in self._blockers[item_id]), default=0)

        waves: list[list[str]] = [[] for _ in range(max(depth.values(), default=-1) + 1)]
        for item_id in sorted(depth):
            waves[depth[item_id]].append(item_id)
        return waves

    def critical_path(self) -> list[CriticalPathNode]:
        """Longest blocker chain among items that are not done.

        Longest-path DP over the topological order, restricted to non-done
        items. Returns the chain from the root blocker to the final blocked
        item, or an empty list when no chain has two or more items.
        """
        open_ids = [item_id for item_id in self._order if self._items[item_id].state != DONE]
        if not open_ids:
            return []
        open_set = set(open_ids)

        dist: dict[str, int] = dict.fromkeys(open_ids, 0)
        pred: dict[str, str | None] = dict.fromkeys(open_ids, None)
        for node in open_ids:
            for neighbor in sorted(self._dependents[node] & open_set):
                if dist[node] + 1 > dist[neighbor]:
                    dist[neighbor] = dist[node] + 1
                    pred[neighbor] = node

        # First node in topological order wins ties
        end_node = max(open_ids, key=lambda n: dist[n])
        if dist[end_node] == 0:
            return []

        path: list[str] = []
        current: str | None = end_node
        while current is not None:
            path.append(current)
            current = pred[current]
        path.reverse()

        return [
            CriticalPathNode(id=nid, title=self._items[nid].title, state=self._items[nid].state) for nid in path
        ]


def _topological_order(
    items: dict[str, WorkItem],
    blockers: dict[str, set[str]],
    dependents: dict[str, set[str]],
) -> list[str]:
    """Kahn's algorithm with a min-heap so the order is deterministic.

    Any item left unvisited after draining every in-degree-0 item sits on or
    behind a cycle.
    """
    in_degree = {item_id: len(bs) for item_id, bs in blockers.items()}
    heap = [item_id for item_id, deg in in_degree.items() if deg == 0]
    heapq.heapify(heap)

    order: list[str] = []
    while heap:
        node = heapq.heappop(heap)
        order.append(node)
        for neighbor in dependents[node]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                heapq.heappush(heap, neighbor)

    if len(order) < len(items):
        visited = set(order)
        remaining = sorted(item_id for item_id in items if item_id not in visited)
        raise CycleError(remaining, _find_cycle(remaining, blockers))
    return order


def _find_cycle(remaining: list[str], blockers: dict[str, set[str]]) -> list[str]:
    """Extract one concrete cycle from the items Kahn's algorithm left behind.

    Every leftover item has at least one leftover blocker, so walking blockers
    from any leftover item must revisit a node. The result is returned in
    "blocks" direction: each id blocks the next, first id repeated at the end.
    """
    remaining_set = set(remaining)
    path: list[str] = []
    seen: dict[str, int] = {}
    node = remaining[0]
    while node not in seen:
        seen[node] = len(path)
        path.append(node)
        node = min(blockers[node] & remaining_set)
    cycle = path[seen[node] :] + [node]
    cycle.reverse()
    return cycle
