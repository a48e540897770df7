"""Error taxonomy for the sequencer.

Structural errors (cycle, unknown reference, duplicate id, not ready, bad
transition) mean the caller or its input is wrong and are never retried.
``DeadlockError`` ends a run. Item-level execution failures are not
exceptions at all; they go through ``LifecycleTracker.fail()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from braid.types.planning import DeadlockEntry


class SequencerError(ValueError):
    """Base class for every error raised by the sequencing core."""


class CycleError(SequencerError):
    """Raised at load time when the blocking edges do not form a DAG."""

    def __init__(self, remaining: list[str], cycle: list[str]) -> None:
        self.remaining = remaining
        self.cycle = cycle
        path = " -> ".join(cycle)
        super().__init__(
            f"Blocking edges contain a cycle: {path}. "
            f"{len(remaining)} item(s) could not be ordered: {', '.join(remaining)}"
        )


class UnknownReferenceError(SequencerError):
    """Raised at load time when an edge names an item that does not exist."""

    def __init__(self, item_id: str, referenced_by: str) -> None:
        self.item_id = item_id
        self.referenced_by = referenced_by
        super().__init__(f"Unknown item '{item_id}' referenced by '{referenced_by}'")


class DuplicateItemError(SequencerError):
    """Raised at load time when two items share an id."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Duplicate item id: '{item_id}'")


class NotReadyError(SequencerError):
    """Raised when starting an item whose state or blockers forbid it."""

    def __init__(self, item_id: str, state: str, unmet_blockers: list[str]) -> None:
        self.item_id = item_id
        self.state = state
        self.unmet_blockers = unmet_blockers
        if unmet_blockers:
            detail = f"waiting on {', '.join(unmet_blockers)}"
        else:
            detail = f"state is '{state}'"
        super().__init__(f"Cannot start '{item_id}': {detail}")


class TransitionNotAllowedError(SequencerError):
    """Raised when complete/fail is called on an item in the wrong state."""

    def __init__(self, item_id: str, from_state: str, to_state: str) -> None:
        self.item_id = item_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Transition '{from_state}' -> '{to_state}' is not allowed for '{item_id}'")


class DeadlockError(SequencerError):
    """Raised when unterminated items remain but none can ever become ready."""

    def __init__(self, entries: list[DeadlockEntry]) -> None:
        self.entries = entries
        parts = [f"{e['id']} <- {', '.join(e['unmet_blockers'])}" for e in entries]
        super().__init__(f"Deadlock: {len(entries)} item(s) can never start: {'; '.join(parts)}")
