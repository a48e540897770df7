"""Foundational TypedDicts for inputs, config, and WorkItem.to_dict()."""

from __future__ import annotations

from typing import NewType, NotRequired, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


# ItemRecord uses "blockedBy" as its canonical key; "blocked_by" is accepted by
# the loader as an alias but is not part of the contract.
class ItemRecord(TypedDict):
    """One input record: an item and the ids that block it."""

    id: str
    blockedBy: list[str]
    title: NotRequired[str]


class PlanFile(TypedDict):
    """Parsed plan file returned by ``load_plan()``."""

    records: list[ItemRecord]
    max_attempts: int | None


class BraidConfig(TypedDict, total=False):
    """Shape of braid.json."""

    max_attempts: int
    max_workers: int
    timeout: float | None
    log_dir: str | None


class WorkItemDict(TypedDict):
    id: str
    title: str
    state: str
    attempts: int
    last_error: str | None


class WorkItemView(WorkItemDict):
    """WorkItemDict plus graph context, returned by ``Sequencer.snapshot()``."""

    blocked_by: list[str]
    blocks: list[str]
    is_ready: bool
