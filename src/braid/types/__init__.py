# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from models.py, graph.py, or any other braid module. This prevents circular imports.
"""Typed dict contracts for braid inputs, reports, and CLI output."""

from __future__ import annotations

from braid.types.core import BraidConfig, ISOTimestamp, ItemRecord, PlanFile, WorkItemDict, WorkItemView
from braid.types.planning import (
    CriticalPathNode,
    DeadlockEntry,
    EventRecord,
    RunReport,
    RunStatus,
)

__all__ = [
    "BraidConfig",
    "CriticalPathNode",
    "DeadlockEntry",
    "EventRecord",
    "ISOTimestamp",
    "ItemRecord",
    "PlanFile",
    "RunReport",
    "RunStatus",
    "WorkItemDict",
    "WorkItemView",
]
