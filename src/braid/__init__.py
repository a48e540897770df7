"""Braid: dependency-ordered work-item sequencer."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("braid")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from braid.errors import (
    CycleError,
    DeadlockError,
    DuplicateItemError,
    NotReadyError,
    SequencerError,
    TransitionNotAllowedError,
    UnknownReferenceError,
)
from braid.models import BlockingEdge, WorkItem
from braid.sequencer import Sequencer

__all__ = [
    "BlockingEdge",
    "CycleError",
    "DeadlockError",
    "DuplicateItemError",
    "NotReadyError",
    "Sequencer",
    "SequencerError",
    "TransitionNotAllowedError",
    "UnknownReferenceError",
    "WorkItem",
    "__version__",
]
