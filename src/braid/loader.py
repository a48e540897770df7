"""Input parsing: ``{id, blockedBy}`` records and JSON plan files.

Pure functions, no click or executor dependencies. Errors are ``ValueError``
with the offending record index so the CLI can show them verbatim.
"""

from __future__ import annotations

import json
import logging
import unicodedata
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from braid.models import BlockingEdge, WorkItem
from braid.types.core import ItemRecord, PlanFile

logger = logging.getLogger(__name__)

_MAX_ID_LENGTH = 128


def sanitize_id(value: Any) -> tuple[str, str | None]:
    """Validate and clean an item id.

    Returns (cleaned_id, None) on success or ("", error_message) on failure.
    Strips whitespace, then checks: non-empty, max length, no control/format chars.
    """
    if not isinstance(value, str):
        return ("", f"id must be a string, got {type(value).__name__}")
    # Reject "\nbad" outright rather than letting strip() absorb the newline.
    for ch in value:
        if unicodedata.category(ch).startswith("C"):
            return ("", f"id must not contain control characters (found U+{ord(ch):04X})")
    cleaned = value.strip()
    if not cleaned:
        return ("", "id must not be empty")
    if len(cleaned) > _MAX_ID_LENGTH:
        return ("", f"id must be at most {_MAX_ID_LENGTH} characters")
    return (cleaned, None)


def parse_records(records: Iterable[ItemRecord | dict[str, Any]]) -> tuple[list[WorkItem], list[BlockingEdge]]:
    """Turn input records into items and edges.

    Dangling references, duplicate ids and cycles are left for
    ``GraphStore.load()`` to report; this only checks record shape.
    """
    items: list[WorkItem] = []
    edges: list[BlockingEdge] = []
    for i, raw in enumerate(records):
        if not isinstance(raw, dict):
            msg = f"records[{i}] must be an object, got {type(raw).__name__}"
            raise ValueError(msg)

        item_id, err = sanitize_id(raw.get("id"))
        if err:
            msg = f"records[{i}]: {err}"
            raise ValueError(msg)

        blocked_by = raw.get("blockedBy", raw.get("blocked_by", []))
        if blocked_by is None:
            blocked_by = []
        if not isinstance(blocked_by, list):
            msg = f"records[{i}] ({item_id}): blockedBy must be a list, got {type(blocked_by).__name__}"
            raise ValueError(msg)

        title = raw.get("title", "")
        if not isinstance(title, str):
            msg = f"records[{i}] ({item_id}): title must be a string, got {type(title).__name__}"
            raise ValueError(msg)

        items.append(WorkItem(id=item_id, title=title))
        for blocker in blocked_by:
            blocker_id, err = sanitize_id(blocker)
            if err:
                msg = f"records[{i}] ({item_id}): blocker {err}"
                raise ValueError(msg)
            edges.append(BlockingEdge(blocker=blocker_id, blocked=item_id))
    return items, edges


def load_plan(path: Path) -> PlanFile:
    """Read a plan file.

    Accepts either a bare JSON list of records or an object with an
    ``items`` list and an optional ``max_attempts``.

    Raises:
        OSError: The file cannot be read.
        ValueError: The file is not valid JSON or has the wrong shape.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"{path}: invalid JSON: {exc}"
        raise ValueError(msg) from exc

    max_attempts: int | None = None
    if isinstance(data, dict):
        records = data.get("items")
        raw_attempts = data.get("max_attempts")
        if raw_attempts is not None:
            if isinstance(raw_attempts, bool) or not isinstance(raw_attempts, int) or raw_attempts < 1:
                msg = f"{path}: max_attempts must be a positive integer, got {raw_attempts!r}"
                raise ValueError(msg)
            max_attempts = raw_attempts
    else:
        records = data

    if not isinstance(records, list):
        msg = f"{path}: expected a list of records or an object with an 'items' list"
        raise ValueError(msg)

    logger.debug("Read %d records from %s", len(records), path)
    return PlanFile(records=records, max_attempts=max_attempts)
