"""Tests for record parsing, id validation, and plan files."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from braid.loader import load_plan, parse_records, sanitize_id
from braid.models import BlockingEdge


class TestSanitizeId:
    def test_valid(self) -> None:
        assert sanitize_id("PROJ-12") == ("PROJ-12", None)

    def test_strips_whitespace(self) -> None:
        assert sanitize_id("  PROJ-12 ") == ("PROJ-12", None)

    @pytest.mark.parametrize(
        ("value", "fragment"),
        [
            (None, "must be a string"),
            (12, "must be a string"),
            ("", "must not be empty"),
            ("   ", "must not be empty"),
            ("bad\nid", "control characters"),
            ("x" * 129, "at most 128"),
        ],
    )
    def test_invalid(self, value: Any, fragment: str) -> None:
        cleaned, err = sanitize_id(value)
        assert cleaned == ""
        assert err is not None
        assert fragment in err


class TestParseRecords:
    def test_items_and_edges(self) -> None:
        items, edges = parse_records(
            [
                {"id": "A", "blockedBy": [], "title": "Schema"},
                {"id": "B", "blockedBy": ["A"]},
            ]
        )
        assert [(i.id, i.title) for i in items] == [("A", "Schema"), ("B", "")]
        assert edges == [BlockingEdge(blocker="A", blocked="B")]

    def test_snake_case_alias(self) -> None:
        _, edges = parse_records([{"id": "A"}, {"id": "B", "blocked_by": ["A"]}])
        assert edges == [BlockingEdge(blocker="A", blocked="B")]

    def test_missing_and_null_blockers(self) -> None:
        items, edges = parse_records([{"id": "A"}, {"id": "B", "blockedBy": None}])
        assert len(items) == 2
        assert edges == []

    def test_non_dict_record(self) -> None:
        with pytest.raises(ValueError, match=r"records\[1\] must be an object"):
            parse_records([{"id": "A"}, "B"])

    def test_bad_id(self) -> None:
        with pytest.raises(ValueError, match=r"records\[0\]: id must not be empty"):
            parse_records([{"id": " "}])

    def test_blocked_by_not_a_list(self) -> None:
        with pytest.raises(ValueError, match="blockedBy must be a list"):
            parse_records([{"id": "A", "blockedBy": "B"}])

    def test_bad_blocker_id(self) -> None:
        with pytest.raises(ValueError, match=r"\(A\): blocker id must be a string"):
            parse_records([{"id": "A", "blockedBy": [7]}])

    def test_bad_title(self) -> None:
        with pytest.raises(ValueError, match="title must be a string"):
            parse_records([{"id": "A", "title": 3}])


class TestLoadPlan:
    def test_bare_list(self, write_plan: Callable[[Any], Path]) -> None:
        plan = load_plan(write_plan([{"id": "A", "blockedBy": []}]))
        assert plan["records"] == [{"id": "A", "blockedBy": []}]
        assert plan["max_attempts"] is None

    def test_object_with_max_attempts(self, write_plan: Callable[[Any], Path]) -> None:
        plan = load_plan(write_plan({"items": [{"id": "A"}], "max_attempts": 5}))
        assert plan["max_attempts"] == 5
        assert len(plan["records"]) == 1

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "plan.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="invalid JSON"):
            load_plan(path)

    def test_wrong_shape(self, write_plan: Callable[[Any], Path]) -> None:
        with pytest.raises(ValueError, match="expected a list"):
            load_plan(write_plan({"tickets": []}))

    @pytest.mark.parametrize("bad", [0, -2, "3", True])
    def test_bad_max_attempts(self, write_plan: Callable[[Any], Path], bad: Any) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            load_plan(write_plan({"items": [], "max_attempts": bad}))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            load_plan(tmp_path / "absent.json")
