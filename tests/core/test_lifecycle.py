"""Tests for LifecycleTracker: transitions, guards on wrong states, event log, locking."""

from __future__ import annotations

import threading
from collections.abc import Callable

import pytest

from braid.errors import NotReadyError, TransitionNotAllowedError
from braid.models import BLOCKED, DONE, FAILED, IN_PROGRESS
from braid.sequencer import Sequencer


class TestStart:
    def test_start_sets_in_progress_and_counts_attempt(self, chain_seq: Sequencer) -> None:
        item = chain_seq.start("A")
        assert item.state == IN_PROGRESS
        assert item.attempts == 1
        assert item.last_error is None

    def test_start_with_unmet_blocker(self, chain_seq: Sequencer) -> None:
        with pytest.raises(NotReadyError, match="waiting on A") as exc_info:
            chain_seq.start("B")
        assert exc_info.value.unmet_blockers == ["A"]
        assert chain_seq.get_item("B").attempts == 0

    def test_restart_in_progress_rejected(self, chain_seq: Sequencer) -> None:
        chain_seq.start("A")
        with pytest.raises(NotReadyError, match="in_progress"):
            chain_seq.start("A")
        assert chain_seq.get_item("A").attempts == 1

    def test_start_done_rejected(self, chain_seq: Sequencer) -> None:
        chain_seq.start("A")
        chain_seq.complete("A")
        with pytest.raises(NotReadyError):
            chain_seq.start("A")

    def test_start_unknown(self, chain_seq: Sequencer) -> None:
        with pytest.raises(KeyError):
            chain_seq.start("nope")

    def test_retry_from_blocked_clears_error(self, chain_seq: Sequencer) -> None:
        chain_seq.start("A")
        chain_seq.fail("A", "flaky")
        item = chain_seq.get_item("A")
        assert item.state == BLOCKED
        assert item.last_error == "flaky"
        chain_seq.start("A")
        assert item.state == IN_PROGRESS
        assert item.attempts == 2
        assert item.last_error is None


class TestCompleteAndFail:
    def test_complete_requires_in_progress(self, chain_seq: Sequencer) -> None:
        with pytest.raises(TransitionNotAllowedError, match="'pending' -> 'done'"):
            chain_seq.complete("A")

    def test_fail_requires_in_progress(self, chain_seq: Sequencer) -> None:
        with pytest.raises(TransitionNotAllowedError):
            chain_seq.fail("A", "x")

    def test_three_failures_reach_failed(self, make_seq: Callable[..., Sequencer]) -> None:
        seq = make_seq({"A": []}, max_attempts=3)
        for _ in range(3):
            seq.start("A")
            seq.fail("A", "x")
        item = seq.get_item("A")
        assert item.state == FAILED
        assert item.attempts == 3
        assert item.last_error == "x"

    def test_retry_bound_never_exceeded(self, make_seq: Callable[..., Sequencer]) -> None:
        seq = make_seq({"A": []}, max_attempts=2)
        seq.start("A")
        seq.fail("A", "x")
        seq.start("A")
        seq.fail("A", "x")
        with pytest.raises(NotReadyError):
            seq.start("A")
        started = [e for e in seq.get_events("A") if e["new_state"] == IN_PROGRESS]
        assert len(started) == 2

    def test_terminal_states_are_final(self, make_seq: Callable[..., Sequencer]) -> None:
        seq = make_seq({"A": [], "B": []}, max_attempts=1)
        seq.start("A")
        seq.complete("A")
        seq.start("B")
        seq.fail("B", "x")
        assert seq.get_item("B").state == FAILED
        for item_id, state in (("A", DONE), ("B", FAILED)):
            with pytest.raises(NotReadyError):
                seq.start(item_id)
            with pytest.raises(TransitionNotAllowedError):
                seq.complete(item_id)
            with pytest.raises(TransitionNotAllowedError):
                seq.fail(item_id, "again")
            assert seq.get_item(item_id).state == state

    def test_last_error_only_in_error_states(self, make_seq: Callable[..., Sequencer]) -> None:
        seq = make_seq({"A": []})
        seq.start("A")
        seq.fail("A", "x")
        assert seq.get_item("A").last_error == "x"
        seq.start("A")
        seq.complete("A")
        assert seq.get_item("A").last_error is None


class TestEvents:
    def test_events_record_transitions(self, chain_seq: Sequencer) -> None:
        chain_seq.start("A")
        chain_seq.fail("A", "flaky")
        chain_seq.start("A")
        chain_seq.complete("A")
        events = chain_seq.get_events("A")
        assert [e["event_type"] for e in events] == ["started", "retry_scheduled", "retried", "completed"]
        assert events[1]["comment"] == "flaky"
        assert events[1]["old_state"] == IN_PROGRESS
        assert events[1]["new_state"] == BLOCKED
        assert events[-1]["attempt"] == 2

    def test_events_all_items_in_order(self, chain_seq: Sequencer) -> None:
        chain_seq.start("D")
        chain_seq.start("A")
        assert [e["item_id"] for e in chain_seq.get_events()] == ["D", "A"]

    def test_events_unknown_item(self, chain_seq: Sequencer) -> None:
        with pytest.raises(KeyError):
            chain_seq.get_events("nope")


class TestConcurrency:
    def test_concurrent_start_only_one_wins(self, make_seq: Callable[..., Sequencer]) -> None:
        seq = make_seq({"A": []})
        barrier = threading.Barrier(8)
        wins: list[str] = []
        losses: list[Exception] = []

        def worker() -> None:
            barrier.wait()
            try:
                seq.start("A")
                wins.append("A")
            except NotReadyError as exc:
                losses.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(wins) == 1
        assert len(losses) == 7
        assert seq.get_item("A").attempts == 1
