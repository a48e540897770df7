#!/usr/bin/env python3
"""Driving a ticket breakdown through braid by hand.

This example plays the role of an orchestrator that implements a small
ticket breakdown. It asks the sequencer which tickets are ready, "implements"
each one (a flaky ticket fails once before passing, a broken one never
passes), reports the outcome, and stops when nothing more can start.

Key concepts shown:
  - Loading tickets as {id, blockedBy} records
  - The ready / start / complete / fail loop
  - Retrying a blocked ticket until the attempt limit
  - Reporting a deadlock when a failed ticket strands its dependents

How to run:
    python docs/examples/ticket_pipeline.py
"""

from __future__ import annotations

from braid import DeadlockError, Sequencer

TICKETS = [
    {"id": "ENG-1", "title": "Add users table", "blockedBy": []},
    {"id": "ENG-2", "title": "Signup endpoint", "blockedBy": ["ENG-1"]},
    {"id": "ENG-3", "title": "Login endpoint", "blockedBy": ["ENG-1"]},
    {"id": "ENG-4", "title": "Signup form", "blockedBy": ["ENG-2"]},
    {"id": "ENG-5", "title": "Session refresh", "blockedBy": ["ENG-3"]},
]

FLAKY = {"ENG-2"}  # fails on the first attempt only
BROKEN = {"ENG-3"}  # never passes


def implement(ticket_id: str, attempt: int) -> str | None:
    """Pretend to implement a ticket. Returns a failure reason, or None on success."""
    if ticket_id in BROKEN:
        return "tests keep failing"
    if ticket_id in FLAKY and attempt == 1:
        return "CI timed out"
    return None


def main() -> None:
    seq = Sequencer.from_records(TICKETS, max_attempts=2)
    print("=== Ticket Pipeline Demo ===\n")

    while True:
        batch = seq.ready_items() + seq.retryable_items()
        if not batch:
            break
        for ticket in batch:
            seq.start(ticket.id)
            reason = implement(ticket.id, ticket.attempts)
            if reason is None:
                seq.complete(ticket.id)
                print(f"  [done]    {ticket.id} {ticket.title}")
            else:
                seq.fail(ticket.id, reason)
                print(f"  [{ticket.state:<7}] {ticket.id} {ticket.title}: {reason}")

    print("\n--- Final State ---")
    for view in seq.snapshot():
        print(f"  {view['id']}  {view['state']:<8} attempts={view['attempts']}  {view['title']}")

    try:
        seq.check_deadlock()
    except DeadlockError as exc:
        print(f"\n{exc}")


if __name__ == "__main__":
    main()
