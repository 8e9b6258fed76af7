"""Recurring expense scheduling package."""

from splitledger.recurring.schedule import (
    advance,
    due_occurrences,
    initial_due_date,
    materialize,
    next_due_date,
    roll_forward,
)

__all__ = [
    "advance",
    "due_occurrences",
    "initial_due_date",
    "materialize",
    "next_due_date",
    "roll_forward",
]
