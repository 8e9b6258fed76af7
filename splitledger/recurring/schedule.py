"""
Recurring expense schedule.

Works out when a recurring template comes due and turns each due date
into an ordinary Expense.

Month ends are clamped: a template due on the 31st falls on the last day
of shorter months (Feb 28/29, Apr 30, ...) and returns to the 31st when
the month allows it. The anchor day is day_of_month, or the start date's
day when none is set, so the schedule never drifts.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Optional

from splitledger.models.ledger import Expense
from splitledger.models.recurring import RecurringExpense, RecurringFrequency


AUTO_GENERATED_NOTE = "Auto-generated from recurring expense"


def _clamped(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def _add_months(current: date, months: int, anchor_day: int) -> date:
    index = current.month - 1 + months
    return _clamped(current.year + index // 12, index % 12 + 1, anchor_day)


def _anchor_day(recurring: RecurringExpense) -> int:
    return recurring.day_of_month or recurring.start_date.day


def advance(
    frequency: RecurringFrequency,
    current: date,
    anchor_day: Optional[int] = None,
    anchor_month: Optional[int] = None,
) -> date:
    """The due date that follows `current`."""
    if frequency == RecurringFrequency.DAILY:
        return current + timedelta(days=1)
    if frequency == RecurringFrequency.WEEKLY:
        return current + timedelta(days=7)
    if frequency == RecurringFrequency.BIWEEKLY:
        return current + timedelta(days=14)
    if frequency == RecurringFrequency.MONTHLY:
        return _add_months(current, 1, anchor_day or current.day)
    if frequency == RecurringFrequency.YEARLY:
        return _clamped(current.year + 1, anchor_month or current.month, anchor_day or current.day)
    raise ValueError(f"Unsupported frequency: {frequency}")


def next_due_date(recurring: RecurringExpense) -> date:
    """Due date after the template's current next_due_date."""
    return advance(
        recurring.frequency,
        recurring.next_due_date,
        anchor_day=_anchor_day(recurring),
        anchor_month=recurring.start_date.month,
    )


def initial_due_date(
    frequency: RecurringFrequency,
    start_date: date,
    today: date,
    day_of_week: Optional[int] = None,
    day_of_month: Optional[int] = None,
) -> date:
    """
    First due date for a new template.

    A start date in the future (or today) is used as is. Otherwise the
    first occurrence on or after today is returned.
    """
    if start_date >= today:
        return start_date

    if frequency == RecurringFrequency.DAILY:
        return today

    if frequency in (RecurringFrequency.WEEKLY, RecurringFrequency.BIWEEKLY):
        if day_of_week is None:
            return today
        candidate = today + timedelta(days=(day_of_week - today.isoweekday()) % 7)
        if frequency == RecurringFrequency.BIWEEKLY:
            weeks_since_start = (candidate - start_date).days // 7
            if weeks_since_start % 2 == 1:
                candidate += timedelta(days=7)
        return candidate

    if frequency == RecurringFrequency.MONTHLY:
        day = day_of_month or start_date.day
        candidate = _clamped(today.year, today.month, day)
        if candidate < today:
            candidate = _add_months(candidate, 1, day)
        return candidate

    if frequency == RecurringFrequency.YEARLY:
        candidate = _clamped(today.year, start_date.month, start_date.day)
        if candidate < today:
            candidate = _clamped(today.year + 1, start_date.month, start_date.day)
        return candidate

    raise ValueError(f"Unsupported frequency: {frequency}")


def due_occurrences(recurring: RecurringExpense, today: date) -> list[date]:
    """Every due date up to and including today, stopping at end_date."""
    if not recurring.is_active:
        return []

    occurrences = []
    current = recurring.next_due_date
    while current <= today:
        if recurring.end_date is not None and current > recurring.end_date:
            break
        occurrences.append(current)
        current = advance(
            recurring.frequency,
            current,
            anchor_day=_anchor_day(recurring),
            anchor_month=recurring.start_date.month,
        )
    return occurrences


def materialize(recurring: RecurringExpense, due_date: date) -> Expense:
    """Build the Expense for one occurrence of a template."""
    notes = (
        f"{recurring.notes} ({AUTO_GENERATED_NOTE})"
        if recurring.notes
        else AUTO_GENERATED_NOTE
    )
    return Expense(
        group_id=recurring.group_id,
        description=recurring.description,
        amount=recurring.amount,
        currency=recurring.currency,
        participant_ids=list(recurring.participant_ids),
        payer_id=recurring.payer_id,
        split=recurring.split,
        category=recurring.category,
        expense_date=due_date,
        notes=notes,
    )


def roll_forward(
    recurring: RecurringExpense,
    today: date,
    now: Optional[datetime] = None,
) -> tuple[list[Expense], RecurringExpense]:
    """
    Materialize every due occurrence and move the template past them.

    Returns:
        (expenses, updated_template). The template is deactivated once
        its end date has passed.
    """
    occurrences = due_occurrences(recurring, today)
    expenses = [materialize(recurring, due) for due in occurrences]

    update = {}
    if occurrences:
        update["next_due_date"] = advance(
            recurring.frequency,
            occurrences[-1],
            anchor_day=_anchor_day(recurring),
            anchor_month=recurring.start_date.month,
        )
        update["last_generated_at"] = now or datetime.utcnow()

    next_due = update.get("next_due_date", recurring.next_due_date)
    if recurring.end_date is not None and next_due > recurring.end_date and recurring.end_date < today:
        update["is_active"] = False

    return expenses, recurring.model_copy(update=update) if update else recurring
