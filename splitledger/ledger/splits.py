"""
Split Calculator

Turns (amount, participants, strategy) into per-member owed amounts.

GUARANTEES:
- The owed amounts add up to the expense amount exactly
- No owed amount is negative
- Same input, same output: no randomness, no clock, no side effects

Each strategy first produces unrounded shares. They are rounded down to
the currency's minor unit, and the units left over (fewer than one per
participant) are handed out one at a time: largest dropped fraction first,
ties in participant order. For an equal split that is simply the first
participants in order, so no two shares differ by more than one unit.

Exact amounts are already in minor units; the small drift allowed by
split_tolerance goes to the first participant whose share stays
non-negative.
"""

from collections.abc import Callable, Mapping, Sequence
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from splitledger.config import get_settings
from splitledger.ledger.errors import (
    InvalidParametersError,
    NegativeOrZeroAmountError,
    RoundingOverflowError,
    UnknownMemberError,
)
from splitledger.ledger.money import ZERO, minor_unit, quantize, to_decimal
from splitledger.models.ledger import (
    EqualSplit,
    EquitySplit,
    ExactSplit,
    Expense,
    Member,
    PercentageSplit,
    SharesSplit,
    Split,
    SplitStrategy,
)


HUNDRED = Decimal("100")


def _unknown_keys(supplied: Mapping[str, object], participants: Sequence[Member]) -> list[str]:
    ids = {m.id for m in participants}
    return sorted(k for k in supplied if k not in ids)


def _equal_shares(
    amount: Decimal,
    participants: Sequence[Member],
    strategy: EqualSplit,
    currency: str,
    tolerance: Decimal,
) -> list[Decimal]:
    per_person = amount / len(participants)
    return [per_person] * len(participants)


def _equity_shares(
    amount: Decimal,
    participants: Sequence[Member],
    strategy: EquitySplit,
    currency: str,
    tolerance: Decimal,
) -> list[Decimal]:
    weights = [to_decimal(m.weight) for m in participants]
    for member, weight in zip(participants, weights):
        if weight <= 0:
            raise InvalidParametersError(
                f"Equity weight must be positive, {member.id} has {weight}"
            )
    total_weight = sum(weights, ZERO)
    if total_weight == 0:
        raise InvalidParametersError("Total equity weight is zero")
    return [amount * weight / total_weight for weight in weights]


def _exact_shares(
    amount: Decimal,
    participants: Sequence[Member],
    strategy: ExactSplit,
    currency: str,
    tolerance: Decimal,
) -> list[Decimal]:
    unknown = _unknown_keys(strategy.amounts, participants)
    if unknown:
        raise InvalidParametersError(f"Exact amounts given for non-participants: {unknown}")

    shares = []
    for member in participants:
        owed = quantize(strategy.amounts.get(member.id, ZERO), currency)
        if owed < 0:
            raise InvalidParametersError(f"Exact amount for {member.id} is negative: {owed}")
        shares.append(owed)

    total = sum(shares, ZERO)
    if abs(total - amount) > tolerance:
        raise InvalidParametersError(
            f"Exact amounts add up to {total}, expected {amount}"
        )
    return _absorb(amount, shares)


def _percentage_shares(
    amount: Decimal,
    participants: Sequence[Member],
    strategy: PercentageSplit,
    currency: str,
    tolerance: Decimal,
) -> list[Decimal]:
    unknown = _unknown_keys(strategy.percentages, participants)
    if unknown:
        raise InvalidParametersError(f"Percentages given for non-participants: {unknown}")

    percentages = [to_decimal(strategy.percentages.get(m.id, ZERO)) for m in participants]
    for member, pct in zip(participants, percentages):
        if pct < 0:
            raise InvalidParametersError(f"Percentage for {member.id} is negative: {pct}")

    total = sum(percentages, ZERO)
    if abs(total - HUNDRED) > tolerance:
        raise InvalidParametersError(
            f"Percentages add up to {total}, expected 100"
        )
    # Scale by the actual total so a sum within tolerance of 100 still covers the amount
    return [amount * pct / total for pct in percentages]


def _shares_shares(
    amount: Decimal,
    participants: Sequence[Member],
    strategy: SharesSplit,
    currency: str,
    tolerance: Decimal,
) -> list[Decimal]:
    if not strategy.shares:
        raise InvalidParametersError("No share counts supplied")
    unknown = _unknown_keys(strategy.shares, participants)
    if unknown:
        raise InvalidParametersError(f"Share counts given for non-participants: {unknown}")

    counts = []
    for member in participants:
        count = strategy.shares.get(member.id)
        if count is None:
            raise InvalidParametersError(f"No share count supplied for {member.id}")
        if count <= 0:
            raise InvalidParametersError(
                f"Share count must be positive, {member.id} has {count}"
            )
        counts.append(Decimal(count))

    total = sum(counts, ZERO)
    return [amount * count / total for count in counts]


# One handler per variant of SplitStrategy
_STRATEGY_HANDLERS: dict[str, Callable[..., list[Decimal]]] = {
    "equal": _equal_shares,
    "equity": _equity_shares,
    "exact": _exact_shares,
    "percentage": _percentage_shares,
    "shares": _shares_shares,
}


def _absorb(amount: Decimal, shares: list[Decimal]) -> list[Decimal]:
    """Put the whole drift on the first participant who can take it."""
    remainder = amount - sum(shares, ZERO)
    if remainder == 0:
        return shares

    absorbed = list(shares)
    for index, share in enumerate(absorbed):
        if share + remainder >= 0:
            absorbed[index] = share + remainder
            return absorbed
    raise RoundingOverflowError(
        remainder,
        message=f"No participant can absorb a remainder of {remainder}",
    )


def _distribute(amount: Decimal, raw_shares: list[Decimal], unit: Decimal) -> list[Decimal]:
    """Round every share down, then hand out the leftover one unit at a time."""
    floored = [share.quantize(unit, rounding=ROUND_DOWN) for share in raw_shares]
    leftover = amount - sum(floored, ZERO)

    limit = unit * len(floored)
    if leftover < 0 or leftover >= limit:
        raise RoundingOverflowError(leftover, limit)

    # Largest dropped fraction first, ties by participant order
    order = sorted(
        range(len(floored)),
        key=lambda i: (-(raw_shares[i] - floored[i]), i),
    )
    for index in order[:int(leftover / unit)]:
        floored[index] += unit
    return floored


def compute_splits(
    amount,
    participants: Sequence[Member],
    strategy: SplitStrategy,
    currency: Optional[str] = None,
) -> list[tuple[str, Decimal]]:
    """
    Compute what each participant owes for one expense.

    Args:
        amount: Positive expense total
        participants: Members sharing the expense, in split order
        strategy: One of the SplitStrategy variants with its parameters
        currency: ISO code deciding the rounding unit (defaults from settings)

    Returns:
        [(member_id, owed_amount)] in participant order

    Raises:
        NegativeOrZeroAmountError: amount <= 0
        InvalidParametersError: parameters don't describe a valid split
        RoundingOverflowError: rounding left more than it possibly could
    """
    settings = get_settings().ledger
    currency = (currency or settings.default_currency).upper()
    amount = to_decimal(amount)

    if amount <= 0:
        raise NegativeOrZeroAmountError(amount)
    if quantize(amount, currency) != amount:
        raise InvalidParametersError(
            f"Amount {amount} is finer than the minor unit of {currency}"
        )
    if not participants:
        raise InvalidParametersError("An expense needs at least one participant")

    ids = [m.id for m in participants]
    if len(set(ids)) != len(ids):
        raise InvalidParametersError(f"Duplicate participants: {ids}")

    handler = _STRATEGY_HANDLERS[strategy.split_type]
    raw_shares = handler(amount, participants, strategy, currency, settings.split_tolerance)
    owed = _distribute(amount, raw_shares, minor_unit(currency))

    return list(zip(ids, owed))


def _payments(expense: Expense) -> dict[str, Decimal]:
    paid_by = {member_id: to_decimal(value) for member_id, value in expense.paid_by.items()}
    for member_id, paid in paid_by.items():
        if paid < 0:
            raise InvalidParametersError(f"Payment by {member_id} is negative: {paid}")
    total_paid = sum(paid_by.values(), ZERO)
    if total_paid != expense.amount:
        raise InvalidParametersError(
            f"Payments add up to {total_paid}, expected {expense.amount}"
        )
    return paid_by


def build_splits(expense: Expense, members: Mapping[str, Member]) -> list[Split]:
    """
    Build the full Split list for an expense.

    Adds paid amounts (and percentage / share counts where the strategy
    has them) to the owed amounts from compute_splits. A payer who is not
    a participant gets a split that owes nothing.
    """
    participants = []
    for member_id in expense.participant_ids:
        if member_id not in members:
            raise UnknownMemberError(member_id)
        participants.append(members[member_id])

    owed = compute_splits(expense.amount, participants, expense.split, expense.currency)
    paid_by = _payments(expense)
    for member_id in paid_by:
        if member_id not in members:
            raise UnknownMemberError(member_id)

    percentages = getattr(expense.split, "percentages", None)
    shares = getattr(expense.split, "shares", None)

    splits = []
    for member_id, owed_amount in owed:
        splits.append(Split(
            member_id=member_id,
            owed_amount=owed_amount,
            paid_amount=paid_by.get(member_id, ZERO),
            percentage=percentages.get(member_id, ZERO) if percentages is not None else None,
            shares=shares.get(member_id) if shares is not None else None,
        ))

    participant_ids = set(expense.participant_ids)
    for member_id, paid in paid_by.items():
        if member_id not in participant_ids:
            splits.append(Split(
                member_id=member_id,
                owed_amount=ZERO,
                paid_amount=paid,
            ))

    return splits
