"""
Greedy debt simplification.

Given every member's balance, propose the transfers that settle the group:
match the biggest creditor against the biggest debtor, move the smaller
of the two amounts, repeat. Each transfer clears at least one party, so
N members with a non-zero balance need at most N - 1 transfers.

Finding the true minimum number of transfers is NP-hard; greedy matching
is optimal in the common case and always settles everyone.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Optional

from splitledger.config import get_settings
from splitledger.ledger.money import ZERO, quantize, to_decimal
from splitledger.models.ledger import SimplifiedTransfer


def _ranked(entries: Iterable[tuple[str, Decimal]]) -> list[list]:
    # Largest amount first, ties by member id so the output is reproducible
    return [
        [member_id, amount]
        for member_id, amount in sorted(entries, key=lambda e: (-e[1], e[0]))
    ]


def simplify_debts(
    balances: Mapping[str, Decimal],
    tolerance: Optional[Decimal] = None,
    currency: Optional[str] = None,
) -> list[SimplifiedTransfer]:
    """
    Compute settling transfers for a balance map.

    Args:
        balances: member id -> signed balance (positive = is owed)
        tolerance: balances no further from zero than this are ignored
        currency: rounding unit for the transfer amounts

    Returns:
        Transfers ordered by (from_member_id, to_member_id)
    """
    settings = get_settings().ledger
    tolerance = settings.settle_tolerance if tolerance is None else to_decimal(tolerance)
    currency = currency or settings.default_currency

    values = {member_id: to_decimal(b) for member_id, b in balances.items()}
    creditors = _ranked((m, b) for m, b in values.items() if b > tolerance)
    debtors = _ranked((m, -b) for m, b in values.items() if b < -tolerance)

    transfers = []
    i, j = 0, 0
    while i < len(creditors) and j < len(debtors):
        creditor, credit = creditors[i]
        debtor, debt = debtors[j]

        amount = min(credit, debt)
        rounded = quantize(amount, currency)
        if rounded > 0:
            transfers.append(SimplifiedTransfer(
                from_member_id=debtor,
                to_member_id=creditor,
                amount=rounded,
            ))

        creditors[i][1] -= amount
        debtors[j][1] -= amount

        if creditors[i][1] <= tolerance:
            i += 1
        if debtors[j][1] <= tolerance:
            j += 1

    transfers.sort(key=lambda t: (t.from_member_id, t.to_member_id))
    return transfers


def apply_transfers(
    balances: Mapping[str, Decimal],
    transfers: Iterable[SimplifiedTransfer],
) -> dict[str, Decimal]:
    """Balances after every transfer is paid (payer up, recipient down)."""
    result = {member_id: to_decimal(b) for member_id, b in balances.items()}
    for transfer in transfers:
        result[transfer.from_member_id] = result.get(transfer.from_member_id, ZERO) + transfer.amount
        result[transfer.to_member_id] = result.get(transfer.to_member_id, ZERO) - transfer.amount
    return result
