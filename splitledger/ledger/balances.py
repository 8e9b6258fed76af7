"""
Balance Ledger

The single source of truth for each member's running balance in one group.
Positive = the group owes them, negative = they owe the group.

DESIGN DECISION: Every mutation is computed in full before anything is
written. The new balances are built in a fresh mapping and published with
one reference swap under the lock, so:
1. A rejected operation leaves no trace
2. Readers never see half of an expense applied
3. snapshot() needs no lock
"""

import threading
from collections.abc import Iterable, Sequence
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Optional

import structlog

from splitledger.config import get_settings
from splitledger.ledger.errors import (
    DuplicateMemberError,
    InactiveMemberError,
    InvalidParametersError,
    NegativeOrZeroAmountError,
    OutstandingBalanceError,
    UnknownMemberError,
)
from splitledger.ledger.money import ZERO, to_decimal
from splitledger.models.ledger import (
    Expense,
    Member,
    MemberBalance,
    Settlement,
    Split,
)


logger = structlog.get_logger(__name__)


class BalanceLedger:
    """
    Per-group balance map plus the member set it is keyed by.

    Single writer per group: mutations hold an RLock for the whole
    compute-validate-commit cycle. Reads go through the published
    immutable mapping.
    """

    def __init__(self, members: Iterable[Member] = ()):
        self._lock = threading.RLock()
        self._members: dict[str, Member] = {}
        self._balances: Mapping[str, Decimal] = MappingProxyType({})
        for member in members:
            self.add_member(member)

    # =========================================================================
    # MEMBERSHIP
    # =========================================================================

    @property
    def members(self) -> list[Member]:
        """Members in joining order, including inactive ones."""
        return list(self._members.values())

    @property
    def active_members(self) -> list[Member]:
        return [m for m in self._members.values() if m.is_active]

    def has_member(self, member_id: str) -> bool:
        return member_id in self._members

    def get_member(self, member_id: str) -> Member:
        try:
            return self._members[member_id]
        except KeyError:
            raise UnknownMemberError(member_id) from None

    def add_member(self, member: Member) -> Member:
        """Add a member with a zero balance."""
        with self._lock:
            if member.id in self._members:
                raise DuplicateMemberError(f"Member already in group: {member.id}")
            self._members[member.id] = member
            balances = dict(self._balances)
            balances[member.id] = ZERO
            self._balances = MappingProxyType(balances)
        return member

    def update_weight(self, member_id: str, weight) -> Member:
        """Change a member's equity weight. Past expenses are not recomputed."""
        weight = to_decimal(weight)
        if weight <= 0:
            raise InvalidParametersError(f"Equity weight must be positive, got {weight}")
        with self._lock:
            member = self.get_member(member_id).model_copy(update={"weight": weight})
            self._members[member_id] = member
        return member

    def deactivate_member(self, member_id: str) -> Member:
        """
        Mark a member as having left the group.

        Refused while they still owe or are owed anything. The member stays
        in the map so old expenses can still be reversed.
        """
        with self._lock:
            member = self.get_member(member_id)
            balance = self._balances[member_id]
            if balance != 0:
                raise OutstandingBalanceError(member_id, balance)
            member = member.model_copy(update={"is_active": False})
            self._members[member_id] = member
        return member

    def _check_member(self, member_id: str, require_active: bool) -> None:
        member = self.get_member(member_id)
        if require_active and not member.is_active:
            raise InactiveMemberError(member_id)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def _expense_deltas(
        self,
        expense: Expense,
        splits: Sequence[Split],
        require_active: bool,
    ) -> dict[str, Decimal]:
        amount = to_decimal(expense.amount)
        if amount <= 0:
            raise NegativeOrZeroAmountError(amount)

        total_owed = sum((s.owed_amount for s in splits), ZERO)
        total_paid = sum((s.paid_amount for s in splits), ZERO)
        if total_owed != amount:
            raise InvalidParametersError(
                f"Splits owe {total_owed} in total, expense amount is {amount}"
            )
        if total_paid != amount:
            raise InvalidParametersError(
                f"Splits paid {total_paid} in total, expense amount is {amount}"
            )

        deltas: dict[str, Decimal] = {}
        for split in splits:
            if split.owed_amount < 0 or split.paid_amount < 0:
                raise InvalidParametersError(
                    f"Split for {split.member_id} has a negative amount"
                )
            self._check_member(split.member_id, require_active)
            deltas[split.member_id] = (
                deltas.get(split.member_id, ZERO) + split.paid_amount - split.owed_amount
            )
        return deltas

    def _settlement_deltas(
        self,
        settlement: Settlement,
        require_active: bool,
    ) -> dict[str, Decimal]:
        amount = to_decimal(settlement.amount)
        if amount <= 0:
            raise NegativeOrZeroAmountError(amount)
        if settlement.from_member_id == settlement.to_member_id:
            raise InvalidParametersError("A member cannot settle with themselves")
        self._check_member(settlement.from_member_id, require_active)
        self._check_member(settlement.to_member_id, require_active)
        return {
            settlement.from_member_id: amount,
            settlement.to_member_id: -amount,
        }

    def _commit(self, deltas: Mapping[str, Decimal], sign: int = 1) -> None:
        balances = dict(self._balances)
        for member_id, delta in deltas.items():
            balances[member_id] = balances[member_id] + delta * sign
        self._balances = MappingProxyType(balances)
        logger.debug(
            "balances_committed",
            members=len(deltas),
            deltas={k: str(v * sign) for k, v in deltas.items()},
        )

    def apply_expense(self, expense: Expense, splits: Sequence[Split]) -> dict[str, Decimal]:
        """
        Apply an expense: each member's balance += paid - owed.

        With a single payer this is: payer += amount - own share,
        everyone else -= their share.

        Returns the per-member deltas that were applied.
        """
        with self._lock:
            deltas = self._expense_deltas(expense, splits, require_active=True)
            self._commit(deltas)
        return deltas

    def reverse_expense(self, expense: Expense, splits: Sequence[Split]) -> dict[str, Decimal]:
        """
        Exact inverse of apply_expense, used on edit and delete.

        Works for members who have since become inactive.
        """
        with self._lock:
            deltas = self._expense_deltas(expense, splits, require_active=False)
            self._commit(deltas, sign=-1)
        return {k: -v for k, v in deltas.items()}

    def replace_expense(
        self,
        old_expense: Expense,
        old_splits: Sequence[Split],
        new_expense: Expense,
        new_splits: Sequence[Split],
    ) -> dict[str, Decimal]:
        """
        Swap an expense's effect for a new one in a single commit.

        The reversal of the old splits and the application of the new ones
        are merged before anything is written, so readers see either the
        old balances or the new ones. If the new splits are rejected the
        ledger is untouched.

        Returns the net per-member deltas.
        """
        with self._lock:
            removed = self._expense_deltas(old_expense, old_splits, require_active=False)
            added = self._expense_deltas(new_expense, new_splits, require_active=True)
            net = dict(added)
            for member_id, delta in removed.items():
                net[member_id] = net.get(member_id, ZERO) - delta
            self._commit(net)
        return net

    def apply_settlement(self, settlement: Settlement) -> dict[str, Decimal]:
        """Payer's balance goes up (less debt), recipient's goes down (less credit)."""
        with self._lock:
            deltas = self._settlement_deltas(settlement, require_active=True)
            self._commit(deltas)
        return deltas

    def reverse_settlement(self, settlement: Settlement) -> dict[str, Decimal]:
        with self._lock:
            deltas = self._settlement_deltas(settlement, require_active=False)
            self._commit(deltas, sign=-1)
        return {k: -v for k, v in deltas.items()}

    # =========================================================================
    # READS
    # =========================================================================

    def balance_of(self, member_id: str) -> Decimal:
        balances = self._balances
        if member_id not in balances:
            raise UnknownMemberError(member_id)
        return balances[member_id]

    def snapshot(self) -> dict[str, Decimal]:
        """Copy of every member's balance at one consistent point in time."""
        return dict(self._balances)

    def total(self) -> Decimal:
        """Sum of all balances. Always zero unless something is badly wrong."""
        return sum(self._balances.values(), ZERO)

    def member_balances(self, tolerance: Optional[Decimal] = None) -> list[MemberBalance]:
        """Read-only balance projections, in joining order."""
        if tolerance is None:
            tolerance = get_settings().ledger.settle_tolerance
        with self._lock:
            balances = self._balances
            members = list(self._members.values())
        return [
            MemberBalance(
                member_id=member.id,
                display_name=member.display_name,
                balance=balances[member.id],
                is_active=member.is_active,
                tolerance=tolerance,
            )
            for member in members
        ]
