"""
Ledger Errors

Every failure in the ledger core surfaces synchronously as one of these.
Nothing is retried or silently corrected: a rejected operation leaves
balances exactly as they were.
"""

from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InvalidParametersError(LedgerError):
    """Split parameters are inconsistent with the expense."""
    pass


class UnknownMemberError(LedgerError):
    """Member id is not part of the group."""

    def __init__(self, member_id: str, message: str = ""):
        self.member_id = member_id
        super().__init__(message or f"Unknown member: {member_id}")


class InactiveMemberError(LedgerError):
    """Member has left the group and cannot take part in new records."""

    def __init__(self, member_id: str, message: str = ""):
        self.member_id = member_id
        super().__init__(message or f"Member is inactive: {member_id}")


class NegativeOrZeroAmountError(LedgerError):
    """Expenses and settlements must move a positive amount."""

    def __init__(self, amount: Decimal, message: str = ""):
        self.amount = amount
        super().__init__(message or f"Amount must be positive, got {amount}")


class RoundingOverflowError(LedgerError):
    """
    Rounding left a remainder that cannot be placed: larger than rounding
    alone can produce, or more than any participant can absorb.

    Raised instead of pushing an unbounded correction onto one member.
    It always means the caller handed in inconsistent numbers.
    """

    def __init__(
        self,
        remainder: Decimal,
        limit: Optional[Decimal] = None,
        message: str = "",
    ):
        self.remainder = remainder
        self.limit = limit
        super().__init__(
            message or f"Rounding remainder {remainder} is outside the allowed 0 to {limit}"
        )


class OutstandingBalanceError(LedgerError):
    """Member cannot leave the group while money is still owed either way."""

    def __init__(self, member_id: str, balance: Decimal):
        self.member_id = member_id
        self.balance = balance
        super().__init__(
            f"Member {member_id} still has a balance of {balance}"
        )


class CurrencyMismatchError(LedgerError):
    """Record currency differs from the group currency."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected currency {expected}, got {actual}")


class ExpenseNotFoundError(LedgerError):
    """No expense with this id has been recorded in the group."""
    pass


class SettlementNotFoundError(LedgerError):
    """No settlement with this id has been recorded in the group."""
    pass


class DuplicateMemberError(LedgerError):
    """Member id is already part of the group."""
    pass
