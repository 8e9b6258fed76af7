"""
Ledger core package.

SplitCalculator and DebtSimplifier are pure functions; BalanceLedger is
the one mutable structure, and there is one per group.
"""

from splitledger.ledger.balances import BalanceLedger
from splitledger.ledger.errors import (
    CurrencyMismatchError,
    DuplicateMemberError,
    ExpenseNotFoundError,
    InactiveMemberError,
    InvalidParametersError,
    LedgerError,
    NegativeOrZeroAmountError,
    OutstandingBalanceError,
    RoundingOverflowError,
    SettlementNotFoundError,
    UnknownMemberError,
)
from splitledger.ledger.money import format_amount, minor_unit, quantize, to_decimal
from splitledger.ledger.simplify import apply_transfers, simplify_debts
from splitledger.ledger.splits import build_splits, compute_splits

__all__ = [
    # Components
    "BalanceLedger",
    "apply_transfers",
    "build_splits",
    "compute_splits",
    "simplify_debts",
    # Money helpers
    "format_amount",
    "minor_unit",
    "quantize",
    "to_decimal",
    # Errors
    "CurrencyMismatchError",
    "DuplicateMemberError",
    "ExpenseNotFoundError",
    "InactiveMemberError",
    "InvalidParametersError",
    "LedgerError",
    "NegativeOrZeroAmountError",
    "OutstandingBalanceError",
    "RoundingOverflowError",
    "SettlementNotFoundError",
    "UnknownMemberError",
]
