"""
Data Models Package

This package contains all Pydantic models used by the ledger.
Everything that crosses the ledger boundary must conform to these schemas.
"""

from splitledger.models.ledger import (
    BalanceStatus,
    EqualSplit,
    EquitySplit,
    ExactSplit,
    Expense,
    ExpenseCategory,
    Member,
    MemberBalance,
    PercentageSplit,
    Settlement,
    SharesSplit,
    SimplifiedTransfer,
    Split,
    SplitStrategy,
    SplitType,
)
from splitledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from splitledger.models.recurring import (
    RecurringExpense,
    RecurringFrequency,
)

__all__ = [
    # Ledger models
    "BalanceStatus",
    "EqualSplit",
    "EquitySplit",
    "ExactSplit",
    "Expense",
    "ExpenseCategory",
    "Member",
    "MemberBalance",
    "PercentageSplit",
    "Settlement",
    "SharesSplit",
    "SimplifiedTransfer",
    "Split",
    "SplitStrategy",
    "SplitType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Recurring models
    "RecurringExpense",
    "RecurringFrequency",
]
