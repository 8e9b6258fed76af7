"""
Group Ledger Orchestrator

This module ties the components together and defines the end-to-end
flows for one group:
1. Membership (join, ghost members, equity weights, leaving)
2. Expenses (validate → split → apply → remember → audit)
3. Edits and deletes (old splits out, new splits in, one commit)
4. Settlements (validate → apply → audit)
5. "Who owes whom" (snapshot → simplify)
6. Recurring templates (due dates → expenses)

DESIGN DECISION: The orchestrator is the single writer for its group.
It holds one lock across every multi-step flow so the expense records and
the balances move together. An edit reaches the ledger as a single
commit, so lock-free readers see the balances before it or after it.

Expenses and settlements are kept in memory only as long as the
surrounding application needs them for edits and deletes; persisting
them is the storage collaborator's job.
"""

import threading
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from splitledger.audit import AuditLogger, create_correlation_id
from splitledger.config import get_settings
from splitledger.ledger import (
    BalanceLedger,
    ExpenseNotFoundError,
    LedgerError,
    SettlementNotFoundError,
    build_splits,
    simplify_debts,
)
from splitledger.ledger.money import ZERO
from splitledger.models.audit import AuditEventType
from splitledger.models.ledger import (
    Expense,
    Member,
    MemberBalance,
    Settlement,
    SimplifiedTransfer,
    Split,
)
from splitledger.models.recurring import RecurringExpense
from splitledger.recurring import roll_forward
from splitledger.services.storage import JsonLinesAuditStorage
from splitledger.validation import LedgerValidator


logger = structlog.get_logger(__name__)


class GroupLedgerService:
    """
    Owns one group's ledger and the records that produced it.

    Every mutation is:
    1. Validated against the group (nothing touched on failure)
    2. Applied to the BalanceLedger atomically
    3. Audited (rejections too)
    """

    def __init__(
        self,
        group_id: Optional[str] = None,
        currency: Optional[str] = None,
        ledger: Optional[BalanceLedger] = None,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        settings = get_settings().ledger
        self._group_id = group_id or str(uuid4())
        self._currency = (currency or settings.default_currency).upper()
        self._ledger = ledger or BalanceLedger()
        self._validator = validator or LedgerValidator(self._ledger, self._currency)
        self._audit_logger = audit_logger or AuditLogger()
        self._lock = threading.RLock()

        self._expenses: dict[UUID, Expense] = {}
        self._splits: dict[UUID, list[Split]] = {}
        self._settlements: dict[UUID, Settlement] = {}

    @property
    def group_id(self) -> str:
        return self._group_id

    @property
    def currency(self) -> str:
        return self._currency

    @property
    def ledger(self) -> BalanceLedger:
        return self._ledger

    def _rejected(
        self,
        operation: str,
        error: Exception,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self._audit_logger.log_rejected(
            group_id=self._group_id,
            operation=operation,
            error=error,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )

    # =========================================================================
    # MEMBERSHIP
    # =========================================================================

    def add_member(
        self,
        display_name: str,
        member_id: Optional[str] = None,
        user_id: Optional[str] = None,
        weight: Decimal = Decimal("1.0"),
    ) -> Member:
        """
        Add a member to the group.

        Members without a user_id are ghost members.
        """
        member = Member(
            id=member_id or user_id or str(uuid4()),
            display_name=display_name,
            user_id=user_id,
            weight=weight,
        )
        with self._lock:
            try:
                self._ledger.add_member(member)
            except LedgerError as e:
                self._rejected("add_member", e, "member", member.id)
                raise

        self._audit_logger.log_member_added(
            group_id=self._group_id,
            member_id=member.id,
            display_name=member.display_name,
            is_ghost=member.is_ghost,
        )
        return member

    def add_ghost_member(self, display_name: str, member_id: Optional[str] = None) -> Member:
        """Add someone who has no account yet (e.g. from an import)."""
        return self.add_member(display_name=display_name, member_id=member_id)

    def update_member_weight(self, member_id: str, weight: Decimal) -> Member:
        """Change the equity weight used by future equity splits."""
        with self._lock:
            try:
                old_weight = self._ledger.get_member(member_id).weight
                member = self._ledger.update_weight(member_id, weight)
            except LedgerError as e:
                self._rejected("update_member_weight", e, "member", member_id)
                raise

        self._audit_logger.log_member_weight_updated(
            group_id=self._group_id,
            member_id=member_id,
            old_weight=old_weight,
            new_weight=member.weight,
        )
        return member

    def remove_member(self, member_id: str) -> Member:
        """Soft-remove a member. Only allowed once they are settled up."""
        with self._lock:
            try:
                member = self._ledger.deactivate_member(member_id)
            except LedgerError as e:
                self._rejected("remove_member", e, "member", member_id)
                raise

        self._audit_logger.log_member_removed(
            group_id=self._group_id,
            member_id=member_id,
        )
        return member

    # =========================================================================
    # EXPENSES
    # =========================================================================

    def _prepare(self, expense: Expense) -> list[Split]:
        self._validator.ensure_valid_expense(expense)
        members = {m.id: m for m in self._ledger.members}
        return build_splits(expense, members)

    def record_expense(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
        event_type: AuditEventType = AuditEventType.EXPENSE_RECORDED,
    ) -> list[Split]:
        """
        Record a new expense and apply it to the balances.

        Returns:
            The computed splits

        Raises:
            LedgerError: nothing was recorded
        """
        correlation_id = correlation_id or create_correlation_id()

        with self._lock:
            try:
                if expense.id in self._expenses:
                    raise LedgerError(f"Expense already recorded: {expense.id}")
                splits = self._prepare(expense)
                deltas = self._ledger.apply_expense(expense, splits)
            except LedgerError as e:
                self._rejected("record_expense", e, "expense", str(expense.id), correlation_id)
                raise

            self._expenses[expense.id] = expense
            self._splits[expense.id] = splits

        self._audit_logger.log_expense_applied(
            group_id=self._group_id,
            expense_id=expense.id,
            amount=expense.amount,
            currency=expense.currency,
            split_type=expense.split_type.value,
            deltas=deltas,
            correlation_id=correlation_id,
            event_type=event_type,
        )
        return splits

    def edit_expense(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> list[Split]:
        """
        Replace a recorded expense (matched by id).

        The old splits are reversed and the new ones applied in one ledger
        commit. If the new version is rejected, the old one stays in effect.
        """
        correlation_id = correlation_id or create_correlation_id()

        with self._lock:
            try:
                old_expense = self.get_expense(expense.id)
                old_splits = self._splits[expense.id]
                new_splits = self._prepare(expense)

                deltas = self._ledger.replace_expense(
                    old_expense, old_splits, expense, new_splits
                )
            except LedgerError as e:
                self._rejected("edit_expense", e, "expense", str(expense.id), correlation_id)
                raise

            self._expenses[expense.id] = expense
            self._splits[expense.id] = new_splits

        self._audit_logger.log_expense_applied(
            group_id=self._group_id,
            expense_id=expense.id,
            amount=expense.amount,
            currency=expense.currency,
            split_type=expense.split_type.value,
            deltas=deltas,
            correlation_id=correlation_id,
            event_type=AuditEventType.EXPENSE_EDITED,
        )
        return new_splits

    def delete_expense(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """Reverse an expense's effect on the balances and forget it."""
        with self._lock:
            try:
                expense = self.get_expense(expense_id)
                self._ledger.reverse_expense(expense, self._splits[expense_id])
            except LedgerError as e:
                self._rejected("delete_expense", e, "expense", str(expense_id), correlation_id)
                raise

            del self._expenses[expense_id]
            del self._splits[expense_id]

        self._audit_logger.log_expense_deleted(
            group_id=self._group_id,
            expense_id=expense_id,
            amount=expense.amount,
            correlation_id=correlation_id,
        )
        return expense

    def get_expense(self, expense_id: UUID) -> Expense:
        try:
            return self._expenses[expense_id]
        except KeyError:
            raise ExpenseNotFoundError(f"Expense not found: {expense_id}") from None

    def get_splits(self, expense_id: UUID) -> list[Split]:
        self.get_expense(expense_id)
        return list(self._splits[expense_id])

    def list_expenses(self) -> list[Expense]:
        """Recorded expenses, newest expense date first."""
        return sorted(
            self._expenses.values(),
            key=lambda e: (e.expense_date, e.created_at),
            reverse=True,
        )

    def total_expenses(self) -> Decimal:
        """Sum of all recorded expense amounts."""
        return sum((e.amount for e in self._expenses.values()), ZERO)

    # =========================================================================
    # SETTLEMENTS
    # =========================================================================

    def record_settlement(
        self,
        settlement: Settlement,
        correlation_id: Optional[UUID] = None,
    ) -> Settlement:
        """Record a direct payment between two members."""
        with self._lock:
            try:
                if settlement.id in self._settlements:
                    raise LedgerError(f"Settlement already recorded: {settlement.id}")
                self._validator.ensure_valid_settlement(settlement)
                self._ledger.apply_settlement(settlement)
            except LedgerError as e:
                self._rejected("record_settlement", e, "settlement", str(settlement.id), correlation_id)
                raise

            self._settlements[settlement.id] = settlement

        self._audit_logger.log_settlement_recorded(
            group_id=self._group_id,
            settlement_id=settlement.id,
            from_member_id=settlement.from_member_id,
            to_member_id=settlement.to_member_id,
            amount=settlement.amount,
            correlation_id=correlation_id,
        )
        return settlement

    def settle_up(
        self,
        from_member_id: str,
        to_member_id: str,
        amount: Decimal,
        settlement_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> Settlement:
        """Convenience wrapper building the Settlement in the group currency."""
        settlement = Settlement(
            group_id=self._group_id,
            from_member_id=from_member_id,
            to_member_id=to_member_id,
            amount=amount,
            currency=self._currency,
            settlement_date=settlement_date or date.today(),
            notes=notes,
        )
        return self.record_settlement(settlement)

    def delete_settlement(
        self,
        settlement_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Settlement:
        """Reverse a settlement's effect on the balances and forget it."""
        with self._lock:
            try:
                settlement = self._settlements.get(settlement_id)
                if settlement is None:
                    raise SettlementNotFoundError(f"Settlement not found: {settlement_id}")
                self._ledger.reverse_settlement(settlement)
            except LedgerError as e:
                self._rejected("delete_settlement", e, "settlement", str(settlement_id), correlation_id)
                raise

            del self._settlements[settlement_id]

        self._audit_logger.log_settlement_deleted(
            group_id=self._group_id,
            settlement_id=settlement_id,
            amount=settlement.amount,
            correlation_id=correlation_id,
        )
        return settlement

    def list_settlements(self) -> list[Settlement]:
        """Recorded settlements, newest first."""
        return sorted(
            self._settlements.values(),
            key=lambda s: (s.settlement_date, s.created_at),
            reverse=True,
        )

    # =========================================================================
    # READ SIDE
    # =========================================================================

    def balances(self) -> dict[str, Decimal]:
        """Consistent snapshot of every member's balance."""
        return self._ledger.snapshot()

    def member_balances(self) -> list[MemberBalance]:
        return self._ledger.member_balances()

    def simplified_debts(self) -> list[SimplifiedTransfer]:
        """Who should pay whom to settle the whole group."""
        snapshot = self._ledger.snapshot()
        transfers = simplify_debts(snapshot, currency=self._currency)

        self._audit_logger.log_debts_simplified(
            group_id=self._group_id,
            transfer_count=len(transfers),
            member_count=len(snapshot),
        )
        return transfers

    # =========================================================================
    # RECURRING EXPENSES
    # =========================================================================

    def generate_due_expenses(
        self,
        recurring: RecurringExpense,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> tuple[list[Expense], RecurringExpense]:
        """
        Record every occurrence of a template that has come due.

        Occurrences are recorded in date order, all or none: every one is
        checked before the first is applied. On rejection nothing is
        recorded and the error propagates, so the caller keeps the
        un-advanced template and can retry.

        Returns:
            (recorded_expenses, updated_template)
        """
        today = today or date.today()
        expenses, updated = roll_forward(recurring, today, now=now)

        correlation_id = create_correlation_id()
        with self._lock:
            for expense in expenses:
                try:
                    self._prepare(expense)
                except LedgerError as e:
                    self._rejected(
                        "generate_due_expenses", e, "recurring_expense", str(recurring.id), correlation_id
                    )
                    raise

            for expense in expenses:
                self.record_expense(
                    expense,
                    correlation_id=correlation_id,
                    event_type=AuditEventType.RECURRING_EXPENSE_GENERATED,
                )

        return expenses, updated


def create_group_ledger(
    group_id: Optional[str] = None,
    currency: Optional[str] = None,
    use_storage: bool = True,
) -> GroupLedgerService:
    """
    Factory function to create a group ledger with its audit trail.

    Args:
        group_id: Group identifier (generated if omitted)
        currency: Group currency (defaults from settings)
        use_storage: Whether to persist audit events to audit_log_path.
                    Set to False for testing without storage.

    Returns:
        GroupLedgerService ready for use
    """
    audit_logger = AuditLogger()  # Local-only logging

    audit_log_path = get_settings().app.audit_log_path
    if use_storage and audit_log_path:
        audit_logger = AuditLogger(JsonLinesAuditStorage(audit_log_path))
    elif use_storage:
        logger.warning("audit_storage_not_configured", group_id=group_id)

    return GroupLedgerService(
        group_id=group_id,
        currency=currency,
        audit_logger=audit_logger,
    )
