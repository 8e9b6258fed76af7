"""
Integration tests for the group ledger flows.

Every test runs against an in-memory audit trail; nothing touches disk
unless the test asks for tmp_path.
"""

import threading

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from splitledger.ledger.errors import (
    CurrencyMismatchError,
    DuplicateMemberError,
    ExpenseNotFoundError,
    InvalidParametersError,
    LedgerError,
    OutstandingBalanceError,
    SettlementNotFoundError,
    UnknownMemberError,
)
from splitledger.models.audit import AuditEventType
from splitledger.models.ledger import (
    EquitySplit,
    ExactSplit,
    Expense,
    Settlement,
)
from splitledger.models.recurring import RecurringExpense, RecurringFrequency
from splitledger.orchestrator import GroupLedgerService, create_group_ledger
from splitledger.services.storage import JsonLinesAuditStorage


def dinner(amount="60", participants=("A", "B", "C"), payer="A", **kwargs):
    return Expense(
        group_id="trip",
        description="Dinner",
        amount=Decimal(amount),
        currency="USD",
        participant_ids=list(participants),
        payer_id=payer,
        **kwargs,
    )


def event_types(storage):
    return [e.event_type for e in storage.events]


class TestMembershipFlow:
    """Tests for joining and leaving a group."""

    def test_members_added_and_audited(self, service, storage):
        """Test the fixture group and its audit trail."""
        assert [m.id for m in service.ledger.members] == ["A", "B", "C"]
        assert service.ledger.get_member("C").is_ghost
        assert event_types(storage) == [AuditEventType.MEMBER_ADDED] * 3

    def test_duplicate_member_rejected_and_audited(self, service, storage):
        """Test joining twice."""
        with pytest.raises(DuplicateMemberError):
            service.add_member("Alice again", member_id="A")
        assert storage.events[-1].event_type == AuditEventType.OPERATION_REJECTED

    def test_weight_update_changes_equity_split(self, service):
        """Test that new weights apply to later expenses."""
        service.update_member_weight("B", Decimal("1.5"))
        service.update_member_weight("C", Decimal("0.5"))
        splits = service.record_expense(dinner("100", split=EquitySplit()))
        assert [s.owed_amount for s in splits] == [Decimal("33.33"), Decimal("50.00"), Decimal("16.67")]

    def test_remove_member_requires_settled_balance(self, service):
        """Test leaving with and without debts."""
        service.record_expense(dinner())
        with pytest.raises(OutstandingBalanceError):
            service.remove_member("C")
        service.settle_up("C", "A", Decimal("20"))
        assert service.remove_member("C").is_active is False


class TestExpenseFlow:
    """Tests for recording, editing and deleting expenses."""

    def test_record_expense(self, service, storage):
        """Test the $60 dinner."""
        splits = service.record_expense(dinner())
        assert [s.owed_amount for s in splits] == [Decimal("20.00")] * 3
        assert service.balances() == {
            "A": Decimal("40.00"),
            "B": Decimal("-20.00"),
            "C": Decimal("-20.00"),
        }
        event = storage.events[-1]
        assert event.event_type == AuditEventType.EXPENSE_RECORDED
        assert event.details["balance_deltas"]["A"] == "40.00"

    def test_rejected_expense_changes_nothing(self, service, storage):
        """Test an exact split that doesn't add up."""
        before = service.balances()
        bad = dinner(split=ExactSplit(amounts={"A": "10", "B": "10", "C": "10"}))
        with pytest.raises(InvalidParametersError):
            service.record_expense(bad)
        assert service.balances() == before
        assert service.list_expenses() == []
        assert storage.events[-1].event_type == AuditEventType.OPERATION_REJECTED
        assert storage.events[-1].entity_id == str(bad.id)

    def test_currency_mismatch(self, service):
        """Test an expense in the wrong currency."""
        with pytest.raises(CurrencyMismatchError):
            service.record_expense(dinner().model_copy(update={"currency": "EUR"}))

    def test_unknown_member(self, service):
        """Test a participant outside the group."""
        with pytest.raises(UnknownMemberError):
            service.record_expense(dinner(participants=("A", "Z")))

    def test_same_expense_twice(self, service):
        """Test that an expense id is recorded once."""
        expense = dinner()
        service.record_expense(expense)
        with pytest.raises(LedgerError):
            service.record_expense(expense)
        assert service.balances()["A"] == Decimal("40.00")

    def test_edit_expense(self, service, storage):
        """Test that an edit reverses the old splits first."""
        original = dinner()
        service.record_expense(original)
        edited = original.model_copy(update={"amount": Decimal("90")})
        splits = service.edit_expense(edited)

        assert [s.owed_amount for s in splits] == [Decimal("30.00")] * 3
        assert service.balances() == {
            "A": Decimal("60.00"),
            "B": Decimal("-30.00"),
            "C": Decimal("-30.00"),
        }
        assert service.get_expense(original.id).amount == Decimal("90")
        assert storage.events[-1].event_type == AuditEventType.EXPENSE_EDITED

    def test_failed_edit_keeps_original(self, service):
        """Test a rejected edit leaves the old expense in effect."""
        original = dinner()
        service.record_expense(original)
        before = service.balances()
        bad = original.model_copy(update={"split": ExactSplit(amounts={"A": "1"})})
        with pytest.raises(InvalidParametersError):
            service.edit_expense(bad)
        assert service.balances() == before
        assert service.get_expense(original.id) == original

    def test_edit_published_in_one_step(self, service, monkeypatch):
        """Test that an edit moves balances straight from old to new."""
        original = dinner("90")
        service.record_expense(original)

        seen = []
        commit = service.ledger._commit

        def recording_commit(deltas, sign=1):
            commit(deltas, sign)
            seen.append(service.balances())

        monkeypatch.setattr(service.ledger, "_commit", recording_commit)
        service.edit_expense(original.model_copy(update={"amount": Decimal("60")}))

        assert seen == [{"A": Decimal("40.00"), "B": Decimal("-20.00"), "C": Decimal("-20.00")}]

    def test_readers_never_see_half_an_edit(self, service):
        """Test concurrent readers only see the before or after balances."""
        original = dinner("60")
        service.record_expense(original)
        small = service.balances()
        large = {"A": Decimal("60.00"), "B": Decimal("-30.00"), "C": Decimal("-30.00")}
        done = threading.Event()
        seen = []

        def reader():
            while not done.is_set():
                seen.append(service.balances())

        thread = threading.Thread(target=reader)
        thread.start()
        try:
            for _ in range(100):
                service.edit_expense(original.model_copy(update={"amount": Decimal("90")}))
                service.edit_expense(original)
        finally:
            done.set()
            thread.join()

        assert seen
        assert all(balances in (small, large) for balances in seen)

    def test_edit_unknown_expense(self, service):

        """Test editing something never recorded."""
        with pytest.raises(ExpenseNotFoundError):
            service.edit_expense(dinner())

    def test_delete_expense(self, service, storage):
        """Test deleting restores the balances."""
        before = service.balances()
        expense = dinner()
        service.record_expense(expense)
        service.delete_expense(expense.id)
        assert service.balances() == before
        assert service.list_expenses() == []
        assert storage.events[-1].event_type == AuditEventType.EXPENSE_DELETED

    def test_delete_unknown_expense(self, service):
        """Test deleting an unknown id."""
        with pytest.raises(ExpenseNotFoundError):
            service.delete_expense(uuid4())

    def test_get_splits_and_totals(self, service):
        """Test the read helpers."""
        first = dinner("60")
        second = dinner("30", participants=("A", "B"), payer="B")
        service.record_expense(first)
        service.record_expense(second)
        assert len(service.get_splits(first.id)) == 3
        assert service.total_expenses() == Decimal("90")
        assert service.ledger.total() == Decimal("0")

    def test_multi_payer_expense(self, service):
        """Test an expense paid by two members."""
        service.record_expense(dinner(
            "90",
            payer_contributions={"A": Decimal("45"), "B": Decimal("45")},
        ))
        assert service.balances() == {
            "A": Decimal("15.00"),
            "B": Decimal("15.00"),
            "C": Decimal("-30.00"),
        }


class TestSettlementFlow:
    """Tests for settlements and simplification."""

    def test_simplify_then_settle(self, service, storage):
        """Test paying every proposed transfer settles the group."""
        service.record_expense(dinner())
        transfers = service.simplified_debts()
        assert [(t.from_member_id, t.to_member_id, t.amount) for t in transfers] == [
            ("B", "A", Decimal("20.00")),
            ("C", "A", Decimal("20.00")),
        ]
        assert storage.events[-1].event_type == AuditEventType.DEBTS_SIMPLIFIED

        for transfer in transfers:
            service.record_settlement(transfer.to_settlement(group_id="trip", currency="USD"))
        assert all(b == 0 for b in service.balances().values())
        assert service.simplified_debts() == []
        assert len(service.list_settlements()) == 2

    def test_delete_settlement(self, service):
        """Test undoing a settlement."""
        service.record_expense(dinner())
        settlement = service.settle_up("B", "A", Decimal("20"))
        service.delete_settlement(settlement.id)
        assert service.balances()["B"] == Decimal("-20.00")
        assert service.list_settlements() == []

    def test_delete_unknown_settlement(self, service, storage):
        """Test deleting an unknown id."""
        with pytest.raises(SettlementNotFoundError):
            service.delete_settlement(uuid4())
        assert storage.events[-1].error_code == "SettlementNotFoundError"

    def test_settlement_with_stranger(self, service):
        """Test paying someone outside the group."""
        with pytest.raises(UnknownMemberError):
            service.record_settlement(Settlement(
                from_member_id="A", to_member_id="Z", amount=Decimal("5"), currency="USD",
            ))

    def test_member_balances(self, service):
        """Test the projection through the service."""
        service.record_expense(dinner())
        balances = {b.member_id: b.balance for b in service.member_balances()}
        assert balances == {"A": Decimal("40.00"), "B": Decimal("-20.00"), "C": Decimal("-20.00")}


class TestRecurringFlow:
    """Tests for generating expenses from a template."""

    def test_generate_due_expenses(self, service, storage):
        """Test two missed months are recorded."""
        rent = RecurringExpense(
            group_id="trip",
            description="Rent",
            amount=Decimal("900"),
            currency="USD",
            frequency=RecurringFrequency.MONTHLY,
            start_date=date(2024, 1, 31),
            next_due_date=date(2024, 1, 31),
            payer_id="A",
            participant_ids=["A", "B", "C"],
        )
        recorded, updated = service.generate_due_expenses(rent, today=date(2024, 2, 29))

        assert [e.expense_date for e in recorded] == [date(2024, 1, 31), date(2024, 2, 29)]
        assert updated.next_due_date == date(2024, 3, 31)
        assert service.balances()["A"] == Decimal("1200.00")
        generated = [e for e in storage.events if e.event_type == AuditEventType.RECURRING_EXPENSE_GENERATED]
        assert len(generated) == 2
        assert generated[0].correlation_id == generated[1].correlation_id

    def test_rejected_template_records_nothing(self, service, storage):
        """Test that a template naming a stranger generates no expense."""
        gym = RecurringExpense(
            group_id="trip",
            amount=Decimal("50"),
            currency="USD",
            frequency=RecurringFrequency.WEEKLY,
            start_date=date(2024, 1, 1),
            next_due_date=date(2024, 1, 1),
            payer_id="A",
            participant_ids=["A", "Z"],
        )
        with pytest.raises(UnknownMemberError):
            service.generate_due_expenses(gym, today=date(2024, 1, 20))
        assert service.list_expenses() == []
        assert storage.events[-1].entity_type == "recurring_expense"


class TestFactory:
    """Tests for create_group_ledger."""

    def test_without_storage(self):
        """Test local-only logging."""
        service = create_group_ledger(group_id="g1", use_storage=False)
        assert isinstance(service, GroupLedgerService)
        assert service.currency == "USD"
        assert service.group_id == "g1"

    def test_with_audit_file(self, tmp_path, monkeypatch):
        """Test that audit_log_path enables the JSON Lines trail."""
        path = tmp_path / "audit.jsonl"
        monkeypatch.setenv("AUDIT_LOG_PATH", str(path))
        service = create_group_ledger(group_id="g1", currency="eur")
        service.add_member("Alice", member_id="A")

        assert service.currency == "EUR"
        events = JsonLinesAuditStorage(path).get_recent_events(group_id="g1")
        assert [e.event_type for e in events] == [AuditEventType.MEMBER_ADDED]

    def test_default_currency_from_settings(self, monkeypatch):
        """Test SPLITLEDGER_DEFAULT_CURRENCY."""
        monkeypatch.setenv("SPLITLEDGER_DEFAULT_CURRENCY", "gbp")
        assert create_group_ledger(use_storage=False).currency == "GBP"
