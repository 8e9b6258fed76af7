"""Tests for the split calculator."""

import pytest
from decimal import Decimal

from splitledger.ledger.errors import (
    InvalidParametersError,
    NegativeOrZeroAmountError,
    RoundingOverflowError,
    UnknownMemberError,
)
from splitledger.ledger.splits import _absorb, _distribute, build_splits, compute_splits
from splitledger.models.ledger import (
    EqualSplit,
    EquitySplit,
    ExactSplit,
    Expense,
    Member,
    PercentageSplit,
    SharesSplit,
)


def owed(result):
    return [amount for _, amount in result]


class TestEqualSplit:
    """Tests for equal splitting."""

    def test_even_amount(self, members):
        """Test $60 over three members."""
        result = compute_splits(Decimal("60"), members, EqualSplit())
        assert result == [
            ("A", Decimal("20.00")),
            ("B", Decimal("20.00")),
            ("C", Decimal("20.00")),
        ]

    def test_remainder_goes_to_first_participant(self, members):
        """Test that the leftover cent lands on one fixed member."""
        result = compute_splits(Decimal("100"), members, EqualSplit())
        assert owed(result) == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]

    def test_single_participant_owes_everything(self, alice):
        """Test a one-person expense."""
        assert compute_splits(Decimal("12.34"), [alice], EqualSplit()) == [("A", Decimal("12.34"))]

    def test_zero_decimal_currency(self, members):
        """Test rounding to whole yen."""
        result = compute_splits(Decimal("100"), members, EqualSplit(), currency="JPY")
        assert owed(result) == [Decimal("34"), Decimal("33"), Decimal("33")]

    @pytest.mark.parametrize("amount", ["0.01", "0.02", "10.00", "99.99", "1000.01", "33.33"])
    def test_sum_is_exact(self, members, amount):
        """Test that shares always add up to the amount."""
        result = compute_splits(Decimal(amount), members, EqualSplit())
        assert sum(owed(result)) == Decimal(amount)
        assert all(a >= 0 for a in owed(result))


class TestEquitySplit:
    """Tests for weight-proportional splitting."""

    def test_weighted_amounts(self):
        """Test $100 with weights 1.0 / 1.5 / 0.5."""
        participants = [
            Member(id="A", weight=Decimal("1.0")),
            Member(id="B", weight=Decimal("1.5")),
            Member(id="C", weight=Decimal("0.5")),
        ]
        result = compute_splits(Decimal("100"), participants, EquitySplit())
        assert result == [
            ("A", Decimal("33.33")),
            ("B", Decimal("50.00")),
            ("C", Decimal("16.67")),
        ]
        assert sum(owed(result)) == Decimal("100.00")

    def test_equal_weights_match_equal_split(self, members):
        """Test that default weights behave like an equal split."""
        equity = compute_splits(Decimal("100"), members, EquitySplit())
        equal = compute_splits(Decimal("100"), members, EqualSplit())
        assert equity == equal

    def test_ratio_is_kept(self):
        """Test owed_i / owed_j follows weight_i / weight_j."""
        participants = [Member(id="A", weight=Decimal("2")), Member(id="B", weight=Decimal("1"))]
        result = dict(compute_splits(Decimal("90"), participants, EquitySplit()))
        assert result["A"] == 2 * result["B"]

    def test_non_positive_weight_rejected(self):
        """Test that a zero weight is invalid."""
        participants = [Member(id="A"), Member(id="B", weight=Decimal("0"))]
        with pytest.raises(InvalidParametersError):
            compute_splits(Decimal("10"), participants, EquitySplit())


class TestExactSplit:
    """Tests for caller-supplied amounts."""

    def test_amounts_used_as_given(self, members):
        """Test exact amounts that add up."""
        strategy = ExactSplit(amounts={"A": "10", "B": "20", "C": "30"})
        result = compute_splits(Decimal("60"), members, strategy)
        assert owed(result) == [Decimal("10.00"), Decimal("20.00"), Decimal("30.00")]

    def test_mismatch_rejected(self, members):
        """Test amounts that don't add up to the total."""
        strategy = ExactSplit(amounts={"A": "10", "B": "20", "C": "20"})
        with pytest.raises(InvalidParametersError):
            compute_splits(Decimal("60"), members, strategy)

    def test_drift_within_tolerance_absorbed(self, members):
        """Test a one cent drift goes to the first participant."""
        strategy = ExactSplit(amounts={"A": "30.00", "B": "29.99"})
        result = compute_splits(Decimal("60"), members, strategy)
        assert owed(result) == [Decimal("30.01"), Decimal("29.99"), Decimal("0.00")]

    def test_negative_amount_rejected(self, members):
        """Test that nobody can owe a negative amount."""
        strategy = ExactSplit(amounts={"A": "70", "B": "-10"})
        with pytest.raises(InvalidParametersError):
            compute_splits(Decimal("60"), members, strategy)

    def test_non_participant_rejected(self, alice, bob):
        """Test amounts keyed by someone outside the expense."""
        strategy = ExactSplit(amounts={"A": "30", "Z": "30"})
        with pytest.raises(InvalidParametersError):
            compute_splits(Decimal("60"), [alice, bob], strategy)


class TestPercentageSplit:
    """Tests for percentage splitting."""

    def test_percentages(self, members):
        """Test 50 / 30 / 20."""
        strategy = PercentageSplit(percentages={"A": "50", "B": "30", "C": "20"})
        result = compute_splits(Decimal("200"), members, strategy)
        assert owed(result) == [Decimal("100.00"), Decimal("60.00"), Decimal("40.00")]

    def test_rounding_remainder(self, members):
        """Test the leftover cent goes to the largest dropped fraction."""
        strategy = PercentageSplit(percentages={"A": "33.33", "B": "33.33", "C": "33.34"})
        result = compute_splits(Decimal("10"), members, strategy)
        assert sum(owed(result)) == Decimal("10.00")
        assert owed(result) == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]

    def test_total_within_tolerance_still_covers_amount(self, alice, bob):
        """Test percentages adding up to 99.99."""
        strategy = PercentageSplit(percentages={"A": "50", "B": "49.99"})
        result = compute_splits(Decimal("1000"), [alice, bob], strategy)
        assert owed(result) == [Decimal("500.05"), Decimal("499.95")]

    def test_must_total_hundred(self, members):
        """Test percentages adding up to 90."""
        strategy = PercentageSplit(percentages={"A": "50", "B": "40"})
        with pytest.raises(InvalidParametersError):
            compute_splits(Decimal("10"), members, strategy)


class TestSharesSplit:
    """Tests for share-count splitting."""

    def test_shares(self, alice, bob):
        """Test 2 shares against 1."""
        strategy = SharesSplit(shares={"A": 2, "B": 1})
        assert compute_splits(Decimal("90"), [alice, bob], strategy) == [
            ("A", Decimal("60.00")),
            ("B", Decimal("30.00")),
        ]

    def test_missing_count_rejected(self, members):
        """Test that every participant needs a share count."""
        strategy = SharesSplit(shares={"A": 1, "B": 1})
        with pytest.raises(InvalidParametersError):
            compute_splits(Decimal("90"), members, strategy)

    def test_zero_shares_rejected(self, alice, bob):
        """Test that share counts must be positive."""
        strategy = SharesSplit(shares={"A": 1, "B": 0})
        with pytest.raises(InvalidParametersError):
            compute_splits(Decimal("90"), [alice, bob], strategy)

    def test_empty_shares_rejected(self, alice):
        """Test that an empty share map is invalid."""
        with pytest.raises(InvalidParametersError):
            compute_splits(Decimal("90"), [alice], SharesSplit())


class TestComputeSplitsInput:
    """Tests for input checks common to every strategy."""

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount(self, members, amount):
        """Test that zero and negative amounts are rejected."""
        with pytest.raises(NegativeOrZeroAmountError):
            compute_splits(Decimal(amount), members, EqualSplit())

    def test_no_participants(self):
        """Test an empty participant list."""
        with pytest.raises(InvalidParametersError):
            compute_splits(Decimal("10"), [], EqualSplit())

    def test_duplicate_participants(self, alice):
        """Test the same member listed twice."""
        with pytest.raises(InvalidParametersError):
            compute_splits(Decimal("10"), [alice, alice], EqualSplit())

    def test_amount_finer_than_minor_unit(self, members):
        """Test a fraction of a cent."""
        with pytest.raises(InvalidParametersError):
            compute_splits(Decimal("10.005"), members, EqualSplit())

    def test_deterministic(self, members):
        """Test that the same input gives the same output."""
        strategy = PercentageSplit(percentages={"A": "33.33", "B": "33.33", "C": "33.34"})
        first = compute_splits(Decimal("77.77"), members, strategy)
        second = compute_splits(Decimal("77.77"), members, strategy)
        assert first == second


class TestRounding:
    """Tests for placing what rounding leaves over."""

    def test_leftover_handed_out_in_order(self):
        """Test $1.00 over seven members."""
        participants = [Member(id=f"m{i}") for i in range(7)]
        result = compute_splits(Decimal("1.00"), participants, EqualSplit())
        assert owed(result) == [Decimal("0.15")] * 2 + [Decimal("0.14")] * 5

    def test_tiny_amount_over_many_members(self):
        """Test 5 cents over ten members."""
        participants = [Member(id=f"m{i}") for i in range(10)]
        result = compute_splits(Decimal("0.05"), participants, EqualSplit())
        assert owed(result) == [Decimal("0.01")] * 5 + [Decimal("0.00")] * 5

    @pytest.mark.parametrize("size", range(4, 11))
    @pytest.mark.parametrize("amount", ["0.01", "0.05", "1.00", "10.00", "99.99", "1000.07"])
    def test_equal_shares_differ_by_at_most_one_cent(self, size, amount):
        """Test max - min <= 0.01 and an exact total."""
        participants = [Member(id=f"m{i}") for i in range(size)]
        shares = owed(compute_splits(Decimal(amount), participants, EqualSplit()))
        assert max(shares) - min(shares) <= Decimal("0.01")
        assert sum(shares) == Decimal(amount)
        assert shares == sorted(shares, reverse=True)

    def test_largest_fraction_gets_the_unit(self):
        """Test that rounding favours the share that lost the most."""
        shares = [Decimal("1.001"), Decimal("1.009"), Decimal("0.990")]
        assert _distribute(Decimal("3.00"), shares, Decimal("0.01")) == [
            Decimal("1.00"), Decimal("1.01"), Decimal("0.99"),
        ]

    def test_leftover_too_large(self):
        """Test a leftover larger than rounding can produce."""
        with pytest.raises(RoundingOverflowError) as exc_info:
            _distribute(Decimal("10.00"), [Decimal("5.00")], Decimal("0.01"))
        assert exc_info.value.remainder == Decimal("5.00")

    def test_drift_skips_member_that_would_go_negative(self):
        """Test a negative drift lands on the first share that can take it."""
        shares = [Decimal("0.00"), Decimal("5.01")]
        assert _absorb(Decimal("5.00"), shares) == [Decimal("0.00"), Decimal("5.00")]

    def test_drift_nobody_can_absorb(self):
        """Test the error when every share is too small."""
        with pytest.raises(RoundingOverflowError, match="No participant can absorb"):
            _absorb(Decimal("0.01"), [Decimal("0.01"), Decimal("0.01"), Decimal("0.01")])



class TestBuildSplits:
    """Tests for building Split records from an expense."""

    def test_payer_marked(self, members):
        """Test paid amounts on the payer's split."""
        expense = Expense(amount=Decimal("60"), participant_ids=["A", "B", "C"], payer_id="A")
        splits = build_splits(expense, {m.id: m for m in members})
        assert [s.member_id for s in splits] == ["A", "B", "C"]
        assert splits[0].paid_amount == Decimal("60")
        assert splits[0].net_amount == Decimal("-40.00")
        assert splits[1].paid_amount == Decimal("0")

    def test_payer_outside_participants(self, members):
        """Test a payer who doesn't share the expense."""
        expense = Expense(amount=Decimal("40"), participant_ids=["B", "C"], payer_id="A")
        splits = build_splits(expense, {m.id: m for m in members})
        payer = splits[-1]
        assert payer.member_id == "A"
        assert payer.owed_amount == Decimal("0")
        assert payer.paid_amount == Decimal("40")

    def test_multiple_payers(self, members):
        """Test payer contributions spread over two members."""
        expense = Expense(
            amount=Decimal("90"),
            participant_ids=["A", "B", "C"],
            payer_id="A",
            payer_contributions={"A": Decimal("60"), "B": Decimal("30")},
        )
        splits = {s.member_id: s for s in build_splits(expense, {m.id: m for m in members})}
        assert splits["A"].net_amount == Decimal("-30.00")
        assert splits["B"].net_amount == Decimal("0.00")
        assert splits["C"].net_amount == Decimal("30.00")

    def test_contributions_must_match_amount(self, members):
        """Test payments that don't add up."""
        expense = Expense(
            amount=Decimal("90"),
            participant_ids=["A", "B"],
            payer_id="A",
            payer_contributions={"A": Decimal("60")},
        )
        with pytest.raises(InvalidParametersError):
            build_splits(expense, {m.id: m for m in members})

    def test_percentage_attached(self, members):
        """Test that percentage splits carry their percentage."""
        expense = Expense(
            amount=Decimal("100"),
            participant_ids=["A", "B"],
            payer_id="A",
            split=PercentageSplit(percentages={"A": "25", "B": "75"}),
        )
        splits = build_splits(expense, {m.id: m for m in members})
        assert [s.percentage for s in splits] == [Decimal("25"), Decimal("75")]

    def test_unknown_participant(self, members):
        """Test a participant outside the group."""
        expense = Expense(amount=Decimal("10"), participant_ids=["A", "Z"], payer_id="A")
        with pytest.raises(UnknownMemberError):
            build_splits(expense, {m.id: m for m in members})
