"""
Pre-mutation Validation

DESIGN DECISION: Records are checked against the group BEFORE the ledger
is touched. The checks are collected into a ValidationResult so a UI can
show every problem at once, and ensure_valid_* turns the first error into
the matching LedgerError for callers that just want to fail fast.

Errors block the record:
- Unknown or inactive members
- Non-positive amount
- Currency differing from the group currency
- Payer contributions that don't add up to the amount
- A member settling with themselves

Warnings don't:
- Payer is not a participant (they paid for others)
- Amount above the configured sanity threshold

IMPORTANT: Validation NEVER silently fixes issues.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from splitledger.config import get_settings
from splitledger.ledger.balances import BalanceLedger
from splitledger.ledger.errors import (
    CurrencyMismatchError,
    InactiveMemberError,
    InvalidParametersError,
    LedgerError,
    NegativeOrZeroAmountError,
    UnknownMemberError,
)
from splitledger.ledger.money import ZERO, to_decimal
from splitledger.models.ledger import Expense, Settlement


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'unknown_member', 'currency_mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    member_id: Optional[str] = None


class ValidationResult(BaseModel):
    """Outcome of validating one expense or settlement."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")


def _to_error(issue: ValidationIssue, expected_currency: str, actual_currency: str, amount: Decimal) -> LedgerError:
    if issue.issue_type == "unknown_member":
        return UnknownMemberError(issue.member_id or "", issue.message)
    if issue.issue_type == "inactive_member":
        return InactiveMemberError(issue.member_id or "", issue.message)
    if issue.issue_type == "non_positive_amount":
        return NegativeOrZeroAmountError(amount, issue.message)
    if issue.issue_type == "currency_mismatch":
        return CurrencyMismatchError(expected_currency, actual_currency)
    return InvalidParametersError(issue.message)


class LedgerValidator:
    """Validates expenses and settlements against one group's member set."""

    def __init__(
        self,
        ledger: BalanceLedger,
        currency: Optional[str] = None,
    ):
        """
        Initialize validator.

        Args:
            ledger: The group ledger holding the member set
            currency: Group currency (defaults from settings)
        """
        self._ledger = ledger
        self._settings = get_settings().ledger
        self._currency = (currency or self._settings.default_currency).upper()

    @property
    def currency(self) -> str:
        return self._currency

    def _member_issues(self, field: str, member_id: str) -> list[ValidationIssue]:
        if not self._ledger.has_member(member_id):
            return [ValidationIssue(
                field=field,
                issue_type="unknown_member",
                message=f"{member_id} is not a member of this group",
                severity="error",
                member_id=member_id,
            )]
        if not self._ledger.get_member(member_id).is_active:
            return [ValidationIssue(
                field=field,
                issue_type="inactive_member",
                message=f"{member_id} has left this group",
                severity="error",
                member_id=member_id,
            )]
        return []

    def _amount_issues(self, amount: Decimal, currency: str) -> list[ValidationIssue]:
        issues = []
        if amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="non_positive_amount",
                message=f"Amount must be greater than zero, got {amount}",
                severity="error",
            ))
        elif amount > self._settings.max_expense_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount}) seems unusually high",
                severity="warning",
            ))

        if currency != self._currency:
            issues.append(ValidationIssue(
                field="currency",
                issue_type="currency_mismatch",
                message=f"Group uses {self._currency}, record is in {currency}",
                severity="error",
            ))
        return issues

    def validate_expense(self, expense: Expense) -> ValidationResult:
        """Check an expense against the group before it is recorded."""
        issues = self._amount_issues(to_decimal(expense.amount), expense.currency)

        if not expense.participant_ids:
            issues.append(ValidationIssue(
                field="participant_ids",
                issue_type="missing",
                message="An expense needs at least one participant",
                severity="error",
            ))
        if len(set(expense.participant_ids)) != len(expense.participant_ids):
            issues.append(ValidationIssue(
                field="participant_ids",
                issue_type="duplicate",
                message="A member is listed more than once",
                severity="error",
            ))

        for member_id in dict.fromkeys(expense.participant_ids):
            issues.extend(self._member_issues("participant_ids", member_id))

        paid_by = expense.paid_by
        for member_id in paid_by:
            if member_id not in expense.participant_ids:
                issues.extend(self._member_issues("payer_id", member_id))

        if expense.payer_contributions is not None:
            total_paid = sum((to_decimal(v) for v in paid_by.values()), ZERO)
            if total_paid != to_decimal(expense.amount):
                issues.append(ValidationIssue(
                    field="payer_contributions",
                    issue_type="inconsistent",
                    message=f"Payments add up to {total_paid}, expected {expense.amount}",
                    severity="error",
                ))
            if any(to_decimal(v) < 0 for v in paid_by.values()):
                issues.append(ValidationIssue(
                    field="payer_contributions",
                    issue_type="invalid_value",
                    message="Payments cannot be negative",
                    severity="error",
                ))

        if expense.payer_id not in expense.participant_ids and expense.payer_contributions is None:
            issues.append(ValidationIssue(
                field="payer_id",
                issue_type="payer_not_participant",
                message=f"{expense.payer_id} paid but does not share the expense",
                severity="warning",
                member_id=expense.payer_id,
            ))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def validate_settlement(self, settlement: Settlement) -> ValidationResult:
        """Check a settlement against the group before it is recorded."""
        issues = self._amount_issues(to_decimal(settlement.amount), settlement.currency)
        issues.extend(self._member_issues("from_member_id", settlement.from_member_id))
        issues.extend(self._member_issues("to_member_id", settlement.to_member_id))

        if settlement.from_member_id == settlement.to_member_id:
            issues.append(ValidationIssue(
                field="to_member_id",
                issue_type="self_settlement",
                message="A member cannot settle with themselves",
                severity="error",
            ))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def ensure_valid_expense(self, expense: Expense) -> ValidationResult:
        """Validate and raise the first error as a LedgerError."""
        result = self.validate_expense(expense)
        if result.has_errors:
            raise _to_error(result.errors[0], self._currency, expense.currency, to_decimal(expense.amount))
        return result

    def ensure_valid_settlement(self, settlement: Settlement) -> ValidationResult:
        """Validate and raise the first error as a LedgerError."""
        result = self.validate_settlement(settlement)
        if result.has_errors:
            raise _to_error(result.errors[0], self._currency, settlement.currency, to_decimal(settlement.amount))
        return result

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a short summary of validation results for display.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        if result.has_errors:
            lines.append("This can't be saved yet:")
            for issue in result.errors:
                lines.append(f"   • {issue.message}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
