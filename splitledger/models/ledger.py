"""
Core Data Models for Split Ledger

These models define the schemas for everything that flows into and out
of the ledger core:
1. Members of a group (including ghost members with no linked account)
2. Expenses and the split strategy chosen for them
3. Derived splits (who owes what for one expense)
4. Settlements (direct payments between members)
5. Simplified transfers (the "who pays whom" proposal)

DESIGN DECISION: A member's balance is NOT stored on the Member model.
BalanceLedger owns the only authoritative balance; MemberBalance is a
read-only projection built from it.

Amount checks that belong to the ledger's error taxonomy (non-positive
amounts, inconsistent split parameters) are raised by the ledger, not
here, so callers always get a LedgerError for them.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from splitledger.config import get_settings


def _default_currency() -> str:
    return get_settings().ledger.default_currency


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SplitType(str, Enum):
    """How an expense is divided between its participants."""
    EQUAL = "equal"            # Same share for everyone
    EQUITY = "equity"          # Proportional to member weight (e.g. income)
    EXACT = "exact"            # Caller names each amount
    PERCENTAGE = "percentage"  # Caller names each percentage
    SHARES = "shares"          # Caller names a share count per member


class ExpenseCategory(str, Enum):
    """Expense categories."""
    FOOD = "food"
    GROCERIES = "groceries"
    TRANSPORTATION = "transportation"
    UTILITIES = "utilities"
    RENT = "rent"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    TRAVEL = "travel"
    HEALTH = "health"
    OTHER = "other"


class BalanceStatus(str, Enum):
    """Direction of a member's balance."""
    SETTLED_UP = "settled up"
    GETS_BACK = "gets back"
    OWES = "owes"


# =============================================================================
# MEMBERS
# =============================================================================

class Member(BaseModel):
    """
    A participant in a group.

    Members without a user_id are ghost members: tracked only inside
    the group until someone links an account to them.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Member id, unique within the group"
    )
    display_name: str = Field(
        default="",
        max_length=100,
        description="Nickname shown in this group"
    )
    weight: Decimal = Field(
        default=Decimal("1.0"),
        description="Weight for equity splits (default 1.0)"
    )
    is_active: bool = Field(
        default=True,
        description="False once the member has left the group"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Linked account, None for ghost members"
    )
    joined_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    @property
    def is_ghost(self) -> bool:
        """Member has no linked account."""
        return self.user_id is None

    @property
    def initials(self) -> str:
        """Initials for avatars."""
        name = self.display_name or self.id
        parts = name.split()
        if len(parts) >= 2:
            return f"{parts[0][0]}{parts[1][0]}".upper()
        return name[:2].upper()


class MemberBalance(BaseModel):
    """
    Read-only view of one member's running balance.

    Positive = the group owes them, negative = they owe the group.
    """
    model_config = ConfigDict(frozen=True)

    member_id: str
    display_name: str = ""
    balance: Decimal
    is_active: bool = True
    tolerance: Decimal = Field(default=Decimal("0.01"), exclude=True)

    @property
    def status(self) -> BalanceStatus:
        if abs(self.balance) < self.tolerance:
            return BalanceStatus.SETTLED_UP
        if self.balance > 0:
            return BalanceStatus.GETS_BACK
        return BalanceStatus.OWES


# =============================================================================
# SPLIT STRATEGIES
# =============================================================================

class EqualSplit(BaseModel):
    """Divide evenly among all participants."""
    model_config = ConfigDict(frozen=True)

    split_type: Literal["equal"] = "equal"


class EquitySplit(BaseModel):
    """
    Divide in proportion to each member's weight.

    Example: Alice has weight 1.0 and Bob 1.5, so Bob pays 60%.
    """
    model_config = ConfigDict(frozen=True)

    split_type: Literal["equity"] = "equity"


class ExactSplit(BaseModel):
    """Each participant owes a caller-supplied amount."""
    model_config = ConfigDict(frozen=True)

    split_type: Literal["exact"] = "exact"
    amounts: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Member id -> owed amount (missing members owe 0)"
    )


class PercentageSplit(BaseModel):
    """Each participant owes a caller-supplied percentage."""
    model_config = ConfigDict(frozen=True)

    split_type: Literal["percentage"] = "percentage"
    percentages: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Member id -> percentage 0-100 (missing members owe 0)"
    )


class SharesSplit(BaseModel):
    """
    Each participant owes in proportion to a share count.

    Example: Alice has 2 shares and Bob 1, so Alice pays 2/3.
    """
    model_config = ConfigDict(frozen=True)

    split_type: Literal["shares"] = "shares"
    shares: dict[str, int] = Field(
        default_factory=dict,
        description="Member id -> number of shares"
    )


SplitStrategy = Annotated[
    Union[EqualSplit, EquitySplit, ExactSplit, PercentageSplit, SharesSplit],
    Field(discriminator="split_type"),
]


# =============================================================================
# EXPENSES AND SPLITS
# =============================================================================

class Expense(BaseModel):
    """
    A shared expense recorded in a group.

    Immutable once recorded. An edit is a new Expense with the same id:
    the ledger reverses the old splits and applies the new ones.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    group_id: Optional[str] = None
    description: str = Field(
        default="",
        max_length=200,
        description="What the money was spent on"
    )
    amount: Decimal = Field(
        ...,
        description="Total amount paid"
    )
    currency: str = Field(
        default_factory=_default_currency,
        min_length=3,
        max_length=3,
        description="ISO 4217 currency code"
    )
    participant_ids: list[str] = Field(
        ...,
        description="Members sharing the expense, in split order"
    )
    payer_id: str = Field(
        ...,
        min_length=1,
        description="Member who paid"
    )
    payer_contributions: Optional[dict[str, Decimal]] = Field(
        default=None,
        description="Member id -> amount paid, when several members paid"
    )
    split: SplitStrategy = Field(
        default_factory=EqualSplit,
        description="Split strategy and its parameters"
    )
    category: ExpenseCategory = ExpenseCategory.OTHER
    expense_date: date = Field(
        default_factory=date.today
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()

    @property
    def split_type(self) -> SplitType:
        return SplitType(self.split.split_type)

    @property
    def paid_by(self) -> dict[str, Decimal]:
        """Member id -> amount paid."""
        if self.payer_contributions:
            return dict(self.payer_contributions)
        return {self.payer_id: self.amount}


class Split(BaseModel):
    """
    One member's share of one expense.

    Derived from the expense; never authoritative on its own.
    """
    model_config = ConfigDict(frozen=True)

    member_id: str
    owed_amount: Decimal = Field(
        ...,
        description="How much they owe for this expense"
    )
    paid_amount: Decimal = Field(
        default=Decimal("0"),
        description="How much they paid upfront"
    )
    percentage: Optional[Decimal] = None
    shares: Optional[int] = None

    @property
    def net_amount(self) -> Decimal:
        """Positive = owes, negative = gets back."""
        return self.owed_amount - self.paid_amount

    @property
    def is_payer(self) -> bool:
        return self.paid_amount > 0

    @property
    def owes(self) -> bool:
        return self.net_amount > Decimal("0.01")

    @property
    def gets_back(self) -> bool:
        return self.net_amount < Decimal("-0.01")


# =============================================================================
# SETTLEMENTS AND TRANSFERS
# =============================================================================

class Settlement(BaseModel):
    """A direct payment from one member to another, outside any expense."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4
    )
    group_id: Optional[str] = None
    from_member_id: str = Field(
        ...,
        min_length=1,
        description="Who paid"
    )
    to_member_id: str = Field(
        ...,
        min_length=1,
        description="Who received"
    )
    amount: Decimal
    currency: str = Field(
        default_factory=_default_currency,
        min_length=3,
        max_length=3
    )
    settlement_date: date = Field(
        default_factory=date.today
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()


class SimplifiedTransfer(BaseModel):
    """
    One proposed payment from the debt simplifier.

    Never persisted; always recomputed from current balances.
    """
    model_config = ConfigDict(frozen=True)

    from_member_id: str
    to_member_id: str
    amount: Decimal = Field(..., gt=0)

    @model_validator(mode='after')
    def validate_direction(self) -> 'SimplifiedTransfer':
        if self.from_member_id == self.to_member_id:
            raise ValueError("Transfer must be between two different members")
        return self

    def to_settlement(self, **kwargs) -> Settlement:
        """Turn the proposal into a settlement record once it is paid."""
        return Settlement(
            from_member_id=self.from_member_id,
            to_member_id=self.to_member_id,
            amount=self.amount,
            **kwargs,
        )
