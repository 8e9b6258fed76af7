"""
Recurring expense templates.

A template is not an expense: it produces one Expense per due date,
which then goes through the ledger like any other.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from splitledger.models.ledger import (
    EqualSplit,
    ExpenseCategory,
    SplitStrategy,
    _default_currency,
)


class RecurringFrequency(str, Enum):
    """How often a recurring expense comes due."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RecurringExpense(BaseModel):
    """Template for an expense that repeats (rent, subscriptions, ...)."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4
    )
    group_id: Optional[str] = None
    description: str = Field(
        default="",
        max_length=200
    )
    amount: Decimal = Field(
        ...,
        gt=0
    )
    currency: str = Field(
        default_factory=_default_currency,
        min_length=3,
        max_length=3
    )
    frequency: RecurringFrequency
    start_date: date
    end_date: Optional[date] = None
    next_due_date: date
    day_of_week: Optional[int] = Field(
        default=None,
        ge=1,
        le=7,
        description="1 = Monday ... 7 = Sunday, for weekly/biweekly"
    )
    day_of_month: Optional[int] = Field(
        default=None,
        ge=1,
        le=31,
        description="Preferred day for monthly frequency"
    )
    payer_id: str = Field(
        ...,
        min_length=1
    )
    participant_ids: list[str] = Field(
        ...,
        min_length=1
    )
    split: SplitStrategy = Field(
        default_factory=EqualSplit
    )
    category: ExpenseCategory = ExpenseCategory.OTHER
    notes: Optional[str] = Field(
        default=None,
        max_length=1000
    )
    is_active: bool = True
    last_generated_at: Optional[datetime] = None

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode='after')
    def validate_dates(self) -> 'RecurringExpense':
        """Validate date relationships."""
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        if self.next_due_date < self.start_date:
            raise ValueError("Next due date cannot be before start date")
        return self

    @property
    def is_group_expense(self) -> bool:
        return self.group_id is not None
