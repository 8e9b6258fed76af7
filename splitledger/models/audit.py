"""
Audit Models for Split Ledger

Every change to a group's ledger is logged for audit purposes.
This provides:
1. Traceability of who moved which balance and when
2. Debugging information when a record is rejected
3. The raw material for an activity feed

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Deleting an expense produces a new EXPENSE_DELETED event.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger mutation has its own event type.
    """
    # Membership
    MEMBER_ADDED = "member_added"
    MEMBER_WEIGHT_UPDATED = "member_weight_updated"
    MEMBER_REMOVED = "member_removed"

    # Expenses
    EXPENSE_RECORDED = "expense_recorded"
    EXPENSE_EDITED = "expense_edited"
    EXPENSE_DELETED = "expense_deleted"
    RECURRING_EXPENSE_GENERATED = "recurring_expense_generated"

    # Settlements
    SETTLEMENT_RECORDED = "settlement_recorded"
    SETTLEMENT_DELETED = "settlement_deleted"

    # Read side
    DEBTS_SIMPLIFIED = "debts_simplified"

    # Failures
    OPERATION_REJECTED = "operation_rejected"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    group_id: Optional[str] = Field(
        default=None,
        description="Group whose ledger changed"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'settlement', 'member')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., reversal and re-apply of one edit)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "group_id": self.group_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_json_line(self) -> str:
        """Serialize as one line of JSON for append-only files."""
        return json.dumps(self.to_log_dict(), default=str, ensure_ascii=False)

    @classmethod
    def from_json_line(cls, line: str) -> "AuditEvent":
        return cls.model_validate(json.loads(line))


def _amount(value: Decimal) -> str:
    return str(value)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_recorded(group_id, expense_id, ...)
        event = AuditEventBuilder.operation_rejected(group_id, "record_expense", error)
    """

    @staticmethod
    def member_added(
        group_id: str,
        member_id: str,
        display_name: str,
        is_ghost: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_ADDED,
            group_id=group_id,
            entity_type="member",
            entity_id=member_id,
            correlation_id=correlation_id,
            description=f"Member added: {display_name or member_id}",
            details={
                "display_name": display_name,
                "is_ghost": is_ghost,
            },
        )

    @staticmethod
    def member_weight_updated(
        group_id: str,
        member_id: str,
        old_weight: Decimal,
        new_weight: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_WEIGHT_UPDATED,
            group_id=group_id,
            entity_type="member",
            entity_id=member_id,
            correlation_id=correlation_id,
            description=f"Equity weight changed from {old_weight} to {new_weight}",
            details={
                "old_weight": _amount(old_weight),
                "new_weight": _amount(new_weight),
            },
        )

    @staticmethod
    def member_removed(
        group_id: str,
        member_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_REMOVED,
            group_id=group_id,
            entity_type="member",
            entity_id=member_id,
            correlation_id=correlation_id,
            description=f"Member left the group: {member_id}",
        )

    @staticmethod
    def expense_recorded(
        group_id: str,
        expense_id: UUID,
        amount: Decimal,
        currency: str,
        split_type: str,
        deltas: dict[str, Decimal],
        correlation_id: Optional[UUID] = None,
        event_type: AuditEventType = AuditEventType.EXPENSE_RECORDED,
    ) -> AuditEvent:
        verb = {
            AuditEventType.EXPENSE_EDITED: "edited",
            AuditEventType.RECURRING_EXPENSE_GENERATED: "generated",
        }.get(event_type, "recorded")
        return AuditEvent(
            event_type=event_type,
            group_id=group_id,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Expense {verb}: {amount} {currency} ({split_type} split)",
            details={
                "amount": _amount(amount),
                "currency": currency,
                "split_type": split_type,
                "balance_deltas": {k: _amount(v) for k, v in deltas.items()},
            },
        )

    @staticmethod
    def expense_deleted(
        group_id: str,
        expense_id: UUID,
        amount: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            group_id=group_id,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Expense deleted and its balances reversed ({amount})",
            details={
                "amount": _amount(amount),
            },
        )

    @staticmethod
    def settlement_recorded(
        group_id: str,
        settlement_id: UUID,
        from_member_id: str,
        to_member_id: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_RECORDED,
            group_id=group_id,
            entity_type="settlement",
            entity_id=str(settlement_id),
            correlation_id=correlation_id,
            description=f"Settlement recorded: {from_member_id} paid {to_member_id} {amount}",
            details={
                "from_member_id": from_member_id,
                "to_member_id": to_member_id,
                "amount": _amount(amount),
            },
        )

    @staticmethod
    def settlement_deleted(
        group_id: str,
        settlement_id: UUID,
        amount: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_DELETED,
            group_id=group_id,
            entity_type="settlement",
            entity_id=str(settlement_id),
            correlation_id=correlation_id,
            description=f"Settlement deleted and its balances reversed ({amount})",
            details={
                "amount": _amount(amount),
            },
        )

    @staticmethod
    def debts_simplified(
        group_id: str,
        transfer_count: int,
        member_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBTS_SIMPLIFIED,
            severity=AuditSeverity.DEBUG,
            group_id=group_id,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=f"Simplified debts: {transfer_count} transfers for {member_count} members",
            details={
                "transfer_count": transfer_count,
                "member_count": member_count,
            },
        )

    @staticmethod
    def operation_rejected(
        group_id: str,
        operation: str,
        error: Exception,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            group_id=group_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Rejected {operation}: {type(error).__name__}",
            details={
                "operation": operation,
            },
            error_code=type(error).__name__,
            error_message=str(error),
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
