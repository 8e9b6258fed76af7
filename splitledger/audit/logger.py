"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability when a record is rejected
3. An activity feed for the surrounding application

The audit logger:
- Is synchronous, like the ledger itself
- Gracefully handles storage failures (a failed audit write never
  undoes or blocks a ledger operation)
- Supports correlation IDs to tie related events together
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from splitledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from splitledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and activity feeds)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("splitledger.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_member_added(
        self,
        group_id: str,
        member_id: str,
        display_name: str,
        is_ghost: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a member joining the group."""
        self.log(AuditEventBuilder.member_added(
            group_id=group_id,
            member_id=member_id,
            display_name=display_name,
            is_ghost=is_ghost,
            correlation_id=correlation_id,
        ))

    def log_member_weight_updated(
        self,
        group_id: str,
        member_id: str,
        old_weight: Decimal,
        new_weight: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.member_weight_updated(
            group_id=group_id,
            member_id=member_id,
            old_weight=old_weight,
            new_weight=new_weight,
            correlation_id=correlation_id,
        ))

    def log_member_removed(
        self,
        group_id: str,
        member_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.member_removed(
            group_id=group_id,
            member_id=member_id,
            correlation_id=correlation_id,
        ))

    def log_expense_applied(
        self,
        group_id: str,
        expense_id: UUID,
        amount: Decimal,
        currency: str,
        split_type: str,
        deltas: dict[str, Decimal],
        correlation_id: Optional[UUID] = None,
        event_type: AuditEventType = AuditEventType.EXPENSE_RECORDED,
    ) -> None:
        """Log an expense being recorded, edited or generated from a template."""
        self.log(AuditEventBuilder.expense_recorded(
            group_id=group_id,
            expense_id=expense_id,
            amount=amount,
            currency=currency,
            split_type=split_type,
            deltas=deltas,
            correlation_id=correlation_id,
            event_type=event_type,
        ))

    def log_expense_deleted(
        self,
        group_id: str,
        expense_id: UUID,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.expense_deleted(
            group_id=group_id,
            expense_id=expense_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_settlement_recorded(
        self,
        group_id: str,
        settlement_id: UUID,
        from_member_id: str,
        to_member_id: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.settlement_recorded(
            group_id=group_id,
            settlement_id=settlement_id,
            from_member_id=from_member_id,
            to_member_id=to_member_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_settlement_deleted(
        self,
        group_id: str,
        settlement_id: UUID,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.settlement_deleted(
            group_id=group_id,
            settlement_id=settlement_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_debts_simplified(
        self,
        group_id: str,
        transfer_count: int,
        member_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.debts_simplified(
            group_id=group_id,
            transfer_count=transfer_count,
            member_count=member_count,
            correlation_id=correlation_id,
        ))

    def log_rejected(
        self,
        group_id: str,
        operation: str,
        error: Exception,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an operation the ledger refused."""
        self.log(AuditEventBuilder.operation_rejected(
            group_id=group_id,
            operation=operation,
            error=error,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g. editing an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
