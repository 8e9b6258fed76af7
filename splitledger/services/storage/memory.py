"""In-memory audit storage, for tests and single-process use."""

import threading
from typing import Optional
from uuid import UUID

from splitledger.models.audit import AuditEvent
from splitledger.services.storage.interface import AuditStorageInterface


class InMemoryAuditStorage(AuditStorageInterface):
    """Keeps events in a list, in append order."""

    def __init__(self):
        self._events: list[AuditEvent] = []
        self._lock = threading.Lock()

    @property
    def events(self) -> list[AuditEvent]:
        with self._lock:
            return list(self._events)

    def append_event(self, event: AuditEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self.events if e.correlation_id == correlation_id]

    def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        return [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(
        self,
        limit: int = 100,
        group_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = self.events
        if group_id is not None:
            events = [e for e in events if e.group_id == group_id]
        return list(reversed(events))[:limit]
