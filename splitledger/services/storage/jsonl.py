"""
JSON Lines Audit Storage

Appends one JSON object per line to a local file.

TRADEOFFS:
- Reads scan the whole file (fine for one group's history)
- No rotation; point audit_log_path somewhere with room to grow
- Appends are line-sized and serialized through a lock, so lines
  never interleave within this process
"""

import threading
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from splitledger.models.audit import AuditEvent
from splitledger.services.storage.interface import (
    AuditStorageInterface,
    CorruptRecordError,
    StorageWriteError,
)


class JsonLinesAuditStorage(AuditStorageInterface):
    """Append-only audit file, one event per line."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_line(self, line: str) -> None:
        with self._lock:
            with self._path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")

    def append_event(self, event: AuditEvent) -> bool:
        try:
            self._write_line(event.to_json_line())
        except OSError as e:
            raise StorageWriteError(f"Failed to append to {self._path}: {e}") from e
        return True

    def _read_all(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        events = []
        with self._lock:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.from_json_line(line))
            except (ValueError, ValidationError) as e:
                raise CorruptRecordError(f"{self._path}:{number}: {e}") from e
        return events

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._read_all() if e.correlation_id == correlation_id]

    def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        return [
            e for e in self._read_all()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(
        self,
        limit: int = 100,
        group_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = self._read_all()
        if group_id is not None:
            events = [e for e in events if e.group_id == group_id]
        return list(reversed(events))[:limit]
