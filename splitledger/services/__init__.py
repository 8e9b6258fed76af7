"""Services package."""

from splitledger.services.storage import (
    AuditStorageInterface,
    CorruptRecordError,
    InMemoryAuditStorage,
    JsonLinesAuditStorage,
    StorageError,
    StorageWriteError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "CorruptRecordError",
    "InMemoryAuditStorage",
    "JsonLinesAuditStorage",
    "StorageError",
    "StorageWriteError",
]
