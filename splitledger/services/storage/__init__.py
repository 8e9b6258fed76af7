"""
Storage Services Package

Provides the audit storage interface and its implementations.
Currently an in-memory store and a JSON Lines file, designed to be swappable.
"""

from splitledger.services.storage.interface import (
    AuditStorageInterface,
    CorruptRecordError,
    StorageError,
    StorageWriteError,
)
from splitledger.services.storage.jsonl import JsonLinesAuditStorage
from splitledger.services.storage.memory import InMemoryAuditStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    # Exceptions
    "CorruptRecordError",
    "StorageError",
    "StorageWriteError",
    # Implementations
    "InMemoryAuditStorage",
    "JsonLinesAuditStorage",
]
