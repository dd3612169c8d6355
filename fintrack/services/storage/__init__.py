"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements one-JSON-file-per-key local storage, with an
in-memory store for tests. The ProfileRepository sits on top of either.
"""

from fintrack.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    InvalidNameError,
    KeyValueStore,
    NotFoundError,
    ProtectedProfileError,
    StorageError,
)
from fintrack.services.storage.local import (
    FileKeyValueStore,
    KeyValueAuditStorage,
    MemoryKeyValueStore,
)
from fintrack.services.storage.repository import ProfileRepository

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStore",
    # Exceptions
    "DuplicateError",
    "InvalidNameError",
    "NotFoundError",
    "ProtectedProfileError",
    "StorageError",
    # Local implementation
    "FileKeyValueStore",
    "KeyValueAuditStorage",
    "MemoryKeyValueStore",
    "ProfileRepository",
]
