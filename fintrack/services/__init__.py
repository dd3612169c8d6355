"""Services package."""

from fintrack.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    FileKeyValueStore,
    InvalidNameError,
    KeyValueAuditStorage,
    KeyValueStore,
    MemoryKeyValueStore,
    NotFoundError,
    ProfileRepository,
    ProtectedProfileError,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "FileKeyValueStore",
    "InvalidNameError",
    "KeyValueAuditStorage",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "NotFoundError",
    "ProfileRepository",
    "ProtectedProfileError",
    "StorageError",
]
