"""
Abstract Storage Interface

DESIGN DECISION: Storage is a flat key/value store of JSON strings.
This allows us to:
1. Keep the original local-storage key layout (one document per key)
2. Use in-memory storage for testing
3. Swap the file-backed store for something else without touching
   the repository or the projections

The interface is intentionally tiny. The ProfileRepository owns the key
names and the JSON shapes; backends only move strings around.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from fintrack.models.audit import AuditEvent


class KeyValueStore(ABC):
    """
    Abstract interface for key/value storage.

    Values are opaque strings (the repository stores JSON).
    There are no transactions: last writer wins.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read a value.

        Args:
            key: Storage key

        Returns:
            The stored string, or None when the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Write (or overwrite) a value.

        Args:
            key: Storage key
            value: String to store

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """All keys currently stored, sorted."""
        pass

    def contains(self, key: str) -> bool:
        return self.get(key) is not None


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never modify events.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one import).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
        profile: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return
            profile: Only events from this profile, if given

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to create something that already exists."""
    pass


class InvalidNameError(StorageError):
    """A profile name is empty or otherwise unusable."""
    pass


class ProtectedProfileError(StorageError):
    """The default profile and the last remaining profile cannot be deleted."""
    pass
