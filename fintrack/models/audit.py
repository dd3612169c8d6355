"""
Audit Models for FinTrack

Every user action that changes stored data is logged for audit purposes.
This provides:
1. Traceability of what changed in which profile
2. Debugging information when a projection looks wrong
3. A visible history on the Settings page

DESIGN DECISION: Audit logs are append-only. The store keeps a capped
window of recent events; older events only survive in the local log.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from fintrack.models.finance import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each user-facing mutation has its own event type.
    """
    # Profiles
    PROFILE_CREATED = "profile_created"
    PROFILE_RENAMED = "profile_renamed"
    PROFILE_DUPLICATED = "profile_duplicated"
    PROFILE_DELETED = "profile_deleted"
    PROFILE_SWITCHED = "profile_switched"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    PAYMENT_STATUS_UPDATED = "payment_status_updated"
    BALANCE_UPDATED = "balance_updated"

    # Savings
    GOAL_ADDED = "goal_added"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"
    GOAL_FUNDED = "goal_funded"
    GOAL_REPRIORITIZED = "goal_reprioritized"
    ACCOUNT_ADDED = "account_added"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"

    # Data transfer
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    IMPORT_REJECTED = "import_rejected"

    # Settings
    PREFERENCES_UPDATED = "preferences_updated"

    # AI insights
    INSIGHT_GENERATED = "insight_generated"
    INSIGHT_FAILED = "insight_failed"

    # System events
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
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
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

    # Context - which profile and entity is this about?
    profile: Optional[str] = Field(
        default=None,
        description="Profile the event happened in"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'savings_goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=True,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "profile": self.profile,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.profile_created("Holiday")
        event = AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_ADDED, "Default", txn.id, "Rent", "expense"
        )
    """

    @staticmethod
    def profile_event(
        event_type: AuditEventType,
        profile: str,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            profile=profile,
            entity_type="profile",
            entity_id=profile,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        profile: str,
        transaction_id: str,
        name: str,
        kind: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            profile=profile,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction {verb}: {name}",
            details={"kind": kind, "name": name},
        )

    @staticmethod
    def payment_status_updated(
        profile: str,
        transaction_id: str,
        name: str,
        status: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_STATUS_UPDATED,
            profile=profile,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Payment '{name}' marked {status}",
            details={"status": status},
        )

    @staticmethod
    def balance_updated(
        profile: str,
        old_balance: str,
        new_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_UPDATED,
            profile=profile,
            entity_type="profile",
            entity_id=profile,
            correlation_id=correlation_id,
            description=f"Current balance set to {new_balance}",
            details={"old_balance": old_balance, "new_balance": new_balance},
        )

    @staticmethod
    def savings_changed(
        event_type: AuditEventType,
        profile: str,
        entity_type: str,
        entity_id: str,
        name: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        label = entity_type.replace("_", " ")
        return AuditEvent(
            event_type=event_type,
            profile=profile,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{label.capitalize()} '{name}': {event_type.value.split('_')[-1]}",
            details=details or {},
        )

    @staticmethod
    def data_imported(
        profiles: list[str],
        warning_count: int,
        legacy_format: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_IMPORTED,
            severity=AuditSeverity.WARNING if warning_count else AuditSeverity.INFO,
            correlation_id=correlation_id,
            description=f"Imported {len(profiles)} profile(s) with {warning_count} repair(s)",
            details={
                "profiles": profiles,
                "warning_count": warning_count,
                "legacy_format": legacy_format,
            },
        )

    @staticmethod
    def import_rejected(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Import rejected: document structure is invalid",
            error_message=reason,
        )

    @staticmethod
    def data_exported(
        profiles: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            correlation_id=correlation_id,
            description=f"Exported {len(profiles)} profile(s)",
            details={"profiles": profiles},
        )

    @staticmethod
    def preferences_updated(
        changed: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        # Only field names; the API key value never reaches the log
        return AuditEvent(
            event_type=AuditEventType.PREFERENCES_UPDATED,
            correlation_id=correlation_id,
            description=f"Preferences updated: {', '.join(changed) or 'no changes'}",
            details={"changed": changed},
        )

    @staticmethod
    def insight_generated(
        profile: str,
        kind: str,
        language: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHT_GENERATED,
            profile=profile,
            correlation_id=correlation_id,
            description=f"AI {kind} generated ({language})",
            details={"kind": kind, "language": language},
        )

    @staticmethod
    def insight_failed(
        profile: str,
        kind: str,
        error_message: str,
        error_code: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHT_FAILED,
            severity=AuditSeverity.WARNING,
            profile=profile,
            correlation_id=correlation_id,
            description=f"AI {kind} failed",
            error_code=error_code,
            error_message=error_message,
            details={"kind": kind},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
            is_user_action=False,
        )
