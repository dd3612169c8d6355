"""
Audit Logger

DESIGN DECISION: Every change to stored data is logged.
This provides:
1. Traceability of what changed in which profile
2. Debugging capability when a projection looks off
3. User can see history of their changes on the Settings page

The audit logger:
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
- Never receives secret values (the API key is only ever named)
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from fintrack.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from fintrack.services.storage import AuditStorageInterface


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
    2. The audit store (for the history shown in the app)
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
        self._logger = structlog.get_logger()

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

    def recent(self, limit: int = 50, profile: Optional[str] = None) -> list[AuditEvent]:
        """Recent persisted events, newest first (empty without storage)."""
        if not self._storage:
            return []
        return self._storage.get_recent_events(limit=limit, profile=profile)

    def log_profile_event(
        self,
        event_type: AuditEventType,
        profile: str,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a profile lifecycle event (created, renamed, deleted, ...)."""
        self.log(AuditEventBuilder.profile_event(
            event_type=event_type,
            profile=profile,
            description=description,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_transaction_changed(
        self,
        event_type: AuditEventType,
        profile: str,
        transaction_id: str,
        name: str,
        kind: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_changed(
            event_type=event_type,
            profile=profile,
            transaction_id=transaction_id,
            name=name,
            kind=kind,
            correlation_id=correlation_id,
        ))

    def log_payment_status_updated(
        self,
        profile: str,
        transaction_id: str,
        name: str,
        status: str,
    ) -> None:
        self.log(AuditEventBuilder.payment_status_updated(
            profile=profile,
            transaction_id=transaction_id,
            name=name,
            status=status,
        ))

    def log_balance_updated(self, profile: str, old_balance: str, new_balance: str) -> None:
        self.log(AuditEventBuilder.balance_updated(
            profile=profile,
            old_balance=old_balance,
            new_balance=new_balance,
        ))

    def log_savings_changed(
        self,
        event_type: AuditEventType,
        profile: str,
        entity_type: str,
        entity_id: str,
        name: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log a savings goal or savings account change."""
        self.log(AuditEventBuilder.savings_changed(
            event_type=event_type,
            profile=profile,
            entity_type=entity_type,
            entity_id=entity_id,
            name=name,
            details=details,
        ))

    def log_data_imported(
        self,
        profiles: list[str],
        warning_count: int,
        legacy_format: bool,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.data_imported(
            profiles=profiles,
            warning_count=warning_count,
            legacy_format=legacy_format,
            correlation_id=correlation_id,
        ))

    def log_import_rejected(self, reason: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.import_rejected(
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_data_exported(self, profiles: list[str]) -> None:
        self.log(AuditEventBuilder.data_exported(profiles=profiles))

    def log_preferences_updated(self, changed: list[str]) -> None:
        self.log(AuditEventBuilder.preferences_updated(changed=changed))

    def log_insight_generated(
        self,
        profile: str,
        kind: str,
        language: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.insight_generated(
            profile=profile,
            kind=kind,
            language=language,
            correlation_id=correlation_id,
        ))

    def log_insight_failed(
        self,
        profile: str,
        kind: str,
        error_message: str,
        error_code: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.insight_failed(
            profile=profile,
            kind=kind,
            error_message=error_message,
            error_code=error_code,
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

    Use this at the start of a new user action (e.g., an import).
    Pass it through all subsequent operations.
    """
    return uuid4()
