"""
Main Orchestrator for FinTrack

This module ties together all the components and defines the
end-to-end flows for:
1. Profile editing (mutate → save → audit)
2. Data transfer (export, import, preferences)
3. AI insights (snapshot → Gemini → inline result)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every mutation is saved as a whole profile document before it returns
- Every change is audited
- AI failures never escape as exceptions; they become a message

The projections never see storage. The UI asks a flow for the active
profile's data and hands it to the pure projection functions.
"""

import json
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Literal, Optional, Union

import structlog

from fintrack.agents import (
    FinancialInsights,
    FinancialSnapshot,
    InsightAgent,
    InsightError,
    InvalidApiKeyError,
    MissingApiKeyError,
)
from fintrack.audit import AuditLogger, create_correlation_id
from fintrack.config import get_settings
from fintrack.config.settings import GeminiSettings
from fintrack.models.appdata import AppPreferences, ValidationResult
from fintrack.models.audit import AuditEventType
from fintrack.models.finance import (
    InterestRateEntry,
    ProfileData,
    SavingsAccount,
    SavingsGoal,
    Transaction,
    transaction_kind,
)
from fintrack.services.storage import (
    FileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStore,
    MemoryKeyValueStore,
    ProfileRepository,
    StorageError,
)
from fintrack.validation import ImportRejectedError, ImportValidator


logger = structlog.get_logger(__name__)


class ProfileFlow:
    """
    Holds the active profile and applies every edit to it.

    Flow for each mutation:
    1. Apply the change to the in-memory ProfileData
    2. Save the whole document
    3. Audit the change

    Errors from the model (EntityNotFoundError, ValueError) and from
    storage (StorageError subclasses) propagate to the caller. A failed
    save leaves the in-memory data equal to what storage holds.
    """

    def __init__(
        self,
        repository: ProfileRepository,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._repository = repository
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock
        self._active = repository.get_active_profile()
        self._data = repository.load_profile(self._active)

    @property
    def active_profile(self) -> str:
        return self._active

    @property
    def data(self) -> ProfileData:
        return self._data

    def today(self) -> date:
        return self._clock()

    def reload(self) -> None:
        """Re-read the active profile from storage (e.g. after an import)."""
        self._active = self._repository.get_active_profile()
        self._data = self._repository.load_profile(self._active)

    def _save(self) -> None:
        """
        Save the active profile as a whole document.

        On a StorageError the in-memory data is reloaded from storage, so
        an edit that was not written is not shown either. The error is
        audited and re-raised.
        """
        try:
            self._repository.save_profile(self._active, self._data)
        except StorageError as e:
            self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"profile": self._active, "operation": "save_profile"},
            )
            self._data = self._repository.load_profile(self._active)
            raise

    # =========================================================================
    # Profiles
    # =========================================================================

    def list_profiles(self) -> list[str]:
        return self._repository.list_profiles()

    def switch_profile(self, name: str) -> None:
        self._repository.set_active_profile(name)
        self.reload()
        self._audit_logger.log_profile_event(
            AuditEventType.PROFILE_SWITCHED, name, f"Switched to profile '{name}'"
        )

    def create_profile(self, name: str) -> str:
        """Create an empty profile and make it active."""
        name = self._repository.create_profile(name)
        self._audit_logger.log_profile_event(
            AuditEventType.PROFILE_CREATED, name, f"Profile '{name}' created"
        )
        self.switch_profile(name)
        return name

    def rename_profile(self, old_name: str, new_name: str) -> str:
        new_name = self._repository.rename_profile(old_name, new_name)
        if new_name != old_name:
            self._audit_logger.log_profile_event(
                AuditEventType.PROFILE_RENAMED,
                new_name,
                f"Profile '{old_name}' renamed to '{new_name}'",
                details={"old_name": old_name},
            )
        self.reload()
        return new_name

    def duplicate_profile(self, source: str, new_name: str) -> str:
        """Copy `source` into a new profile and make the copy active."""
        if source == self._active:
            self._save()
        new_name = self._repository.duplicate_profile(source, new_name)
        self._audit_logger.log_profile_event(
            AuditEventType.PROFILE_DUPLICATED,
            new_name,
            f"Profile '{source}' duplicated as '{new_name}'",
            details={"source": source},
        )
        self.switch_profile(new_name)
        return new_name

    def delete_profile(self, name: str) -> str:
        """Delete a profile; returns the profile that is active afterwards."""
        active = self._repository.delete_profile(name)
        self._audit_logger.log_profile_event(
            AuditEventType.PROFILE_DELETED, name, f"Profile '{name}' deleted"
        )
        self.reload()
        return active

    # =========================================================================
    # Transactions
    # =========================================================================

    def _audit_transaction(self, event_type: AuditEventType, txn: Transaction) -> None:
        self._audit_logger.log_transaction_changed(
            event_type=event_type,
            profile=self._active,
            transaction_id=txn.id,
            name=txn.name,
            kind=transaction_kind(txn) or "unknown",
        )

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self._data.add_transaction(transaction)
        self._save()
        self._audit_transaction(AuditEventType.TRANSACTION_ADDED, transaction)
        return transaction

    def update_transaction(self, transaction: Transaction) -> Transaction:
        self._data.update_transaction(transaction)
        self._save()
        self._audit_transaction(AuditEventType.TRANSACTION_UPDATED, transaction)
        return transaction

    def delete_transaction(self, transaction_id: str) -> Transaction:
        txn = self._data.delete_transaction(transaction_id)
        self._save()
        self._audit_transaction(AuditEventType.TRANSACTION_DELETED, txn)
        return txn

    def toggle_payment_status(self, transaction_id: str):
        payment = self._data.toggle_payment_status(transaction_id)
        self._save()
        self._audit_logger.log_payment_status_updated(
            profile=self._active,
            transaction_id=payment.id,
            name=payment.name,
            status=payment.status.value,
        )
        return payment

    def set_current_balance(self, amount: Decimal) -> None:
        old_balance = self._data.current_balance
        self._data.set_current_balance(amount)
        self._save()
        self._audit_logger.log_balance_updated(
            profile=self._active,
            old_balance=str(old_balance),
            new_balance=str(self._data.current_balance),
        )

    # =========================================================================
    # Savings
    # =========================================================================

    def _audit_goal(self, event_type: AuditEventType, goal: SavingsGoal, details=None) -> None:
        self._audit_logger.log_savings_changed(
            event_type=event_type,
            profile=self._active,
            entity_type="savings_goal",
            entity_id=goal.id,
            name=goal.name,
            details=details,
        )

    def _audit_account(self, event_type: AuditEventType, account: SavingsAccount) -> None:
        self._audit_logger.log_savings_changed(
            event_type=event_type,
            profile=self._active,
            entity_type="savings_account",
            entity_id=account.id,
            name=account.name,
        )

    def add_goal(
        self,
        name: str,
        target_amount: Decimal,
        current_amount: Decimal = Decimal("0"),
        linked_account_id: Optional[str] = None,
    ) -> SavingsGoal:
        goal = self._data.add_goal(name, target_amount, current_amount, linked_account_id)
        self._save()
        self._audit_goal(AuditEventType.GOAL_ADDED, goal)
        return goal

    def update_goal(self, goal: SavingsGoal) -> SavingsGoal:
        self._data.update_goal(goal)
        self._save()
        self._audit_goal(AuditEventType.GOAL_UPDATED, goal)
        return goal

    def delete_goal(self, goal_id: str) -> SavingsGoal:
        goal = self._data.delete_goal(goal_id)
        self._save()
        self._audit_goal(AuditEventType.GOAL_DELETED, goal)
        return goal

    def add_funds_to_goal(self, goal_id: str, amount: Decimal) -> SavingsGoal:
        goal = self._data.add_funds_to_goal(goal_id, amount)
        self._save()
        self._audit_goal(AuditEventType.GOAL_FUNDED, goal, details={"amount": str(amount)})
        return goal

    def move_goal_priority(self, goal_id: str, direction: Literal["up", "down"]) -> bool:
        moved = self._data.move_goal_priority(goal_id, direction)
        if moved:
            self._save()
            self._audit_goal(
                AuditEventType.GOAL_REPRIORITIZED,
                self._data.get_goal(goal_id),
                details={"direction": direction},
            )
        return moved

    def add_account(
        self,
        name: str,
        amount: Decimal,
        interest_history: Optional[list[InterestRateEntry]] = None,
    ) -> SavingsAccount:
        account = self._data.add_account(name, amount, interest_history)
        self._save()
        self._audit_account(AuditEventType.ACCOUNT_ADDED, account)
        return account

    def update_account(self, account: SavingsAccount) -> SavingsAccount:
        self._data.update_account(account)
        self._save()
        self._audit_account(AuditEventType.ACCOUNT_UPDATED, account)
        return account

    def delete_account(self, account_id: str) -> SavingsAccount:
        account = self._data.delete_account(account_id)
        self._save()
        self._audit_account(AuditEventType.ACCOUNT_DELETED, account)
        return account


class DataTransferFlow:
    """
    Export, import and preferences.

    Import flow:
    1. Two-stage validation (structure, then coercion)
    2. On rejection: audit and report; nothing is written
    3. On success: replace every profile, audit with the repair count
    """

    def __init__(
        self,
        repository: ProfileRepository,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._audit_logger = audit_logger or AuditLogger()

    def export_json(self) -> str:
        bundle = self._repository.export_bundle()
        self._audit_logger.log_data_exported(bundle.profiles)
        return json.dumps(bundle.to_json_dict(), indent=2, ensure_ascii=False)

    def import_json(self, text: Union[str, bytes]) -> tuple[bool, str, Optional[ValidationResult]]:
        """
        Validate and import an export file.

        Returns:
            (imported, message, validation)

        If imported is False, nothing was changed.
        """
        correlation_id = create_correlation_id()
        validator = ImportValidator(default_preferences=self._repository.default_preferences())

        try:
            result = validator.validate(text)
        except ImportRejectedError as e:
            self._audit_logger.log_import_rejected(e.reason, correlation_id)
            return False, str(e), None

        try:
            self._repository.import_bundle(result.bundle)
        except StorageError as e:
            self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"operation": "import_bundle"},
                correlation_id=correlation_id,
            )
            raise

        self._audit_logger.log_data_imported(
            profiles=result.bundle.profiles,
            warning_count=result.validation.warning_count,
            legacy_format=result.validation.legacy_format,
            correlation_id=correlation_id,
        )
        return True, validator.get_user_friendly_summary(result.validation), result.validation

    def load_preferences(self) -> AppPreferences:
        return self._repository.load_preferences()

    def save_preferences(self, preferences: AppPreferences) -> None:
        current = self._repository.load_preferences()
        changed = [
            field for field in ("language", "currency", "gemini_api_key")
            if getattr(current, field) != getattr(preferences, field)
        ]
        self._repository.save_preferences(preferences)
        self._audit_logger.log_preferences_updated(changed)

    def recent_activity(self, limit: int = 50, profile: Optional[str] = None):
        return self._audit_logger.recent(limit=limit, profile=profile)


@dataclass
class InsightOutcome:
    """Result of an insight request; exactly one of text/insights/error is set."""

    text: Optional[str] = None
    insights: Optional[FinancialInsights] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_message is None


class InsightFlow:
    """
    Orchestrates AI insights.

    CRITICAL: This flow never raises. A missing or invalid key, a network
    failure or an unparseable answer becomes an inline error message, and
    the rest of the dashboard keeps working.
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        agent_factory: Callable[..., InsightAgent] = InsightAgent,
        settings: Optional[GeminiSettings] = None,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        self._agent_factory = agent_factory
        self._settings = settings

    def _error_message(self, error: InsightError) -> str:
        if isinstance(error, MissingApiKeyError):
            return "Add a Gemini API key in Settings to enable AI insights."
        if isinstance(error, InvalidApiKeyError):
            return "The provided API key is not valid. Please check your settings."
        return "Could not retrieve an insight at this time."

    async def _run(
        self,
        kind: str,
        profile_name: str,
        profile: ProfileData,
        preferences: AppPreferences,
        today: date,
    ) -> InsightOutcome:
        snapshot = FinancialSnapshot.from_profile(
            profile, today, currency=preferences.currency.value
        )
        try:
            agent = self._agent_factory(
                api_key=preferences.gemini_api_key,
                settings=self._settings,
            )
            if kind == "summary":
                outcome = InsightOutcome(
                    text=await agent.generate_summary(snapshot, preferences.language)
                )
            else:
                outcome = InsightOutcome(
                    insights=await agent.generate_insights(snapshot, preferences.language)
                )
        except InsightError as e:
            self._audit_logger.log_insight_failed(
                profile=profile_name,
                kind=kind,
                error_message=str(e),
                error_code=type(e).__name__,
            )
            return InsightOutcome(error_message=self._error_message(e))

        self._audit_logger.log_insight_generated(
            profile=profile_name,
            kind=kind,
            language=preferences.language.value,
        )
        return outcome

    async def generate_summary(
        self,
        profile_name: str,
        profile: ProfileData,
        preferences: AppPreferences,
        today: date,
    ) -> InsightOutcome:
        return await self._run("summary", profile_name, profile, preferences, today)

    async def generate_insights(
        self,
        profile_name: str,
        profile: ProfileData,
        preferences: AppPreferences,
        today: date,
    ) -> InsightOutcome:
        return await self._run("insights", profile_name, profile, preferences, today)


def create_app_components(
    store: Optional[KeyValueStore] = None,
) -> tuple[ProfileFlow, DataTransferFlow, InsightFlow]:
    """
    Factory function to create all application components.

    Args:
        store: Key/value backend. Defaults to files under the configured
               data directory; falls back to memory if that is unusable.

    Returns:
        (profile_flow, data_transfer_flow, insight_flow)
    """
    settings = get_settings()

    if store is None:
        try:
            store = FileKeyValueStore(settings.storage.data_dir)
        except StorageError as e:
            # Data directory not usable - continue without persistence
            logger.warning("file_storage_unavailable", error=str(e))
            store = MemoryKeyValueStore()

    audit_logger = AuditLogger(
        KeyValueAuditStorage(store, limit=settings.storage.audit_log_limit)
    )
    repository = ProfileRepository(store, settings.app)

    profile_flow = ProfileFlow(repository, audit_logger=audit_logger)
    transfer_flow = DataTransferFlow(repository, audit_logger=audit_logger)
    insight_flow = InsightFlow(audit_logger=audit_logger, settings=settings.gemini)

    return profile_flow, transfer_flow, insight_flow
