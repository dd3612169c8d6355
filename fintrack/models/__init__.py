"""
Data Models Package

This package contains all Pydantic models used in FinTrack.
Everything stored, imported or exported must conform to these schemas.
"""

from fintrack.models.finance import (
    Currency,
    EntityNotFoundError,
    Expense,
    Income,
    InstallmentDetails,
    InstallmentPayment,
    InterestRateEntry,
    InterestRecurrence,
    Language,
    OneTimePayment,
    PaymentStatus,
    ProfileData,
    Recurrence,
    SavingsAccount,
    SavingsGoal,
    Transaction,
    TransactionCategory,
    add_months,
    transaction_kind,
)
from fintrack.models.appdata import (
    AppBundle,
    AppPreferences,
    ValidationIssue,
    ValidationResult,
)
from fintrack.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "Currency",
    "EntityNotFoundError",
    "Expense",
    "Income",
    "InstallmentDetails",
    "InstallmentPayment",
    "InterestRateEntry",
    "InterestRecurrence",
    "Language",
    "OneTimePayment",
    "PaymentStatus",
    "ProfileData",
    "Recurrence",
    "SavingsAccount",
    "SavingsGoal",
    "Transaction",
    "TransactionCategory",
    "add_months",
    "transaction_kind",
    # App models
    "AppBundle",
    "AppPreferences",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
