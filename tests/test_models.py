"""
Tests for FinTrack

Test strategy:
1. Unit tests for individual components (models, projections, validators)
2. Integration tests for flows (with in-memory storage)
3. No real API calls in tests (the Gemini model is faked)
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from pydantic import TypeAdapter

from fintrack.config import DisplayContext
from fintrack.models import (
    AppBundle,
    AppPreferences,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Currency,
    EntityNotFoundError,
    Expense,
    Income,
    InstallmentPayment,
    Language,
    OneTimePayment,
    PaymentStatus,
    ProfileData,
    Recurrence,
    SavingsGoal,
    Transaction,
    ValidationIssue,
    ValidationResult,
    transaction_kind,
)


TRANSACTION = TypeAdapter(Transaction)


class TestTransactionModels:
    """Tests for the tagged transaction variants."""

    def test_income_from_stored_json(self):
        """Stored camelCase JSON parses into the right variant."""
        txn = TRANSACTION.validate_python({
            "id": "t1",
            "category": "income",
            "recurrence": "yearly",
            "name": "Bonus",
            "amount": 1200,
            "date": "2024-03-01T00:00:00.000Z",
        })
        assert isinstance(txn, Income)
        assert txn.recurrence == Recurrence.YEARLY
        assert txn.date == date(2024, 3, 1)
        assert txn.amount == Decimal("1200")

    def test_payment_variants_are_told_apart_by_recurrence(self):
        """category=payment is an installment when monthly, one-time when once."""
        installment = TRANSACTION.validate_python({
            "category": "payment",
            "recurrence": "monthly",
            "name": "Car",
            "amount": 200,
            "date": "2024-01-10",
            "installmentDetails": {"numberOfPayments": 10, "completionDate": "2024-11-10"},
        })
        one_time = TRANSACTION.validate_python({
            "category": "payment",
            "recurrence": "once",
            "name": "Repair",
            "amount": 500,
            "date": "2024-06-25",
            "status": "pending",
        })
        assert isinstance(installment, InstallmentPayment)
        assert isinstance(one_time, OneTimePayment)
        assert transaction_kind(installment) == "installment"
        assert transaction_kind(one_time) == "one_time_payment"

    def test_unknown_category_is_rejected(self):
        """A category outside income/expense/payment fails validation."""
        with pytest.raises(ValueError):
            TRANSACTION.validate_python({
                "category": "transfer",
                "recurrence": "once",
                "name": "x",
                "amount": 1,
                "date": "2024-01-01",
            })

    def test_amount_must_be_positive(self):
        """The sign comes from the category, never from the amount."""
        with pytest.raises(ValueError):
            Expense(name="Rent", amount=Decimal("-5"), date=date(2024, 1, 1))
        with pytest.raises(ValueError):
            Income(name="Nothing", amount=Decimal("0"), date=date(2024, 1, 1))

    def test_name_is_stripped(self):
        """Whitespace around names is removed."""
        txn = Income(name="  Salary  ", amount=Decimal("1"), date=date(2024, 1, 1))
        assert txn.name == "Salary"

    def test_ids_are_generated(self):
        """Every new transaction gets its own id."""
        a = Income(name="A", amount=Decimal("1"), date=date(2024, 1, 1))
        b = Income(name="A", amount=Decimal("1"), date=date(2024, 1, 1))
        assert a.id and b.id and a.id != b.id

    def test_json_dump_uses_camel_case_and_floats(self):
        """Stored documents keep the camelCase layout and numeric amounts."""
        payment = InstallmentPayment.schedule("Car", Decimal("200.50"), date(2024, 1, 10), 3)
        dumped = payment.to_json_dict()
        assert dumped["installmentDetails"] == {
            "numberOfPayments": 3,
            "completionDate": "2024-04-10",
        }
        assert dumped["amount"] == 200.5
        assert dumped["category"] == "payment"
        assert dumped["recurrence"] == "monthly"


class TestInstallmentSchedule:
    """Tests for installment completion dates."""

    def test_schedule_derives_completion_date(self):
        """completionDate = start + numberOfPayments months."""
        payment = InstallmentPayment.schedule("Loan", Decimal("100"), date(2024, 2, 5), 12)
        assert payment.completion_date == date(2025, 2, 5)
        assert payment.total_amount == Decimal("1200")

    def test_schedule_clamps_to_month_end(self):
        """Jan 31 plus one month is the last day of February."""
        payment = InstallmentPayment.schedule("Loan", Decimal("100"), date(2024, 1, 31), 1)
        assert payment.completion_date == date(2024, 2, 29)

    def test_missing_completion_date_is_filled(self):
        """Older data without completionDate still loads."""
        payment = InstallmentPayment.model_validate({
            "name": "Phone",
            "amount": 30,
            "date": "2024-03-15",
            "installmentDetails": {"numberOfPayments": 24},
        })
        assert payment.completion_date == date(2026, 3, 15)

    def test_completion_before_start_is_rejected(self):
        """A schedule cannot end before it begins."""
        with pytest.raises(ValueError, match="Completion date"):
            InstallmentPayment.model_validate({
                "name": "Phone",
                "amount": 30,
                "date": "2024-03-15",
                "installmentDetails": {"numberOfPayments": 2, "completionDate": "2024-01-01"},
            })

    def test_editing_recomputes_only_through_schedule(self):
        """Re-scheduling with the same id replaces the completion date."""
        original = InstallmentPayment.schedule("Loan", Decimal("100"), date(2024, 1, 1), 6)
        edited = InstallmentPayment.schedule(
            "Loan", Decimal("100"), date(2024, 1, 1), 12, id=original.id
        )
        assert edited.id == original.id
        assert edited.completion_date == date(2025, 1, 1)


class TestProfileData:
    """Tests for ProfileData mutations."""

    def test_typed_views(self, salary_and_rent):
        """incomes/expenses/payments filter by variant."""
        salary_and_rent.add_transaction(
            OneTimePayment(name="Repair", amount=Decimal("50"), date=date(2024, 6, 25))
        )
        assert [t.name for t in salary_and_rent.incomes] == ["Salary"]
        assert [t.name for t in salary_and_rent.expenses] == ["Rent"]
        assert [t.name for t in salary_and_rent.payments] == ["Repair"]

    def test_update_transaction_can_change_kind(self, salary_and_rent):
        """An edit may turn an expense into a one-time payment."""
        rent = salary_and_rent.expenses[0]
        replacement = OneTimePayment(
            id=rent.id, name="Rent", amount=Decimal("1000"), date=date(2024, 6, 15)
        )
        salary_and_rent.update_transaction(replacement)
        assert isinstance(salary_and_rent.get_transaction(rent.id), OneTimePayment)

    def test_missing_transaction_raises(self, salary_and_rent):
        """Unknown ids raise EntityNotFoundError."""
        with pytest.raises(EntityNotFoundError, match="transaction not found"):
            salary_and_rent.delete_transaction("nope")

    def test_toggle_payment_status(self):
        """pending -> paid -> pending."""
        profile = ProfileData()
        payment = profile.add_transaction(
            OneTimePayment(name="Repair", amount=Decimal("50"), date=date(2024, 6, 25))
        )
        assert profile.toggle_payment_status(payment.id).status == PaymentStatus.PAID
        assert profile.toggle_payment_status(payment.id).status == PaymentStatus.PENDING

    def test_toggle_requires_one_time_payment(self, salary_and_rent):
        """Only one-time payments carry a status to toggle."""
        with pytest.raises(ValueError, match="Only one-time payments"):
            salary_and_rent.toggle_payment_status(salary_and_rent.incomes[0].id)


class TestSavingsModels:
    """Tests for goals and accounts."""

    def test_new_goals_go_last(self):
        """Priority is one more than the current maximum."""
        profile = ProfileData()
        first = profile.add_goal("Holiday", Decimal("1000"))
        second = profile.add_goal("Car", Decimal("5000"))
        assert (first.priority, second.priority) == (0, 1)

    def test_linked_goal_ignores_current_amount(self):
        """A linked goal's own current amount is always zero."""
        profile = ProfileData()
        account = profile.add_account("Savings", Decimal("1000"))
        goal = profile.add_goal("Holiday", Decimal("500"), Decimal("300"), account.id)
        assert goal.current_amount == 0
        assert goal.is_linked

    def test_link_to_unknown_account_is_rejected(self):
        """Goals can only link to accounts in the same profile."""
        with pytest.raises(EntityNotFoundError):
            ProfileData().add_goal("Holiday", Decimal("500"), linked_account_id="missing")

    def test_add_funds(self):
        """Funds go to unlinked goals only, and must be positive."""
        profile = ProfileData()
        goal = profile.add_goal("Holiday", Decimal("500"), Decimal("100"))
        assert profile.add_funds_to_goal(goal.id, Decimal("50")).current_amount == Decimal("150")
        with pytest.raises(ValueError, match="greater than zero"):
            profile.add_funds_to_goal(goal.id, Decimal("0"))

        account = profile.add_account("Savings", Decimal("10"))
        linked = profile.add_goal("Car", Decimal("500"), linked_account_id=account.id)
        with pytest.raises(ValueError, match="Linked goals"):
            profile.add_funds_to_goal(linked.id, Decimal("5"))

    def test_move_goal_priority(self):
        """Moving swaps neighbours and renumbers from zero."""
        profile = ProfileData()
        a = profile.add_goal("A", Decimal("1"))
        b = profile.add_goal("B", Decimal("1"))
        c = profile.add_goal("C", Decimal("1"))
        c.priority = 7

        assert profile.move_goal_priority(c.id, "up") is True
        assert [g.name for g in profile.goals_by_priority()] == ["A", "C", "B"]
        assert [g.priority for g in profile.goals_by_priority()] == [0, 1, 2]
        assert profile.move_goal_priority(a.id, "up") is False
        assert profile.move_goal_priority(b.id, "down") is False

    def test_priority_ties_break_on_creation_time(self):
        """Equal priorities keep creation order."""
        older = SavingsGoal(
            name="Old", target_amount=Decimal("1"), created_at=datetime(2024, 1, 1)
        )
        newer = SavingsGoal(
            name="New", target_amount=Decimal("1"),
            created_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
        )
        profile = ProfileData(savings_goals=[newer, older])
        assert [g.name for g in profile.goals_by_priority()] == ["Old", "New"]

    def test_new_timestamps_are_naive_utc(self):
        """Fresh goals sort against imported ones, which are stored without a zone."""
        before = datetime.now(timezone.utc).replace(tzinfo=None)
        goal = SavingsGoal(name="Now", target_amount=Decimal("1"))
        event = AuditEvent(
            event_type=AuditEventType.GOAL_ADDED,
            description="Added goal",
        )
        assert goal.created_at.tzinfo is None
        assert goal.created_at >= before
        assert event.timestamp.tzinfo is None

    def test_deleting_account_unlinks_goals(self):
        """Goals never point at an account that does not exist."""
        profile = ProfileData()
        account = profile.add_account("Savings", Decimal("1000"))
        goal = profile.add_goal("Holiday", Decimal("500"), linked_account_id=account.id)
        profile.delete_account(account.id)
        assert goal.linked_account_id is None

    def test_none_link_string_means_unlinked(self):
        """Older dialogs stored the string 'none' for no account."""
        goal = SavingsGoal.model_validate(
            {"name": "Holiday", "targetAmount": 100, "linkedAccountId": "none"}
        )
        assert goal.linked_account_id is None


class TestAppModels:
    """Tests for preferences and the export bundle."""

    def test_blank_api_key_is_none(self):
        """An empty key field means no key."""
        assert AppPreferences(gemini_api_key="   ").gemini_api_key is None

    def test_bundle_requires_listed_active_profile(self):
        """The active profile must be one of the profiles."""
        with pytest.raises(ValueError, match="not in the profile list"):
            AppBundle(active_profile="Work", profiles=["Default"])

    def test_bundle_rejects_duplicate_names(self):
        """Profile names are unique."""
        with pytest.raises(ValueError, match="unique"):
            AppBundle(active_profile="Default", profiles=["Default", "Default"])


class TestDisplayContext:
    """Tests for currency and date formatting."""

    def test_currency_formats(self):
        """Each currency uses its usual locale layout."""
        amount = Decimal("1234.565")
        assert DisplayContext(currency=Currency.EUR).format_currency(amount) == "1.234,57 €"
        assert DisplayContext(currency=Currency.USD).format_currency(amount) == "$1,234.57"
        assert DisplayContext(currency=Currency.GBP).format_currency(-amount) == "-£1,234.57"

    def test_euro_symbol_follows_a_plain_space(self):
        text = DisplayContext(currency=Currency.EUR).format_currency(Decimal("-5"))
        assert text == "-5,00 €"
        assert "\xa0" not in text

    def test_month_labels_follow_language(self):
        """Month names come from the UI language."""
        march = date(2024, 3, 1)
        assert DisplayContext().month_label(march) == "Mar 24"
        assert DisplayContext(language=Language.DE).month_label(march) == "Mär 24"
        assert DisplayContext(language=Language.DE).day_label(date(2024, 3, 5)) == "5. Mär"


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.PROFILE_CREATED,
            description="Profile created",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.is_user_action is True

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_ADDED, "Default", "t1", "Rent", "expense"
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "transaction_added"
        assert log_dict["entity_id"] == "t1"
        assert log_dict["description"] == "Transaction added: Rent"

    def test_preferences_event_never_contains_key(self):
        """Only field names are recorded for preference changes."""
        event = AuditEventBuilder.preferences_updated(["gemini_api_key"])
        assert event.details == {"changed": ["gemini_api_key"]}

    def test_import_event_severity(self):
        """Imports with repairs are warnings."""
        clean = AuditEventBuilder.data_imported(["Default"], 0, False)
        repaired = AuditEventBuilder.data_imported(["Default"], 2, True)
        assert clean.severity == AuditSeverity.INFO
        assert repaired.severity == AuditSeverity.WARNING


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_counts(self):
        """Warnings are counted; info issues still mark the import as repaired."""
        result = ValidationResult(
            structure_valid=True,
            issues=[
                ValidationIssue(field="a", issue_type="missing", message="m", severity="info"),
                ValidationIssue(field="b", issue_type="dropped", message="m", severity="warning"),
            ],
        )
        assert result.warning_count == 1
        assert result.repaired
        assert not result.has_errors

    def test_invalid_severity(self):
        """Severity is limited to error/warning/info."""
        with pytest.raises(ValueError):
            ValidationIssue(field="a", issue_type="x", message="m", severity="fatal")
