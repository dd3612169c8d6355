"""Tests for the cashflow trend and the long-term projection."""

import pytest
from datetime import date
from decimal import Decimal

from fintrack.config import DisplayContext
from fintrack.models import (
    Expense,
    Income,
    InstallmentPayment,
    Language,
    OneTimePayment,
    PaymentStatus,
    ProfileData,
    Recurrence,
)
from fintrack.projections import monthly_totals, project_years


class TestMonthlyTotals:
    """Trailing monthly income/expense totals."""

    def test_window_ends_at_current_month(self, salary_and_rent, today):
        """Oldest first, current month last."""
        totals = monthly_totals(salary_and_rent.transactions, today)
        assert len(totals) == 12
        assert totals[0].month == date(2023, 7, 1)
        assert totals[-1].month == date(2024, 6, 1)
        assert totals[-1].label == "Jun 24"

    def test_recurring_amounts(self, salary_and_rent, today):
        totals = monthly_totals(salary_and_rent.transactions, today, window_months=3)
        assert [m.income for m in totals] == [Decimal("3000")] * 3
        assert [m.expenses for m in totals] == [Decimal("1000")] * 3
        assert totals[0].net == Decimal("2000")

    def test_yearly_is_spread(self, today):
        """Yearly amounts show up as amount/12 in every month."""
        insurance = Expense(
            name="Insurance", amount=Decimal("600"),
            date=date(2024, 3, 1), recurrence=Recurrence.YEARLY,
        )
        totals = monthly_totals([insurance], today, window_months=4)
        assert all(m.expenses == Decimal("50") for m in totals)

    def test_one_time_items_in_their_month(self, today):
        """One-time items count in their own month, paid or not."""
        items = [
            Income(
                name="Refund", amount=Decimal("40"),
                date=date(2024, 5, 9), recurrence=Recurrence.ONCE,
            ),
            OneTimePayment(name="Repair", amount=Decimal("500"), date=date(2024, 6, 25)),
            OneTimePayment(
                name="Old", amount=Decimal("70"),
                date=date(2024, 5, 2), status=PaymentStatus.PAID,
            ),
        ]
        may, june = monthly_totals(items, today, window_months=2)
        assert (may.income, may.expenses) == (Decimal("40"), Decimal("70"))
        assert (june.income, june.expenses) == (Decimal("0"), Decimal("500"))

    def test_installments_only_while_running(self, today):
        """Installments count in the months they are due."""
        loan = InstallmentPayment.schedule("Loan", Decimal("200"), date(2024, 4, 10), 1)
        totals = monthly_totals([loan], today, window_months=4)
        assert [m.expenses for m in totals] == [
            Decimal("0"), Decimal("200"), Decimal("200"), Decimal("0"),
        ]

    def test_labels_follow_language(self, salary_and_rent, today):
        totals = monthly_totals(
            salary_and_rent.transactions, today, window_months=4,
            context=DisplayContext(language=Language.DE),
        )
        assert totals[0].label == "Mär 24"

    def test_empty(self, today):
        totals = monthly_totals([], today, window_months=2)
        assert all(m.income == 0 and m.expenses == 0 for m in totals)

    def test_window_must_be_positive(self, today):
        with pytest.raises(ValueError, match="at least 1"):
            monthly_totals([], today, window_months=0)


class TestYearlyProjection:
    """Running balance, one row per year."""

    def test_running_balance(self, salary_and_rent, today):
        rows = project_years(salary_and_rent, today, years=3)
        assert [r.year for r in rows] == [2024, 2025, 2026]
        assert rows[0].income == Decimal("36000")
        assert rows[0].expenses == Decimal("12000")
        assert rows[0].balance == Decimal("26000")
        assert rows[2].balance == Decimal("2000") + 3 * Decimal("24000")

    def test_installments_and_one_time_items(self, today):
        profile = ProfileData(transactions=[
            InstallmentPayment.schedule("Loan", Decimal("100"), date(2024, 11, 1), 3),
            OneTimePayment(name="Repair", amount=Decimal("50"), date=date(2025, 5, 1)),
        ])
        rows = project_years(profile, today, years=2)
        # Nov 1 .. Feb 1: Nov and Dec in 2024, Jan and Feb in 2025
        assert rows[0].expenses == Decimal("200")
        assert rows[1].expenses == Decimal("250")

    def test_years_must_be_positive(self, salary_and_rent, today):
        with pytest.raises(ValueError):
            project_years(salary_and_rent, today, years=0)
