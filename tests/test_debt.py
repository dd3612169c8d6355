"""Tests for the installment debt payoff projection."""

import pytest
from datetime import date
from decimal import Decimal

from fintrack.models import Expense, InstallmentPayment, OneTimePayment
from fintrack.projections import project_payoff, remaining_for_month


@pytest.fixture
def loan() -> InstallmentPayment:
    """200 x 10, started on March 10; two whole months elapsed by June 1."""
    return InstallmentPayment.schedule("Car", Decimal("200"), date(2024, 3, 10), 10)


class TestRemainingForMonth:
    """Outstanding balance of a single installment."""

    def test_counts_whole_months_elapsed(self, loan, today):
        """200 x max(0, 10 - 2) = 1600."""
        assert remaining_for_month(loan, today) == Decimal("1600")

    def test_not_started_counts_in_full(self, loan):
        assert remaining_for_month(loan, date(2024, 1, 1)) == Decimal("2000")

    def test_after_completion(self, loan):
        assert loan.completion_date == date(2025, 1, 10)
        assert remaining_for_month(loan, date(2025, 2, 1)) == 0

    def test_partial_month_is_not_elapsed(self):
        """Started Jan 15, the first of February is still inside the first month."""
        sofa = InstallmentPayment.schedule("Sofa", Decimal("100"), date(2024, 1, 15), 10)
        assert remaining_for_month(sofa, date(2024, 2, 1)) == Decimal("1000")
        assert remaining_for_month(sofa, date(2024, 3, 1)) == Decimal("900")


class TestProjectPayoff:
    """Month-by-month remaining debt."""

    def test_starts_this_month(self, loan, today):
        points = project_payoff([loan], today)
        assert points[0].month == date(2024, 6, 1)
        assert points[0].remaining_debt == Decimal("1600")
        assert points[0].label == "Jun 24"

    def test_reaches_zero_by_completion(self, loan, today):
        """The walk stops at the first month without debt."""
        points = project_payoff([loan], today)
        assert points[-1].month == date(2025, 2, 1)
        assert points[-1].remaining_debt == 0
        assert all(p.remaining_debt > 0 for p in points[:-1])
        assert len(points) == 9

    def test_non_increasing(self, loan, today):
        later = InstallmentPayment.schedule("Phone", Decimal("35"), date(2024, 9, 28), 24)
        points = project_payoff([loan, later], today)
        debts = [p.remaining_debt for p in points]
        assert debts == sorted(debts, reverse=True)
        assert debts[-1] == 0

    def test_sums_all_installments(self, loan, today):
        other = InstallmentPayment.schedule("Sofa", Decimal("50"), date(2024, 5, 1), 4)
        points = project_payoff([loan, other], today)
        # Sofa: 4 - 1 elapsed = 3 left
        assert points[0].remaining_debt == Decimal("1600") + Decimal("150")

    def test_ignores_other_transactions(self, loan, today):
        """A full transaction list can be passed in."""
        noise = [
            Expense(name="Rent", amount=Decimal("900"), date=date(2024, 1, 1)),
            OneTimePayment(name="Repair", amount=Decimal("500"), date=date(2024, 6, 25)),
        ]
        assert project_payoff([loan] + noise, today) == project_payoff([loan], today)

    def test_no_installments(self, today):
        assert project_payoff([], today) == []

    def test_finished_loan_gives_single_zero_row(self, today):
        old = InstallmentPayment.schedule("Old", Decimal("100"), date(2022, 1, 1), 6)
        points = project_payoff([old], today)
        assert len(points) == 1
        assert points[0].remaining_debt == 0
