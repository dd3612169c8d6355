"""Tests for the daily balance walk."""

import pytest
from datetime import date, timedelta
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
from fintrack.projections import balance_on, opening_balance, project_month_balances


class TestBalanceWalk:
    """Worked example: salary on the 1st, rent on the 15th, today the 20th."""

    def test_opening_balance(self, salary_and_rent, today):
        """2000 - 3000 + 1000 = 0 before the first contribution of the month."""
        assert opening_balance(salary_and_rent, today, today) == Decimal("0")

    def test_walk(self, salary_and_rent, today):
        """3000 from the 1st, 2000 from the 15th, flat afterwards."""
        walk = project_month_balances(salary_and_rent, today, today)

        assert len(walk) == 30
        assert walk[0].day == date(2024, 6, 1)
        assert walk[0].balance == Decimal("3000")
        assert walk[13].balance == Decimal("3000")
        assert walk[14].balance == Decimal("2000")
        assert all(d.balance == Decimal("2000") for d in walk[14:])

    def test_has_change_marks_contribution_days(self, salary_and_rent, today):
        walk = project_month_balances(salary_and_rent, today, today)
        assert [d.day.day for d in walk if d.has_change] == [1, 15]
        assert walk[14].net_change == Decimal("-1000")

    def test_today_matches_current_balance(self, salary_and_rent, today):
        """The walk reconstructs current_balance exactly at today."""
        assert balance_on(salary_and_rent, today, today) == salary_and_rent.current_balance

    def test_labels_use_context(self, salary_and_rent, today):
        walk = project_month_balances(
            salary_and_rent, today, today, DisplayContext(language=Language.DE)
        )
        assert walk[0].label == "1. Jun"


class TestRoundTrip:
    """Backward then forward replay returns current_balance, for many inputs."""

    @pytest.fixture
    def busy_profile(self) -> ProfileData:
        return ProfileData(
            transactions=[
                Income(name="Salary", amount=Decimal("3123.45"), date=date(2023, 1, 31)),
                Income(
                    name="Bonus", amount=Decimal("999.99"),
                    date=date(2022, 6, 10), recurrence=Recurrence.YEARLY,
                ),
                Expense(name="Rent", amount=Decimal("1010.10"), date=date(2023, 1, 3)),
                Expense(
                    name="Dentist", amount=Decimal("80.07"), date=date(2024, 6, 12),
                    recurrence=Recurrence.ONCE, status=PaymentStatus.PAID,
                ),
                InstallmentPayment.schedule("Car", Decimal("211.11"), date(2024, 2, 29), 10),
                OneTimePayment(
                    name="Repair", amount=Decimal("333.33"),
                    date=date(2024, 6, 18), status=PaymentStatus.PAID,
                ),
                OneTimePayment(name="Later", amount=Decimal("50"), date=date(2024, 6, 28)),
            ],
            current_balance=Decimal("4321.09"),
        )

    @pytest.mark.parametrize("today", [
        date(2024, 6, 1),
        date(2024, 6, 10),
        date(2024, 6, 30),
        date(2024, 2, 29),
        date(2024, 12, 31),
    ])
    def test_round_trip(self, busy_profile, today):
        assert balance_on(busy_profile, today, today) == busy_profile.current_balance

    def test_future_month_continues_from_today(self, salary_and_rent, today):
        """Next month opens with this month's closing balance."""
        june = project_month_balances(salary_and_rent, today, today)
        july = project_month_balances(salary_and_rent, date(2024, 7, 1), today)
        assert opening_balance(salary_and_rent, date(2024, 7, 1), today) == june[-1].balance
        assert july[0].balance == june[-1].balance + Decimal("3000")

    def test_past_month_ends_where_next_begins(self, salary_and_rent, today):
        """Walking a past month stays consistent with the current one."""
        may = project_month_balances(salary_and_rent, date(2024, 5, 1), today)
        june_opening = opening_balance(salary_and_rent, today, today)
        assert may[-1].balance == june_opening

    def test_days_are_consecutive(self, salary_and_rent, today):
        walk = project_month_balances(salary_and_rent, date(2024, 2, 1), today)
        assert len(walk) == 29
        for earlier, later in zip(walk, walk[1:]):
            assert later.day - earlier.day == timedelta(days=1)


class TestPendingPayments:
    """Pending one-time payments never touch the realized walk."""

    def test_pending_payment_does_not_reduce_walk(self, salary_and_rent, today):
        """Adding a pending payment leaves every day of the walk unchanged."""
        before = project_month_balances(salary_and_rent, today, today)
        salary_and_rent.add_transaction(
            OneTimePayment(name="Repair", amount=Decimal("500"), date=date(2024, 6, 25))
        )
        after = project_month_balances(salary_and_rent, today, today)
        assert [d.balance for d in after] == [d.balance for d in before]

    def test_paid_payment_reduces_walk(self, salary_and_rent, today):
        salary_and_rent.add_transaction(OneTimePayment(
            name="Repair", amount=Decimal("500"),
            date=date(2024, 6, 25), status=PaymentStatus.PAID,
        ))
        walk = project_month_balances(salary_and_rent, today, today)
        assert walk[24].balance == Decimal("1500")
        assert balance_on(salary_and_rent, today, today) == Decimal("2000")

    def test_same_snapshot_same_walk(self, salary_and_rent, today):
        """Projections are deterministic."""
        assert (
            project_month_balances(salary_and_rent, today, today)
            == project_month_balances(salary_and_rent, today, today)
        )
