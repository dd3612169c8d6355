"""
Long-term Balance Projection

A running balance, one row per calendar year, starting with today's
year. Each year adds:

- recurring income and expenses at their yearly totals
  (monthly items x 12, yearly items once)
- installment payments for each month of the year whose first day
  falls inside the installment's schedule
- one-time items dated in that year, whatever their status

No interest is compounded.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from fintrack.models.finance import (
    Expense,
    Income,
    InstallmentPayment,
    OneTimePayment,
    ProfileData,
    Recurrence,
    Transaction,
)
from fintrack.projections.recurrence import ZERO


@dataclass(frozen=True)
class YearProjection:
    year: int
    income: Decimal
    expenses: Decimal
    balance: Decimal

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


def amount_in_year(txn: Transaction, year: int) -> Decimal:
    """Unsigned amount a transaction moves during calendar `year`."""
    if isinstance(txn, InstallmentPayment):
        months = sum(
            1 for m in range(1, 13)
            if txn.date <= date(year, m, 1) <= txn.completion_date
        )
        return txn.amount * months
    if isinstance(txn, OneTimePayment):
        return txn.amount if txn.date.year == year else ZERO
    if isinstance(txn, (Income, Expense)):
        if txn.recurrence == Recurrence.MONTHLY:
            return txn.amount * 12
        if txn.recurrence == Recurrence.YEARLY:
            return txn.amount
        return txn.amount if txn.date.year == year else ZERO
    raise TypeError(f"Unsupported transaction type: {type(txn).__name__}")


def project_years(profile: ProfileData, today: date, years: int = 10) -> list[YearProjection]:
    if years < 1:
        raise ValueError("years must be at least 1")

    balance = profile.current_balance
    rows = []
    for offset in range(years):
        year = today.year + offset
        income = ZERO
        expenses = ZERO
        for txn in profile.transactions:
            amount = amount_in_year(txn, year)
            if isinstance(txn, Income):
                income += amount
            else:
                expenses += amount
        balance += income - expenses
        rows.append(YearProjection(year=year, income=income, expenses=expenses, balance=balance))

    return rows
