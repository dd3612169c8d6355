"""
Cashflow Aggregator

Monthly income and expense totals over a trailing window ending at the
current month.

- Monthly items count their full amount every month.
- Yearly items count amount/12 every month (trend data).
- One-time items count in the month their date falls in, whatever
  their status.
- Installments count in the months they have an occurrence.

Expenses and payments share one "expenses" series.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from fintrack.config.context import DEFAULT_CONTEXT, DisplayContext
from fintrack.models.finance import (
    Expense,
    Income,
    InstallmentPayment,
    OneTimePayment,
    Recurrence,
    Transaction,
    add_months,
)
from fintrack.projections.recurrence import (
    ZERO,
    month_start,
    monthly_rate,
    occurs_in_month,
    same_month,
)


@dataclass(frozen=True)
class MonthlyCashflow:
    month: date
    label: str
    income: Decimal
    expenses: Decimal

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


def trend_amount(txn: Transaction, month: date) -> Decimal:
    """Unsigned amount a transaction adds to `month` in the trend view."""
    if isinstance(txn, InstallmentPayment):
        return txn.amount if occurs_in_month(txn, month) else ZERO
    if isinstance(txn, OneTimePayment):
        return txn.amount if same_month(txn.date, month) else ZERO
    if isinstance(txn, (Income, Expense)):
        if txn.recurrence == Recurrence.ONCE:
            return txn.amount if same_month(txn.date, month) else ZERO
        return monthly_rate(txn)
    raise TypeError(f"Unsupported transaction type: {type(txn).__name__}")


def monthly_totals(
    transactions: Iterable[Transaction],
    today: date,
    window_months: int = 12,
    context: Optional[DisplayContext] = None,
) -> list[MonthlyCashflow]:
    """Trailing `window_months` months ending with today's month, oldest first."""
    if window_months < 1:
        raise ValueError("window_months must be at least 1")

    context = context or DEFAULT_CONTEXT
    transactions = list(transactions)
    current = month_start(today)

    totals = []
    for offset in range(window_months - 1, -1, -1):
        month = add_months(current, -offset)
        income = ZERO
        expenses = ZERO
        for txn in transactions:
            amount = trend_amount(txn, month)
            if isinstance(txn, Income):
                income += amount
            else:
                expenses += amount
        totals.append(MonthlyCashflow(
            month=month,
            label=context.month_label(month),
            income=income,
            expenses=expenses,
        ))

    return totals
