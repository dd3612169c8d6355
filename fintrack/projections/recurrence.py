"""
Recurrence Evaluator

The shared primitive behind every projection: does a transaction
contribute on a given day (or in a given month), and with what sign?

CLAMPING POLICY: an anchor day that does not exist in the target month
(day 31 in April, Feb 29 in a non-leap year) falls on the last day of
that month. `occurrence_in_month` is the only place this is decided.

TWO MODES:
- REALIZED (balance walks): a one-time payment only counts once paid,
  and a pending one-time expense does not count.
- FORECAST (calendar, upcoming payments): everything counts.
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, Iterator

from dateutil.relativedelta import relativedelta

from fintrack.models.finance import (
    Expense,
    Income,
    InstallmentPayment,
    OneTimePayment,
    PaymentStatus,
    Recurrence,
    Transaction,
)


ZERO = Decimal("0")
MONTHS_PER_YEAR = Decimal("12")


class ContributionMode(str, Enum):
    """Which status filter applies to one-time items."""
    REALIZED = "realized"
    FORECAST = "forecast"


# =============================================================================
# CALENDAR HELPERS
# =============================================================================

def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def whole_months_between(start: date, end: date) -> int:
    """Complete months from start to end; Jan 15 to Feb 1 is 0, to Feb 15 is 1."""
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months


def occurrence_in_month(anchor: date, month: date) -> date:
    """The day in `month` a monthly/yearly anchor falls on, clamped to month end."""
    last_day = calendar.monthrange(month.year, month.month)[1]
    return date(month.year, month.month, min(anchor.day, last_day))


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every day from start to end, inclusive."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month


# =============================================================================
# OCCURRENCE RULES
# =============================================================================

def _recurring_occurs_on(anchor: date, recurrence: Recurrence, day: date) -> bool:
    if recurrence == Recurrence.ONCE:
        return day == anchor
    if recurrence == Recurrence.MONTHLY:
        return day == occurrence_in_month(anchor, day)
    if recurrence == Recurrence.YEARLY:
        return day.month == anchor.month and day == occurrence_in_month(anchor, day)
    raise ValueError(f"Unknown recurrence: {recurrence}")


def occurs_on(txn: Transaction, day: date) -> bool:
    """Does the transaction fall on this calendar day (ignoring status)?"""
    if isinstance(txn, InstallmentPayment):
        if not txn.date <= day <= txn.completion_date:
            return False
        return day == occurrence_in_month(txn.date, day)
    if isinstance(txn, OneTimePayment):
        return day == txn.date
    if isinstance(txn, (Income, Expense)):
        return _recurring_occurs_on(txn.date, txn.recurrence, day)
    raise TypeError(f"Unsupported transaction type: {type(txn).__name__}")


def occurs_in_month(txn: Transaction, month: date) -> bool:
    """Does the transaction have an occurrence somewhere in `month`?"""
    if isinstance(txn, InstallmentPayment):
        due = occurrence_in_month(txn.date, month)
        return txn.date <= due <= txn.completion_date
    if isinstance(txn, OneTimePayment):
        return same_month(txn.date, month)
    if isinstance(txn, (Income, Expense)):
        if txn.recurrence == Recurrence.ONCE:
            return same_month(txn.date, month)
        if txn.recurrence == Recurrence.MONTHLY:
            return True
        if txn.recurrence == Recurrence.YEARLY:
            return txn.date.month == month.month
        raise ValueError(f"Unknown recurrence: {txn.recurrence}")
    raise TypeError(f"Unsupported transaction type: {type(txn).__name__}")


def counts_in_mode(txn: Transaction, mode: ContributionMode) -> bool:
    """Apply the status filter for one-time items."""
    if mode == ContributionMode.FORECAST:
        return True
    if isinstance(txn, OneTimePayment):
        return txn.status == PaymentStatus.PAID
    if isinstance(txn, Expense):
        return not (
            txn.recurrence == Recurrence.ONCE
            and txn.status == PaymentStatus.PENDING
        )
    if isinstance(txn, (Income, InstallmentPayment)):
        return True
    raise TypeError(f"Unsupported transaction type: {type(txn).__name__}")


def sign(txn: Transaction) -> int:
    if isinstance(txn, Income):
        return 1
    if isinstance(txn, (Expense, InstallmentPayment, OneTimePayment)):
        return -1
    raise TypeError(f"Unsupported transaction type: {type(txn).__name__}")


def contributes_on(
    txn: Transaction,
    day: date,
    mode: ContributionMode = ContributionMode.REALIZED,
) -> bool:
    return occurs_on(txn, day) and counts_in_mode(txn, mode)


def signed_contribution(
    txn: Transaction,
    day: date,
    mode: ContributionMode = ContributionMode.REALIZED,
) -> Decimal:
    """Signed amount the transaction adds to the balance on `day`."""
    if not contributes_on(txn, day, mode):
        return ZERO
    return txn.amount * sign(txn)


def net_change_on(
    transactions: Iterable[Transaction],
    day: date,
    mode: ContributionMode = ContributionMode.REALIZED,
) -> Decimal:
    """Net balance change on `day`, summed in list order."""
    total = ZERO
    for txn in transactions:
        total += signed_contribution(txn, day, mode)
    return total


# =============================================================================
# RATES
# =============================================================================

def monthly_rate(txn: Transaction) -> Decimal:
    """
    Recurring monthly equivalent of a transaction (unsigned).

    Yearly amounts are spread as amount/12. This is a trend figure, not
    accounting: the real money moves in the anniversary month. One-time
    items have no recurring rate.
    """
    if isinstance(txn, InstallmentPayment):
        return txn.amount
    if isinstance(txn, OneTimePayment):
        return ZERO
    if isinstance(txn, (Income, Expense)):
        if txn.recurrence == Recurrence.MONTHLY:
            return txn.amount
        if txn.recurrence == Recurrence.YEARLY:
            return txn.amount / MONTHS_PER_YEAR
        return ZERO
    raise TypeError(f"Unsupported transaction type: {type(txn).__name__}")


def is_active_obligation(payment: InstallmentPayment, month: date) -> bool:
    """An installment still owes money in or after `month`."""
    return payment.completion_date >= month_start(month)
