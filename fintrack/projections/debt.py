"""
Debt Projector

Outstanding installment debt per month, from the current month until
everything is paid off.

Per payment and projection month (the first of the month):
- after the completion date: nothing left
- on or before the start date: the whole obligation (amount * n)
- otherwise: amount * max(0, n - whole months elapsed since the start)

The projection stops after the first month whose total is zero, and
never runs past the latest completion month plus one.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from fintrack.config.context import DEFAULT_CONTEXT, DisplayContext
from fintrack.models.finance import InstallmentPayment, Transaction, add_months
from fintrack.projections.recurrence import ZERO, month_start, whole_months_between


@dataclass(frozen=True)
class DebtPoint:
    month: date
    label: str
    remaining_debt: Decimal


def remaining_for_month(payment: InstallmentPayment, month: date) -> Decimal:
    """Outstanding balance of one installment as of the first of `month`."""
    month = month_start(month)
    if month > payment.completion_date:
        return ZERO
    if month <= payment.date:
        return payment.total_amount

    elapsed = whole_months_between(payment.date, month)
    return payment.amount * max(0, payment.number_of_payments - elapsed)


def project_payoff(
    payments: Iterable[Transaction],
    today: date,
    context: Optional[DisplayContext] = None,
) -> list[DebtPoint]:
    """
    Month-by-month remaining installment debt.

    Non-installment transactions in `payments` are ignored, so a whole
    transaction list can be passed in.
    """
    context = context or DEFAULT_CONTEXT
    installments = [p for p in payments if isinstance(p, InstallmentPayment)]
    if not installments:
        return []

    bound = add_months(
        month_start(max(p.completion_date for p in installments)), 1
    )

    points = []
    month = month_start(today)
    while True:
        total = sum((remaining_for_month(p, month) for p in installments), ZERO)
        points.append(DebtPoint(
            month=month,
            label=context.month_label(month),
            remaining_debt=total,
        ))
        if total == 0 or month >= bound:
            break
        month = add_months(month, 1)

    return points
