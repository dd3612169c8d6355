"""
Payment Schedule

Upcoming payments for a month and the payment calendar. Both run in
FORECAST mode: a pending one-time payment is exactly what the user needs
to see here, even though the balance walk ignores it until it is paid.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from fintrack.models.finance import (
    InstallmentPayment,
    OneTimePayment,
    PaymentStatus,
    ProfileData,
)
from fintrack.projections.recurrence import (
    month_start,
    occurrence_in_month,
    occurs_in_month,
)


@dataclass(frozen=True)
class UpcomingPayment:
    transaction_id: str
    name: str
    amount: Decimal
    due_date: date
    kind: str
    status: Optional[PaymentStatus] = None

    @property
    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING


def upcoming_payments(profile: ProfileData, month: date) -> list[UpcomingPayment]:
    """Every installment occurrence and one-time payment due in `month`, by date."""
    month = month_start(month)
    due = []

    for payment in profile.payments:
        if not occurs_in_month(payment, month):
            continue
        if isinstance(payment, InstallmentPayment):
            due.append(UpcomingPayment(
                transaction_id=payment.id,
                name=payment.name,
                amount=payment.amount,
                due_date=occurrence_in_month(payment.date, month),
                kind="installment",
            ))
        elif isinstance(payment, OneTimePayment):
            due.append(UpcomingPayment(
                transaction_id=payment.id,
                name=payment.name,
                amount=payment.amount,
                due_date=payment.date,
                kind="one_time",
                status=payment.status,
            ))
        else:
            raise TypeError(f"Unsupported payment type: {type(payment).__name__}")

    return sorted(due, key=lambda p: (p.due_date, p.name))


def payment_days(profile: ProfileData, month: date) -> list[date]:
    """Distinct days in `month` with at least one payment due."""
    return sorted({p.due_date for p in upcoming_payments(profile, month)})


def payments_on(profile: ProfileData, day: date) -> list[UpcomingPayment]:
    """Payments due on a single calendar day."""
    return [p for p in upcoming_payments(profile, day) if p.due_date == day]
