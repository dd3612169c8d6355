"""Income and expense breakdowns (monthly-normalised, largest first)."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from fintrack.models.finance import ProfileData, Transaction
from fintrack.projections.recurrence import ZERO, is_active_obligation, monthly_rate


@dataclass(frozen=True)
class BreakdownEntry:
    name: str
    monthly_amount: Decimal
    share_percent: Decimal


def _group(items: list[tuple[str, Decimal]]) -> list[BreakdownEntry]:
    totals: dict[str, Decimal] = {}
    for name, amount in items:
        if amount > 0:
            totals[name] = totals.get(name, ZERO) + amount

    grand_total = sum(totals.values(), ZERO)
    entries = [
        BreakdownEntry(
            name=name,
            monthly_amount=amount,
            share_percent=amount / grand_total * 100 if grand_total else ZERO,
        )
        for name, amount in totals.items()
    ]
    return sorted(entries, key=lambda e: (-e.monthly_amount, e.name))


def _rates(transactions: list[Transaction]) -> list[tuple[str, Decimal]]:
    return [(t.name, monthly_rate(t)) for t in transactions]


def income_breakdown(profile: ProfileData) -> list[BreakdownEntry]:
    """Recurring income sources; yearly income spread over 12 months."""
    return _group(_rates(profile.incomes))


def expense_breakdown(profile: ProfileData, today: date) -> list[BreakdownEntry]:
    """Recurring expenses plus installments that are still running."""
    active = [p for p in profile.installments if is_active_obligation(p, today)]
    return _group(_rates(profile.expenses) + _rates(active))
