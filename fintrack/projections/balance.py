"""
Balance Walker

Reconstructs the day-by-day balance of one calendar month from the
profile's current balance.

`current_balance` is the end-of-day balance for `today`. To find where
the month opened, contributions are undone from today back to the first
of the month (or, for a future month, applied forward from tomorrow).
The month is then replayed forward one day at a time.

CRITICAL: the walk for the current month lands exactly on
current_balance at today. Decimal arithmetic keeps the forward and
backward replays exact inverses.

The walk is always REALIZED: pending one-time payments never move it.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from fintrack.config.context import DEFAULT_CONTEXT, DisplayContext
from fintrack.models.finance import ProfileData
from fintrack.projections.recurrence import (
    ContributionMode,
    iter_days,
    month_end,
    month_start,
    net_change_on,
)


@dataclass(frozen=True)
class DailyBalance:
    """End-of-day balance for one day of the walked month."""

    day: date
    label: str
    balance: Decimal
    net_change: Decimal

    @property
    def has_change(self) -> bool:
        return self.net_change != 0


def opening_balance(profile: ProfileData, month: date, today: date) -> Decimal:
    """Balance at the start of `month`, before any of its contributions."""
    first = month_start(month)
    balance = profile.current_balance

    if first <= today:
        # Undo today, yesterday, ... back to the first of the month
        day = today
        while day >= first:
            balance -= net_change_on(profile.transactions, day, ContributionMode.REALIZED)
            day -= timedelta(days=1)
    else:
        for day in iter_days(today + timedelta(days=1), first - timedelta(days=1)):
            balance += net_change_on(profile.transactions, day, ContributionMode.REALIZED)

    return balance


def project_month_balances(
    profile: ProfileData,
    month: date,
    today: date,
    context: Optional[DisplayContext] = None,
) -> list[DailyBalance]:
    """
    One entry per calendar day of `month`, oldest first.

    Args:
        profile: The profile snapshot
        month: Any date inside the month to walk
        today: The day current_balance refers to
        context: Labels the days in the user's language

    Returns:
        DailyBalance for each day, with the running end-of-day balance
    """
    context = context or DEFAULT_CONTEXT
    first = month_start(month)

    running = opening_balance(profile, first, today)
    days = []
    for day in iter_days(first, month_end(first)):
        change = net_change_on(profile.transactions, day, ContributionMode.REALIZED)
        running += change
        days.append(DailyBalance(
            day=day,
            label=context.day_label(day),
            balance=running,
            net_change=change,
        ))

    return days


def balance_on(profile: ProfileData, day: date, today: date) -> Decimal:
    """End-of-day balance for any single day."""
    return project_month_balances(profile, day, today)[day.day - 1].balance
