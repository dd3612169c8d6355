"""
Summary Read Models

Headline numbers for the dashboard cards and the savings page.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from fintrack.models.finance import ProfileData, SavingsGoal
from fintrack.projections.goals import effective_goal_amounts, net_monthly_savings
from fintrack.projections.recurrence import ZERO, is_active_obligation, monthly_rate


_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class MonthlySummary:
    current_balance: Decimal
    monthly_income: Decimal
    monthly_expenses: Decimal
    monthly_payments: Decimal
    net_monthly_savings: Decimal

    @property
    def total_outgoing(self) -> Decimal:
        return self.monthly_expenses + self.monthly_payments


@dataclass(frozen=True)
class GoalProgress:
    goal: SavingsGoal
    effective_amount: Decimal
    progress_percent: Decimal

    @property
    def is_complete(self) -> bool:
        return self.effective_amount >= self.goal.target_amount


@dataclass(frozen=True)
class SavingsSummary:
    total_in_accounts: Decimal
    total_allocated: Decimal
    total_available: Decimal
    goals: list[GoalProgress]


def monthly_summary(profile: ProfileData, today: date) -> MonthlySummary:
    income = sum((monthly_rate(t) for t in profile.incomes), ZERO)
    expenses = sum((monthly_rate(t) for t in profile.expenses), ZERO)
    payments = sum(
        (monthly_rate(p) for p in profile.installments if is_active_obligation(p, today)),
        ZERO,
    )
    return MonthlySummary(
        current_balance=profile.current_balance,
        monthly_income=income,
        monthly_expenses=expenses,
        monthly_payments=payments,
        net_monthly_savings=net_monthly_savings(
            profile.incomes, profile.expenses, profile.installments, today
        ),
    )


def goal_progress_percent(effective_amount: Decimal, target_amount: Decimal) -> Decimal:
    """Progress capped at 100; a zero target counts as no progress."""
    if target_amount <= 0:
        return ZERO
    return min(effective_amount / target_amount * _HUNDRED, _HUNDRED)


def savings_summary(profile: ProfileData) -> SavingsSummary:
    """
    Money held in accounts, how much linked goals have claimed, and the rest.

    Goals are listed in priority order.
    """
    effective = effective_goal_amounts(profile.savings_goals, profile.savings_accounts)
    account_ids = {account.id for account in profile.savings_accounts}

    total_in_accounts = sum((a.amount for a in profile.savings_accounts), ZERO)
    total_allocated = sum(
        (
            effective[g.id] for g in profile.savings_goals
            if g.linked_account_id in account_ids
        ),
        ZERO,
    )

    progress = [
        GoalProgress(
            goal=goal,
            effective_amount=effective[goal.id],
            progress_percent=goal_progress_percent(effective[goal.id], goal.target_amount),
        )
        for goal in profile.goals_by_priority()
    ]

    return SavingsSummary(
        total_in_accounts=total_in_accounts,
        total_allocated=total_allocated,
        total_available=total_in_accounts - total_allocated,
        goals=progress,
    )
