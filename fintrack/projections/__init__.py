"""
Projections Package

Pure functions over one ProfileData snapshot. Nothing here touches
storage, settings or the network; the same inputs always give the same
output.
"""

from fintrack.projections.balance import (
    DailyBalance,
    balance_on,
    opening_balance,
    project_month_balances,
)
from fintrack.projections.breakdown import (
    BreakdownEntry,
    expense_breakdown,
    income_breakdown,
)
from fintrack.projections.cashflow import MonthlyCashflow, monthly_totals
from fintrack.projections.debt import DebtPoint, project_payoff, remaining_for_month
from fintrack.projections.goals import (
    GoalProjection,
    GoalProjectionPoint,
    effective_goal_amounts,
    net_monthly_savings,
    project_goal_payoff,
)
from fintrack.projections.recurrence import (
    ContributionMode,
    contributes_on,
    monthly_rate,
    occurrence_in_month,
    occurs_in_month,
    occurs_on,
    signed_contribution,
)
from fintrack.projections.schedule import (
    UpcomingPayment,
    payment_days,
    payments_on,
    upcoming_payments,
)
from fintrack.projections.summary import (
    GoalProgress,
    MonthlySummary,
    SavingsSummary,
    monthly_summary,
    savings_summary,
)
from fintrack.projections.yearly import YearProjection, project_years

__all__ = [
    # Recurrence
    "ContributionMode",
    "contributes_on",
    "monthly_rate",
    "occurrence_in_month",
    "occurs_in_month",
    "occurs_on",
    "signed_contribution",
    # Balance
    "DailyBalance",
    "balance_on",
    "opening_balance",
    "project_month_balances",
    # Cashflow
    "MonthlyCashflow",
    "monthly_totals",
    # Debt
    "DebtPoint",
    "project_payoff",
    "remaining_for_month",
    # Goals
    "GoalProjection",
    "GoalProjectionPoint",
    "effective_goal_amounts",
    "net_monthly_savings",
    "project_goal_payoff",
    # Read models
    "BreakdownEntry",
    "GoalProgress",
    "MonthlySummary",
    "SavingsSummary",
    "UpcomingPayment",
    "YearProjection",
    "expense_breakdown",
    "income_breakdown",
    "monthly_summary",
    "payment_days",
    "payments_on",
    "project_years",
    "savings_summary",
    "upcoming_payments",
]
