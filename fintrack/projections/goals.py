"""
Savings Goal Projector

Two calculations live here:

1. Allocation of linked goals. Goals linked to the same account are
   funded in priority order: each takes min(what is left of the account,
   its own target), floored at zero. Unlinked goals keep their own
   current_amount.

2. Payoff projection. Net monthly savings (income minus expenses minus
   installment obligations, yearly items spread /12) are added month by
   month to the unlinked goals' current amounts until the combined
   target is reached.

Linked goals are left out of the starting savings: their money is already
sitting in an account, so counting it as new savings would double count.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from fintrack.config.context import DEFAULT_CONTEXT, DisplayContext
from fintrack.models.finance import (
    Expense,
    Income,
    InstallmentPayment,
    SavingsAccount,
    SavingsGoal,
    Transaction,
    add_months,
)
from fintrack.projections.recurrence import (
    ZERO,
    is_active_obligation,
    month_start,
    monthly_rate,
)


# Hard stop for absurdly slow plans (100 years)
MAX_PROJECTION_MONTHS = 1200


@dataclass(frozen=True)
class GoalProjectionPoint:
    month: date
    label: str
    cumulative_saved: Decimal


@dataclass(frozen=True)
class GoalProjection:
    """Projected path to the combined goal target."""

    points: list[GoalProjectionPoint] = field(default_factory=list)
    total_target_amount: Decimal = ZERO
    net_monthly_savings: Decimal = ZERO
    starting_savings: Decimal = ZERO
    reachable: bool = False

    @property
    def completion_month(self) -> Optional[date]:
        if not self.reachable or not self.points:
            return None
        return self.points[-1].month

    @property
    def months_to_goal(self) -> Optional[int]:
        if not self.reachable or not self.points:
            return None
        return len(self.points) - 1


def effective_goal_amounts(
    goals: Iterable[SavingsGoal],
    accounts: Iterable[SavingsAccount],
) -> dict[str, Decimal]:
    """
    Current amount of every goal, by goal id.

    A goal linked to an account that no longer exists gets zero.
    """
    remaining = {account.id: max(account.amount, ZERO) for account in accounts}
    amounts: dict[str, Decimal] = {}

    for goal in sorted(goals, key=SavingsGoal.sort_key):
        if goal.linked_account_id is None:
            amounts[goal.id] = goal.current_amount
            continue
        if goal.linked_account_id not in remaining:
            amounts[goal.id] = ZERO
            continue

        left = remaining[goal.linked_account_id]
        allocated = max(ZERO, min(left, goal.target_amount))
        amounts[goal.id] = allocated
        remaining[goal.linked_account_id] = left - allocated

    return amounts


def net_monthly_savings(
    income: Iterable[Transaction],
    expenses: Iterable[Transaction],
    payments: Iterable[Transaction],
    today: date,
) -> Decimal:
    """
    Recurring monthly income minus recurring expenses and obligations.

    Installments that finished before this month are no longer owed.
    One-time items never count.
    """
    total_income = sum(
        (monthly_rate(t) for t in income if isinstance(t, Income)), ZERO
    )
    total_expenses = sum(
        (monthly_rate(t) for t in expenses if isinstance(t, Expense)), ZERO
    )
    total_payments = sum(
        (
            monthly_rate(p) for p in payments
            if isinstance(p, InstallmentPayment) and is_active_obligation(p, today)
        ),
        ZERO,
    )
    return total_income - total_expenses - total_payments


def project_goal_payoff(
    goals: Iterable[SavingsGoal],
    income: Iterable[Transaction],
    expenses: Iterable[Transaction],
    payments: Iterable[Transaction],
    today: date,
    context: Optional[DisplayContext] = None,
) -> GoalProjection:
    """
    Month-by-month cumulative savings toward all goals combined.

    Returns an empty, unreachable projection when there are no goals or
    when nothing is left over each month.
    """
    context = context or DEFAULT_CONTEXT
    goals = list(goals)
    net = net_monthly_savings(income, expenses, payments, today)
    total_target = sum((g.target_amount for g in goals), ZERO)
    starting = sum((g.current_amount for g in goals if not g.is_linked), ZERO)

    if not goals or net <= 0:
        return GoalProjection(
            total_target_amount=total_target,
            net_monthly_savings=net,
            starting_savings=starting,
            reachable=False,
        )

    first = month_start(today)
    points = []
    reached = False
    for i in range(MAX_PROJECTION_MONTHS + 1):
        month = add_months(first, i)
        saved = min(starting + net * i, total_target)
        points.append(GoalProjectionPoint(
            month=month,
            label=context.month_label(month),
            cumulative_saved=saved,
        ))
        if saved >= total_target:
            reached = True
            break

    return GoalProjection(
        points=points,
        total_target_amount=total_target,
        net_monthly_savings=net,
        starting_savings=starting,
        reachable=reached,
    )
