"""
Core Data Models for FinTrack

These models define the schemas for everything a profile stores:
transactions, savings goals, savings accounts and the profile itself.
They are designed to:
1. Enforce type safety at runtime
2. Serialize to the same camelCase JSON document the store keeps
3. Make every transaction kind a distinct type, so consumers match on
   the class instead of probing for optional fields

DESIGN DECISION: Money is Decimal everywhere. Balance walks replay
contributions backward and forward, and the result must land exactly on
the stored current balance.

DESIGN DECISION: A transaction is a tagged union. The tag is derived from
`category` and `recurrence`, so the stored JSON stays flat:

    income   + once|monthly|yearly -> Income
    expense  + once|monthly|yearly -> Expense
    payment  + monthly             -> InstallmentPayment
    payment  + once                -> OneTimePayment
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import uuid4

from dateutil.relativedelta import relativedelta
from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    PlainSerializer,
    Tag,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionCategory(str, Enum):
    """Which side of the ledger a transaction sits on."""
    INCOME = "income"
    EXPENSE = "expense"
    PAYMENT = "payment"


class Recurrence(str, Enum):
    """
    How often a transaction repeats.

    MONTHLY repeats on the anchor day-of-month, YEARLY on the anchor
    month and day. Anchor days missing from a month fall on its last day.
    """
    ONCE = "once"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class PaymentStatus(str, Enum):
    """Settlement state of a one-time payment (or one-time expense)."""
    PENDING = "pending"
    PAID = "paid"


class InterestRecurrence(str, Enum):
    """Payout frequency of a savings account interest rate."""
    DAILY = "daily"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class Language(str, Enum):
    """Supported UI languages."""
    EN = "en"
    DE = "de"
    AR = "ar"


class Currency(str, Enum):
    """Supported display currencies."""
    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"


# Decimal in memory, a plain JSON number on disk
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


class EntityNotFoundError(LookupError):
    """A mutation referenced an id that does not exist in the profile."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


def _new_id() -> str:
    return str(uuid4())


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the form every stored timestamp uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def add_months(anchor: date, months: int) -> date:
    """Shift a date by whole months, clamping to the last day of the month."""
    return anchor + relativedelta(months=months)


class FinTrackModel(BaseModel):
    """
    Base for all persisted models.

    Python attributes are snake_case; the stored JSON is camelCase.
    Both spellings are accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump in the stored (camelCase, JSON-safe) shape."""
        return self.model_dump(mode="json", by_alias=True)


def _strip_time(value: Any) -> Any:
    """Accept ISO datetimes ("2024-03-01T00:00:00.000Z") where a date is expected."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    return value


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionBase(FinTrackModel):
    """Fields shared by every transaction kind."""

    id: str = Field(
        default_factory=_new_id,
        min_length=1,
        description="Unique transaction id"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Source, category label or payee"
    )
    amount: Money = Field(
        ...,
        gt=0,
        description="Always positive; the sign comes from the category"
    )
    date: date

    @field_validator('date', mode='before')
    @classmethod
    def accept_datetime_strings(cls, v: Any) -> Any:
        return _strip_time(v)


class Income(TransactionBase):
    """Money coming in: salary, side income, a one-off refund."""

    category: Literal["income"] = "income"
    recurrence: Recurrence = Recurrence.MONTHLY


class Expense(TransactionBase):
    """
    Money going out that is not a debt repayment.

    A one-time expense may carry a status; a pending one has not left
    the account yet.
    """

    category: Literal["expense"] = "expense"
    recurrence: Recurrence = Recurrence.MONTHLY
    status: Optional[PaymentStatus] = None


class InstallmentDetails(FinTrackModel):
    """Fixed schedule of an installment payment."""

    number_of_payments: int = Field(
        ...,
        ge=1,
        description="Total number of monthly payments"
    )
    completion_date: date = Field(
        ...,
        description="Start date plus number_of_payments months"
    )

    @field_validator('completion_date', mode='before')
    @classmethod
    def accept_datetime_strings(cls, v: Any) -> Any:
        return _strip_time(v)


class InstallmentPayment(TransactionBase):
    """
    A monthly payment with a fixed number of occurrences (a loan, a
    financed purchase).

    CRITICAL: completion_date is derived exactly once, when the payment
    is created or edited (see `schedule`). Projections read it; they never
    recompute it.
    """

    category: Literal["payment"] = "payment"
    recurrence: Literal["monthly"] = "monthly"
    installment_details: InstallmentDetails

    @model_validator(mode='before')
    @classmethod
    def fill_completion_date(cls, data: Any) -> Any:
        """Derive a missing completion date from start and payment count."""
        if not isinstance(data, dict):
            return data
        details = data.get("installmentDetails", data.get("installment_details"))
        if not isinstance(details, dict):
            return data
        if details.get("completionDate") or details.get("completion_date"):
            return data

        start = _strip_time(data.get("date"))
        count = details.get("numberOfPayments", details.get("number_of_payments"))
        if start is None or count is None:
            return data

        start = date.fromisoformat(start) if isinstance(start, str) else start
        data = dict(data)
        data["installmentDetails"] = {
            "numberOfPayments": count,
            "completionDate": add_months(start, int(count)).isoformat(),
        }
        data.pop("installment_details", None)
        return data

    @model_validator(mode='after')
    def validate_schedule(self) -> 'InstallmentPayment':
        if self.installment_details.completion_date < self.date:
            raise ValueError("Completion date cannot be before the first payment")
        return self

    @classmethod
    def schedule(
        cls,
        name: str,
        amount: Decimal,
        start: date,
        number_of_payments: int,
        id: Optional[str] = None,
    ) -> 'InstallmentPayment':
        """Create (or re-create, when editing) an installment with its completion date."""
        fields: dict[str, Any] = {
            "name": name,
            "amount": amount,
            "date": start,
            "installment_details": InstallmentDetails(
                number_of_payments=number_of_payments,
                completion_date=add_months(start, number_of_payments),
            ),
        }
        if id is not None:
            fields["id"] = id
        return cls(**fields)

    @property
    def number_of_payments(self) -> int:
        return self.installment_details.number_of_payments

    @property
    def completion_date(self) -> date:
        return self.installment_details.completion_date

    @property
    def total_amount(self) -> Decimal:
        return self.amount * self.number_of_payments


class OneTimePayment(TransactionBase):
    """A single payment due on a date; pending until marked paid."""

    category: Literal["payment"] = "payment"
    recurrence: Literal["once"] = "once"
    status: PaymentStatus = PaymentStatus.PENDING


def transaction_kind(value: Any) -> Optional[str]:
    """Variant tag of a transaction (model instance or raw dict); None if unknown."""
    if isinstance(value, dict):
        category = value.get("category")
        recurrence = value.get("recurrence")
    else:
        category = getattr(value, "category", None)
        recurrence = getattr(value, "recurrence", None)

    category = getattr(category, "value", category)
    recurrence = getattr(recurrence, "value", recurrence)

    if category in ("income", "expense"):
        return category
    if category == "payment":
        return "installment" if recurrence == "monthly" else "one_time_payment"
    return None


Transaction = Annotated[
    Union[
        Annotated[Income, Tag("income")],
        Annotated[Expense, Tag("expense")],
        Annotated[InstallmentPayment, Tag("installment")],
        Annotated[OneTimePayment, Tag("one_time_payment")],
    ],
    Discriminator(
        transaction_kind,
        custom_error_type="invalid_transaction_kind",
        custom_error_message="Unknown category/recurrence combination",
    ),
]


# =============================================================================
# SAVINGS
# =============================================================================

class InterestRateEntry(FinTrackModel):
    """One historical interest rate on a savings account (informational)."""

    rate: float
    date: date
    recurrence: InterestRecurrence = InterestRecurrence.YEARLY
    payout_day: Union[Literal["last"], int] = Field(default="last")

    @field_validator('date', mode='before')
    @classmethod
    def accept_datetime_strings(cls, v: Any) -> Any:
        return _strip_time(v)

    @field_validator('payout_day')
    @classmethod
    def validate_payout_day(cls, v: Union[str, int]) -> Union[str, int]:
        if isinstance(v, int) and not 1 <= v <= 31:
            raise ValueError("Payout day must be between 1 and 31 or 'last'")
        return v


class SavingsAccount(FinTrackModel):
    """An account holding money that linked goals draw their progress from."""

    id: str = Field(default_factory=_new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    amount: Money = Field(default=Decimal("0"))
    interest_history: list[InterestRateEntry] = Field(default_factory=list)


class SavingsGoal(FinTrackModel):
    """
    Something the user is saving toward.

    An unlinked goal tracks its own current_amount. A linked goal ignores
    it: progress comes from the account, shared with other goals on the
    same account in priority order (lower number = funded first).
    """

    id: str = Field(default_factory=_new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    target_amount: Money = Field(..., gt=0)
    current_amount: Money = Field(default=Decimal("0"), ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    linked_account_id: Optional[str] = None
    priority: int = 0

    @field_validator('linked_account_id', mode='before')
    @classmethod
    def empty_link_is_none(cls, v: Any) -> Any:
        # The old dialog stored "none" for "no account"
        if v in ("", "none"):
            return None
        return v

    @field_validator('created_at')
    @classmethod
    def as_naive_utc(cls, v: datetime) -> datetime:
        # Imported timestamps carry "Z"; locally created ones are naive UTC
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @property
    def is_linked(self) -> bool:
        return self.linked_account_id is not None

    def sort_key(self) -> tuple:
        return (self.priority, self.created_at, self.id)


# =============================================================================
# PROFILE (aggregate root)
# =============================================================================

class ProfileData(FinTrackModel):
    """
    Everything one named profile owns.

    `current_balance` is the end-of-day balance for "today"; every
    projection is anchored on it. Mutations happen in place and are
    persisted as a whole document by the repository.
    """

    transactions: list[Transaction] = Field(default_factory=list)
    current_balance: Money = Field(default=Decimal("0"))
    savings_goals: list[SavingsGoal] = Field(default_factory=list)
    savings_accounts: list[SavingsAccount] = Field(default_factory=list)

    # -------------------------------------------------------------------------
    # Typed views
    # -------------------------------------------------------------------------

    @property
    def incomes(self) -> list[Income]:
        return [t for t in self.transactions if isinstance(t, Income)]

    @property
    def expenses(self) -> list[Expense]:
        return [t for t in self.transactions if isinstance(t, Expense)]

    @property
    def installments(self) -> list[InstallmentPayment]:
        return [t for t in self.transactions if isinstance(t, InstallmentPayment)]

    @property
    def one_time_payments(self) -> list[OneTimePayment]:
        return [t for t in self.transactions if isinstance(t, OneTimePayment)]

    @property
    def payments(self) -> list[Union[InstallmentPayment, OneTimePayment]]:
        return [
            t for t in self.transactions
            if isinstance(t, (InstallmentPayment, OneTimePayment))
        ]

    def goals_by_priority(self) -> list[SavingsGoal]:
        return sorted(self.savings_goals, key=SavingsGoal.sort_key)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_transaction(self, transaction_id: str) -> Transaction:
        for txn in self.transactions:
            if txn.id == transaction_id:
                return txn
        raise EntityNotFoundError("transaction", transaction_id)

    def get_goal(self, goal_id: str) -> SavingsGoal:
        for goal in self.savings_goals:
            if goal.id == goal_id:
                return goal
        raise EntityNotFoundError("savings_goal", goal_id)

    def get_account(self, account_id: str) -> SavingsAccount:
        for account in self.savings_accounts:
            if account.id == account_id:
                return account
        raise EntityNotFoundError("savings_account", account_id)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self.transactions.append(transaction)
        return transaction

    def update_transaction(self, transaction: Transaction) -> Transaction:
        """Replace the transaction with the same id (its kind may change)."""
        for index, existing in enumerate(self.transactions):
            if existing.id == transaction.id:
                self.transactions[index] = transaction
                return transaction
        raise EntityNotFoundError("transaction", transaction.id)

    def delete_transaction(self, transaction_id: str) -> Transaction:
        txn = self.get_transaction(transaction_id)
        self.transactions.remove(txn)
        return txn

    def toggle_payment_status(self, transaction_id: str) -> OneTimePayment:
        """Flip a one-time payment between pending and paid."""
        txn = self.get_transaction(transaction_id)
        if not isinstance(txn, OneTimePayment):
            raise ValueError(f"Only one-time payments have a status: {transaction_id}")
        txn.status = (
            PaymentStatus.PENDING
            if txn.status == PaymentStatus.PAID
            else PaymentStatus.PAID
        )
        return txn

    def set_current_balance(self, amount: Decimal) -> None:
        self.current_balance = Decimal(str(amount))

    # -------------------------------------------------------------------------
    # Savings goals
    # -------------------------------------------------------------------------

    def add_goal(
        self,
        name: str,
        target_amount: Decimal,
        current_amount: Decimal = Decimal("0"),
        linked_account_id: Optional[str] = None,
    ) -> SavingsGoal:
        """New goals go to the back of the priority queue."""
        if linked_account_id is not None:
            self.get_account(linked_account_id)
            current_amount = Decimal("0")

        priority = max((g.priority for g in self.savings_goals), default=-1) + 1
        goal = SavingsGoal(
            name=name,
            target_amount=target_amount,
            current_amount=current_amount,
            linked_account_id=linked_account_id,
            priority=priority,
        )
        self.savings_goals.append(goal)
        return goal

    def update_goal(self, goal: SavingsGoal) -> SavingsGoal:
        if goal.linked_account_id is not None:
            self.get_account(goal.linked_account_id)
        for index, existing in enumerate(self.savings_goals):
            if existing.id == goal.id:
                self.savings_goals[index] = goal
                return goal
        raise EntityNotFoundError("savings_goal", goal.id)

    def delete_goal(self, goal_id: str) -> SavingsGoal:
        goal = self.get_goal(goal_id)
        self.savings_goals.remove(goal)
        return goal

    def add_funds_to_goal(self, goal_id: str, amount: Decimal) -> SavingsGoal:
        goal = self.get_goal(goal_id)
        if goal.is_linked:
            raise ValueError("Linked goals take their progress from the account")
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")
        goal.current_amount = goal.current_amount + Decimal(str(amount))
        return goal

    def move_goal_priority(self, goal_id: str, direction: Literal["up", "down"]) -> bool:
        """
        Swap a goal with its neighbour in priority order.

        Priorities are renumbered 0..n-1 afterwards. Returns False when the
        goal is already first (up) or last (down).
        """
        ordered = self.goals_by_priority()
        index = ordered.index(self.get_goal(goal_id))
        target = index - 1 if direction == "up" else index + 1
        if target < 0 or target >= len(ordered):
            return False

        ordered[index], ordered[target] = ordered[target], ordered[index]
        for priority, goal in enumerate(ordered):
            goal.priority = priority
        return True

    # -------------------------------------------------------------------------
    # Savings accounts
    # -------------------------------------------------------------------------

    def add_account(
        self,
        name: str,
        amount: Decimal,
        interest_history: Optional[list[InterestRateEntry]] = None,
    ) -> SavingsAccount:
        account = SavingsAccount(
            name=name,
            amount=amount,
            interest_history=interest_history or [],
        )
        self.savings_accounts.append(account)
        return account

    def update_account(self, account: SavingsAccount) -> SavingsAccount:
        for index, existing in enumerate(self.savings_accounts):
            if existing.id == account.id:
                self.savings_accounts[index] = account
                return account
        raise EntityNotFoundError("savings_account", account.id)

    def delete_account(self, account_id: str) -> SavingsAccount:
        """Remove an account and unlink every goal that pointed at it."""
        account = self.get_account(account_id)
        self.savings_accounts.remove(account)
        for goal in self.savings_goals:
            if goal.linked_account_id == account_id:
                goal.linked_account_id = None
        return account
