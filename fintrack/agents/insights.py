"""
AI Insight Agent for FinTrack

DESIGN DECISION: The LLM only ever sees a FinancialSnapshot, a small
structured summary computed by the deterministic projection code.
It never reads storage and never writes anything.

CRITICAL BOUNDARIES:

1. SUMMARY:
   - CAN: Describe the numbers it is given, in the user's language
   - CANNOT: Invent transactions, balances or dates

2. INSIGHTS:
   - CAN: Suggest 3-5 actionable recommendations based on the snapshot
   - MUST: Answer with a JSON object that validates as FinancialInsights

The LLM is a NARRATOR, not a CALCULATOR.
Every number in its prompt was computed before the call.

FAILURES:
- No API key: MissingApiKeyError (no network call is made)
- Key rejected: InvalidApiKeyError (not retried)
- Anything else: retried with tenacity, then InsightGenerationError
"""

import json
from datetime import date
from decimal import Decimal
from typing import Optional

import google.generativeai as genai
from pydantic import BaseModel, Field, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fintrack.config import get_settings
from fintrack.config.settings import GeminiSettings
from fintrack.models.finance import Language, ProfileData
from fintrack.projections.goals import effective_goal_amounts
from fintrack.projections.recurrence import is_active_obligation, month_start
from fintrack.projections.summary import monthly_summary


LANGUAGE_NAMES = {
    Language.EN: "English",
    Language.DE: "German",
    Language.AR: "Arabic",
}


# =============================================================================
# ERRORS
# =============================================================================

class InsightError(Exception):
    """Base exception for AI insight generation."""
    pass


class MissingApiKeyError(InsightError):
    """No Gemini API key is configured."""
    pass


class InvalidApiKeyError(InsightError):
    """Gemini rejected the API key."""
    pass


class InsightGenerationError(InsightError):
    """The model failed or returned something unusable."""
    pass


# =============================================================================
# INPUT / OUTPUT MODELS
# =============================================================================

class SnapshotLine(BaseModel):
    """One transaction as the model sees it."""

    name: str
    amount: Decimal
    recurrence: str
    due: Optional[date] = None
    ends: Optional[date] = None
    status: Optional[str] = None


class SnapshotGoal(BaseModel):
    name: str
    target_amount: Decimal
    saved_amount: Decimal


class FinancialSnapshot(BaseModel):
    """
    Structured financial data handed to the model.

    Built from one profile on one day; the same profile and day always
    give the same snapshot (and therefore the same prompt).
    """

    as_of: date
    currency: str = "EUR"
    current_balance: Decimal
    monthly_income: Decimal
    monthly_expenses: Decimal
    monthly_payments: Decimal
    net_monthly_savings: Decimal
    incomes: list[SnapshotLine] = Field(default_factory=list)
    expenses: list[SnapshotLine] = Field(default_factory=list)
    installments: list[SnapshotLine] = Field(default_factory=list)
    one_time_payments: list[SnapshotLine] = Field(default_factory=list)
    savings_goals: list[SnapshotGoal] = Field(default_factory=list)

    @classmethod
    def from_profile(
        cls,
        profile: ProfileData,
        today: date,
        currency: str = "EUR",
    ) -> "FinancialSnapshot":
        summary = monthly_summary(profile, today)
        month = month_start(today)
        saved = effective_goal_amounts(profile.savings_goals, profile.savings_accounts)

        return cls(
            as_of=today,
            currency=currency,
            current_balance=summary.current_balance,
            monthly_income=summary.monthly_income,
            monthly_expenses=summary.monthly_expenses,
            monthly_payments=summary.monthly_payments,
            net_monthly_savings=summary.net_monthly_savings,
            incomes=[
                SnapshotLine(name=t.name, amount=t.amount, recurrence=t.recurrence.value, due=t.date)
                for t in profile.incomes
            ],
            expenses=[
                SnapshotLine(
                    name=t.name,
                    amount=t.amount,
                    recurrence=t.recurrence.value,
                    due=t.date,
                    status=t.status.value if t.status else None,
                )
                for t in profile.expenses
            ],
            installments=[
                SnapshotLine(
                    name=t.name,
                    amount=t.amount,
                    recurrence="monthly",
                    due=t.date,
                    ends=t.completion_date,
                )
                for t in profile.installments
                if is_active_obligation(t, month)
            ],
            one_time_payments=[
                SnapshotLine(
                    name=t.name,
                    amount=t.amount,
                    recurrence="once",
                    due=t.date,
                    status=t.status.value,
                )
                for t in profile.one_time_payments
                if t.date >= month
            ],
            savings_goals=[
                SnapshotGoal(
                    name=g.name,
                    target_amount=g.target_amount,
                    saved_amount=saved.get(g.id, Decimal("0")),
                )
                for g in profile.goals_by_priority()
            ],
        )

    def to_prompt_text(self) -> str:
        def lines(items: list[SnapshotLine], empty: str) -> str:
            if not items:
                return f"- {empty}"
            rows = []
            for item in items:
                row = f"- {item.name}: {item.amount} {self.currency} ({item.recurrence})"
                if item.due:
                    row += f", due {item.due.isoformat()}"
                if item.ends:
                    row += f", ends {item.ends.isoformat()}"
                if item.status:
                    row += f", {item.status}"
                rows.append(row)
            return "\n".join(rows)

        goals = "\n".join(
            f"- {g.name}: {g.saved_amount} of {g.target_amount} {self.currency}"
            for g in self.savings_goals
        ) or "- No savings goals."

        return f"""Date: {self.as_of.isoformat()}
Current balance: {self.current_balance} {self.currency}
Monthly income: {self.monthly_income} {self.currency}
Monthly expenses: {self.monthly_expenses} {self.currency}
Monthly installment payments: {self.monthly_payments} {self.currency}
Net monthly savings: {self.net_monthly_savings} {self.currency}

Income:
{lines(self.incomes, "No income data provided.")}

Expenses:
{lines(self.expenses, "No expense data provided.")}

Installment payments:
{lines(self.installments, "No installment payments.")}

Upcoming one-time payments:
{lines(self.one_time_payments, "No one-time payments.")}

Savings goals:
{goals}"""


class Recommendation(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)


class FinancialInsights(BaseModel):
    """Structured answer of the insights prompt."""

    summary: str = Field(..., min_length=1)
    recommendations: list[Recommendation] = Field(default_factory=list)


# =============================================================================
# AGENT
# =============================================================================

class InsightAgent:
    """
    Gemini-backed narrator for a FinancialSnapshot.

    RESPONSIBILITIES:
    - Build the prompt from the snapshot
    - Call Gemini, retrying transient failures
    - Turn SDK errors into InsightError subclasses
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[GeminiSettings] = None,
        retry_wait=None,
    ):
        """
        Initialize the agent.

        Args:
            api_key: Key from the user's preferences; falls back to GEMINI_API_KEY
            settings: Gemini settings (defaults to the global settings)
            retry_wait: tenacity wait strategy between attempts

        Raises:
            MissingApiKeyError: If no key is available
        """
        self._settings = settings or get_settings().gemini
        key = api_key or self._settings.api_key
        if not key:
            raise MissingApiKeyError("No Gemini API key configured")
        self._retry_wait = retry_wait or wait_exponential(multiplier=0.5, min=0.5, max=4)
        self._configure_genai(key)

    def _configure_genai(self, api_key: str):
        """Configure Google Generative AI."""
        genai.configure(api_key=api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def _call_model(self, prompt: str) -> str:
        try:
            response = await self._model.generate_content_async(prompt)
        except Exception as e:
            message = str(e)
            if "API key not valid" in message or "API_KEY_INVALID" in message:
                raise InvalidApiKeyError("The provided API key is not valid") from e
            raise InsightGenerationError(f"Gemini request failed: {message}") from e

        try:
            text = response.text
        except ValueError as e:
            # Raised by the SDK when the candidate was blocked or empty
            raise InsightGenerationError(f"Gemini returned no text: {e}") from e

        text = (text or "").strip()
        if not text:
            raise InsightGenerationError("Gemini returned an empty response")
        return text

    async def _with_retries(self, func, *args):
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(InsightGenerationError),
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=self._retry_wait,
            reraise=True,
        ):
            with attempt:
                return await func(*args)

    def _language_instruction(self, language: Language) -> str:
        name = LANGUAGE_NAMES.get(Language(language), "English")
        return f"Your entire response MUST be written in {name} (ISO 639-1 code: {Language(language).value})."

    async def generate_summary(
        self,
        snapshot: FinancialSnapshot,
        language: Language = Language.EN,
    ) -> str:
        """
        Narrative summary of the snapshot, as markdown.

        Raises:
            InvalidApiKeyError: If the key is rejected
            InsightGenerationError: If every attempt failed
        """
        prompt = f"""You are a friendly personal finance assistant.
{self._language_instruction(language)}

Summarize the user's financial situation in 3-5 short markdown bullet points.
Mention the monthly net savings, the biggest expenses, and any installment
payments that end soon. Only use the numbers below; do not invent any data.

{snapshot.to_prompt_text()}"""

        return await self._with_retries(self._call_model, prompt)

    async def _insights_attempt(self, prompt: str) -> FinancialInsights:
        text = await self._call_model(prompt)

        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            raise InsightGenerationError("Response did not contain a JSON object")
        try:
            return FinancialInsights.model_validate(json.loads(text[start:end]))
        except (json.JSONDecodeError, ValidationError) as e:
            raise InsightGenerationError(f"Response JSON was invalid: {e}") from e

    async def generate_insights(
        self,
        snapshot: FinancialSnapshot,
        language: Language = Language.EN,
    ) -> FinancialInsights:
        """
        Summary plus 3-5 recommendations.

        An unparseable answer counts as a failed attempt and is retried.
        """
        prompt = f"""You are an expert financial advisor.
{self._language_instruction(language)}

Analyze the user's financial data below. Give a one or two sentence summary
of their financial health and 3-5 practical recommendations tailored to the
data. If expenses are high, suggest specific areas for savings. If net
savings are positive, suggest saving or investment strategies.

User's financial data:
{snapshot.to_prompt_text()}

Respond with ONLY a JSON object in this exact format:
{{"summary": "...", "recommendations": [{{"title": "...", "description": "..."}}]}}"""

        return await self._with_retries(self._insights_attempt, prompt)
