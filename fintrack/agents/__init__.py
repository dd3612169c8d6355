"""AI Agents package."""

from fintrack.agents.insights import (
    FinancialInsights,
    FinancialSnapshot,
    InsightAgent,
    InsightError,
    InsightGenerationError,
    InvalidApiKeyError,
    MissingApiKeyError,
    Recommendation,
)

__all__ = [
    "FinancialInsights",
    "FinancialSnapshot",
    "InsightAgent",
    "InsightError",
    "InsightGenerationError",
    "InvalidApiKeyError",
    "MissingApiKeyError",
    "Recommendation",
]
