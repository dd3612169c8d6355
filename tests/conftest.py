"""Shared fixtures: a fixed "today", in-memory storage and small profiles."""

import pytest
from datetime import date
from decimal import Decimal

from fintrack.config.settings import AppSettings
from fintrack.models import Expense, Income, ProfileData
from fintrack.services.storage import MemoryKeyValueStore, ProfileRepository


@pytest.fixture
def today() -> date:
    # The 20th of a 30-day month
    return date(2024, 6, 20)


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def repository(store) -> ProfileRepository:
    return ProfileRepository(store, AppSettings())


@pytest.fixture
def salary_and_rent() -> ProfileData:
    """Income 3000 on the 1st, rent 1000 on the 15th, 2000 in the bank."""
    return ProfileData(
        transactions=[
            Income(name="Salary", amount=Decimal("3000"), date=date(2024, 1, 1)),
            Expense(name="Rent", amount=Decimal("1000"), date=date(2024, 1, 15)),
        ],
        current_balance=Decimal("2000"),
    )
