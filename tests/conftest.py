"""
Shared fixtures for the test suite.
"""
import itertools
from datetime import date
from typing import List, Optional, Sequence

import pytest

from core.config import reset_settings
from core.db import reset_db
from core.schema import Transaction, UserPreferences


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Point settings at a temporary database and rebuild the singletons per test."""
    for name in ("PORT", "LOG_LEVEL", "DEFAULT_CURRENCY", "EXCHANGE_RATES",
                 "INCLUDE_INVESTMENTS_IN_REPORTS", "RECENT_TRANSACTIONS_LIMIT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "spendlens-test.db"))
    reset_settings()
    reset_db()
    yield
    reset_settings()
    reset_db()


@pytest.fixture
def make_txn():
    """Factory building Transaction models with sequential ids."""
    counter = itertools.count(1)

    def factory(
        amount,
        on,
        category: str = "Shopping",
        description: str = "Purchase",
        type: Optional[str] = "expense",
        account: str = "Checking",
        **fields,
    ) -> Transaction:
        return Transaction(
            id=fields.pop("id", f"t{next(counter)}"),
            date=on,
            amount=amount,
            category=category,
            description=description,
            type=type,
            account=account,
            **fields,
        )

    return factory


class FakeStore:
    def __init__(self, transactions: Sequence[Transaction]):
        self.transactions = list(transactions)

    def get_all_transactions(self) -> List[Transaction]:
        return list(self.transactions)


class FailingStore:
    def get_all_transactions(self) -> List[Transaction]:
        raise RuntimeError("database is locked")


class RecordingConverter:
    """Multiplies every amount by a fixed rate and counts batch calls."""

    def __init__(self, rate: float = 1.0):
        self.rate = rate
        self.calls = 0

    def get_default_currency(self) -> str:
        return "USD"

    async def convert_transactions_batch(self, transactions):
        self.calls += 1
        if self.rate == 1.0:
            return list(transactions)
        return [t.model_copy(update={"amount": t.amount * self.rate, "exchange_rate": self.rate}) for t in transactions]


class FailingConverter:
    def get_default_currency(self) -> str:
        return "USD"

    async def convert_transactions_batch(self, transactions):
        raise ConnectionError("rates service unavailable")


class StaticPreferences:
    def __init__(self, include_investments: bool = False):
        self.include_investments = include_investments

    def get_preferences(self) -> UserPreferences:
        return UserPreferences(include_investments_in_reports=self.include_investments)


@pytest.fixture
def fakes():
    """Namespace with the fake collaborator classes."""
    class Fakes:
        Store = FakeStore
        FailingStore = FailingStore
        Converter = RecordingConverter
        FailingConverter = FailingConverter
        Preferences = StaticPreferences

    return Fakes


@pytest.fixture
def today():
    return date(2025, 4, 20)
