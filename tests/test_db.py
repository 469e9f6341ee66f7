"""
Tests for the sqlite transaction store and the bundled collaborators.
"""
import asyncio
from datetime import date

import pytest

from core.config import reset_settings
from core.db import Database, get_db, reset_db
from core.exceptions import CurrencyConversionError
from core.schema import Transaction
from services.collaborators import SettingsPreferencesProvider, StaticRateCurrencyConverter


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "transactions.db"))
    database.init_db()
    return database


def test_add_and_get_transactions(db):
    """Models and raw dicts round through the store."""
    written = db.add_transactions([
        Transaction(id="a1", date="2025-01-05", amount=-15.99, description="NETFLIX.COM",
                    category="Entertainment", account="Visa", type="expense", is_verified=True),
        {"id": "a2", "date": "2025-01-31", "amount": "4,000.00", "category": "Salary", "type": "Income",
         "originalCurrency": "eur", "confidence": 0.9},
    ])
    assert written == 2

    stored = {t.id: t for t in db.get_all_transactions()}
    assert stored["a1"].date == date(2025, 1, 5)
    assert stored["a1"].amount == -15.99
    assert stored["a1"].is_verified is True
    assert stored["a2"].amount == 4000.0
    assert stored["a2"].type == "income"
    assert stored["a2"].original_currency == "EUR"
    assert stored["a2"].is_verified is None


def test_add_replaces_existing_id(db):
    db.add_transactions([Transaction(id="x", date="2025-01-01", amount=-1)])
    db.add_transactions([Transaction(id="x", date="2025-01-01", amount=-2)])
    assert [t.amount for t in db.get_all_transactions()] == [-2.0]


def test_invalid_rows_are_skipped(db):
    """Rows that fail validation are dropped; malformed values load as None."""
    conn = db.get_connection()
    conn.execute("INSERT INTO transactions (id, date, amount) VALUES (NULL, '2025-01-01', -5)")
    conn.execute("INSERT INTO transactions (id, date, amount) VALUES ('bad-date', 'someday', -5)")
    conn.commit()
    conn.close()

    transactions = db.get_all_transactions()
    assert [t.id for t in transactions] == ["bad-date"]
    assert transactions[0].date is None


def test_static_rate_converter():
    converter = StaticRateCurrencyConverter(rates={"eur": 1.1}, default_currency="usd")
    transactions = [
        Transaction(id="1", date="2025-01-01", amount=-100, original_currency="EUR"),
        Transaction(id="2", date="2025-01-01", amount=-100, original_currency="GBP"),
        Transaction(id="3", date="2025-01-01", amount=-100),
        Transaction(id="4", date="2025-01-01", amount=-100, original_currency="USD"),
    ]
    converted = asyncio.run(converter.convert_transactions_batch(transactions))

    assert converter.get_default_currency() == "USD"
    assert converted[0].amount == pytest.approx(-110)
    assert converted[0].exchange_rate == 1.1
    assert [t.amount for t in converted[1:]] == [-100, -100, -100]
    assert transactions[0].amount == -100


def test_static_rate_converter_rejects_invalid_rate():
    converter = StaticRateCurrencyConverter(rates={"EUR": 0}, default_currency="USD")
    txn = Transaction(id="1", date="2025-01-01", amount=-100, original_currency="EUR")
    with pytest.raises(CurrencyConversionError) as exc_info:
        converter.convert(txn)
    assert exc_info.value.details == {"currency": "EUR", "rate": 0}


def test_get_db_follows_database_path(monkeypatch, tmp_path):
    """The shared store is rebuilt after a reset."""
    first = get_db()
    assert first is get_db()
    assert first.db_path == str(tmp_path / "spendlens-test.db")

    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "other.db"))
    reset_settings()
    reset_db()
    assert get_db().db_path == str(tmp_path / "other.db")


def test_static_rate_converter_uses_settings(monkeypatch):
    monkeypatch.setenv("EXCHANGE_RATES", '{"GBP": 1.25}')
    reset_settings()
    converter = StaticRateCurrencyConverter()
    txn = Transaction(id="1", date="2025-01-01", amount=-8, original_currency="GBP")
    assert converter.convert(txn).amount == pytest.approx(-10)


def test_settings_preferences_provider(monkeypatch):
    monkeypatch.setenv("INCLUDE_INVESTMENTS_IN_REPORTS", "1")
    reset_settings()
    preferences = SettingsPreferencesProvider().get_preferences()
    assert preferences.include_investments_in_reports is True
    assert preferences.default_currency == "USD"
