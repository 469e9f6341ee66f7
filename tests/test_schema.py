"""
Unit tests for pydantic schemas.
"""
from datetime import date

import pytest
from pydantic import ValidationError

from core.schema import DateRange, ReportsFilters, SubscriptionsFilters, Transaction


def test_transaction_coerces_bank_feed_values():
    """Amounts, types and currency codes are normalized on input."""
    txn = Transaction(
        id=123,
        date="2025-02-01",
        amount="(45.10)",
        description=None,
        category="Food & Dining",
        type="Asset Allocation",
        original_currency="eur",
    )
    assert txn.id == "123"
    assert txn.date == date(2025, 2, 1)
    assert txn.amount == -45.1
    assert txn.description == ""
    assert txn.type == "asset-allocation"
    assert txn.original_currency == "EUR"
    assert txn.is_well_formed


def test_transaction_malformed_values_become_none():
    """Unparseable date or amount marks the record malformed instead of failing."""
    txn = Transaction(id="x", date="yesterday-ish", amount="n/a", type="mystery")
    assert txn.date is None
    assert txn.amount is None
    assert txn.type is None
    assert not txn.is_well_formed


def test_transaction_confidence_out_of_range():
    assert Transaction(id="a", confidence=1.5).confidence is None
    assert Transaction(id="b", confidence="0.75").confidence == 0.75


def test_transaction_accepts_camel_case():
    txn = Transaction.model_validate({
        "id": "c1",
        "date": "2025-01-01",
        "amount": -10,
        "originalCurrency": "GBP",
        "isVerified": True,
    })
    assert txn.original_currency == "GBP"
    assert txn.is_verified is True
    dumped = txn.model_dump(by_alias=True)
    assert dumped["originalCurrency"] == "GBP"
    assert dumped["isVerified"] is True


def test_transaction_is_frozen():
    txn = Transaction(id="f", date="2025-01-01", amount=-1)
    with pytest.raises(ValidationError):
        txn.amount = -2


def test_date_range_validation():
    """End before start is rejected; bounds are inclusive."""
    with pytest.raises(ValidationError):
        DateRange(start_date="2025-02-01", end_date="2025-01-01")

    date_range = DateRange(start_date="2025-01-01", end_date="2025-01-31")
    assert date_range.contains(date(2025, 1, 1))
    assert date_range.contains(date(2025, 1, 31))
    assert not date_range.contains(date(2025, 2, 1))
    assert date_range.span_days == 30


def test_reports_filters_empty_selection_means_no_restriction():
    filters = ReportsFilters(selected_types=[], selected_categories=[], selected_accounts=None)
    assert filters.selected_types is None
    assert filters.selected_categories is None
    assert filters.selected_accounts is None


def test_reports_filters_rejects_unknown_type():
    with pytest.raises(ValidationError):
        ReportsFilters(selected_types=["bogus"])


def test_subscriptions_filters_single_value():
    filters = SubscriptionsFilters(selected_frequencies="Monthly")
    assert filters.selected_frequencies == ["Monthly"]
