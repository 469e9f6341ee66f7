"""
Unit tests for transaction classification.
"""
from core.classifier import classify_transaction, is_asset_allocation, is_internal_transfer


def test_transfer_by_type(make_txn):
    assert is_internal_transfer(make_txn(-100, "2025-01-01", type="transfer"))


def test_transfer_by_category(make_txn):
    """Category names containing transfer markers are transfers regardless of type."""
    assert is_internal_transfer(make_txn(-100, "2025-01-01", category="Transfers"))
    assert is_internal_transfer(make_txn(-100, "2025-01-01", category="Between Accounts"))


def test_transfer_by_description_keyword(make_txn):
    """A mislabelled transfer typed as expense is still recognised."""
    txn = make_txn(-500, "2025-01-01", category="Shopping", description="Online Transfer to Savings Account")
    assert is_internal_transfer(txn)
    assert classify_transaction(txn) == "transfer"


def test_transfer_by_pattern(make_txn):
    assert is_internal_transfer(make_txn(-60, "2025-01-01", description="ATM #4455 MAIN ST"))
    assert is_internal_transfer(make_txn(-60, "2025-01-01", description="Checking to brokerage transfer"))


def test_regular_purchase_is_not_transfer(make_txn):
    assert not is_internal_transfer(make_txn(-12.5, "2025-01-01", description="NETFLIX.COM"))


def test_asset_allocation(make_txn):
    txn = make_txn(-1000, "2025-01-01", type="asset-allocation", description="Brokerage buy VTI")
    assert is_asset_allocation(txn)
    assert classify_transaction(txn) == "asset-allocation"


def test_classify_falls_back_to_sign(make_txn):
    """Missing type resolves by amount sign."""
    assert classify_transaction(make_txn(50, "2025-01-01", type=None)) == "income"
    assert classify_transaction(make_txn(-50, "2025-01-01", type=None)) == "expense"


def test_classify_keeps_declared_type(make_txn):
    """A positive expense (refund) stays an expense."""
    assert classify_transaction(make_txn(100, "2025-01-01", type="expense")) == "expense"
    assert classify_transaction(make_txn(3000, "2025-01-01", type="income", category="Salary")) == "income"
