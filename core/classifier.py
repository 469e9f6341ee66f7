"""
Transaction classification: internal transfer, asset allocation, income or expense.

Upstream categorization is unreliable, so a transfer is recognised from the
type field, the category, or the description, whichever gives it away first.
"""
from core.lexicon import TRANSFER_CATEGORIES, TRANSFER_KEYWORDS, TRANSFER_PATTERNS
from core.schema import Transaction


def is_internal_transfer(transaction: Transaction) -> bool:
    """
    Check whether a transaction moves money between the user's own accounts.

    Args:
        transaction: Transaction to inspect

    Returns:
        True if the type, category or description identifies a transfer
    """
    if transaction.type == "transfer":
        return True

    category = transaction.category.lower()
    if any(name in category for name in TRANSFER_CATEGORIES):
        return True

    description = transaction.description.lower()
    if any(keyword in description for keyword in TRANSFER_KEYWORDS):
        return True

    return any(pattern.search(description) for pattern in TRANSFER_PATTERNS)


def is_asset_allocation(transaction: Transaction) -> bool:
    """Investment movements are identified by their type alone."""
    return transaction.type == "asset-allocation"


def classify_transaction(transaction: Transaction) -> str:
    """
    Resolve the effective kind of a transaction.

    Returns:
        One of "transfer", "asset-allocation", "income", "expense"
    """
    if is_internal_transfer(transaction):
        return "transfer"
    if is_asset_allocation(transaction):
        return "asset-allocation"
    if transaction.type in ("income", "expense"):
        return transaction.type
    if transaction.amount is not None and transaction.amount > 0:
        return "income"
    return "expense"
