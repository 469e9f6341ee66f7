"""
Collaborator contracts consumed by the report and subscription services,
with the bundled implementations used when the service runs standalone.
"""
from typing import Dict, List, Optional, Protocol, Sequence

from core.config import get_settings
from core.exceptions import CurrencyConversionError
from core.logger import setup_logger
from core.schema import Transaction, UserPreferences

logger = setup_logger(__name__)


class TransactionStore(Protocol):
    def get_all_transactions(self) -> List[Transaction]:
        ...


class CurrencyConverter(Protocol):
    async def convert_transactions_batch(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        ...

    def get_default_currency(self) -> str:
        ...


class PreferencesProvider(Protocol):
    def get_preferences(self) -> UserPreferences:
        ...


class StaticRateCurrencyConverter:
    """
    Converts amounts to the default currency with fixed rates.

    Rates are expressed as units of the default currency per one unit of the
    source currency. Transactions without an original currency, or already in
    the default currency, are returned unchanged.
    """

    def __init__(self, rates: Optional[Dict[str, float]] = None, default_currency: Optional[str] = None):
        settings = get_settings()
        self.default_currency = (default_currency or settings.default_currency).upper()
        source = settings.exchange_rates if rates is None else rates
        self.rates = {code.upper(): rate for code, rate in source.items()}

    def get_default_currency(self) -> str:
        return self.default_currency

    def convert(self, transaction: Transaction) -> Transaction:
        currency = transaction.original_currency
        if not currency or currency == self.default_currency or transaction.amount is None:
            return transaction

        rate = self.rates.get(currency)
        if rate is None:
            logger.warning(
                f"No exchange rate for {currency} -> {self.default_currency}, "
                f"keeping native amount for transaction {transaction.id}"
            )
            return transaction

        if rate <= 0:
            raise CurrencyConversionError(
                f"Invalid exchange rate for {currency} -> {self.default_currency}",
                details={"currency": currency, "rate": rate}
            )

        return transaction.model_copy(update={"amount": transaction.amount * rate, "exchange_rate": rate})

    async def convert_transactions_batch(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        return [self.convert(t) for t in transactions]


class SettingsPreferencesProvider:
    """User preferences sourced from application settings."""

    def get_preferences(self) -> UserPreferences:
        settings = get_settings()
        return UserPreferences(
            include_investments_in_reports=settings.include_investments_in_reports,
            default_currency=settings.default_currency,
        )
