"""
Shared plumbing for services that read the transaction store and convert
amounts to the reporting currency.
"""
from datetime import date
from typing import Any, Callable, List, Optional, Sequence

from core.config import get_settings
from core.exceptions import (
    CurrencyConversionError,
    DataNotFoundError,
    ReportGenerationError,
    SpendLensException,
)
from core.logger import setup_logger
from core.schema import Transaction
from services.collaborators import CurrencyConverter, TransactionStore

logger = setup_logger(__name__)


class TransactionSourceService:
    """Base for services built on a TransactionStore and a CurrencyConverter."""

    def __init__(self, store: TransactionStore, converter: CurrencyConverter):
        self.settings = get_settings()
        self.store = store
        self.converter = converter

    def load_transactions(self) -> List[Transaction]:
        """
        Read every transaction from the store.

        Raises:
            DataNotFoundError: If the store fails
        """
        try:
            transactions = list(self.store.get_all_transactions())
        except SpendLensException:
            raise
        except Exception as e:
            logger.error(f"Failed to load transactions: {e}", exc_info=True)
            raise DataNotFoundError(
                "Failed to load transactions from store",
                details={"error": str(e)}
            )

        logger.debug(f"Loaded {len(transactions)} transactions")
        return transactions

    async def convert(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        """
        Convert transactions to the default currency in one batch call.
        On failure the native amounts are used and a warning is logged.
        """
        if not transactions:
            return []

        try:
            converted = list(await self.converter.convert_transactions_batch(list(transactions)))
        except CurrencyConversionError as e:
            logger.warning(
                f"{e.message} {e.details}, using native amounts for {len(transactions)} transactions"
            )
            return list(transactions)
        except Exception as e:
            logger.warning(
                f"Currency conversion to {self.converter.get_default_currency()} failed, "
                f"using native amounts for {len(transactions)} transactions: {e}"
            )
            return list(transactions)

        if len(converted) != len(transactions):
            logger.warning(
                f"Currency converter returned {len(converted)} of {len(transactions)} transactions, "
                f"using native amounts"
            )
            return list(transactions)

        return converted

    def compute(self, name: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """Run a pure computation, wrapping unexpected failures in ReportGenerationError."""
        try:
            return fn(*args, **kwargs)
        except SpendLensException:
            raise
        except Exception as e:
            logger.error(f"Failed to build {name}: {e}", exc_info=True)
            raise ReportGenerationError(
                f"Failed to build {name}",
                details={"error": str(e)}
            )


def resolve_today(today: Optional[date]) -> date:
    """Default the reference date to the current local date."""
    return today or date.today()
