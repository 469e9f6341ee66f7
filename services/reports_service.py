"""
Reporting service.
Loads transactions, applies the filtering pipeline, converts the retained
transactions to the default currency once per report, and aggregates.
"""
from datetime import date
from typing import List, Optional, Sequence, Tuple

from core.aggregation import (
    ReportScope,
    burn_rate_analysis,
    category_breakdown,
    category_deep_dive,
    income_expense_analysis,
    is_retained,
    monthly_trends,
    prefilter,
    resolve_scope,
    select_for_view,
    spending_insights,
)
from core.classifier import classify_transaction
from core.logger import setup_logger
from core.schema import (
    BurnRateAnalysis,
    CategoryBreakdown,
    CategoryDeepDive,
    DateRange,
    FiltersArg,
    IncomeExpenseAnalysis,
    MonthlySpendingTrend,
    SpendingInsights,
    Transaction,
)
from services.base import TransactionSourceService, resolve_today
from services.collaborators import (
    CurrencyConverter,
    PreferencesProvider,
    SettingsPreferencesProvider,
    TransactionStore,
)

logger = setup_logger(__name__)

BOTH_VIEWS = ("expense", "income")


class ReportsService(TransactionSourceService):
    """Service producing spending, income and burn-rate reports."""

    def __init__(
        self,
        store: TransactionStore,
        converter: CurrencyConverter,
        preferences: Optional[PreferencesProvider] = None,
    ):
        super().__init__(store, converter)
        self.preferences = preferences or SettingsPreferencesProvider()

    def _scope(self, filters: FiltersArg) -> ReportScope:
        return resolve_scope(filters, self.preferences.get_preferences())

    async def _retained(
        self,
        scope: ReportScope,
        date_range: Optional[DateRange],
        views: Sequence[str] = BOTH_VIEWS,
        category_name: Optional[str] = None,
    ) -> Tuple[List[Transaction], List[Transaction]]:
        """
        Run the filtering pipeline and convert the union of the requested
        views in a single batch.

        Returns:
            Tuple of (expense view, income view); a view not requested is empty
        """
        base = prefilter(self.load_transactions(), scope, date_range)
        if category_name is not None:
            base = [t for t in base if t.category == category_name]

        candidates = [t for t in base if any(is_retained(t, view, scope) for view in views)]
        converted = await self.convert(candidates)

        expenses = select_for_view(converted, "expense", scope) if "expense" in views else []
        incomes = select_for_view(converted, "income", scope) if "income" in views else []
        logger.debug(
            f"Retained {len(expenses)} expense and {len(incomes)} income transactions "
            f"of {len(base)} in range"
        )
        return expenses, incomes

    async def get_spending_by_category(
        self,
        date_range: Optional[DateRange] = None,
        filters: FiltersArg = None,
    ) -> List[CategoryBreakdown]:
        """
        Expense totals per category, largest first.

        Args:
            date_range: Optional inclusive date range
            filters: Legacy include_transfers flag, ReportsFilters or list of types

        Returns:
            List of CategoryBreakdown
        """
        expenses, _ = await self._retained(self._scope(filters), date_range, views=("expense",))
        return self.compute("spending by category", category_breakdown, expenses, "expense")

    async def get_income_by_category(
        self,
        date_range: Optional[DateRange] = None,
        filters: FiltersArg = None,
    ) -> List[CategoryBreakdown]:
        """Income totals per category with a cadence label, largest first."""
        _, incomes = await self._retained(self._scope(filters), date_range, views=("income",))
        return self.compute(
            "income by category", category_breakdown, incomes, "income", with_frequency=True
        )

    async def get_monthly_spending_trends(
        self,
        date_range: Optional[DateRange] = None,
        filters: FiltersArg = None,
    ) -> List[MonthlySpendingTrend]:
        expenses, incomes = await self._retained(self._scope(filters), date_range)
        return self.compute("monthly trends", monthly_trends, expenses, incomes)

    async def get_income_expense_analysis(
        self,
        date_range: Optional[DateRange] = None,
        filters: FiltersArg = None,
    ) -> IncomeExpenseAnalysis:
        expenses, incomes = await self._retained(self._scope(filters), date_range)
        return self.compute("income/expense analysis", income_expense_analysis, expenses, incomes)

    async def get_category_deep_dive(
        self,
        category_name: str,
        date_range: Optional[DateRange] = None,
        filters: FiltersArg = None,
    ) -> Optional[CategoryDeepDive]:
        """
        Detailed expense view of one category.

        Args:
            category_name: Category to analyse
            date_range: Optional inclusive date range, also selects trend granularity
            filters: Legacy include_transfers flag, ReportsFilters or list of types

        Returns:
            CategoryDeepDive, or None when no transaction qualifies
        """
        expenses, _ = await self._retained(
            self._scope(filters), date_range, views=("expense",), category_name=category_name
        )
        result = self.compute(
            "category deep dive",
            category_deep_dive,
            category_name,
            expenses,
            date_range,
            self.settings.recent_transactions_limit,
        )
        if result is None:
            logger.info(f"No qualifying transactions for category '{category_name}'")
        return result

    async def get_burn_rate_analysis(
        self,
        date_range: Optional[DateRange] = None,
        filters: FiltersArg = None,
        today: Optional[date] = None,
    ) -> BurnRateAnalysis:
        """
        Spending velocity and end-of-month projection.

        Args:
            date_range: Optional inclusive date range
            filters: Legacy include_transfers flag, ReportsFilters or list of types
            today: Reference date, defaults to the current date

        Returns:
            BurnRateAnalysis
        """
        expenses, incomes = await self._retained(self._scope(filters), date_range)
        return self.compute(
            "burn rate analysis", burn_rate_analysis, expenses, incomes, resolve_today(today)
        )

    async def get_spending_insights(
        self,
        date_range: Optional[DateRange] = None,
        filters: FiltersArg = None,
    ) -> SpendingInsights:
        """Verification and confidence summary over the transactions in range."""
        scope = self._scope(filters)
        transactions = [
            t for t in prefilter(self.load_transactions(), scope, date_range)
            if scope.include_transfers or classify_transaction(t) != "transfer"
        ]
        return self.compute("spending insights", spending_insights, transactions)
