"""
Report aggregation over classified transactions.

The filtering pipeline decides which transactions feed an expense or income
view; the aggregation functions then total them with the net-amount
convention: expense views sum -amount and income views sum +amount, so a
refund booked as a positive expense reduces its category instead of
inflating it.

Everything here is synchronous and side-effect free. Currency conversion
happens before aggregation, in the service layer.
"""
import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, FrozenSet, Iterable, List, Literal, Optional, Sequence, Tuple

import pandas as pd

from core.classifier import classify_transaction
from core.exceptions import ValidationError
from core.logger import setup_logger
from core.normalize import add_months, days_between, month_key, week_start
from core.schema import (
    REGULAR_TRANSACTION_TYPES,
    BurnRateAnalysis,
    CategoryBreakdown,
    CategoryDeepDive,
    DateRange,
    FiltersArg,
    IncomeExpenseAnalysis,
    MonthlySpendingTrend,
    ReportsFilters,
    SpendingInsights,
    Transaction,
    TrendPoint,
    UserPreferences,
)

logger = setup_logger(__name__)

View = Literal["expense", "income"]

FRAME_COLUMNS = ["id", "date", "category", "account", "type", "amount", "net", "day_key", "week_key", "month_key"]

# Trend granularity thresholds (days spanned by the report range)
DAILY_TREND_MAX_DAYS = 31
WEEKLY_TREND_MAX_DAYS = 62

BURN_RATE_TREND_MONTHS = 3
BURN_RATE_TREND_TOLERANCE = 0.10
DAYS_PER_MONTH = 30

HIGH_CONFIDENCE = 0.8
LOW_CONFIDENCE = 0.5


@dataclass(frozen=True)
class ReportScope:
    """Resolved form of the filters argument accepted by every report."""
    include_transfers: bool
    include_asset_allocation: bool
    selected_types: Optional[FrozenSet[str]] = None
    selected_categories: Optional[FrozenSet[str]] = None
    selected_accounts: Optional[FrozenSet[str]] = None


def resolve_scope(filters: FiltersArg, preferences: UserPreferences) -> ReportScope:
    """
    Unify the legacy include_transfers flag, a ReportsFilters object and a
    bare list of type names into one ReportScope.

    Args:
        filters: bool, ReportsFilters, sequence of type names, or None
        preferences: User preferences, consulted for asset allocation when
            no explicit type selection is given

    Returns:
        ReportScope

    Raises:
        ValidationError: If the filters argument has an unsupported shape
    """
    if filters is None or isinstance(filters, bool):
        include_transfers = bool(filters)
        types = set(REGULAR_TRANSACTION_TYPES)
        if include_transfers:
            types.add("transfer")
        return ReportScope(
            include_transfers=include_transfers,
            include_asset_allocation=preferences.include_investments_in_reports,
            selected_types=frozenset(types),
        )

    if isinstance(filters, (list, tuple, set, frozenset)):
        filters = ReportsFilters(selected_types=list(filters))

    if not isinstance(filters, ReportsFilters):
        raise ValidationError(
            "Unsupported filters argument",
            details={"type": type(filters).__name__},
        )

    categories = frozenset(filters.selected_categories) if filters.selected_categories else None
    accounts = frozenset(filters.selected_accounts) if filters.selected_accounts else None

    if not filters.selected_types:
        return ReportScope(
            include_transfers=bool(filters.include_transfers),
            include_asset_allocation=preferences.include_investments_in_reports,
            selected_categories=categories,
            selected_accounts=accounts,
        )

    types = frozenset(filters.selected_types)
    return ReportScope(
        include_transfers="transfer" in types,
        include_asset_allocation="asset-allocation" in types,
        selected_types=types,
        selected_categories=categories,
        selected_accounts=accounts,
    )


def prefilter(
    transactions: Iterable[Transaction],
    scope: ReportScope,
    date_range: Optional[DateRange] = None,
) -> List[Transaction]:
    """
    Drop malformed records, then apply the date range, category and account
    dimensions of the scope.
    """
    kept: List[Transaction] = []
    malformed = 0

    for t in transactions:
        if not t.is_well_formed:
            malformed += 1
            logger.debug(f"Skipping malformed transaction {t.id}: date={t.date!r} amount={t.amount!r}")
            continue
        if date_range is not None and not date_range.contains(t.date):
            continue
        if scope.selected_categories is not None and t.category not in scope.selected_categories:
            continue
        if scope.selected_accounts is not None and t.account not in scope.selected_accounts:
            continue
        kept.append(t)

    if malformed:
        logger.warning(f"Excluded {malformed} transactions with a missing or invalid date/amount")

    return kept


def _matches_side(transaction: Transaction, view: View) -> bool:
    if view == "expense":
        return transaction.amount < 0
    return transaction.amount > 0


def is_retained(transaction: Transaction, view: View, scope: ReportScope) -> bool:
    """
    Decide whether a well-formed transaction belongs to an expense or income view.
    """
    kind = classify_transaction(transaction)

    if kind == "transfer":
        return scope.include_transfers and _matches_side(transaction, view)

    if kind == "asset-allocation":
        return scope.include_asset_allocation and _matches_side(transaction, view)

    if scope.selected_types is not None and kind not in scope.selected_types:
        return False

    if view == "expense":
        return transaction.type == "expense" or transaction.amount < 0
    return transaction.type == "income" or transaction.amount > 0


def select_for_view(transactions: Iterable[Transaction], view: View, scope: ReportScope) -> List[Transaction]:
    return [t for t in transactions if is_retained(t, view, scope)]


def net_amount(transaction: Transaction, view: View) -> float:
    """Contribution of a transaction to a view total."""
    return -transaction.amount if view == "expense" else transaction.amount


def transactions_to_frame(transactions: Sequence[Transaction], view: View) -> pd.DataFrame:
    """Build a DataFrame with the net contribution and period keys of each transaction."""
    records = [
        {
            "id": t.id,
            "date": t.date,
            "category": t.category,
            "account": t.account,
            "type": t.type,
            "amount": t.amount,
            "net": net_amount(t, view),
            "day_key": t.date.isoformat(),
            "week_key": week_start(t.date).isoformat(),
            "month_key": month_key(t.date),
        }
        for t in transactions
    ]
    return pd.DataFrame(records, columns=FRAME_COLUMNS)


def estimate_frequency(dates: Sequence[date]) -> str:
    """Rough cadence label for a category's transactions, from the mean gap."""
    if len(dates) <= 1:
        return "One-time"

    ordered = sorted(dates)
    span = (ordered[-1] - ordered[0]).days
    if span == 0:
        return "Same day"

    average_gap = span / (len(ordered) - 1)
    if average_gap <= 7:
        return "Weekly"
    if average_gap <= 15:
        return "Bi-weekly"
    if average_gap <= 35:
        return "Monthly"
    if average_gap <= 95:
        return "Quarterly"
    return "Irregular"


def category_breakdown(
    transactions: Sequence[Transaction],
    view: View,
    with_frequency: bool = False,
) -> List[CategoryBreakdown]:
    """
    Per-category totals for a view, sorted by amount descending.

    Args:
        transactions: Transactions already retained for the view and converted
        view: "expense" or "income"
        with_frequency: Attach a cadence label per category (income reports)

    Returns:
        List of CategoryBreakdown rows, one per category with retained transactions
    """
    if not transactions:
        return []

    frame = transactions_to_frame(transactions, view)
    grouped = frame.groupby("category", sort=False)["net"].agg(["sum", "count"])
    total = float(grouped["sum"].sum())

    frequencies: Dict[str, str] = {}
    if with_frequency:
        for category, dates in frame.groupby("category", sort=False)["date"]:
            frequencies[category] = estimate_frequency(list(dates))

    rows = []
    for category, row in grouped.iterrows():
        amount = float(row["sum"])
        count = int(row["count"])
        rows.append(CategoryBreakdown(
            category_name=category,
            amount=amount,
            transaction_count=count,
            average_amount=amount / count if count else 0.0,
            percentage=(amount / total) * 100 if total > 0 else 0.0,
            frequency=frequencies.get(category),
        ))

    rows.sort(key=lambda r: (-r.amount, r.category_name))
    return rows


def monthly_trends(
    expenses: Sequence[Transaction],
    incomes: Sequence[Transaction],
) -> List[MonthlySpendingTrend]:
    """One record per calendar month present in either view, chronological."""
    if not expenses and not incomes:
        return []

    expense_frame = transactions_to_frame(expenses, "expense")
    income_frame = transactions_to_frame(incomes, "income")

    spending = expense_frame.groupby("month_key")["net"].sum()
    income = income_frame.groupby("month_key")["net"].sum()

    # A refund can sit in both views; count it once
    members = pd.concat([expense_frame[["id", "month_key"]], income_frame[["id", "month_key"]]])
    counts = members.drop_duplicates(subset=["id"]).groupby("month_key").size()

    trends = []
    for key in sorted(counts.index):
        total_spending = float(spending.get(key, 0.0))
        total_income = float(income.get(key, 0.0))
        year, month = (int(part) for part in key.split("-"))
        trends.append(MonthlySpendingTrend(
            month=date(year, month, 1).strftime("%b %Y"),
            year=year,
            month_key=key,
            total_spending=total_spending,
            total_income=total_income,
            net_amount=total_income - total_spending,
            transaction_count=int(counts[key]),
        ))
    return trends


def income_expense_analysis(
    expenses: Sequence[Transaction],
    incomes: Sequence[Transaction],
) -> IncomeExpenseAnalysis:
    total_income = sum(net_amount(t, "income") for t in incomes)
    total_expenses = sum(net_amount(t, "expense") for t in expenses)
    net_income = total_income - total_expenses

    return IncomeExpenseAnalysis(
        total_income=total_income,
        total_expenses=total_expenses,
        net_income=net_income,
        income_to_expense_ratio=total_income / total_expenses if total_expenses > 0 else 0.0,
        expense_to_income_ratio=total_expenses / total_income if total_income > 0 else 0.0,
        savings_rate=(net_income / total_income) * 100 if total_income > 0 else 0.0,
    )


def determine_trend_granularity(date_range: Optional[DateRange]) -> Tuple[str, str]:
    """Pick the trend granularity from the span of the report range."""
    if date_range is None:
        return "monthly", "Monthly Trend"

    span = date_range.span_days
    if span <= DAILY_TREND_MAX_DAYS:
        return "daily", "Daily Trend"
    if span <= WEEKLY_TREND_MAX_DAYS:
        return "weekly", "Weekly Trend"
    return "monthly", "Monthly Trend"


def format_period_label(period_key: str, granularity: str) -> str:
    if granularity == "daily":
        return date.fromisoformat(period_key).strftime("%b %d")
    if granularity == "weekly":
        start = date.fromisoformat(period_key)
        end = start + timedelta(days=6)
        return f"{start:%b %d}-{end:%b %d}"
    year, month = (int(part) for part in period_key.split("-"))
    return date(year, month, 1).strftime("%b %Y")


def category_deep_dive(
    category_name: str,
    transactions: Sequence[Transaction],
    date_range: Optional[DateRange] = None,
    recent_limit: int = 100,
) -> Optional[CategoryDeepDive]:
    """
    Detailed view of one expense category.

    Args:
        category_name: Category to analyse
        transactions: Expense-view transactions already restricted to the category
        date_range: Report range, used to pick the trend granularity
        recent_limit: Maximum number of recent transactions returned

    Returns:
        CategoryDeepDive, or None when the category has no qualifying transactions
    """
    if not transactions:
        return None

    newest_first = sorted(transactions, key=lambda t: (t.date, t.id), reverse=True)
    total_amount = sum(net_amount(t, "expense") for t in newest_first)
    count = len(newest_first)

    by_size = sorted(newest_first, key=lambda t: abs(t.amount), reverse=True)

    granularity, title = determine_trend_granularity(date_range)
    key_column = {"daily": "day_key", "weekly": "week_key", "monthly": "month_key"}[granularity]
    frame = transactions_to_frame(newest_first, "expense")
    totals = frame.groupby(key_column)["net"].sum().sort_index()

    trend = [
        TrendPoint(
            label=format_period_label(period_key, granularity),
            period_key=period_key,
            amount=float(amount),
        )
        for period_key, amount in totals.items()
    ]

    return CategoryDeepDive(
        category_name=category_name,
        total_amount=total_amount,
        transaction_count=count,
        average_transaction=total_amount / count,
        largest_transaction=by_size[0],
        smallest_transaction=by_size[-1],
        recent_transactions=newest_first[:recent_limit],
        trend=trend,
        trend_granularity=granularity,
        trend_title=title,
    )


def _classify_burn_trend(monthly_values: List[float]) -> str:
    if len(monthly_values) < 2:
        return "stable"

    recent_avg = sum(monthly_values[-2:]) / 2
    earlier = monthly_values[:-1]
    earlier_avg = sum(earlier) / len(earlier)

    if recent_avg > earlier_avg * (1 + BURN_RATE_TREND_TOLERANCE):
        return "increasing"
    if recent_avg < earlier_avg * (1 - BURN_RATE_TREND_TOLERANCE):
        return "decreasing"
    return "stable"


def burn_rate_analysis(
    expenses: Sequence[Transaction],
    incomes: Sequence[Transaction],
    today: date,
) -> BurnRateAnalysis:
    """
    Spending velocity and current-month projection.

    Args:
        expenses: Expense-view transactions, converted
        incomes: Income-view transactions, converted
        today: Reference date for the current-month projection and trend

    Returns:
        BurnRateAnalysis (all zeros when there are no expenses)
    """
    if not expenses:
        return BurnRateAnalysis()

    total_spending = sum(net_amount(t, "expense") for t in expenses)
    earliest = min(t.date for t in expenses)
    latest = max(t.date for t in expenses)
    days = max(1, days_between(earliest, latest))
    daily_burn_rate = total_spending / days
    monthly_burn_rate = daily_burn_rate * DAYS_PER_MONTH

    month_start = today.replace(day=1)
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    days_passed = today.day
    days_remaining = max(0, days_in_month - days_passed)

    current_month_expenses = sum(
        net_amount(t, "expense") for t in expenses if month_start <= t.date <= today
    )
    projected_monthly_spending = (current_month_expenses / days_passed) * days_in_month

    current_month_income = sum(
        net_amount(t, "income") for t in incomes if month_start <= t.date <= today
    )

    cutoff = add_months(today, -BURN_RATE_TREND_MONTHS)
    recent = [t for t in expenses if t.date >= cutoff]
    if recent:
        frame = transactions_to_frame(recent, "expense")
        monthly_values = [float(v) for v in frame.groupby("month_key")["net"].sum().sort_index()]
    else:
        monthly_values = []

    return BurnRateAnalysis(
        daily_burn_rate=daily_burn_rate,
        monthly_burn_rate=monthly_burn_rate,
        projected_monthly_spending=projected_monthly_spending,
        days_remaining=days_remaining,
        projected_end_of_month_balance=current_month_income - projected_monthly_spending,
        burn_rate_trend=_classify_burn_trend(monthly_values),
        recommended_daily_spending=monthly_burn_rate / DAYS_PER_MONTH,
    )


def spending_insights(transactions: Sequence[Transaction]) -> SpendingInsights:
    """Data-quality summary over verification flags and classifier confidence."""
    total = len(transactions)
    if total == 0:
        return SpendingInsights()

    verified = sum(1 for t in transactions if t.is_verified is True)
    scored = [t.confidence for t in transactions if t.confidence is not None]
    average_confidence = sum(scored) / len(scored) if scored else 0.0

    def confidence(t: Transaction) -> float:
        return t.confidence or 0.0

    return SpendingInsights(
        total_transactions=total,
        verified_transactions=verified,
        verification_rate=(verified / total) * 100,
        average_confidence=average_confidence * 100,
        high_confidence_transactions=sum(1 for t in transactions if confidence(t) > HIGH_CONFIDENCE),
        low_confidence_transactions=sum(1 for t in transactions if 0 < confidence(t) < LOW_CONFIDENCE),
        needs_review_count=sum(
            1 for t in transactions if not t.is_verified and confidence(t) < HIGH_CONFIDENCE
        ),
    )


def default_date_range(today: date) -> DateRange:
    """Last 12 months up to today."""
    return DateRange(start_date=add_months(today, -12), end_date=today)


def current_month_range(today: date) -> DateRange:
    last_day = calendar.monthrange(today.year, today.month)[1]
    return DateRange(start_date=today.replace(day=1), end_date=today.replace(day=last_day))


def last_three_months_range(today: date) -> DateRange:
    return DateRange(start_date=add_months(today, -3), end_date=today)
