"""
Pydantic schemas for transactions, report filters and report results.
Input fields are coerced with BeforeValidators so malformed bank-feed values
surface as None instead of failing the whole record.
"""
import datetime as dt
from typing import Annotated, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from core.normalize import clean_amount, normalize_currency, normalize_type, parse_date

TransactionType = Literal["income", "expense", "transfer", "asset-allocation"]
TrendGranularity = Literal["daily", "weekly", "monthly"]
BurnRateTrend = Literal["increasing", "decreasing", "stable"]

REGULAR_TRANSACTION_TYPES: tuple = ("income", "expense")


def normalize_text(v):
    """Normalize free-text fields to string (feeds may send None or numbers)."""
    if v is None:
        return ""
    return str(v)


def normalize_id(v):
    """Normalize transaction id to string (stores may return int)."""
    if v is None:
        return v
    return str(v)


def normalize_optional_text(v):
    if v is None:
        return None
    text = str(v).strip()
    return text or None


def normalize_confidence(v):
    """Out-of-range or non-numeric confidence scores are treated as missing."""
    score = clean_amount(v)
    if score is None or not (0.0 <= score <= 1.0):
        return None
    return score


def normalize_selection(v):
    """Treat an empty selection the same as no selection."""
    if v is None:
        return None
    if isinstance(v, str):
        v = [v]
    values = [str(item) for item in v if item is not None and str(item) != ""]
    return values or None


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases for JSON consumers."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Transaction(CamelModel):
    """A bank-exported transaction record."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: Annotated[str, BeforeValidator(normalize_id)]
    date: Annotated[Optional[dt.date], BeforeValidator(parse_date)] = None
    amount: Annotated[Optional[float], BeforeValidator(clean_amount)] = None
    description: Annotated[str, BeforeValidator(normalize_text)] = ""
    category: Annotated[str, BeforeValidator(normalize_text)] = ""
    subcategory: Annotated[Optional[str], BeforeValidator(normalize_optional_text)] = None
    account: Annotated[str, BeforeValidator(normalize_text)] = ""
    type: Annotated[Optional[TransactionType], BeforeValidator(normalize_type)] = None
    original_currency: Annotated[Optional[str], BeforeValidator(normalize_currency)] = None
    exchange_rate: Optional[float] = None
    is_verified: Optional[bool] = None
    confidence: Annotated[Optional[float], BeforeValidator(normalize_confidence)] = None

    @property
    def is_well_formed(self) -> bool:
        """True when the record carries both a date and an amount."""
        return self.date is not None and self.amount is not None


class DateRange(CamelModel):
    """Inclusive date range."""
    start_date: Annotated[dt.date, BeforeValidator(parse_date)]
    end_date: Annotated[dt.date, BeforeValidator(parse_date)]

    @model_validator(mode="after")
    def check_order(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    def contains(self, d: dt.date) -> bool:
        return self.start_date <= d <= self.end_date

    @property
    def span_days(self) -> int:
        return (self.end_date - self.start_date).days


class ReportsFilters(CamelModel):
    """User-selected report filters. A missing dimension means no restriction."""
    selected_types: Annotated[Optional[List[TransactionType]], BeforeValidator(normalize_selection)] = None
    selected_categories: Annotated[Optional[List[str]], BeforeValidator(normalize_selection)] = None
    selected_accounts: Annotated[Optional[List[str]], BeforeValidator(normalize_selection)] = None
    # Only consulted when selected_types is absent
    include_transfers: Optional[bool] = None


# Accepted shapes for the filters argument of every report operation
FiltersArg = Union[bool, ReportsFilters, Sequence[str], None]


class UserPreferences(CamelModel):
    include_investments_in_reports: bool = False
    default_currency: str = "USD"


class CategoryBreakdown(CamelModel):
    """Per-category totals for spending or income reports."""
    category_name: str
    amount: float
    transaction_count: int
    average_amount: float
    percentage: float
    frequency: Optional[str] = None


class MonthlySpendingTrend(CamelModel):
    month: str = Field(..., description="Display label, e.g. 'Jan 2025'")
    year: int
    month_key: str = Field(..., description="YYYY-MM")
    total_spending: float
    total_income: float
    net_amount: float
    transaction_count: int


class IncomeExpenseAnalysis(CamelModel):
    total_income: float = 0.0
    total_expenses: float = 0.0
    net_income: float = 0.0
    income_to_expense_ratio: float = 0.0
    expense_to_income_ratio: float = 0.0
    savings_rate: float = Field(default=0.0, description="(income - expenses) / income * 100")


class TrendPoint(CamelModel):
    label: str
    period_key: str
    amount: float


class CategoryDeepDive(CamelModel):
    category_name: str
    total_amount: float
    transaction_count: int
    average_transaction: float
    largest_transaction: Transaction
    smallest_transaction: Transaction
    recent_transactions: List[Transaction]
    trend: List[TrendPoint]
    trend_granularity: TrendGranularity
    trend_title: str


class BurnRateAnalysis(CamelModel):
    daily_burn_rate: float = 0.0
    monthly_burn_rate: float = 0.0
    projected_monthly_spending: float = 0.0
    days_remaining: int = 0
    projected_end_of_month_balance: float = 0.0
    burn_rate_trend: BurnRateTrend = "stable"
    recommended_daily_spending: float = 0.0


class SpendingInsights(CamelModel):
    total_transactions: int = 0
    verified_transactions: int = 0
    verification_rate: float = 0.0
    average_confidence: float = 0.0
    high_confidence_transactions: int = 0
    low_confidence_transactions: int = 0
    needs_review_count: int = 0


class PriceChange(CamelModel):
    has_changed: bool = True
    old_amount: float
    new_amount: float
    change_percent: float
    change_date: dt.date


class Subscription(CamelModel):
    """A recurring payment derived from a group of similar expenses."""
    id: str
    name: str
    description: str
    amount: float
    average_amount: float
    frequency: str
    annual_cost: float
    last_charged_date: dt.date
    next_estimated_date: Optional[dt.date] = None
    transaction_count: int
    category: str
    subcategory: Optional[str] = None
    account: str
    is_active: bool
    months_since_last_charge: int
    brand: Optional[str] = None
    price_change: Optional[PriceChange] = None
    transactions: List[Transaction]


class SubscriptionsFilters(CamelModel):
    date_range: Optional[DateRange] = None
    selected_categories: Annotated[Optional[List[str]], BeforeValidator(normalize_selection)] = None
    selected_accounts: Annotated[Optional[List[str]], BeforeValidator(normalize_selection)] = None
    selected_frequencies: Annotated[Optional[List[str]], BeforeValidator(normalize_selection)] = None


class SubscriptionDetectionResult(CamelModel):
    subscriptions: List[Subscription] = Field(default_factory=list)
    total_annual_cost: float = 0.0
    monthly_subscriptions: int = 0
    weekly_subscriptions: int = 0
    quarterly_subscriptions: int = 0
    other_frequency_subscriptions: int = 0


class SubscriptionStatusSummary(CamelModel):
    active: List[Subscription] = Field(default_factory=list)
    inactive: List[Subscription] = Field(default_factory=list)
    total_active: int = 0
    total_inactive: int = 0
    total_annual_cost: float = 0.0
