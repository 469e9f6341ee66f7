"""
FastAPI routes for spending reports and subscription detection.
Services are injected through dependency getters so tests can swap the
store and converter with app.dependency_overrides.
"""
from datetime import date
from typing import Callable, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from core.aggregation import current_month_range, default_date_range, last_three_months_range
from core.config import get_settings
from core.db import get_db
from core.exceptions import (
    DataNotFoundError,
    ReportGenerationError,
    SpendLensException,
    ValidationError,
)
from core.logger import setup_logger
from core.schema import (
    BurnRateAnalysis,
    CategoryBreakdown,
    CategoryDeepDive,
    DateRange,
    FiltersArg,
    IncomeExpenseAnalysis,
    MonthlySpendingTrend,
    ReportsFilters,
    SpendingInsights,
    SubscriptionDetectionResult,
    SubscriptionsFilters,
    SubscriptionStatusSummary,
)
from services.collaborators import (
    CurrencyConverter,
    PreferencesProvider,
    SettingsPreferencesProvider,
    StaticRateCurrencyConverter,
    TransactionStore,
)
from services.reports_service import ReportsService
from services.subscriptions_service import SubscriptionsService

logger = setup_logger(__name__)
settings = get_settings()

ReportPeriod = Literal["current-month", "last-3-months", "last-12-months"]

PERIOD_RANGES: Dict[str, Callable[[date], DateRange]] = {
    "current-month": current_month_range,
    "last-3-months": last_three_months_range,
    "last-12-months": default_date_range,
}

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Spending reports, burn-rate projection and subscription detection",
    version="1.0.0"
)


def get_store() -> TransactionStore:
    return get_db()


def get_converter() -> CurrencyConverter:
    return StaticRateCurrencyConverter()


def get_preferences_provider() -> PreferencesProvider:
    return SettingsPreferencesProvider()


def get_reports_service(
    store: TransactionStore = Depends(get_store),
    converter: CurrencyConverter = Depends(get_converter),
    preferences: PreferencesProvider = Depends(get_preferences_provider),
) -> ReportsService:
    return ReportsService(store, converter, preferences)


def get_subscriptions_service(
    store: TransactionStore = Depends(get_store),
    converter: CurrencyConverter = Depends(get_converter),
) -> SubscriptionsService:
    return SubscriptionsService(store, converter)


@app.exception_handler(DataNotFoundError)
async def data_not_found_handler(request: Request, exc: DataNotFoundError):
    logger.error(f"Store unavailable for {request.url.path}: {exc.message}")
    return JSONResponse(status_code=503, content={"error": exc.message, "details": exc.details})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": exc.message, "details": exc.details})


@app.exception_handler(ReportGenerationError)
async def report_error_handler(request: Request, exc: ReportGenerationError):
    return JSONResponse(status_code=500, content={"error": exc.message, "details": exc.details})


@app.exception_handler(SpendLensException)
async def spendlens_error_handler(request: Request, exc: SpendLensException):
    logger.error(f"Unhandled service error for {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content={"error": exc.message, "details": exc.details})


def build_date_range(start_date: Optional[date], end_date: Optional[date]) -> Optional[DateRange]:
    """
    Build a DateRange from query parameters.

    Raises:
        HTTPException: If only one bound is given or the range is inverted
    """
    if start_date is None and end_date is None:
        return None
    if start_date is None or end_date is None:
        raise HTTPException(status_code=400, detail="Both start_date and end_date are required")
    try:
        return DateRange(start_date=start_date, end_date=end_date)
    except PydanticValidationError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid date range: {start_date} - {end_date}"
        )


def build_report_filters(
    include_transfers: Optional[bool],
    types: Optional[List[str]],
    categories: Optional[List[str]],
    accounts: Optional[List[str]],
) -> FiltersArg:
    """
    Translate query parameters into the filters argument of ReportsService.

    A lone include_transfers flag keeps its legacy meaning. Alongside category
    or account filters it only admits transfers, so asset allocation still
    follows the user's preferences as in the unfiltered report.
    """
    if not (types or categories or accounts):
        return include_transfers

    try:
        return ReportsFilters(
            selected_types=types,
            selected_categories=categories,
            selected_accounts=accounts,
            include_transfers=include_transfers,
        )
    except PydanticValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid report filters: {e.errors()[0]['msg']}")


def report_filters(
    include_transfers: Optional[bool] = None,
    types: Optional[List[str]] = Query(default=None),
    categories: Optional[List[str]] = Query(default=None),
    accounts: Optional[List[str]] = Query(default=None),
) -> FiltersArg:
    return build_report_filters(include_transfers, types, categories, accounts)


def get_today() -> date:
    return date.today()


def report_date_range(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    period: Optional[ReportPeriod] = None,
    today: date = Depends(get_today),
) -> Optional[DateRange]:
    """Explicit start/end bounds, or one of the named period presets."""
    if period is None:
        return build_date_range(start_date, end_date)
    if start_date is not None or end_date is not None:
        raise HTTPException(status_code=400, detail="Use either period or start_date/end_date")
    return PERIOD_RANGES[period](today)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "spendlens",
        "version": "1.0.0"
    }


@app.get("/reports/spending-by-category", response_model=List[CategoryBreakdown])
async def spending_by_category(
    date_range: Optional[DateRange] = Depends(report_date_range),
    filters: FiltersArg = Depends(report_filters),
    service: ReportsService = Depends(get_reports_service),
):
    return await service.get_spending_by_category(date_range, filters)


@app.get("/reports/income-by-category", response_model=List[CategoryBreakdown])
async def income_by_category(
    date_range: Optional[DateRange] = Depends(report_date_range),
    filters: FiltersArg = Depends(report_filters),
    service: ReportsService = Depends(get_reports_service),
):
    return await service.get_income_by_category(date_range, filters)


@app.get("/reports/monthly-trends", response_model=List[MonthlySpendingTrend])
async def monthly_trends(
    date_range: Optional[DateRange] = Depends(report_date_range),
    filters: FiltersArg = Depends(report_filters),
    service: ReportsService = Depends(get_reports_service),
):
    return await service.get_monthly_spending_trends(date_range, filters)


@app.get("/reports/income-expense", response_model=IncomeExpenseAnalysis)
async def income_expense(
    date_range: Optional[DateRange] = Depends(report_date_range),
    filters: FiltersArg = Depends(report_filters),
    service: ReportsService = Depends(get_reports_service),
):
    return await service.get_income_expense_analysis(date_range, filters)


@app.get("/reports/categories/{category_name}", response_model=CategoryDeepDive)
async def category_deep_dive(
    category_name: str,
    date_range: Optional[DateRange] = Depends(report_date_range),
    filters: FiltersArg = Depends(report_filters),
    service: ReportsService = Depends(get_reports_service),
):
    result = await service.get_category_deep_dive(category_name, date_range, filters)
    if result is None:
        raise HTTPException(status_code=404, detail=f"No transactions found for category: {category_name}")
    return result


@app.get("/reports/burn-rate", response_model=BurnRateAnalysis)
async def burn_rate(
    date_range: Optional[DateRange] = Depends(report_date_range),
    filters: FiltersArg = Depends(report_filters),
    service: ReportsService = Depends(get_reports_service),
):
    return await service.get_burn_rate_analysis(date_range, filters)


@app.get("/reports/insights", response_model=SpendingInsights)
async def insights(
    date_range: Optional[DateRange] = Depends(report_date_range),
    filters: FiltersArg = Depends(report_filters),
    service: ReportsService = Depends(get_reports_service),
):
    return await service.get_spending_insights(date_range, filters)


@app.get("/subscriptions", response_model=SubscriptionDetectionResult)
async def subscriptions(
    inactive: bool = False,
    date_range: Optional[DateRange] = Depends(report_date_range),
    categories: Optional[List[str]] = Query(default=None),
    accounts: Optional[List[str]] = Query(default=None),
    frequencies: Optional[List[str]] = Query(default=None),
    service: SubscriptionsService = Depends(get_subscriptions_service),
):
    """
    Detected subscriptions, active by default.

    Args:
        inactive: Return inactive subscriptions instead
        date_range: Keep subscriptions with at least one charge in range
        categories: Keep subscriptions in these categories
        accounts: Keep subscriptions charged to these accounts
        frequencies: Keep subscriptions with these cadences

    Returns:
        Subscriptions with summary counts
    """
    if date_range is None and not (categories or accounts or frequencies):
        return await service.detect_subscriptions(show_inactive_only=inactive)

    filters = SubscriptionsFilters(
        date_range=date_range,
        selected_categories=categories,
        selected_accounts=accounts,
        selected_frequencies=frequencies,
    )
    return await service.detect_subscriptions_with_filters(filters, show_inactive_only=inactive)


@app.get("/subscriptions/status", response_model=SubscriptionStatusSummary)
async def subscriptions_status(
    service: SubscriptionsService = Depends(get_subscriptions_service),
):
    return await service.get_all_subscriptions_with_status()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
