"""
Value normalization for transaction fields and calendar arithmetic.
Coerces noisy bank-feed values (amounts, dates, type labels) into clean
Python values; anything unparseable becomes None so a single bad row never
aborts a report.
"""
import calendar
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pandas as pd

from core.logger import setup_logger

logger = setup_logger(__name__)

CURRENCY_CODE_PATTERN = re.compile(r"^[A-Za-z]{3}|[A-Za-z]{3}$")

DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d", "%m/%d/%Y", "%d.%m.%Y")

TYPE_ALIASES = {
    "income": "income",
    "expense": "expense",
    "transfer": "transfer",
    "asset-allocation": "asset-allocation",
    "asset allocation": "asset-allocation",
    "asset_allocation": "asset-allocation",
    "investment": "asset-allocation",
}


def clean_amount(value: Any) -> Optional[float]:
    """
    Clean and normalize a signed monetary amount.
    Removes currency symbols, codes, spaces and thousands separators; an amount
    in parentheses or with a trailing minus is treated as negative.

    Args:
        value: Raw amount value (string or number)

    Returns:
        Signed float value or None if invalid
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        return float(value)

    amount_str = str(value).strip()
    if not amount_str:
        return None

    negative = amount_str.startswith("(") and amount_str.endswith(")")

    amount_str = amount_str.replace(" ", "").replace(",", "").replace("\xa0", "")
    amount_str = CURRENCY_CODE_PATTERN.sub("", amount_str)

    # Letters other than a currency code mean this is not an amount ("1e5", "n/a")
    if any(char.isalpha() for char in amount_str):
        logger.warning(f"Failed to parse amount: '{value}' - unexpected characters")
        return None

    cleaned = ""
    for char in amount_str:
        if char.isdigit() or char in [".", "-"]:
            cleaned += char

    # Trailing minus, as in "45.00-"
    if cleaned.endswith("-") and not cleaned.startswith("-"):
        negative = True
        cleaned = cleaned[:-1]

    if not cleaned:
        logger.warning(f"Failed to parse amount: '{value}' - no numeric content")
        return None

    try:
        result = float(cleaned)
    except (ValueError, TypeError) as e:
        logger.warning(f"Failed to parse amount: '{value}' -> {e}")
        return None

    if math.isnan(result) or math.isinf(result):
        return None
    return -abs(result) if negative else result


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a transaction date.

    Accepts date/datetime/pandas Timestamp objects and strings in ISO or the
    common bank-export formats. Returns None on failure.
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    date_str = str(value).strip()
    if not date_str:
        return None

    try:
        return datetime.fromisoformat(date_str.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    logger.warning(f"Failed to parse date: '{value}'")
    return None


def normalize_type(value: Any) -> Optional[str]:
    """Map a type label to one of the canonical transaction types."""
    if value is None:
        return None
    key = " ".join(str(value).strip().lower().split())
    if not key:
        return None
    canonical = TYPE_ALIASES.get(key)
    if canonical is None:
        logger.warning(f"Unknown transaction type: '{value}'")
    return canonical


def normalize_currency(value: Any) -> Optional[str]:
    if value is None:
        return None
    code = str(value).strip().upper()
    return code or None


def add_months(d: date, n: int) -> date:
    """Add n months to date d, clamping the day to the month end."""
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return d.replace(year=year, month=month, day=day)


def days_between(start: date, end: date) -> int:
    return (end - start).days


def week_start(d: date) -> date:
    """Monday of the week containing d."""
    return d - timedelta(days=d.weekday())


def month_key(d: date) -> str:
    """YYYY-MM key for grouping."""
    return d.strftime("%Y-%m")
