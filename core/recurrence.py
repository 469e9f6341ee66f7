"""
Recurring-payment detection.

Expenses are bucketed by a tolerant amount band, partitioned by normalized
service name, and each resulting group is classified by the regularity of
its charge dates. Groups that look like a genuine subscription are turned
into Subscription models with cost, activity and price-change details.
"""
import bisect
import math
import re
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from core.classifier import is_internal_transfer
from core.lexicon import DAILY_PURCHASE_MERCHANTS, FOOD_CATEGORIES, FOOD_MARKERS
from core.logger import setup_logger
from core.matching import descriptions_similar, detect_brand, normalize_service_name, normalize_string
from core.normalize import add_months, days_between
from core.schema import (
    PriceChange,
    Subscription,
    SubscriptionDetectionResult,
    SubscriptionsFilters,
    Transaction,
)

logger = setup_logger(__name__)

# (name, min mean gap, max mean gap, max deviation) in days
FREQUENCY_RULES: Tuple[Tuple[str, int, int, int], ...] = (
    ("Weekly", 5, 10, 3),
    ("Bi-weekly", 12, 18, 4),
    ("Monthly", 25, 35, 7),
    ("Quarterly", 85, 100, 14),
    ("Annual", 350, 380, 30),
)
ANNUAL_MIN_SPAN_DAYS = 300

REGULAR_FREQUENCIES = tuple(rule[0] for rule in FREQUENCY_RULES)
LONG_CYCLE_FREQUENCIES = ("Monthly", "Quarterly", "Annual")

ANNUAL_MULTIPLIERS: Dict[str, int] = {
    "Weekly": 52,
    "Bi-weekly": 26,
    "Monthly": 12,
    "Quarterly": 4,
    "Annual": 1,
}

# Minimum observed history before a cadence is trusted
MIN_SPAN_DAYS: Dict[str, int] = {
    "Weekly": 21,
    "Bi-weekly": 42,
    "Monthly": 70,
    "Quarterly": 200,
    "Annual": 400,
}

# Months without a charge after which a subscription counts as inactive
ACTIVE_MONTHS: Dict[str, float] = {
    "Weekly": 1,
    "Bi-weekly": 1.5,
    "Monthly": 2,
    "Quarterly": 4,
    "Annual": 14,
}
DEFAULT_ACTIVE_MONTHS = 2

MIN_TRANSACTIONS = 3
MIN_AMOUNT = 5.0
MAX_AMOUNT_SHORT_CYCLE = 500.0
MAX_AMOUNT_VARIATION = 0.25
FOOD_RATIO_THRESHOLD = 0.8
AVERAGE_DAYS_PER_MONTH = 30.44

AMOUNT_TOLERANCE_ABSOLUTE = 0.50
AMOUNT_TOLERANCE_RELATIVE = 0.30

PRICE_CHANGE_PERCENT = 5.0
PRICE_CHANGE_ABSOLUTE = 0.50


def select_candidates(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Well-formed outgoing expenses that are not internal transfers."""
    candidates: List[Transaction] = []
    malformed = 0

    for t in transactions:
        if not t.is_well_formed:
            malformed += 1
            logger.debug(f"Skipping malformed transaction {t.id}: date={t.date!r} amount={t.amount!r}")
            continue
        if t.type == "expense" and t.amount < 0 and not is_internal_transfer(t):
            candidates.append(t)

    if malformed:
        logger.warning(f"Excluded {malformed} transactions with a missing or invalid date/amount")

    return candidates


def amounts_close(magnitude: float, representative: float) -> bool:
    tolerance = max(AMOUNT_TOLERANCE_ABSOLUTE, AMOUNT_TOLERANCE_RELATIVE * representative)
    return abs(magnitude - representative) <= tolerance


def _candidate_window(magnitude: float) -> Tuple[float, float]:
    """Bounds on a representative r that could satisfy amounts_close(magnitude, r)."""
    low = min(magnitude - AMOUNT_TOLERANCE_ABSOLUTE, magnitude / (1 + AMOUNT_TOLERANCE_RELATIVE))
    high = max(magnitude + AMOUNT_TOLERANCE_ABSOLUTE, magnitude / (1 - AMOUNT_TOLERANCE_RELATIVE))
    return low - 1e-9, high + 1e-9


def group_by_amount(transactions: Sequence[Transaction]) -> List[List[Transaction]]:
    """
    Bucket transactions by amount magnitude.

    Each bucket keeps the magnitude of its first member as representative.
    A transaction joins the earliest-created bucket whose representative is
    within max($0.50, 30%) of it, otherwise it starts a new bucket.

    Args:
        transactions: Candidate expenses

    Returns:
        Buckets in creation order
    """
    buckets: List[List[Transaction]] = []
    representatives: List[Tuple[float, int]] = []

    for t in transactions:
        magnitude = abs(t.amount)
        low, high = _candidate_window(magnitude)
        start = bisect.bisect_left(representatives, (low, -1))
        end = bisect.bisect_right(representatives, (high, len(buckets)))

        matches = [
            index for representative, index in representatives[start:end]
            if amounts_close(magnitude, representative)
        ]
        if matches:
            buckets[min(matches)].append(t)
        else:
            bisect.insort(representatives, (magnitude, len(buckets)))
            buckets.append([t])

    return buckets


def service_key(transaction: Transaction) -> str:
    """Lowercase service name used to compare descriptions."""
    return normalize_string(normalize_service_name(transaction.description))


def group_by_description(bucket: Sequence[Transaction]) -> List[List[Transaction]]:
    """
    Partition an amount bucket into groups naming the same service.

    Identical service keys are merged first; each distinct key is then
    compared only against the keys that started earlier groups.
    """
    by_key: Dict[str, List[Transaction]] = {}
    for t in bucket:
        by_key.setdefault(service_key(t), []).append(t)

    groups: List[Tuple[str, List[Transaction]]] = []
    for key, members in by_key.items():
        for group_key, group_members in groups:
            if descriptions_similar(key, group_key):
                group_members.extend(members)
                break
        else:
            groups.append((key, list(members)))

    return [members for _, members in groups]


def group_transactions(transactions: Sequence[Transaction]) -> List[List[Transaction]]:
    groups: List[List[Transaction]] = []
    for bucket in group_by_amount(transactions):
        groups.extend(group_by_description(bucket))
    return groups


def interval_stats(transactions: Sequence[Transaction]) -> Tuple[float, float, int]:
    """Mean gap, max deviation from the mean gap, and total span, in days."""
    dates = sorted(t.date for t in transactions)
    gaps = [(later - earlier).days for earlier, later in zip(dates, dates[1:])]
    mean_gap = sum(gaps) / len(gaps)
    max_deviation = max(abs(gap - mean_gap) for gap in gaps)
    return mean_gap, max_deviation, (dates[-1] - dates[0]).days


def classify_frequency(transactions: Sequence[Transaction]) -> str:
    """
    Classify the cadence of a group of charges.

    Returns:
        "Weekly", "Bi-weekly", "Monthly", "Quarterly", "Annual", "Irregular",
        or "One-time" for fewer than two transactions
    """
    if len(transactions) < 2:
        return "One-time"

    mean_gap, max_deviation, span = interval_stats(transactions)

    for name, low, high, deviation in FREQUENCY_RULES:
        if low <= mean_gap <= high and max_deviation <= deviation:
            if name == "Annual" and span < ANNUAL_MIN_SPAN_DAYS:
                continue
            return name
    return "Irregular"


def _is_food(transaction: Transaction) -> bool:
    category = transaction.category.lower()
    if category in FOOD_CATEGORIES:
        return True
    subcategory = (transaction.subcategory or "").lower()
    return any(marker in category or marker in subcategory for marker in FOOD_MARKERS)


def is_daily_purchase_pattern(transactions: Sequence[Transaction], frequency: str) -> bool:
    """Weekly food or coffee runs look periodic but are not subscriptions."""
    if frequency != "Weekly":
        return False

    food_count = sum(1 for t in transactions if _is_food(t))
    if food_count / len(transactions) >= FOOD_RATIO_THRESHOLD:
        return True

    description = normalize_string(transactions[0].description)
    return any(merchant in description for merchant in DAILY_PURCHASE_MERCHANTS)


def is_subscription(transactions: Sequence[Transaction], frequency: Optional[str] = None) -> bool:
    """
    Decide whether a description/amount group is a genuine subscription.

    Args:
        transactions: Group members (expenses with negative amounts)
        frequency: Precomputed cadence, classified here when omitted

    Returns:
        True when every acceptance rule holds
    """
    if len(transactions) < MIN_TRANSACTIONS:
        return False

    frequency = frequency or classify_frequency(transactions)
    if frequency not in REGULAR_FREQUENCIES:
        return False

    if is_daily_purchase_pattern(transactions, frequency):
        return False

    amounts = [abs(t.amount) for t in transactions]
    average = sum(amounts) / len(amounts)
    variation = max(abs(a - average) for a in amounts)
    if variation > average * MAX_AMOUNT_VARIATION:
        return False

    if average < MIN_AMOUNT and detect_brand(transactions[0].description) is None:
        return False

    if average > MAX_AMOUNT_SHORT_CYCLE and frequency not in LONG_CYCLE_FREQUENCIES:
        return False

    _, _, span = interval_stats(transactions)
    return span >= MIN_SPAN_DAYS[frequency]


def annual_cost(average_amount: float, frequency: str) -> float:
    return average_amount * ANNUAL_MULTIPLIERS.get(frequency, 0)


def estimate_next_date(last_date: date, frequency: str) -> Optional[date]:
    if frequency == "Weekly":
        return last_date + timedelta(days=7)
    if frequency == "Bi-weekly":
        return last_date + timedelta(days=14)
    if frequency == "Monthly":
        return add_months(last_date, 1)
    if frequency == "Quarterly":
        return add_months(last_date, 3)
    if frequency == "Annual":
        return add_months(last_date, 12)
    return None


def months_since(last_date: date, today: date) -> int:
    return math.floor(days_between(last_date, today) / AVERAGE_DAYS_PER_MONTH)


def is_active(frequency: str, months_since_last_charge: int) -> bool:
    return months_since_last_charge < ACTIVE_MONTHS.get(frequency, DEFAULT_ACTIVE_MONTHS)


def _significant_change(old: float, new: float) -> bool:
    difference = abs(new - old)
    if old <= 0:
        return False
    return (difference / old) * 100 > PRICE_CHANGE_PERCENT and difference > PRICE_CHANGE_ABSOLUTE


def _price_change(old: float, new: float, change_date: date) -> PriceChange:
    percent = (abs(new - old) / old) * 100
    return PriceChange(
        old_amount=old,
        new_amount=new,
        change_percent=percent if new > old else -percent,
        change_date=change_date,
    )


def detect_price_change(transactions: Sequence[Transaction]) -> Optional[PriceChange]:
    """
    Compare the first and last charge; fall back to the first significant
    step between consecutive charges. A change must exceed both 5% and $0.50.

    Returns:
        PriceChange, or None when the price never moved significantly
    """
    if len(transactions) < 2:
        return None

    ordered = sorted(transactions, key=lambda t: t.date)
    amounts = [abs(t.amount) for t in ordered]

    if _significant_change(amounts[0], amounts[-1]):
        return _price_change(amounts[0], amounts[-1], ordered[-1].date)

    for i in range(1, len(amounts)):
        if _significant_change(amounts[i - 1], amounts[i]):
            return _price_change(amounts[i - 1], amounts[i], ordered[i].date)

    return None


def _slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "unknown"


def build_subscription(
    transactions: Sequence[Transaction],
    today: date,
    frequency: Optional[str] = None,
) -> Subscription:
    """
    Turn an accepted group into a Subscription.

    Args:
        transactions: Group members
        today: Reference date for activity status
        frequency: Precomputed cadence, classified here when omitted

    Returns:
        Subscription with members listed newest first
    """
    frequency = frequency or classify_frequency(transactions)
    newest_first = sorted(transactions, key=lambda t: (t.date, t.id), reverse=True)
    latest = newest_first[0]

    average_amount = sum(abs(t.amount) for t in newest_first) / len(newest_first)
    name = normalize_service_name(latest.description) or "Unknown Service"
    months = months_since(latest.date, today)

    return Subscription(
        id=f"subscription-{_slugify(name)}-{round(average_amount * 100)}",
        name=name,
        description=latest.description,
        amount=average_amount,
        average_amount=average_amount,
        frequency=frequency,
        annual_cost=annual_cost(average_amount, frequency),
        last_charged_date=latest.date,
        next_estimated_date=estimate_next_date(latest.date, frequency),
        transaction_count=len(newest_first),
        category=latest.category,
        subcategory=latest.subcategory,
        account=latest.account,
        is_active=is_active(frequency, months),
        months_since_last_charge=months,
        brand=detect_brand(latest.description),
        price_change=detect_price_change(newest_first),
        transactions=newest_first,
    )


def detect_subscriptions(transactions: Sequence[Transaction], today: date) -> List[Subscription]:
    """
    Run the full detection pipeline over (converted) transactions.

    Args:
        transactions: Any transactions; non-candidates are ignored
        today: Reference date for activity status

    Returns:
        Subscriptions sorted by annual cost descending
    """
    candidates = select_candidates(transactions)
    groups = group_transactions(candidates)

    subscriptions = []
    for group in groups:
        frequency = classify_frequency(group)
        if is_subscription(group, frequency):
            subscriptions.append(build_subscription(group, today, frequency))

    logger.info(
        f"Detected {len(subscriptions)} subscriptions from {len(candidates)} candidates "
        f"in {len(groups)} groups"
    )

    subscriptions.sort(key=lambda s: (-s.annual_cost, s.name))
    return subscriptions


def filter_subscriptions(
    subscriptions: Sequence[Subscription],
    filters: Optional[SubscriptionsFilters],
) -> List[Subscription]:
    """
    Apply subscription filters. A subscription matches a date range when any
    of its charges falls inside it.
    """
    if filters is None:
        return list(subscriptions)

    result = list(subscriptions)
    if filters.date_range is not None:
        result = [
            s for s in result
            if any(filters.date_range.contains(t.date) for t in s.transactions)
        ]
    if filters.selected_categories:
        result = [s for s in result if s.category in filters.selected_categories]
    if filters.selected_accounts:
        result = [s for s in result if s.account in filters.selected_accounts]
    if filters.selected_frequencies:
        result = [s for s in result if s.frequency in filters.selected_frequencies]
    return result


def summarize(subscriptions: Sequence[Subscription]) -> SubscriptionDetectionResult:
    monthly = sum(1 for s in subscriptions if s.frequency == "Monthly")
    weekly = sum(1 for s in subscriptions if s.frequency == "Weekly")
    quarterly = sum(1 for s in subscriptions if s.frequency == "Quarterly")

    return SubscriptionDetectionResult(
        subscriptions=list(subscriptions),
        total_annual_cost=sum(s.annual_cost for s in subscriptions),
        monthly_subscriptions=monthly,
        weekly_subscriptions=weekly,
        quarterly_subscriptions=quarterly,
        other_frequency_subscriptions=len(subscriptions) - monthly - weekly - quarterly,
    )
