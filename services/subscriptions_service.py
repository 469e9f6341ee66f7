"""
Subscription detection service.
Converts candidate expenses once, then runs the recurrence pipeline.
"""
from datetime import date
from typing import List, Optional

from core.logger import setup_logger
from core.recurrence import detect_subscriptions, filter_subscriptions, select_candidates, summarize
from core.schema import (
    Subscription,
    SubscriptionDetectionResult,
    SubscriptionsFilters,
    SubscriptionStatusSummary,
)
from services.base import TransactionSourceService, resolve_today

logger = setup_logger(__name__)


class SubscriptionsService(TransactionSourceService):
    """Service detecting recurring payments in the transaction history."""

    async def _detect_all(self, today: Optional[date] = None) -> List[Subscription]:
        candidates = select_candidates(self.load_transactions())
        converted = await self.convert(candidates)
        return self.compute(
            "subscription detection", detect_subscriptions, converted, resolve_today(today)
        )

    async def detect_subscriptions(
        self,
        show_inactive_only: bool = False,
        today: Optional[date] = None,
    ) -> SubscriptionDetectionResult:
        """
        Detect subscriptions and summarize them.

        Args:
            show_inactive_only: Return inactive subscriptions instead of active ones
            today: Reference date for activity status

        Returns:
            SubscriptionDetectionResult over the selected activity status
        """
        subscriptions = await self._detect_all(today)
        selected = [s for s in subscriptions if s.is_active != show_inactive_only]
        logger.info(
            f"Returning {len(selected)} {'inactive' if show_inactive_only else 'active'} "
            f"of {len(subscriptions)} subscriptions"
        )
        return summarize(selected)

    async def get_all_subscriptions_with_status(
        self,
        today: Optional[date] = None,
    ) -> SubscriptionStatusSummary:
        subscriptions = await self._detect_all(today)
        active = [s for s in subscriptions if s.is_active]
        inactive = [s for s in subscriptions if not s.is_active]

        return SubscriptionStatusSummary(
            active=active,
            inactive=inactive,
            total_active=len(active),
            total_inactive=len(inactive),
            total_annual_cost=sum(s.annual_cost for s in active),
        )

    async def detect_subscriptions_with_filters(
        self,
        filters: Optional[SubscriptionsFilters] = None,
        show_inactive_only: bool = False,
        today: Optional[date] = None,
    ) -> SubscriptionDetectionResult:
        """
        Active (or inactive) subscriptions narrowed by date range, category, account and
        frequency, with the summary recomputed over the filtered set.
        """
        detected = await self.detect_subscriptions(show_inactive_only, today)
        return summarize(filter_subscriptions(detected.subscriptions, filters))
