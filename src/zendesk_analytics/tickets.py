"""Daily ticket activity analytics.

Counts per day how many business tickets were created, reopened, moved to
pending or hold, solved and closed. Tickets raised by integrations are
excluded by sampling search results through a ``TicketClassifier`` and
scaling the total count by the non-automated share.
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Any, Awaitable, Callable

from zendesk_analytics.cache import Clock, DayCache, format_timestamp, utc_now
from zendesk_analytics.classifiers import SubjectKeywordClassifier, TicketClassifier
from zendesk_analytics.client import ZendeskAuthError, ZendeskClient
from zendesk_analytics.config import AnalyticsConfig
from zendesk_analytics.freshness import FreshnessPolicy
from zendesk_analytics.metrics import TICKET_METRICS, TICKET_STATUSES
from zendesk_analytics.window import DayBucketedAnalytics

logger = logging.getLogger(__name__)

# Search results inspected when estimating the automated share
SAMPLE_SIZE = 50

DEFAULT_WINDOW_DAYS = 5


def _next_day(day: str) -> str:
    return (date.fromisoformat(day) + timedelta(days=1)).isoformat()


class TicketAnalyticsService:
    """Ticket analytics with a day-bucketed cache."""

    def __init__(
        self,
        config: AnalyticsConfig,
        client: ZendeskClient | None = None,
        cache: DayCache | None = None,
        classifier: TicketClassifier | None = None,
        clock: Clock = utc_now,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config
        self.client = client
        self.classifier = classifier or SubjectKeywordClassifier()
        policy = FreshnessPolicy(config.staleness_threshold, config.today_window)
        self.cache = cache or DayCache(config.ticket_cache_path, policy, clock)
        self._sleep = sleep
        self.window = DayBucketedAnalytics(
            self.cache,
            self.fetch_day,
            TICKET_METRICS,
            policy=policy,
            timezone=config.timezone,
            clock=clock,
            request_delay=config.request_delay,
            sleep=sleep,
        )

    def _require_client(self) -> ZendeskClient:
        if self.client is None:
            raise ZendeskAuthError("A Zendesk client is required to fetch ticket data.")
        return self.client

    async def _pause(self) -> None:
        if self.config.request_delay:
            await self._sleep(self.config.request_delay)

    async def _estimate_business_count(self, query: str) -> tuple[int, int]:
        """Return (business_count, total_count) for a search.

        The total comes from the search count; the business share is taken
        from the first page of results.
        """
        result = await self._require_client().search(query, per_page=SAMPLE_SIZE)
        total = result.get("count") or 0
        sample = result.get("results") or []
        if not sample:
            if total:
                logger.warning(
                    "%s: count is %d but no results were returned, using the full count",
                    query, total,
                )
            return total, total

        manual = [t for t in sample if not self.classifier.is_automated(t)]
        ratio = len(manual) / len(sample)
        estimated = int(total * ratio + 0.5)
        logger.debug(
            "%s: %d of %d estimated business (sample %d/%d)",
            query, estimated, total, len(manual), len(sample),
        )
        return estimated, total

    async def fetch_day(self, day: str) -> dict[str, Any]:
        """Fetch the activity counts for one date from the Search API."""
        client = self._require_client()
        next_day = _next_day(day)
        updated = f"updated>={day} updated<{next_day}"

        payload: dict[str, Any] = {"date": day}

        payload["new"], created_total = await self._estimate_business_count(
            f"type:ticket created>={day} created<{next_day}"
        )
        await self._pause()
        payload["solved"], _ = await self._estimate_business_count(
            f"type:ticket status:solved {updated}"
        )
        await self._pause()
        payload["closed"], _ = await self._estimate_business_count(
            f"type:ticket status:closed {updated}"
        )
        await self._pause()
        payload["pending"] = await client.search_count(f"type:ticket status:pending {updated}")
        await self._pause()
        payload["hold"] = await client.search_count(f"type:ticket status:hold {updated}")
        await self._pause()
        # Reopened: open tickets touched today that were not created today
        payload["open"] = await client.search_count(
            f"type:ticket status:open {updated} -created>={day}"
        )

        payload["total_tickets"] = sum(payload[s] for s in TICKET_STATUSES)
        payload["automated_created"] = created_total - payload["new"]
        logger.info("Ticket activity for %s: %d", day, payload["total_tickets"])
        return payload

    async def get_analytics(
        self,
        days: int = DEFAULT_WINDOW_DAYS,
        force_refresh: bool = False,
    ) -> dict[str, Any]:
        """Rolling ticket analytics for the last ``days`` days."""
        return await self.window.report(self.window.last_n_days(days), force_refresh)

    async def get_current_counts(self) -> dict[str, Any]:
        """Live ticket counts per status (not cached)."""
        client = self._require_client()
        counts: dict[str, Any] = {"timestamp": format_timestamp(self.window.now())}
        for i, status in enumerate(TICKET_STATUSES):
            if i:
                await self._pause()
            counts[status] = await client.search_count(f"type:ticket status:{status}")

        counts["total_tickets"] = sum(counts[s] for s in TICKET_STATUSES)
        counts["active_tickets"] = counts["total_tickets"] - counts["closed"]
        return {"success": True, "data": counts}

    def cache_stats(self) -> dict[str, Any]:
        return self.cache.stats()

    def clear_cache(self) -> dict[str, Any]:
        self.cache.clear_all()
        return {"success": True, "message": "Ticket analytics cache cleared"}

    def cleanup_cache(self) -> int:
        return self.cache.cleanup_expired()
