"""Daily Talk call analytics from the incremental calls export."""

import asyncio
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Awaitable, Callable, Iterable, Mapping

from zendesk_analytics.aggregation import daily_breakdown
from zendesk_analytics.cache import Clock, DayCache, format_timestamp, parse_timestamp, utc_now
from zendesk_analytics.classifiers import CallClassifier, CallOutcome, CompletionStatusClassifier
from zendesk_analytics.client import ZendeskAuthError, ZendeskClient
from zendesk_analytics.config import AnalyticsConfig
from zendesk_analytics.freshness import FreshnessPolicy
from zendesk_analytics.metrics import CALL_METRICS
from zendesk_analytics.window import DayBucketedAnalytics, date_range

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30

_OUTCOME_FIELDS = {
    CallOutcome.ANSWERED: "answered_calls",
    CallOutcome.ABANDONED: "unanswered_calls",
    CallOutcome.VOICEMAIL: "voicemails",
    CallOutcome.OUTBOUND: "outbound_calls",
}


def count_calls(
    calls: Iterable[Mapping[str, Any]],
    classifier: CallClassifier,
    day: str,
) -> dict[str, Any]:
    """Tally call records for one date into a call payload."""
    payload = CALL_METRICS.empty_payload(day)
    for call in calls:
        payload["total_calls"] += 1
        outcome = classifier.classify(call)
        field = _OUTCOME_FIELDS.get(outcome)
        if field:
            payload[field] += 1
        if classifier.is_callback(call):
            payload["callbacks"] += 1
        if classifier.exceeded_wait_time(call):
            payload["exceeded_wait_time"] += 1

    payload["inbound_calls"] = payload["total_calls"] - payload["outbound_calls"]
    return payload


class CallAnalyticsService:
    """Call analytics with a day-bucketed cache."""

    def __init__(
        self,
        config: AnalyticsConfig,
        client: ZendeskClient | None = None,
        cache: DayCache | None = None,
        classifier: CallClassifier | None = None,
        clock: Clock = utc_now,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config
        self.client = client
        self.classifier = classifier or CompletionStatusClassifier()
        policy = FreshnessPolicy(config.staleness_threshold, config.today_window)
        self.cache = cache or DayCache(config.call_cache_path, policy, clock)
        self.window = DayBucketedAnalytics(
            self.cache,
            self.fetch_day,
            CALL_METRICS,
            policy=policy,
            timezone=config.timezone,
            clock=clock,
            request_delay=config.request_delay,
            sleep=sleep,
        )

    def _day_bounds(self, day: str) -> tuple[datetime, datetime]:
        start = datetime.combine(date.fromisoformat(day), time.min, tzinfo=self.config.timezone)
        return start, start + timedelta(days=1)

    async def fetch_day(self, day: str) -> dict[str, Any]:
        """Fetch and classify the calls created on one local date."""
        if self.client is None:
            raise ZendeskAuthError("A Zendesk client is required to fetch call data.")

        start, end = self._day_bounds(day)
        calls = []
        async for call in self.client.incremental_calls(
            int(start.timestamp()), int(end.timestamp())
        ):
            created = parse_timestamp(call.get("created_at"))
            if created is not None and start <= created < end:
                calls.append(call)

        payload = count_calls(calls, self.classifier, day)
        logger.info(
            "Calls for %s: %d total, %d answered",
            day, payload["total_calls"], payload["answered_calls"],
        )
        return payload

    async def get_analytics(
        self,
        days: int = DEFAULT_WINDOW_DAYS,
        force_refresh: bool = False,
    ) -> dict[str, Any]:
        """Rolling call analytics for the last ``days`` days."""
        return await self.window.report(self.window.last_n_days(days), force_refresh)

    async def get_range(
        self,
        start: date | str,
        end: date | str,
        force_refresh: bool = False,
    ) -> dict[str, Any]:
        """Call analytics for an explicit inclusive date range."""
        return await self.window.report(date_range(start, end), force_refresh)

    async def get_today(self) -> dict[str, Any]:
        """Today's call counts straight from Zendesk. Nothing is cached."""
        today = self.window.today()
        payload = await self.fetch_day(today.isoformat())
        row = daily_breakdown([(payload["date"], payload)], CALL_METRICS, today)[0]
        return {
            "success": True,
            "data": row,
            "timestamp": format_timestamp(self.window.now()),
        }

    def cache_stats(self) -> dict[str, Any]:
        return self.cache.stats()

    def clear_cache(self) -> dict[str, Any]:
        self.cache.clear_all()
        return {"success": True, "message": "Call analytics cache cleared"}

    def cleanup_cache(self) -> int:
        return self.cache.cleanup_expired()
