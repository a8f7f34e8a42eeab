"""Rolling-window analytics on top of the day cache.

For every date in a window the freshness policy decides between the cached
payload and a call to ``fetch_day``. Fetched payloads are written back.
Dates are processed one after another, pausing between upstream fetches.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Awaitable, Callable, Literal

from zendesk_analytics.aggregation import build_report
from zendesk_analytics.cache import Clock, DayCache, date_key, format_timestamp, utc_now
from zendesk_analytics.client import ZendeskClientError
from zendesk_analytics.freshness import FreshnessDecision, FreshnessPolicy
from zendesk_analytics.metrics import MetricSet

logger = logging.getLogger(__name__)

FetchDay = Callable[[str], Awaitable[dict[str, Any]]]
OnError = Literal["placeholder", "raise"]


def date_range(start: date | str, end: date | str) -> list[str]:
    """Inclusive list of YYYY-MM-DD keys from start to end."""
    first = date.fromisoformat(date_key(start))
    last = date.fromisoformat(date_key(end))
    if last < first:
        raise ValueError(f"End date {last} is before start date {first}")
    return [(first + timedelta(days=i)).isoformat() for i in range((last - first).days + 1)]


@dataclass(frozen=True)
class DayResult:
    """Outcome for one date of a window."""

    date: str
    payload: dict[str, Any]
    source: Literal["cache", "fetched", "error"]
    error: str | None = None


class DayBucketedAnalytics:
    """Serves per-day payloads from cache or ``fetch_day`` and aggregates them."""

    def __init__(
        self,
        cache: DayCache,
        fetch_day: FetchDay,
        metrics: MetricSet,
        policy: FreshnessPolicy | None = None,
        timezone: tzinfo | None = None,
        clock: Clock = utc_now,
        request_delay: float = 0.0,
        fetch_errors: tuple[type[Exception], ...] = (ZendeskClientError,),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.cache = cache
        self.fetch_day = fetch_day
        self.metrics = metrics
        self.policy = policy or cache.policy
        self.timezone = timezone
        self.request_delay = request_delay
        self.fetch_errors = fetch_errors
        self._clock = clock
        self._sleep = sleep

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        """Current calendar date in the configured time zone."""
        return self._clock().astimezone(self.timezone).date()

    def last_n_days(self, n: int) -> list[str]:
        """The last ``n`` dates ending today, oldest first."""
        if n < 1:
            raise ValueError(f"Window must cover at least one day, got {n}")
        today = self.today()
        return [(today - timedelta(days=i)).isoformat() for i in range(n - 1, -1, -1)]

    def decide(self, day: str, force_refresh: bool = False) -> FreshnessDecision:
        entry = self.cache.get_entry(day)
        return self.policy.decide(
            date.fromisoformat(day),
            self.today(),
            entry.cached_at if entry else None,
            self.now(),
            force_refresh=force_refresh,
        )

    async def get_day(self, day: date | str, force_refresh: bool = False) -> DayResult:
        """Payload for one date, fetching and caching it if needed.

        Raises:
            Whatever ``fetch_day`` raises. Nothing is cached in that case.
        """
        key = date_key(day)
        if self.decide(key, force_refresh) is FreshnessDecision.SERVE_CACHED:
            payload = self.cache.get(key)
            if payload is not None:
                logger.debug("Using cached data for %s", key)
                return DayResult(key, payload, "cache")

        logger.info("Fetching data for %s%s", key, " (force refresh)" if force_refresh else "")
        payload = await self.fetch_day(key)
        self.cache.set(key, payload)
        return DayResult(key, payload, "fetched")

    async def get_window(
        self,
        days: list[str],
        force_refresh: bool = False,
        on_error: OnError = "placeholder",
    ) -> list[DayResult]:
        """Payloads for every date in ``days``, in order.

        Args:
            days: Date keys, oldest first
            force_refresh: Refetch every date regardless of cache age
            on_error: "placeholder" substitutes a zeroed payload for a failed
                date (not cached); "raise" aborts the window

        Raises:
            One of ``fetch_errors`` when on_error is "raise"
        """
        results: list[DayResult] = []
        fetched_before = False
        for day in days:
            key = date_key(day)
            needs_fetch = self.decide(key, force_refresh) is FreshnessDecision.MUST_REFETCH
            if needs_fetch and fetched_before and self.request_delay:
                await self._sleep(self.request_delay)

            try:
                result = await self.get_day(key, force_refresh)
            except self.fetch_errors as e:
                if on_error == "raise":
                    raise
                logger.error("Failed to fetch data for %s: %s", key, e)
                result = DayResult(key, self.metrics.empty_payload(key, str(e)), "error", str(e))

            fetched_before = fetched_before or result.source != "cache"
            results.append(result)
        return results

    async def report(
        self,
        days: list[str],
        force_refresh: bool = False,
        on_error: OnError = "placeholder",
    ) -> dict[str, Any]:
        """Window report in the dashboard response shape."""
        results = await self.get_window(days, force_refresh, on_error)
        data = build_report([(r.date, r.payload) for r in results], self.metrics, self.today())
        data["sources"] = {r.date: r.source for r in results}
        data["cache_info"] = self.cache.stats()
        data["last_updated"] = format_timestamp(self.now())
        return {"success": True, "data": data}
