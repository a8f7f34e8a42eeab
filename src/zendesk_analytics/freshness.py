"""Freshness rules for day-bucketed cache entries.

Past days are served from cache until the staleness threshold passes.
Today's entry changes as the day goes on, so it gets a much shorter window.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from zendesk_analytics.config import DEFAULT_STALENESS_THRESHOLD, DEFAULT_TODAY_WINDOW


class FreshnessDecision(str, Enum):
    """Verdict for a requested date."""

    SERVE_CACHED = "serve-cached"
    MUST_REFETCH = "must-refetch"


@dataclass(frozen=True)
class FreshnessPolicy:
    """Two-tier freshness policy.

    Attributes:
        staleness_threshold: Maximum age for entries of past dates
        today_window: Maximum age for the entry of the current date
    """

    staleness_threshold: timedelta = DEFAULT_STALENESS_THRESHOLD
    today_window: timedelta = DEFAULT_TODAY_WINDOW

    def max_age(self, day: date, today: date) -> timedelta:
        """Maximum entry age allowed for ``day`` when the current date is ``today``."""
        return self.today_window if day == today else self.staleness_threshold

    def is_stale(self, cached_at: datetime | None, now: datetime) -> bool:
        """Check an entry against the staleness threshold alone.

        Entries without a usable timestamp are always stale.
        """
        if cached_at is None:
            return True
        return now - cached_at >= self.staleness_threshold

    def decide(
        self,
        day: date,
        today: date,
        cached_at: datetime | None,
        now: datetime,
        force_refresh: bool = False,
    ) -> FreshnessDecision:
        """Decide whether the cached entry for ``day`` can be served.

        Args:
            day: Requested calendar date
            today: Current calendar date in the caller's time zone
            cached_at: When the entry was written, or None if there is no entry
            now: Current time (timezone-aware)
            force_refresh: Bypass all checks

        Returns:
            SERVE_CACHED if the entry is young enough, MUST_REFETCH otherwise
        """
        if force_refresh or cached_at is None:
            return FreshnessDecision.MUST_REFETCH
        if now - cached_at < self.max_age(day, today):
            return FreshnessDecision.SERVE_CACHED
        return FreshnessDecision.MUST_REFETCH
