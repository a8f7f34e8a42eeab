"""Tests for the rolling-window runner."""

import asyncio
from datetime import timezone
from zoneinfo import ZoneInfo

import pytest

from zendesk_analytics.cache import DayCache
from zendesk_analytics.client import ZendeskAPIError
from zendesk_analytics.metrics import CALL_METRICS
from zendesk_analytics.window import DayBucketedAnalytics, date_range


class RecordingFetcher:
    """fetch_day stand-in that records calls and can fail on chosen dates."""

    def __init__(self, failing=()):
        self.calls = []
        self.failing = set(failing)

    async def __call__(self, day):
        self.calls.append(day)
        if day in self.failing:
            raise ZendeskAPIError("Zendesk server error (503). Try again later.", 503)
        return {"date": day, "total_calls": 10, "answered_calls": len(self.calls)}


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def _analytics(tmp_path, clock, fetcher, **kwargs):
    cache = DayCache(tmp_path / "calls.json", clock=clock)
    kwargs.setdefault("timezone", timezone.utc)
    return DayBucketedAnalytics(cache, fetcher, CALL_METRICS, clock=clock, **kwargs)


def test_last_n_days(tmp_path, clock):
    analytics = _analytics(tmp_path, clock, RecordingFetcher())

    assert analytics.last_n_days(3) == ["2025-10-08", "2025-10-09", "2025-10-10"]
    with pytest.raises(ValueError):
        analytics.last_n_days(0)


def test_today_follows_timezone(tmp_path, clock):
    """12:00 UTC on Oct 10 is already Oct 11 in Auckland."""
    analytics = _analytics(tmp_path, clock, RecordingFetcher(), timezone=ZoneInfo("Pacific/Auckland"))

    assert analytics.today().isoformat() == "2025-10-11"


def test_date_range():
    assert date_range("2025-10-30", "2025-11-02") == [
        "2025-10-30", "2025-10-31", "2025-11-01", "2025-11-02",
    ]
    with pytest.raises(ValueError):
        date_range("2025-10-09", "2025-10-08")


def test_miss_then_hit(tmp_path, clock):
    fetcher = RecordingFetcher()
    analytics = _analytics(tmp_path, clock, fetcher)

    first = asyncio.run(analytics.get_day("2025-10-08"))
    second = asyncio.run(analytics.get_day("2025-10-08"))

    assert first.source == "fetched"
    assert second.source == "cache"
    assert second.payload == first.payload
    assert fetcher.calls == ["2025-10-08"]


def test_force_refresh_always_fetches(tmp_path, clock):
    fetcher = RecordingFetcher()
    analytics = _analytics(tmp_path, clock, fetcher)

    asyncio.run(analytics.get_day("2025-10-08"))
    result = asyncio.run(analytics.get_day("2025-10-08", force_refresh=True))

    assert result.source == "fetched"
    assert fetcher.calls == ["2025-10-08", "2025-10-08"]
    assert analytics.cache.get("2025-10-08")["answered_calls"] == 2


def test_today_is_refetched_after_short_window(tmp_path, clock):
    fetcher = RecordingFetcher()
    analytics = _analytics(tmp_path, clock, fetcher)
    days = ["2025-10-09", "2025-10-10"]

    asyncio.run(analytics.get_window(days))
    clock.advance(minutes=10)
    asyncio.run(analytics.get_window(days))
    assert fetcher.calls == days

    clock.advance(minutes=6)
    results = asyncio.run(analytics.get_window(days))

    assert [r.source for r in results] == ["cache", "fetched"]
    assert fetcher.calls == days + ["2025-10-10"]


def test_fetch_failure_uses_placeholder_and_is_not_cached(tmp_path, clock):
    fetcher = RecordingFetcher(failing={"2025-10-09"})
    analytics = _analytics(tmp_path, clock, fetcher)

    results = asyncio.run(analytics.get_window(["2025-10-08", "2025-10-09", "2025-10-10"]))

    assert [r.source for r in results] == ["fetched", "error", "fetched"]
    failed = results[1]
    assert failed.payload["total_calls"] == 0
    assert "503" in failed.payload["error"]
    assert analytics.cache.get("2025-10-09") is None
    assert analytics.cache.get("2025-10-10") is not None


def test_fetch_failure_propagates_for_single_day(tmp_path, clock):
    analytics = _analytics(tmp_path, clock, RecordingFetcher(failing={"2025-10-09"}))

    with pytest.raises(ZendeskAPIError):
        asyncio.run(analytics.get_day("2025-10-09"))


def test_fetch_failure_can_abort_window(tmp_path, clock):
    fetcher = RecordingFetcher(failing={"2025-10-08"})
    analytics = _analytics(tmp_path, clock, fetcher)

    with pytest.raises(ZendeskAPIError):
        asyncio.run(analytics.get_window(["2025-10-08", "2025-10-09"], on_error="raise"))
    assert fetcher.calls == ["2025-10-08"]


def test_unexpected_errors_are_not_masked(tmp_path, clock):
    async def broken(day):
        raise KeyError("total_calls")

    analytics = _analytics(tmp_path, clock, broken)

    with pytest.raises(KeyError):
        asyncio.run(analytics.get_window(["2025-10-08"]))


def test_delay_only_between_fetches(tmp_path, clock):
    fetcher = RecordingFetcher()
    sleep = RecordingSleep()
    analytics = _analytics(tmp_path, clock, fetcher, request_delay=0.15, sleep=sleep)
    days = ["2025-10-07", "2025-10-08", "2025-10-09"]

    asyncio.run(analytics.get_window(days))
    assert sleep.delays == [0.15, 0.15]

    asyncio.run(analytics.get_window(days))
    assert sleep.delays == [0.15, 0.15]


def test_report_shape(tmp_path, clock):
    analytics = _analytics(tmp_path, clock, RecordingFetcher())

    report = asyncio.run(analytics.report(analytics.last_n_days(2)))

    assert report["success"] is True
    data = report["data"]
    assert data["summary"]["total_calls"] == 20
    assert data["summary"]["period"] == "2 days"
    assert data["chart_data"]["categories"] == ["Yesterday", "Today"]
    assert data["sources"] == {"2025-10-09": "fetched", "2025-10-10": "fetched"}
    assert data["cache_info"]["total_entries"] == 2
    assert data["last_updated"] == "2025-10-10T12:00:00Z"


def test_stats_freshness_ignores_today_window(tmp_path, clock):
    """A 20 minute old entry for today is fresh in stats but still refetched."""
    from zendesk_analytics.freshness import FreshnessDecision

    analytics = _analytics(tmp_path, clock, RecordingFetcher())
    asyncio.run(analytics.get_day("2025-10-10"))
    clock.advance(minutes=20)

    stats = analytics.cache.stats()
    assert stats["fresh_count"] == 1
    assert stats["stale_count"] == 0
    assert analytics.decide("2025-10-10") is FreshnessDecision.MUST_REFETCH
