"""Shared business logic for analytics operations.

Used by both the CLI and the MCP server. Network-bound functions are async;
cache maintenance is synchronous. Everything returns dicts.
"""

from datetime import date
from typing import Literal

from zendesk_analytics.calls import DEFAULT_WINDOW_DAYS as CALL_WINDOW_DAYS
from zendesk_analytics.calls import CallAnalyticsService
from zendesk_analytics.client import ZendeskClient
from zendesk_analytics.config import AnalyticsConfig
from zendesk_analytics.tickets import DEFAULT_WINDOW_DAYS as TICKET_WINDOW_DAYS
from zendesk_analytics.tickets import TicketAnalyticsService
from zendesk_analytics.window import date_range

CacheKind = Literal["tickets", "calls", "all"]
CACHE_KINDS = ("tickets", "calls", "all")

# Longest window accepted from callers
MAX_WINDOW_DAYS = 90


def _get_config(config: AnalyticsConfig | None = None) -> AnalyticsConfig:
    return config if config is not None else AnalyticsConfig.from_env()


def _check_days(days: int) -> int:
    if not 1 <= days <= MAX_WINDOW_DAYS:
        raise ValueError(f"days must be between 1 and {MAX_WINDOW_DAYS}, got {days}")
    return days


def _services(
    kind: str,
    config: AnalyticsConfig,
) -> dict[str, TicketAnalyticsService | CallAnalyticsService]:
    """Cache-only service instances (no client) for the requested kind."""
    if kind not in CACHE_KINDS:
        raise ValueError(f"Unknown cache kind {kind!r}, expected one of: {', '.join(CACHE_KINDS)}")
    services: dict[str, TicketAnalyticsService | CallAnalyticsService] = {}
    if kind in ("tickets", "all"):
        services["tickets"] = TicketAnalyticsService(config)
    if kind in ("calls", "all"):
        services["calls"] = CallAnalyticsService(config)
    return services


# =============================================================================
# Analytics Operations
# =============================================================================


async def ticket_analytics(
    days: int = TICKET_WINDOW_DAYS,
    force_refresh: bool = False,
    config: AnalyticsConfig | None = None,
) -> dict:
    """Rolling ticket activity analytics.

    Args:
        days: Window length ending today (default: 5)
        force_refresh: Ignore cached data and refetch every day
        config: Explicit configuration (default: from environment)

    Returns:
        Dict with success flag and data (daily_breakdown, summary,
        chart_data, cache_info, last_updated)
    """
    config = _get_config(config)
    service = TicketAnalyticsService(config, ZendeskClient(config))
    return await service.get_analytics(_check_days(days), force_refresh)


async def call_analytics(
    days: int = CALL_WINDOW_DAYS,
    force_refresh: bool = False,
    config: AnalyticsConfig | None = None,
) -> dict:
    """Rolling call analytics (answered, abandoned, callbacks, ...).

    Args:
        days: Window length ending today (default: 30)
        force_refresh: Ignore cached data and refetch every day
        config: Explicit configuration (default: from environment)
    """
    config = _get_config(config)
    service = CallAnalyticsService(config, ZendeskClient(config))
    return await service.get_analytics(_check_days(days), force_refresh)


async def call_analytics_range(
    start: date | str,
    end: date | str,
    force_refresh: bool = False,
    config: AnalyticsConfig | None = None,
) -> dict:
    """Call analytics for an explicit inclusive date range (YYYY-MM-DD)."""
    _check_days(len(date_range(start, end)))
    config = _get_config(config)
    service = CallAnalyticsService(config, ZendeskClient(config))
    return await service.get_range(start, end, force_refresh)


async def calls_today(config: AnalyticsConfig | None = None) -> dict:
    """Live call counts for today, fetched without touching the cache."""
    config = _get_config(config)
    service = CallAnalyticsService(config, ZendeskClient(config))
    return await service.get_today()


async def current_ticket_counts(config: AnalyticsConfig | None = None) -> dict:
    """Live ticket counts per status."""
    config = _get_config(config)
    service = TicketAnalyticsService(config, ZendeskClient(config))
    return await service.get_current_counts()


# =============================================================================
# Cache Operations
# =============================================================================


def cache_stats(kind: CacheKind = "all", config: AnalyticsConfig | None = None) -> dict:
    """Cache statistics per cache kind, plus each cache file path."""
    config = _get_config(config)
    return {
        name: {**service.cache_stats(), "path": str(service.cache.path)}
        for name, service in _services(kind, config).items()
    }


def clear_cache(
    kind: CacheKind = "all",
    day: date | str | None = None,
    config: AnalyticsConfig | None = None,
) -> dict:
    """Clear one date or everything from the selected caches.

    Returns:
        Dict mapping cache kind to what was cleared
    """
    config = _get_config(config)
    result = {}
    for name, service in _services(kind, config).items():
        if day is None:
            service.clear_cache()
            result[name] = {"cleared": "all"}
        else:
            result[name] = {"cleared": str(day), "existed": service.cache.clear(day)}
    return result


def cleanup_cache(kind: CacheKind = "all", config: AnalyticsConfig | None = None) -> dict:
    """Drop expired entries from the selected caches."""
    config = _get_config(config)
    return {
        name: {"removed": service.cleanup_cache()}
        for name, service in _services(kind, config).items()
    }
