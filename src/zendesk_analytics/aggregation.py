"""Summaries and chart series over a window of per-day payloads.

Everything here is pure: the current date is passed in, nothing is read
from the clock or the cache.
"""

import math
from datetime import date, timedelta
from typing import Any, Mapping, Sequence

from zendesk_analytics.metrics import MetricSet

DayPayload = tuple[str, Mapping[str, Any]]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent(numerator: float, denominator: float) -> int:
    """Whole-number percentage, 0 when the denominator is 0."""
    if not denominator:
        return 0
    return _round_half_up(numerator * 100 / denominator)


def day_label(day: date | str, today: date) -> str:
    """Human-readable label: Today, Yesterday, or e.g. 'Wed, Oct 8'."""
    if isinstance(day, str):
        day = date.fromisoformat(day)
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{day:%a}, {day:%b} {day.day}"


def sum_fields(payloads: Sequence[Mapping[str, Any]], metrics: MetricSet) -> dict[str, Any]:
    """Element-wise sum of every numeric field.

    Schema fields come first and are always present; other numeric fields
    follow in the order they were first seen.
    """
    totals: dict[str, Any] = {name: 0 for name in metrics.fields}
    for payload in payloads:
        for name, value in payload.items():
            if _is_number(value):
                totals[name] = totals.get(name, 0) + value
    return totals


def summarize(days: Sequence[DayPayload], metrics: MetricSet) -> dict[str, Any]:
    """Reduce a chronological window to summary totals and ratios."""
    totals = sum_fields([payload for _, payload in days], metrics)
    summary = dict(totals)

    for name, parts in metrics.composites.items():
        summary[name] = sum(totals.get(part, 0) for part in parts)

    for rate in metrics.rates:
        summary[rate.name] = percent(
            totals.get(rate.numerator, 0), totals.get(rate.denominator, 0)
        )

    count = len(days)
    total = totals.get(metrics.total_field, 0)
    summary[f"average_daily_{metrics.unit}"] = _round_half_up(total / count) if count else 0
    summary["period"] = f"{count} days"
    summary["start_date"] = days[0][0] if days else None
    summary["end_date"] = days[-1][0] if days else None
    return summary


def chart_series(days: Sequence[DayPayload], metrics: MetricSet, today: date) -> dict[str, Any]:
    """Chart-ready categories and series, one point per day."""
    return {
        "categories": [day_label(day, today) for day, _ in days],
        "series": [
            {
                "name": item.name,
                "data": [payload.get(item.field) or 0 for _, payload in days],
                "color": item.color,
            }
            for item in metrics.series
        ],
        "dates": [day for day, _ in days],
    }


def daily_breakdown(
    days: Sequence[DayPayload], metrics: MetricSet, today: date
) -> list[dict[str, Any]]:
    """Per-day rows with labels and per-day rates added."""
    rows = []
    for day, payload in days:
        row: dict[str, Any] = {"date": day, "day_name": day_label(day, today)}
        for name in metrics.fields:
            row[name] = payload.get(name) or 0
        for name, value in payload.items():
            row.setdefault(name, value)
        for rate in metrics.daily_rates:
            row[rate.name] = percent(row.get(rate.numerator, 0), row.get(rate.denominator, 0))
        row.setdefault("error", None)
        rows.append(row)
    return rows


def build_report(days: Sequence[DayPayload], metrics: MetricSet, today: date) -> dict[str, Any]:
    """Everything a dashboard needs for one window."""
    return {
        "daily_breakdown": daily_breakdown(days, metrics, today),
        "summary": summarize(days, metrics),
        "chart_data": chart_series(days, metrics, today),
    }
