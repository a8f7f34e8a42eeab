"""Metric schemas for the per-day analytics payloads."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Rate:
    """A percentage derived from two summed fields."""

    name: str
    numerator: str
    denominator: str


@dataclass(frozen=True)
class SeriesSpec:
    """One chart series: display name, payload field, and colour."""

    name: str
    field: str
    color: str


@dataclass(frozen=True)
class MetricSet:
    """Describes a payload schema and how to summarise it.

    Attributes:
        unit: Plural noun used in derived names (``average_daily_<unit>``)
        total_field: Field holding the per-day total
        fields: Numeric fields every payload carries
        rates: Window-level percentage rates for the summary
        daily_rates: Per-day percentage rates for the breakdown
        composites: Summary fields computed as the sum of other totals
        series: Chart series in display order
    """

    unit: str
    total_field: str
    fields: tuple[str, ...]
    rates: tuple[Rate, ...] = ()
    daily_rates: tuple[Rate, ...] = ()
    composites: dict[str, tuple[str, ...]] = field(default_factory=dict)
    series: tuple[SeriesSpec, ...] = ()

    def empty_payload(self, day: str, error: str | None = None) -> dict[str, Any]:
        """Zeroed payload used in place of a day that could not be fetched."""
        payload: dict[str, Any] = {"date": day}
        payload.update({name: 0 for name in self.fields})
        if error is not None:
            payload["error"] = error
        return payload


TICKET_STATUSES = ("new", "open", "pending", "hold", "solved", "closed")

TICKET_METRICS = MetricSet(
    unit="tickets",
    total_field="total_tickets",
    fields=("total_tickets", *TICKET_STATUSES),
    rates=(Rate("closed_rate", "closed", "total_tickets"),),
    composites={"active_tickets": ("new", "open", "pending", "hold", "solved")},
    series=(
        SeriesSpec("Created (Business)", "new", "#17a2b8"),
        SeriesSpec("Open", "open", "#007bff"),
        SeriesSpec("Pending", "pending", "#ffc107"),
        SeriesSpec("Hold", "hold", "#fd7e14"),
        SeriesSpec("Solved", "solved", "#28a745"),
        SeriesSpec("Closed", "closed", "#6c757d"),
    ),
)

CALL_METRICS = MetricSet(
    unit="calls",
    total_field="total_calls",
    fields=(
        "total_calls",
        "answered_calls",
        "unanswered_calls",
        "callbacks",
        "voicemails",
        "exceeded_wait_time",
        "outbound_calls",
        "inbound_calls",
    ),
    rates=(
        Rate("overall_answer_rate", "answered_calls", "total_calls"),
        Rate("callback_rate", "callbacks", "total_calls"),
    ),
    daily_rates=(
        Rate("answer_rate", "answered_calls", "total_calls"),
        Rate("callback_rate", "callbacks", "total_calls"),
    ),
    series=(
        SeriesSpec("Answered Calls", "answered_calls", "#28a745"),
        SeriesSpec("Abandoned in Queue", "unanswered_calls", "#dc3545"),
        SeriesSpec("Callback Requests", "callbacks", "#fd7e14"),
        SeriesSpec("Voicemails", "voicemails", "#6f42c1"),
        SeriesSpec("Exceeded Wait Time", "exceeded_wait_time", "#ffc107"),
        SeriesSpec("Outbound Calls", "outbound_calls", "#20c997"),
    ),
)
