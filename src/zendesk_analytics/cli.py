"""Zendesk analytics CLI - Thin wrapper around operations module."""

import asyncio
import json
import logging
import sys
from functools import wraps
from typing import Annotated, Callable

import typer

from zendesk_analytics import __version__
from zendesk_analytics import operations
from zendesk_analytics.client import ZendeskClientError

# Main app
app = typer.Typer(
    name="zendesk-analytics",
    help="Zendesk analytics - cached daily ticket and call reports.",
    no_args_is_help=True,
    add_completion=False,
)

# Cache subcommand group
cache_app = typer.Typer(
    help="Cache management - inspect, clear and clean up cached days.",
    no_args_is_help=True,
)
app.add_typer(cache_app, name="cache")

KindOption = Annotated[
    str,
    typer.Option("--kind", "-k", help="Which cache: tickets, calls or all"),
]
ForceRefreshOption = Annotated[
    bool,
    typer.Option("--force-refresh", "-f", help="Ignore cached data and refetch every day"),
]


def output_json(data: dict) -> None:
    """Output JSON to stdout."""
    print(json.dumps(data, indent=2, default=str))


def output_error(message: str, exit_code: int = 1) -> None:
    """Output error and exit."""
    print(json.dumps({"error": message}), file=sys.stderr)
    raise typer.Exit(exit_code)


def run_async(coro):
    """Run async coroutine synchronously."""
    return asyncio.run(coro)


def zendesk_command(func: Callable) -> Callable:
    """Decorator to handle common error patterns for CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ZendeskClientError, ValueError) as e:
            output_error(str(e))
    return wrapper


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr so stdout stays pure JSON."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        output_json({"version": __version__})
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version", "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-V", help="Log cache and API activity to stderr."),
    ] = False,
) -> None:
    """Zendesk analytics - daily ticket and call rollups with a local cache."""
    configure_logging(verbose)


# =============================================================================
# Analytics Commands
# =============================================================================


@app.command("tickets")
@zendesk_command
def tickets_cmd(
    days: Annotated[int, typer.Option("--days", "-d", help="Window length in days")] = 5,
    force_refresh: ForceRefreshOption = False,
) -> None:
    """Daily ticket activity for the last N days."""
    result = run_async(operations.ticket_analytics(days, force_refresh))
    output_json(result)


@app.command("calls")
@zendesk_command
def calls_cmd(
    days: Annotated[int, typer.Option("--days", "-d", help="Window length in days")] = 30,
    force_refresh: ForceRefreshOption = False,
) -> None:
    """Daily call analytics for the last N days."""
    result = run_async(operations.call_analytics(days, force_refresh))
    output_json(result)


@app.command("calls-range")
@zendesk_command
def calls_range_cmd(
    start: Annotated[str, typer.Argument(help="First date (YYYY-MM-DD)")],
    end: Annotated[str, typer.Argument(help="Last date (YYYY-MM-DD)")],
    force_refresh: ForceRefreshOption = False,
) -> None:
    """Call analytics for an explicit date range."""
    result = run_async(operations.call_analytics_range(start, end, force_refresh))
    output_json(result)


@app.command("calls-today")
@zendesk_command
def calls_today_cmd() -> None:
    """Today's call counts straight from Zendesk (not cached)."""
    result = run_async(operations.calls_today())
    output_json(result)


@app.command("ticket-counts")
@zendesk_command
def ticket_counts_cmd() -> None:
    """Current ticket counts per status (not cached)."""
    result = run_async(operations.current_ticket_counts())
    output_json(result)


# =============================================================================
# Cache Commands
# =============================================================================


@cache_app.command("stats")
@zendesk_command
def cache_stats_cmd(kind: KindOption = "all") -> None:
    """Show entry counts, freshness and file size."""
    output_json(operations.cache_stats(kind))


@cache_app.command("clear")
@zendesk_command
def cache_clear_cmd(
    kind: KindOption = "all",
    day: Annotated[
        str | None,
        typer.Option("--date", help="Clear only this date (YYYY-MM-DD)"),
    ] = None,
) -> None:
    """Clear cached days."""
    output_json(operations.clear_cache(kind, day))


@cache_app.command("cleanup")
@zendesk_command
def cache_cleanup_cmd(kind: KindOption = "all") -> None:
    """Remove entries older than the staleness threshold."""
    output_json(operations.cleanup_cache(kind))


def main_cli() -> None:
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main_cli()
