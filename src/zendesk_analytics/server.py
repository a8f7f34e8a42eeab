"""Zendesk analytics MCP server - Thin wrapper around operations module."""

import json
from typing import Literal, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, ConfigDict, Field

from zendesk_analytics import operations
from zendesk_analytics.client import ZendeskAPIError, ZendeskAuthError

# Initialize the MCP server
mcp = FastMCP("zendesk_analytics")


# =============================================================================
# Pydantic Input Models
# =============================================================================

# Shared model config
_MODEL_CONFIG = ConfigDict(str_strip_whitespace=True)

_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class TicketWindowInput(BaseModel):
    """Input for rolling ticket analytics."""
    model_config = _MODEL_CONFIG
    days: int = Field(default=5, ge=1, le=operations.MAX_WINDOW_DAYS, description="Window length in days")
    force_refresh: bool = Field(default=False, description="Ignore cached data and refetch")


class CallWindowInput(BaseModel):
    """Input for rolling call analytics."""
    model_config = _MODEL_CONFIG
    days: int = Field(default=30, ge=1, le=operations.MAX_WINDOW_DAYS, description="Window length in days")
    force_refresh: bool = Field(default=False, description="Ignore cached data and refetch")


class DateRangeInput(BaseModel):
    """Input for explicit date range analytics."""
    model_config = _MODEL_CONFIG
    start: str = Field(..., description="First date (YYYY-MM-DD)", pattern=_DATE_PATTERN)
    end: str = Field(..., description="Last date (YYYY-MM-DD)", pattern=_DATE_PATTERN)
    force_refresh: bool = Field(default=False, description="Ignore cached data and refetch")


class CacheKindInput(BaseModel):
    """Input selecting a cache."""
    model_config = _MODEL_CONFIG
    kind: Literal["tickets", "calls", "all"] = Field(default="all", description="Which cache")


class ClearCacheInput(BaseModel):
    """Input for clearing cached days."""
    model_config = _MODEL_CONFIG
    kind: Literal["tickets", "calls", "all"] = Field(default="all", description="Which cache")
    date: Optional[str] = Field(
        default=None, description="Clear only this date (YYYY-MM-DD)", pattern=_DATE_PATTERN
    )


class EmptyInput(BaseModel):
    """Input for tools without parameters."""
    model_config = _MODEL_CONFIG


# =============================================================================
# Helper Functions
# =============================================================================


def _format_result(result: dict) -> str:
    """Format operation result as JSON string."""
    return json.dumps(result, indent=2, default=str)


def _handle_error(e: Exception) -> str:
    """Format errors consistently."""
    if isinstance(e, ZendeskAuthError):
        return f"**Authentication Error:** {e}"
    elif isinstance(e, ZendeskAPIError):
        return f"**API Error:** {e}"
    else:
        return f"**Error:** {type(e).__name__}: {e}"


# =============================================================================
# Analytics Tools
# =============================================================================


@mcp.tool(name="zendesk_ticket_analytics")
async def zendesk_ticket_analytics(params: TicketWindowInput) -> str:
    """Daily ticket activity (created, reopened, pending, hold, solved, closed) for the last N days."""
    try:
        result = await operations.ticket_analytics(params.days, params.force_refresh)
        return _format_result(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(name="zendesk_call_analytics")
async def zendesk_call_analytics(params: CallWindowInput) -> str:
    """Daily call analytics (answered, abandoned, callbacks, voicemails) for the last N days."""
    try:
        result = await operations.call_analytics(params.days, params.force_refresh)
        return _format_result(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(name="zendesk_call_analytics_range")
async def zendesk_call_analytics_range(params: DateRangeInput) -> str:
    """Call analytics for an explicit date range."""
    try:
        result = await operations.call_analytics_range(
            params.start, params.end, params.force_refresh
        )
        return _format_result(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(name="zendesk_calls_today")
async def zendesk_calls_today(params: EmptyInput) -> str:
    """Today's call counts fetched live, bypassing the cache."""
    try:
        result = await operations.calls_today()
        return _format_result(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(name="zendesk_ticket_counts")
async def zendesk_ticket_counts(params: EmptyInput) -> str:
    """Current ticket counts per status."""
    try:
        result = await operations.current_ticket_counts()
        return _format_result(result)
    except Exception as e:
        return _handle_error(e)


# =============================================================================
# Cache Tools
# =============================================================================


@mcp.tool(name="zendesk_cache_stats")
async def zendesk_cache_stats(params: CacheKindInput) -> str:
    """Show cached day counts, fresh/stale split and file sizes."""
    try:
        return _format_result(operations.cache_stats(params.kind))
    except Exception as e:
        return _handle_error(e)


@mcp.tool(name="zendesk_clear_cache")
async def zendesk_clear_cache(params: ClearCacheInput) -> str:
    """Clear one cached date or the whole cache."""
    try:
        return _format_result(operations.clear_cache(params.kind, params.date))
    except Exception as e:
        return _handle_error(e)


@mcp.tool(name="zendesk_cleanup_cache")
async def zendesk_cleanup_cache(params: CacheKindInput) -> str:
    """Remove cached days older than the staleness threshold."""
    try:
        return _format_result(operations.cleanup_cache(params.kind))
    except Exception as e:
        return _handle_error(e)


# =============================================================================
# Server Entry Point
# =============================================================================


def main():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
