"""Configuration for the analytics services.

Settings are collected once into an ``AnalyticsConfig`` and passed to
constructors. Only ``AnalyticsConfig.from_env`` looks at the environment.
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from zendesk_analytics.client import ZendeskAuthError

# Config file location
CONFIG_PATH = Path.home() / ".config" / "zendesk-analytics" / "config.json"

# Default cache directory (cross-platform)
DEFAULT_CACHE_DIR = Path(tempfile.gettempdir()) / "zendesk-analytics"

DEFAULT_STALENESS_THRESHOLD = timedelta(hours=24)
DEFAULT_TODAY_WINDOW = timedelta(minutes=15)

# Pause between upstream calls, in seconds
DEFAULT_REQUEST_DELAY = 0.15

TICKET_CACHE_FILE = "ticket-analytics.json"
CALL_CACHE_FILE = "call-analytics.json"


def _load_config_from_file(path: Path = CONFIG_PATH) -> dict[str, Any]:
    """Load configuration from config file."""
    if path.exists():
        try:
            with open(path) as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError):
            pass
    return {}


def _parse_float(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e
    if number < 0:
        raise ValueError(f"{name} must not be negative, got {value!r}")
    return number


def _parse_timezone(value: str) -> ZoneInfo:
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {value!r}") from e


@dataclass(frozen=True)
class AnalyticsConfig:
    """Everything the analytics services need to run.

    Credentials may be left empty for cache-only use (stats, clear);
    ``require_credentials`` is called before any API request is made.
    """

    email: str | None = None
    token: str | None = None
    subdomain: str | None = None
    cache_dir: Path = DEFAULT_CACHE_DIR
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("UTC"))
    staleness_threshold: timedelta = DEFAULT_STALENESS_THRESHOLD
    today_window: timedelta = DEFAULT_TODAY_WINDOW
    request_delay: float = DEFAULT_REQUEST_DELAY

    @property
    def ticket_cache_path(self) -> Path:
        return self.cache_dir / TICKET_CACHE_FILE

    @property
    def call_cache_path(self) -> Path:
        return self.cache_dir / CALL_CACHE_FILE

    def require_credentials(self) -> tuple[str, str, str]:
        """Return (email, token, subdomain).

        Raises:
            ZendeskAuthError: If any credential is missing
        """
        missing = []
        if not self.email:
            missing.append("email (ZENDESK_EMAIL)")
        if not self.token:
            missing.append("token (ZENDESK_TOKEN)")
        if not self.subdomain:
            missing.append("subdomain (ZENDESK_SUBDOMAIN)")

        if missing:
            raise ZendeskAuthError(
                f"Missing Zendesk credentials: {', '.join(missing)}. "
                f"Set environment variables or create config at {CONFIG_PATH}"
            )

        return self.email, self.token, self.subdomain

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "AnalyticsConfig":
        """Build a config from a flat mapping of raw values.

        Keys match the config file: email, token, subdomain, cache_dir,
        timezone, stale_hours, today_minutes, request_delay.
        """
        kwargs: dict[str, Any] = {
            "email": values.get("email") or None,
            "token": values.get("token") or None,
            "subdomain": values.get("subdomain") or None,
        }
        if values.get("cache_dir"):
            kwargs["cache_dir"] = Path(values["cache_dir"]).expanduser()
        if values.get("timezone"):
            kwargs["timezone"] = _parse_timezone(values["timezone"])
        if values.get("stale_hours") not in (None, ""):
            kwargs["staleness_threshold"] = timedelta(
                hours=_parse_float("stale_hours", values["stale_hours"])
            )
        if values.get("today_minutes") not in (None, ""):
            kwargs["today_window"] = timedelta(
                minutes=_parse_float("today_minutes", values["today_minutes"])
            )
        if values.get("request_delay") not in (None, ""):
            kwargs["request_delay"] = _parse_float("request_delay", values["request_delay"])
        return cls(**kwargs)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        config_path: Path | None = None,
    ) -> "AnalyticsConfig":
        """Load configuration from environment variables, then the config file.

        Environment variables take precedence over the config file.
        """
        env = os.environ if environ is None else environ
        file_values = _load_config_from_file(config_path or CONFIG_PATH)

        env_values = {
            "email": env.get("ZENDESK_EMAIL"),
            "token": env.get("ZENDESK_TOKEN"),
            "subdomain": env.get("ZENDESK_SUBDOMAIN"),
            "cache_dir": env.get("ZENDESK_ANALYTICS_CACHE_DIR"),
            "timezone": env.get("ZENDESK_ANALYTICS_TIMEZONE"),
            "stale_hours": env.get("ZENDESK_ANALYTICS_STALE_HOURS"),
            "today_minutes": env.get("ZENDESK_ANALYTICS_TODAY_MINUTES"),
            "request_delay": env.get("ZENDESK_ANALYTICS_REQUEST_DELAY"),
        }

        merged = dict(file_values)
        merged.update({k: v for k, v in env_values.items() if v})
        return cls.from_mapping(merged)
