"""File-backed cache of analytics payloads keyed by calendar date.

One JSON document per cache file:

    {
      "daily_data": {"2025-10-08": {"data": {...}, "cached_at": "..."}},
      "last_updated": "...",
      "version": "1.0"
    }

The whole document is rewritten after every mutation. Writes go to a
temporary file in the same directory that then replaces the cache file,
so a failed write never leaves a half-written cache behind.
"""

import copy
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable

from zendesk_analytics.freshness import FreshnessPolicy

logger = logging.getLogger(__name__)

CACHE_VERSION = "1.0"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO 8601 in UTC with a trailing Z."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO timestamp written by this module (or by older tools).

    Naive timestamps are taken as UTC. Returns None if unparseable.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def date_key(day: date | str) -> str:
    """Normalize a date or YYYY-MM-DD string to a cache key.

    Raises:
        ValueError: If the value is not a calendar date
    """
    if isinstance(day, datetime):
        raise ValueError(f"Expected a calendar date, got datetime {day!r}")
    if isinstance(day, date):
        return day.isoformat()
    if isinstance(day, str):
        try:
            return date.fromisoformat(day).isoformat()
        except ValueError as e:
            raise ValueError(f"Invalid date key {day!r}, expected YYYY-MM-DD") from e
    raise ValueError(f"Invalid date key {day!r}, expected YYYY-MM-DD")


def _empty_document(now: datetime | None = None) -> dict[str, Any]:
    return {
        "daily_data": {},
        "last_updated": format_timestamp(now) if now is not None else None,
        "version": CACHE_VERSION,
    }


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload for one calendar date."""

    date: str
    payload: dict[str, Any]
    cached_at: datetime | None


class DayCache:
    """Persistent date -> payload store.

    The file is loaded on first use. A missing or corrupt file yields an
    empty cache. Persist failures are logged and otherwise ignored; the
    in-memory state stays authoritative for the rest of the process.
    """

    def __init__(
        self,
        path: Path | str,
        policy: FreshnessPolicy | None = None,
        clock: Clock = utc_now,
    ):
        self.path = Path(path)
        self.policy = policy or FreshnessPolicy()
        self._clock = clock
        self._document: dict[str, Any] | None = None

    # -- loading / persisting ---------------------------------------------

    def _load(self) -> dict[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError:
            return _empty_document()
        except (OSError, ValueError) as e:
            logger.warning("Could not load cache %s, starting empty: %s", self.path, e)
            return _empty_document()

        if not isinstance(document, dict) or not isinstance(document.get("daily_data"), dict):
            logger.warning("Cache %s has an unexpected layout, starting empty", self.path)
            return _empty_document()

        document.setdefault("version", CACHE_VERSION)
        document.setdefault("last_updated", None)
        return document

    @property
    def document(self) -> dict[str, Any]:
        if self._document is None:
            self._document = self._load()
        return self._document

    def _persist(self) -> bool:
        """Write the whole document atomically. Returns False on failure."""
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.document, f, indent=2, default=str)
            os.replace(tmp_path, self.path)
            return True
        except (OSError, TypeError, ValueError):
            logger.error("Failed to persist cache %s", self.path, exc_info=True)
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)
            return False

    def _touch(self) -> datetime:
        now = self._clock()
        self.document["last_updated"] = format_timestamp(now)
        return now

    # -- reads ---------------------------------------------------------------

    def get_entry(self, day: date | str) -> CacheEntry | None:
        """Return the entry for ``day``, or None if nothing is cached."""
        key = date_key(day)
        raw = self.document["daily_data"].get(key)
        if not isinstance(raw, dict) or "data" not in raw:
            return None
        return CacheEntry(
            date=key,
            payload=copy.deepcopy(raw["data"]),
            cached_at=parse_timestamp(raw.get("cached_at")),
        )

    def get(self, day: date | str) -> dict[str, Any] | None:
        """Return the cached payload for ``day``, or None."""
        entry = self.get_entry(day)
        return entry.payload if entry else None

    def dates(self) -> list[str]:
        """All cached date keys, oldest first."""
        return sorted(self.document["daily_data"])

    def size_bytes(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError:
            return 0

    def stats(self) -> dict[str, Any]:
        """Diagnostic summary.

        Fresh/stale counts use the staleness threshold for every entry,
        including today's.
        """
        now = self._clock()
        fresh = stale = 0
        for raw in self.document["daily_data"].values():
            cached_at = parse_timestamp(raw.get("cached_at")) if isinstance(raw, dict) else None
            if self.policy.is_stale(cached_at, now):
                stale += 1
            else:
                fresh += 1

        return {
            "total_entries": fresh + stale,
            "fresh_count": fresh,
            "stale_count": stale,
            "last_updated": self.document.get("last_updated"),
            "size_bytes": self.size_bytes(),
        }

    # -- mutations -------------------------------------------------------------

    def set(self, day: date | str, payload: dict[str, Any]) -> CacheEntry:
        """Store ``payload`` for ``day`` and persist.

        Returns the entry as held in memory, even if it could not be written.
        """
        key = date_key(day)
        now = self._touch()
        self.document["daily_data"][key] = {
            "data": copy.deepcopy(payload),
            "cached_at": format_timestamp(now),
        }
        if self._persist():
            logger.debug("Cached data for %s", key)
        return CacheEntry(date=key, payload=copy.deepcopy(payload), cached_at=now)

    def clear(self, day: date | str) -> bool:
        """Remove the entry for ``day``. Returns True if one existed."""
        key = date_key(day)
        existed = self.document["daily_data"].pop(key, None) is not None
        self._touch()
        self._persist()
        if existed:
            logger.info("Cleared cache for %s", key)
        return existed

    def clear_all(self) -> None:
        """Reset the cache to empty."""
        self._document = _empty_document(self._clock())
        self._persist()
        logger.info("Cleared all cached data in %s", self.path)

    def cleanup_expired(self) -> int:
        """Remove every entry past the staleness threshold.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        daily = self.document["daily_data"]
        expired = [
            key
            for key, raw in daily.items()
            if self.policy.is_stale(
                parse_timestamp(raw.get("cached_at")) if isinstance(raw, dict) else None,
                now,
            )
        ]
        for key in expired:
            del daily[key]

        if expired:
            self._touch()
            self._persist()
            logger.info("Cleaned up %d expired cache entries", len(expired))
        return len(expired)
