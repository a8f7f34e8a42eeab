"""Tests for the file-backed day cache."""

import json
from datetime import date

import pytest

from zendesk_analytics.cache import DayCache, date_key, parse_timestamp


def test_set_then_get_returns_payload(tmp_path, clock):
    """A stored payload comes back unchanged."""
    cache = DayCache(tmp_path / "cache.json", clock=clock)
    payload = {"total_calls": 10, "answered_calls": 8}

    cache.set("2025-10-08", payload)

    assert cache.get("2025-10-08") == payload
    assert cache.get(date(2025, 10, 8)) == payload


def test_payload_survives_reload(tmp_path, clock):
    """A new instance on the same file sees earlier writes."""
    path = tmp_path / "cache.json"
    DayCache(path, clock=clock).set("2025-10-08", {"total_calls": 3})

    reloaded = DayCache(path, clock=clock)
    assert reloaded.get("2025-10-08") == {"total_calls": 3}
    assert reloaded.get_entry("2025-10-08").cached_at == clock.now


def test_get_missing_date_returns_none(tmp_path, clock):
    cache = DayCache(tmp_path / "cache.json", clock=clock)

    assert cache.get("2025-10-08") is None
    assert cache.get_entry("2025-10-08") is None
    assert not (tmp_path / "cache.json").exists()


def test_stored_payload_is_isolated_from_caller(tmp_path, clock):
    cache = DayCache(tmp_path / "cache.json", clock=clock)
    payload = {"total_calls": 1}
    cache.set("2025-10-08", payload)

    payload["total_calls"] = 99
    cache.get("2025-10-08")["total_calls"] = 42

    assert cache.get("2025-10-08") == {"total_calls": 1}


def test_second_set_updates_cached_at(tmp_path, clock):
    cache = DayCache(tmp_path / "cache.json", clock=clock)
    cache.set("2025-10-08", {"total_calls": 1})
    first = cache.get_entry("2025-10-08").cached_at

    clock.advance(minutes=5)
    cache.set("2025-10-08", {"total_calls": 1})

    entry = cache.get_entry("2025-10-08")
    assert entry.payload == {"total_calls": 1}
    assert entry.cached_at > first
    assert cache.dates() == ["2025-10-08"]


def test_file_layout(tmp_path, clock):
    """The persisted document keeps the daily_data / last_updated / version shape."""
    path = tmp_path / "cache.json"
    DayCache(path, clock=clock).set("2025-10-08", {"total_calls": 1})

    with open(path) as f:
        document = json.load(f)

    assert document["version"] == "1.0"
    assert document["last_updated"] == "2025-10-10T12:00:00Z"
    assert document["daily_data"] == {
        "2025-10-08": {"data": {"total_calls": 1}, "cached_at": "2025-10-10T12:00:00Z"}
    }


def test_reads_existing_cache_file(tmp_path, clock):
    """Files written by older tools (millisecond timestamps) load fine."""
    path = tmp_path / "ticket-analytics.json"
    path.write_text(json.dumps({
        "daily_data": {
            "2025-10-07": {"data": {"new": 4}, "cached_at": "2025-10-10T11:30:00.000Z"},
        },
        "last_updated": "2025-10-10T11:30:00.000Z",
        "version": "1.0",
    }))

    cache = DayCache(path, clock=clock)

    assert cache.get("2025-10-07") == {"new": 4}
    assert cache.stats()["fresh_count"] == 1


def test_clear_single_date(tmp_path, clock):
    cache = DayCache(tmp_path / "cache.json", clock=clock)
    cache.set("2025-10-08", {"a": 1})
    cache.set("2025-10-09", {"a": 2})

    assert cache.clear("2025-10-08") is True
    assert cache.clear("2025-10-08") is False
    assert cache.get("2025-10-08") is None
    assert DayCache(tmp_path / "cache.json", clock=clock).dates() == ["2025-10-09"]


def test_clear_all(tmp_path, clock):
    path = tmp_path / "cache.json"
    cache = DayCache(path, clock=clock)
    cache.set("2025-10-08", {"a": 1})
    cache.set("2025-10-09", {"a": 2})

    cache.clear_all()

    assert cache.get("2025-10-08") is None
    assert cache.get("2025-10-09") is None
    assert DayCache(path, clock=clock).dates() == []


def test_corrupt_file_loads_as_empty(tmp_path, clock):
    path = tmp_path / "cache.json"
    path.write_text("{not json")

    cache = DayCache(path, clock=clock)

    assert cache.get("2025-10-08") is None
    cache.set("2025-10-08", {"a": 1})
    assert DayCache(path, clock=clock).get("2025-10-08") == {"a": 1}


def test_unexpected_layout_loads_as_empty(tmp_path, clock):
    path = tmp_path / "cache.json"
    path.write_text(json.dumps(["not", "a", "cache"]))

    assert DayCache(path, clock=clock).dates() == []


def test_persist_failure_keeps_in_memory_result(tmp_path, clock):
    """If the directory cannot be created, set still returns and get still works."""
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    cache = DayCache(blocker / "cache.json", clock=clock)

    entry = cache.set("2025-10-08", {"a": 1})

    assert entry.payload == {"a": 1}
    assert cache.get("2025-10-08") == {"a": 1}


def test_failed_replace_leaves_previous_file_intact(tmp_path, clock, monkeypatch):
    path = tmp_path / "cache.json"
    cache = DayCache(path, clock=clock)
    cache.set("2025-10-08", {"a": 1})
    before = path.read_text()

    def fail(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("zendesk_analytics.cache.os.replace", fail)
    cache.set("2025-10-09", {"a": 2})

    assert path.read_text() == before
    assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]


def test_stats_counts_fresh_and_stale(tmp_path, clock):
    cache = DayCache(tmp_path / "cache.json", clock=clock)
    cache.set("2025-10-01", {"a": 1})
    clock.advance(hours=20)
    cache.set("2025-10-02", {"a": 2})
    clock.advance(hours=5)

    stats = cache.stats()

    assert stats["total_entries"] == 2
    assert stats["fresh_count"] == 1
    assert stats["stale_count"] == 1
    assert stats["last_updated"] == "2025-10-11T08:00:00Z"
    assert stats["size_bytes"] == (tmp_path / "cache.json").stat().st_size


def test_stats_on_empty_cache(tmp_path, clock):
    stats = DayCache(tmp_path / "cache.json", clock=clock).stats()

    assert stats["total_entries"] == 0
    assert stats["fresh_count"] == 0
    assert stats["stale_count"] == 0
    assert stats["size_bytes"] == 0


def test_cleanup_expired(tmp_path, clock):
    cache = DayCache(tmp_path / "cache.json", clock=clock)
    cache.set("2025-10-01", {"a": 1})
    cache.set("2025-10-02", {"a": 2})
    clock.advance(hours=23)
    cache.set("2025-10-03", {"a": 3})
    clock.advance(hours=2)

    assert cache.cleanup_expired() == 2
    assert cache.dates() == ["2025-10-03"]
    assert cache.cleanup_expired() == 0


def test_invalid_date_keys():
    assert date_key(date(2025, 10, 8)) == "2025-10-08"
    assert date_key("2025-10-08") == "2025-10-08"

    with pytest.raises(ValueError):
        date_key("10/08/2025")
    with pytest.raises(ValueError):
        date_key(20251008)


def test_parse_timestamp_handles_bad_values():
    assert parse_timestamp(None) is None
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp("2025-10-08T10:00:00").tzinfo is not None


def test_never_written_cache_has_no_last_updated(tmp_path, clock):
    """Loading a missing or corrupt file does not count as a write."""
    assert DayCache(tmp_path / "never.json", clock=clock).stats()["last_updated"] is None

    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json")
    assert DayCache(corrupt, clock=clock).stats()["last_updated"] is None
