"""Unit tests for context_cache.py ContextCache.

Test Categories:
- TTL behavior (freezegun)
- Provider failures swallowed and logged
- Payload validation and normalization
- Context bundle resolution
- Expired-entry sweep
"""

from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from freezegun import freeze_time
import pytest

from calendar_core import const
from calendar_core.context_cache import ContextCache

USER_LOCATION = {"latitude": -23.5, "longitude": -46.6, "accuracy": 5.0}
WEATHER = {"condition": "RAIN", "temperature": 18, "precipitation": 3}
TRAFFIC = {
    "estimated_travel_time": 2400,
    "normal_travel_time": 1800,
    "congestion_level": "HIGH",
}


class CountingFetcher:
    """Fetcher double that records calls and returns a fixed payload."""

    def __init__(self, payload=None, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.calls: list[tuple] = []

    def __call__(self, *args):
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        return self.payload


# =============================================================================
# TTL
# =============================================================================


class TestTimeToLive:
    """Entries are reused for 15 minutes."""

    def test_second_lookup_hits_cache(self, context_cache: ContextCache) -> None:
        """A fresh entry is served without calling the provider."""
        fetcher = CountingFetcher(WEATHER)

        first = context_cache.get_weather("Lisbon", fetcher)
        second = context_cache.get_weather("Lisbon", fetcher)

        assert first == second
        assert fetcher.calls == [("Lisbon",)]

    def test_entry_expires_after_ttl(self) -> None:
        """After the TTL the provider is called again."""
        fetcher = CountingFetcher(WEATHER)

        with freeze_time("2024-05-10 12:00:00") as frozen:
            cache = ContextCache()
            cache.get_weather("Lisbon", fetcher)

            frozen.tick(timedelta(minutes=15))
            cache.get_weather("Lisbon", fetcher)
            assert len(fetcher.calls) == 1

            frozen.tick(timedelta(seconds=1))
            cache.get_weather("Lisbon", fetcher)
            assert len(fetcher.calls) == 2

    def test_injected_clock_and_ttl(self) -> None:
        """ttl and clock are constructor arguments."""
        now = [datetime(2024, 5, 10, 12, tzinfo=ZoneInfo("UTC"))]
        cache = ContextCache(ttl=timedelta(minutes=1), clock=lambda: now[0])
        fetcher = CountingFetcher(WEATHER)

        cache.get_weather("Porto", fetcher)
        now[0] += timedelta(minutes=2)
        cache.get_weather("Porto", fetcher)

        assert cache.ttl == timedelta(minutes=1)
        assert len(fetcher.calls) == 2

    def test_traffic_keyed_by_route(self, context_cache: ContextCache) -> None:
        """Different destinations are cached independently."""
        fetcher = CountingFetcher(TRAFFIC)

        context_cache.get_traffic(USER_LOCATION, "Av. Paulista", fetcher)
        context_cache.get_traffic(USER_LOCATION, "Av. Paulista", fetcher)
        context_cache.get_traffic(USER_LOCATION, "Pinheiros", fetcher)

        assert len(fetcher.calls) == 2
        assert ContextCache.traffic_key(USER_LOCATION, "Pinheiros") == (
            "-23.5,-46.6-Pinheiros"
        )


# =============================================================================
# Provider failures
# =============================================================================


class TestProviderFailures:
    """Failures become None and are never cached."""

    def test_fetch_error_is_swallowed(
        self, context_cache: ContextCache, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A raising provider yields None and logs a warning."""
        fetcher = CountingFetcher(error=TimeoutError("provider timed out"))

        assert context_cache.get_weather("Lisbon", fetcher) is None
        assert "provider timed out" in caplog.text

    def test_invalid_payload_is_rejected(
        self, context_cache: ContextCache, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Payloads failing the schema are not returned."""
        fetcher = CountingFetcher({"condition": "HAIL", "temperature": 1, "precipitation": 0})

        assert context_cache.get_weather("Lisbon", fetcher) is None
        assert "Invalid weather payload" in caplog.text

    def test_non_mapping_payload_is_rejected(self, context_cache: ContextCache) -> None:
        """Garbage from a provider is treated like a failure."""
        fetcher = CountingFetcher(["not", "a", "dict"])

        assert context_cache.get_traffic(USER_LOCATION, "Centro", fetcher) is None

    def test_missing_data_not_cached(self, context_cache: ContextCache) -> None:
        """None from a provider is retried on the next lookup."""
        fetcher = CountingFetcher(None)

        context_cache.get_weather("Lisbon", fetcher)
        context_cache.get_weather("Lisbon", fetcher)

        assert len(fetcher.calls) == 2

    def test_payload_normalized(self, context_cache: ContextCache) -> None:
        """Tokens are upper-cased, numbers coerced and unknown keys dropped."""
        fetcher = CountingFetcher(
            {
                "condition": "storm",
                "temperature": "12.5",
                "precipitation": 4,
                "provider": "acme",
            }
        )

        result = context_cache.get_weather("Lisbon", fetcher)

        assert result == {
            "condition": const.WEATHER_STORM,
            "temperature": 12.5,
            "precipitation": 4.0,
        }


# =============================================================================
# Context resolution
# =============================================================================


class TestResolveContext:
    """Bundle assembly from optional fetchers."""

    def test_full_context(self, context_cache: ContextCache) -> None:
        """Every resolvable piece is present."""
        status = {
            "is_active": True,
            "last_seen": datetime(2024, 5, 10, 11, tzinfo=ZoneInfo("UTC")),
        }

        context = context_cache.resolve_context(
            event_location="Av. Paulista",
            user_location=USER_LOCATION,
            user_status=status,
            weather_fetcher=CountingFetcher(WEATHER),
            traffic_fetcher=CountingFetcher(TRAFFIC),
        )

        assert set(context) == {"weather", "traffic", "user_location", "user_status"}
        assert context["traffic"]["congestion_level"] == const.CONGESTION_HIGH

    def test_no_event_location(self, context_cache: ContextCache) -> None:
        """Weather and traffic need the event location."""
        weather_fetcher = CountingFetcher(WEATHER)

        context = context_cache.resolve_context(
            user_location=USER_LOCATION,
            weather_fetcher=weather_fetcher,
            traffic_fetcher=CountingFetcher(TRAFFIC),
        )

        assert context == {"user_location": USER_LOCATION}
        assert weather_fetcher.calls == []

    def test_failed_piece_is_absent(self, context_cache: ContextCache) -> None:
        """A failing provider leaves its field out."""
        context = context_cache.resolve_context(
            event_location="Av. Paulista",
            user_location=USER_LOCATION,
            weather_fetcher=CountingFetcher(error=ConnectionError("down")),
            traffic_fetcher=CountingFetcher(TRAFFIC),
        )

        assert "weather" not in context
        assert "traffic" in context


# =============================================================================
# Sweep
# =============================================================================


class TestClearOldCache:
    """clear_old_cache() and clear()."""

    def test_only_expired_entries_removed(self) -> None:
        """Fresh entries survive the sweep."""
        with freeze_time("2024-05-10 12:00:00") as frozen:
            cache = ContextCache()
            cache.get_weather("Lisbon", CountingFetcher(WEATHER))
            cache.get_traffic(USER_LOCATION, "Centro", CountingFetcher(TRAFFIC))

            frozen.tick(timedelta(minutes=20))
            fresh = CountingFetcher(WEATHER)
            cache.get_weather("Porto", fresh)

            assert cache.clear_old_cache() == 2
            cache.get_weather("Porto", fresh)
            assert len(fresh.calls) == 1

    def test_clear_drops_everything(self, context_cache: ContextCache) -> None:
        """clear() forgets every entry."""
        fetcher = CountingFetcher(WEATHER)
        context_cache.get_weather("Lisbon", fetcher)

        context_cache.clear()
        context_cache.get_weather("Lisbon", fetcher)

        assert len(fetcher.calls) == 2
