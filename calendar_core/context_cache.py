"""Bounded, time-boxed cache for externally supplied reminder context.

The calendar core never talks to weather or traffic providers itself. Hosts
pass synchronous fetcher callables; this cache calls them on a miss,
validates the payload with the voluptuous schemas and keeps the result for
a TTL (15 minutes by default).

These two dictionaries are the only shared mutable state of the core. Reads
and writes are guarded by a lock; the fetch itself runs outside the lock, so
two concurrent misses may both fetch. That double fetch is harmless because
correctness never depends on a cache hit.

Provider failures (exceptions, None, invalid payloads) are logged at
warning level and reported as None: the timing engine then proceeds as if
that piece of context were absent.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
import threading
from typing import Any

import voluptuous as vol

from . import const
from .schemas import traffic_from_dict, weather_from_dict
from .type_defs import (
    LocationData,
    SmartReminderContext,
    TrafficData,
    UserStatus,
    WeatherData,
)
from .utils.dt_utils import dt_now_utc

WeatherFetcher = Callable[[str], Mapping[str, Any] | None]
TrafficFetcher = Callable[[LocationData, str], Mapping[str, Any] | None]


@dataclass(frozen=True)
class _CacheEntry:
    """Validated payload and the instant it was stored."""

    data: Any
    stored_at: datetime


class ContextCache:
    """Weather and traffic lookups keyed by location / route."""

    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=const.CONTEXT_CACHE_TTL_MINUTES),
        clock: Callable[[], datetime] = dt_now_utc,
    ) -> None:
        """Initialize an empty cache.

        Args:
            ttl: Maximum age of a cached entry.
            clock: Returns the current aware datetime (injectable for tests).
        """
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._weather: dict[str, _CacheEntry] = {}
        self._traffic: dict[str, _CacheEntry] = {}

    @property
    def ttl(self) -> timedelta:
        """Maximum age of a cached entry."""
        return self._ttl

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_weather(self, location: str, fetcher: WeatherFetcher) -> WeatherData | None:
        """Return weather for a location, fetching it on a miss."""
        return self._lookup(
            self._weather, location, lambda: fetcher(location), weather_from_dict, "weather"
        )

    def get_traffic(
        self, origin: LocationData, destination: str, fetcher: TrafficFetcher
    ) -> TrafficData | None:
        """Return traffic between the user and a destination."""
        key = self.traffic_key(origin, destination)
        return self._lookup(
            self._traffic,
            key,
            lambda: fetcher(origin, destination),
            traffic_from_dict,
            "traffic",
        )

    def resolve_context(
        self,
        event_location: str | None = None,
        user_location: LocationData | None = None,
        user_status: UserStatus | None = None,
        weather_fetcher: WeatherFetcher | None = None,
        traffic_fetcher: TrafficFetcher | None = None,
    ) -> SmartReminderContext:
        """Assemble a context bundle from whatever can be resolved.

        Weather needs an event location; traffic needs both the event and
        the user location. Missing pieces are simply left out.
        """
        context: SmartReminderContext = {}

        if user_location is not None:
            context["user_location"] = user_location
        if user_status is not None:
            context["user_status"] = user_status

        if event_location and weather_fetcher is not None:
            weather = self.get_weather(event_location, weather_fetcher)
            if weather is not None:
                context["weather"] = weather

        if event_location and user_location is not None and traffic_fetcher is not None:
            traffic = self.get_traffic(user_location, event_location, traffic_fetcher)
            if traffic is not None:
                context["traffic"] = traffic

        return context

    # =========================================================================
    # Maintenance
    # =========================================================================

    def clear_old_cache(self) -> int:
        """Remove expired entries and return how many were removed."""
        now = self._clock()
        removed = 0
        with self._lock:
            for store in (self._weather, self._traffic):
                expired = [key for key, entry in store.items() if self._is_expired(entry, now)]
                for key in expired:
                    del store[key]
                removed += len(expired)

        if removed:
            const.LOGGER.debug("ContextCache: Removed %s expired entr(ies)", removed)
        return removed

    def clear(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._weather.clear()
            self._traffic.clear()

    @staticmethod
    def traffic_key(origin: LocationData, destination: str) -> str:
        """Cache key of a route: "<lat>,<lon>-<destination>"."""
        return f"{origin['latitude']},{origin['longitude']}-{destination}"

    # =========================================================================
    # Private
    # =========================================================================

    def _is_expired(self, entry: _CacheEntry, now: datetime) -> bool:
        return now - entry.stored_at > self._ttl

    def _lookup(
        self,
        store: dict[str, _CacheEntry],
        key: str,
        fetch: Callable[[], Mapping[str, Any] | None],
        validate: Callable[[Mapping[str, Any]], Any],
        kind: str,
    ) -> Any:
        """Read-check-then-write lookup shared by weather and traffic."""
        with self._lock:
            entry = store.get(key)
            if entry is not None and not self._is_expired(entry, self._clock()):
                return entry.data

        try:
            raw = fetch()
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning(
                "ContextCache: Failed to fetch %s for %s: %s", kind, key, err
            )
            return None

        if raw is None:
            const.LOGGER.debug("ContextCache: No %s data for %s", kind, key)
            return None

        try:
            data = validate(raw)
        except (vol.Invalid, TypeError, ValueError) as err:
            const.LOGGER.warning(
                "ContextCache: Invalid %s payload for %s: %s", kind, key, err
            )
            return None

        with self._lock:
            store[key] = _CacheEntry(data=data, stored_at=self._clock())
        return data
