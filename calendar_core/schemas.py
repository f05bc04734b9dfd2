# File: schemas.py
"""Voluptuous schemas for raw payloads entering the calendar core.

UI layers, persistence and context providers hand over plain dicts. These
schemas coerce their shape (types, token case, ISO dates) before the values
reach an engine. Business invariants (interval range, count/until
exclusivity, ...) are NOT checked here: RecurrenceEngine.validate_rule()
reports those as messages instead of raising.

All *_from_dict helpers raise voluptuous.Invalid on malformed input.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, cast

import voluptuous as vol

from . import const
from .type_defs import (
    EventPatch,
    LocationData,
    RecurrenceRule,
    TrafficData,
    UserStatus,
    WeatherData,
)
from .utils.dt_utils import dt_coerce

# camelCase keys accepted from JSON callers
_RULE_KEY_ALIASES: dict[str, str] = {
    "byWeekDay": "by_week_day",
    "byMonthDay": "by_month_day",
    "bySetPos": "by_set_pos",
}


def _datetime_value(value: Any) -> datetime:
    """Coerce ISO strings, dates and datetimes to an aware datetime."""
    if not isinstance(value, str | date):
        raise vol.Invalid(f"Expected a date or datetime, got {type(value).__name__}")
    try:
        return dt_coerce(value)
    except ValueError as err:
        raise vol.Invalid(str(err)) from err


# --- Recurrence Schemas ---
RULE_SCHEMA = vol.Schema(
    {
        vol.Required("frequency"): vol.All(str, vol.Upper),
        vol.Optional("interval", default=1): vol.Coerce(int),
        vol.Optional("count", default=None): vol.Any(None, vol.Coerce(int)),
        vol.Optional("until", default=None): vol.Any(None, _datetime_value),
        vol.Optional("by_week_day", default=list): [vol.All(str, vol.Upper)],
        vol.Optional("by_month_day", default=list): [vol.Coerce(int)],
        vol.Optional("by_set_pos", default=list): [vol.Coerce(int)],
    }
)

EVENT_PATCH_SCHEMA = vol.Schema(
    {
        vol.Optional(const.PATCH_TITLE): str,
        vol.Optional(const.PATCH_DESCRIPTION): vol.Any(None, str),
        vol.Optional(const.PATCH_START_TIME): _datetime_value,
        vol.Optional(const.PATCH_END_TIME): _datetime_value,
        vol.Optional(const.PATCH_LOCATION): vol.Any(None, str),
    }
)

# --- Context Schemas ---
WEATHER_SCHEMA = vol.Schema(
    {
        vol.Required("condition"): vol.All(
            str, vol.Upper, vol.In(const.WEATHER_CONDITIONS)
        ),
        vol.Required("temperature"): vol.Coerce(float),
        vol.Required("precipitation"): vol.All(vol.Coerce(float), vol.Range(min=0)),
        vol.Optional("wind_speed"): vol.All(vol.Coerce(float), vol.Range(min=0)),
        vol.Optional("humidity"): vol.All(vol.Coerce(float), vol.Range(min=0, max=100)),
    },
    extra=vol.REMOVE_EXTRA,
)

ALTERNATIVE_ROUTE_SCHEMA = vol.Schema(
    {
        vol.Required("name"): str,
        vol.Required("duration"): vol.All(vol.Coerce(float), vol.Range(min=0)),
        vol.Required("distance"): vol.All(vol.Coerce(float), vol.Range(min=0)),
    },
    extra=vol.REMOVE_EXTRA,
)

TRAFFIC_SCHEMA = vol.Schema(
    {
        vol.Required("estimated_travel_time"): vol.All(
            vol.Coerce(float), vol.Range(min=0)
        ),
        vol.Required("normal_travel_time"): vol.All(
            vol.Coerce(float), vol.Range(min=0)
        ),
        vol.Required("congestion_level"): vol.All(
            str, vol.Upper, vol.In(const.CONGESTION_LEVELS)
        ),
        vol.Optional("alternative_routes"): [ALTERNATIVE_ROUTE_SCHEMA],
    },
    extra=vol.REMOVE_EXTRA,
)

LOCATION_SCHEMA = vol.Schema(
    {
        vol.Required("latitude"): vol.All(vol.Coerce(float), vol.Range(min=-90, max=90)),
        vol.Required("longitude"): vol.All(
            vol.Coerce(float), vol.Range(min=-180, max=180)
        ),
        vol.Required("accuracy"): vol.All(vol.Coerce(float), vol.Range(min=0)),
        vol.Optional("address"): str,
        vol.Optional("city"): str,
        vol.Optional("country"): str,
    },
    extra=vol.REMOVE_EXTRA,
)

USER_STATUS_SCHEMA = vol.Schema(
    {
        vol.Required("is_active"): vol.Boolean(),
        vol.Required("last_seen"): _datetime_value,
        vol.Optional("current_activity"): str,
    },
    extra=vol.REMOVE_EXTRA,
)


# =============================================================================
# Coercion helpers
# =============================================================================


def rule_from_dict(data: Mapping[str, Any]) -> RecurrenceRule:
    """Build a RecurrenceRule from a raw dict (snake_case or camelCase keys).

    Raises:
        vol.Invalid: If the payload shape is malformed.
    """
    normalized = {_RULE_KEY_ALIASES.get(key, key): value for key, value in data.items()}
    validated = RULE_SCHEMA(normalized)
    return RecurrenceRule(
        frequency=validated["frequency"],
        interval=validated["interval"],
        count=validated["count"],
        until=validated["until"],
        by_week_day=tuple(validated["by_week_day"]),
        by_month_day=tuple(validated["by_month_day"]),
        by_set_pos=tuple(validated["by_set_pos"]),
    )


def event_patch_from_dict(data: Mapping[str, Any]) -> EventPatch:
    """Validate a partial event patch. Unknown fields are rejected."""
    return cast("EventPatch", EVENT_PATCH_SCHEMA(dict(data)))


def weather_from_dict(data: Mapping[str, Any]) -> WeatherData:
    """Validate a weather payload from a provider."""
    return cast("WeatherData", WEATHER_SCHEMA(dict(data)))


def traffic_from_dict(data: Mapping[str, Any]) -> TrafficData:
    """Validate a traffic payload from a provider."""
    return cast("TrafficData", TRAFFIC_SCHEMA(dict(data)))


def location_from_dict(data: Mapping[str, Any]) -> LocationData:
    """Validate a user location payload."""
    return cast("LocationData", LOCATION_SCHEMA(dict(data)))


def user_status_from_dict(data: Mapping[str, Any]) -> UserStatus:
    """Validate a user status payload."""
    return cast("UserStatus", USER_STATUS_SCHEMA(dict(data)))
