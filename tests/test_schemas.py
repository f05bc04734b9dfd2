"""Unit tests for schemas.py payload coercion."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
import voluptuous as vol

from calendar_core import const
from calendar_core.schemas import (
    event_patch_from_dict,
    location_from_dict,
    rule_from_dict,
    traffic_from_dict,
    user_status_from_dict,
)
from calendar_core.type_defs import RecurrenceRule


def make_utc_dt(year: int, month: int, day: int, hour: int = 12) -> datetime:
    """Create a UTC datetime for testing."""
    return datetime(year, month, day, hour, 0, 0, tzinfo=ZoneInfo("UTC"))


# =============================================================================
# Recurrence rules
# =============================================================================


class TestRuleFromDict:
    """rule_from_dict() coercion."""

    def test_defaults(self) -> None:
        """Only frequency is required."""
        assert rule_from_dict({"frequency": "daily"}) == RecurrenceRule(
            frequency=const.FREQUENCY_DAILY
        )

    def test_camel_case_keys_and_iso_until(self) -> None:
        """JSON-style keys and ISO strings are accepted."""
        rule = rule_from_dict(
            {
                "frequency": "MONTHLY",
                "interval": "2",
                "until": "2024-12-31T23:59:00+00:00",
                "byWeekDay": ["tu", "th"],
                "bySetPos": [2],
            }
        )

        assert rule.interval == 2
        assert rule.until == make_utc_dt(2024, 12, 31, 23).replace(minute=59)
        assert rule.by_week_day == ("TU", "TH")
        assert rule.by_set_pos == (2,)
        assert rule.by_month_day == ()

    def test_business_rules_not_enforced(self) -> None:
        """Out-of-range values pass through for validate_rule() to report."""
        rule = rule_from_dict({"frequency": "WEEKLY", "interval": 0, "count": 5})

        assert rule.interval == 0
        assert rule.count == 5

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"frequency": 7},
            {"frequency": "DAILY", "until": "someday"},
            {"frequency": "DAILY", "by_month_day": ["first"]},
            {"frequency": "DAILY", "timezone": "UTC"},
        ],
    )
    def test_malformed_shape_raises(self, payload: dict) -> None:
        """Shape errors raise voluptuous.Invalid."""
        with pytest.raises(vol.Invalid):
            rule_from_dict(payload)


# =============================================================================
# Event patches
# =============================================================================


class TestEventPatchFromDict:
    """event_patch_from_dict() coercion."""

    def test_datetimes_coerced(self) -> None:
        """Start/end strings become aware datetimes."""
        patch = event_patch_from_dict(
            {"title": "Moved standup", "start_time": "2024-01-05T11:00:00+00:00"}
        )

        assert patch == {
            "title": "Moved standup",
            "start_time": make_utc_dt(2024, 1, 5, 11),
        }

    def test_clearing_optional_fields(self) -> None:
        """Description and location may be cleared with None."""
        patch = event_patch_from_dict({"description": None, "location": None})

        assert patch == {"description": None, "location": None}

    def test_unknown_field_rejected(self) -> None:
        """Series-level fields cannot be patched per instance."""
        with pytest.raises(vol.Invalid):
            event_patch_from_dict({"recurrence_rule": {"frequency": "DAILY"}})


# =============================================================================
# Context payloads
# =============================================================================


class TestContextPayloads:
    """Location, traffic and user status coercion."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"latitude": 91, "longitude": 0, "accuracy": 1},
            {"latitude": 0, "longitude": -181, "accuracy": 1},
            {"latitude": 0, "longitude": 0, "accuracy": -1},
            {"latitude": 0, "longitude": 0},
        ],
    )
    def test_location_out_of_range(self, payload: dict) -> None:
        """Coordinates and accuracy are range-checked."""
        with pytest.raises(vol.Invalid):
            location_from_dict(payload)

    def test_location_extra_keys_dropped(self) -> None:
        """Unknown provider keys are removed."""
        location = location_from_dict(
            {"latitude": "38.7", "longitude": -9.1, "accuracy": 10, "source": "gps"}
        )

        assert location == {"latitude": 38.7, "longitude": -9.1, "accuracy": 10.0}

    def test_traffic_alternative_routes(self) -> None:
        """Nested routes are validated too."""
        traffic = traffic_from_dict(
            {
                "estimated_travel_time": 1800,
                "normal_travel_time": 1200,
                "congestion_level": "severe",
                "alternative_routes": [
                    {"name": "Ring road", "duration": 1500, "distance": 12.4}
                ],
            }
        )

        assert traffic["congestion_level"] == const.CONGESTION_SEVERE
        assert traffic["alternative_routes"][0]["duration"] == 1500.0

    def test_traffic_unknown_congestion(self) -> None:
        """Congestion tokens are a closed set."""
        with pytest.raises(vol.Invalid):
            traffic_from_dict(
                {
                    "estimated_travel_time": 60,
                    "normal_travel_time": 60,
                    "congestion_level": "GRIDLOCK",
                }
            )

    def test_user_status(self) -> None:
        """Boolean strings and ISO timestamps are coerced."""
        status = user_status_from_dict(
            {"is_active": "false", "last_seen": "2024-05-10T08:00:00+00:00"}
        )

        assert status == {"is_active": False, "last_seen": make_utc_dt(2024, 5, 10, 8)}
