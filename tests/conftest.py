"""Shared fixtures for calendar core tests.

The core is pure Python: no event loop, no storage, no network. Fixtures
only build literal values and keep the module-level default timezone from
leaking between tests.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from calendar_core import const
from calendar_core.context_cache import ContextCache
from calendar_core.engines.reminder_engine import SmartReminderEngine
from calendar_core.type_defs import (
    RecurrenceRule,
    RecurrentEvent,
    ReminderRule,
    ReminderTiming,
)
from calendar_core.utils import dt_utils

UTC_TZ = ZoneInfo("UTC")


@pytest.fixture(autouse=True)
def reset_default_timezone():
    """Restore the UTC default timezone after every test."""
    yield
    dt_utils.set_default_timezone(UTC_TZ)


@pytest.fixture
def utc_tz() -> ZoneInfo:
    """Return UTC timezone."""
    return UTC_TZ


@pytest.fixture
def daily_series() -> RecurrentEvent:
    """Daily 09:00-10:00 series anchored on Monday 2024-01-01."""
    return RecurrentEvent(
        id="evt-standup",
        title="Team standup",
        start_time=datetime(2024, 1, 1, 9, 0, tzinfo=UTC_TZ),
        end_time=datetime(2024, 1, 1, 10, 0, tzinfo=UTC_TZ),
        recurrence_rule=RecurrenceRule(frequency=const.FREQUENCY_DAILY),
        description="Daily sync",
        location="Office 3B",
        created_by="user-1",
    )


@pytest.fixture
def base_rule() -> ReminderRule:
    """15-minute smart reminder."""
    return ReminderRule(
        id="rem-1",
        timing=ReminderTiming(
            value=15,
            unit=const.TIMING_UNIT_MINUTES,
            description="15 minutes before",
        ),
    )


@pytest.fixture
def reminder_engine() -> SmartReminderEngine:
    """Reminder engine without a cache."""
    return SmartReminderEngine()


@pytest.fixture
def context_cache() -> ContextCache:
    """Context cache on the real (freezable) clock."""
    return ContextCache()
