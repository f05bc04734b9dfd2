"""Type definitions for calendar core data structures.

ARCHITECTURE DECISION: HYBRID APPROACH (frozen dataclass + TypedDict)
=====================================================================

1. **Frozen dataclasses for CORE VALUES** (created and returned by the engines):
   - RecurrenceRule, RecurringEventInstance, RecurrenceException,
     RecurrentEvent, CalendarEvent, ReminderTiming, ReminderRule,
     ScheduledReminder
   - ✅ Benefit: immutability is enforced; engines derive new values with
     dataclasses.replace() and never mutate their inputs

2. **TypedDict for EXTERNAL PAYLOADS** (plain dicts supplied by adapters):
   - WeatherData, TrafficData, LocationData, UserStatus,
     SmartReminderContext, EventPatch, BulkModification
   - ✅ Benefit: providers and UI layers hand over JSON-shaped data as-is;
     every optional key is NotRequired so partial context is honest

NOTE: Neither form validates at runtime. Raw payloads are coerced and checked
by the voluptuous schemas in schemas.py before they reach an engine.

IMPORTANT: This file must NOT import from engines/ to avoid circular imports.
Only import from const.py and typing machinery.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, NotRequired, TypedDict

from . import const

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

EventId = str
WeekDayToken = str  # "MO".."SU"
TimingUnit = str  # const.TIMING_UNIT_*


# =============================================================================
# External Payloads (TypedDict)
# =============================================================================


class EventPatch(TypedDict, total=False):
    """Partial event fields carried by a MODIFIED exception."""

    title: str
    description: str | None
    start_time: datetime
    end_time: datetime
    location: str | None


class BulkModification(TypedDict):
    """One item of bulk_modify_instances()."""

    original_date: datetime | date | str
    changes: EventPatch


class AlternativeRoute(TypedDict):
    """Alternative route suggested by a traffic provider."""

    name: str
    duration: float  # seconds
    distance: float  # meters


class WeatherData(TypedDict):
    """Weather at the event location."""

    condition: str  # const.WEATHER_*
    temperature: float  # Celsius
    precipitation: float  # millimeters
    wind_speed: NotRequired[float]
    humidity: NotRequired[float]


class TrafficData(TypedDict):
    """Route timing between the user and the event location.

    Travel times are expressed in seconds.
    """

    estimated_travel_time: float
    normal_travel_time: float
    congestion_level: str  # const.CONGESTION_*
    alternative_routes: NotRequired[list[AlternativeRoute]]


class LocationData(TypedDict):
    """Last known user position."""

    latitude: float
    longitude: float
    accuracy: float
    address: NotRequired[str]
    city: NotRequired[str]
    country: NotRequired[str]


class UserStatus(TypedDict):
    """Presence information for the reminder recipient."""

    is_active: bool
    last_seen: datetime
    current_activity: NotRequired[str]


class SmartReminderContext(TypedDict, total=False):
    """Context bundle; every field is independently optional."""

    weather: WeatherData
    traffic: TrafficData
    user_location: LocationData
    user_status: UserStatus


# =============================================================================
# Recurrence Values
# =============================================================================


@dataclass(frozen=True)
class RecurrenceRule:
    """Generative pattern of a recurring series.

    Attributes:
        frequency: One of const.SUPPORTED_FREQUENCIES
        interval: Step between periods ("every N units"), 1..999
        count: Maximum number of occurrences (exclusive with until)
        until: Inclusive upper bound instant (exclusive with count)
        by_week_day: Weekday tokens ("MO".."SU")
        by_month_day: Days of month, 1..31
        by_set_pos: Signed positions within the month's by_week_day dates
    """

    frequency: str
    interval: int = 1
    count: int | None = None
    until: datetime | None = None
    by_week_day: tuple[WeekDayToken, ...] = ()
    by_month_day: tuple[int, ...] = ()
    by_set_pos: tuple[int, ...] = ()


@dataclass(frozen=True)
class RecurringEventInstance:
    """A generated occurrence, never stored.

    original_start_date is always the series anchor. occurrence_date is the
    raw generated start and is the key exceptions are matched on.
    """

    start_date: datetime
    end_date: datetime
    original_start_date: datetime
    occurrence_date: datetime
    title: str | None = None
    description: str | None = None
    location: str | None = None
    exception_type: str | None = None

    @property
    def is_exception(self) -> bool:
        """Return True when an exception has been applied to this instance."""
        return self.exception_type is not None


@dataclass(frozen=True)
class RecurrenceException:
    """Per-date override of a recurring series."""

    id: str
    original_date: datetime
    type: str  # const.EXCEPTION_TYPE_*
    created_at: datetime
    modified_event: EventPatch | None = None


@dataclass(frozen=True)
class CalendarEvent:
    """A standalone (non-recurring) calendar event."""

    id: EventId
    title: str
    start_time: datetime
    end_time: datetime
    description: str | None = None
    location: str | None = None
    is_recurrent: bool = False
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class RecurrentEvent:
    """Series root; the single source of truth for its instances."""

    id: EventId
    title: str
    start_time: datetime
    end_time: datetime
    recurrence_rule: RecurrenceRule
    exceptions: tuple[RecurrenceException, ...] = ()
    description: str | None = None
    location: str | None = None
    created_by: str | None = None

    @property
    def duration(self) -> timedelta:
        """Length of every instance."""
        return self.end_time - self.start_time


@dataclass(frozen=True)
class RuleValidationResult:
    """Outcome of RecurrenceEngine.validate_rule()."""

    valid: bool
    errors: tuple[str, ...] = ()


# =============================================================================
# Exception Manager Envelopes
# =============================================================================


@dataclass(frozen=True)
class BulkItemResult:
    """Per-date outcome inside a best-effort bulk operation."""

    original_date: Any
    success: bool
    message: str


@dataclass(frozen=True)
class ExceptionOperationResult:
    """Envelope returned by every exception operation.

    Operational failures are reported here with success=False; they are
    never raised to the caller.
    """

    success: bool
    message: str
    updated_event: RecurrentEvent | None = None
    new_event: CalendarEvent | None = None
    items: tuple[BulkItemResult, ...] = ()


@dataclass(frozen=True)
class ExceptionSummary:
    """Read-only projection of a series' exceptions."""

    modified: tuple[RecurrenceException, ...]
    deleted: tuple[RecurrenceException, ...]
    total: int


@dataclass(frozen=True)
class ExceptionApplicability:
    """Advisory answer of can_apply_exception()."""

    can_apply: bool
    reason: str | None = None


# =============================================================================
# Reminder Values
# =============================================================================


@dataclass(frozen=True)
class ReminderTiming:
    """Lead time before an event start."""

    value: float
    unit: TimingUnit = const.TIMING_UNIT_MINUTES
    description: str = ""


@dataclass(frozen=True)
class ReminderRule:
    """Base reminder attached to an event."""

    timing: ReminderTiming
    id: str | None = None
    is_smart: bool = True


@dataclass(frozen=True)
class ScheduledReminder:
    """A reminder already placed on the delivery timeline."""

    id: str
    event_id: EventId
    scheduled_for: datetime
    timing: ReminderTiming | None = None


@dataclass(frozen=True)
class SendDecision:
    """Gating decision of evaluate_smart_conditions()."""

    should_send: bool
    reason: str | None = None
    adjusted_time: datetime | None = None


@dataclass(frozen=True)
class SmartRecommendations:
    """Non-binding lead-time suggestions with their reasons."""

    recommended_timings: tuple[ReminderTiming, ...] = field(default_factory=tuple)
    reasons: tuple[str, ...] = field(default_factory=tuple)
