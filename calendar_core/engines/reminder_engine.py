"""Smart Reminder Timing Engine.

Adjusts a base reminder lead time using optional context signals and decides
whether a scheduled reminder should go out now.

Timing pipeline (calculate_smart_timing), applied in order, each step only
when its context field is present:
1. Weather: bad conditions add a flat buffer, uncomfortable temperature adds
   another (event must have a location)
2. Traffic: delays above the threshold add the delay, capped (needs event
   location and user location)
3. Travel: long trips add a proportional buffer, capped (needs event
   location and user location)
4. User status: inactive or busy users get extra lead time

Every adjustment is additive in minutes. Minutes are accumulated as exact
Fractions and converted back to the base unit once, so the result is never
shorter than the base timing and carries no float drift.

Gating (evaluate_smart_conditions) is a separate policy and never changes
the timing.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from fractions import Fraction
from typing import TYPE_CHECKING, Any

from .. import const
from ..type_defs import ReminderTiming, SendDecision, SmartRecommendations
from ..utils.dt_utils import as_local, as_utc, dt_now_utc
from ..utils.math_utils import (
    ceil_minutes,
    convert_to_timing_unit,
    from_minutes,
    to_minutes,
)

if TYPE_CHECKING:
    from ..context_cache import ContextCache
    from ..type_defs import (
        LocationData,
        ReminderRule,
        ScheduledReminder,
        SmartReminderContext,
        TrafficData,
        UserStatus,
        WeatherData,
    )

# (minutes, description fragment)
Adjustment = tuple[int, str]

_SECONDS_PER_MINUTE = 60


class SmartReminderEngine:
    """Context-aware reminder timing.

    The engine holds no context itself. An optional ContextCache can be
    injected so hosts can share one cache per process and sweep it through
    clear_old_cache().
    """

    def __init__(self, cache: ContextCache | None = None) -> None:
        """Initialize the engine with an optional shared context cache."""
        self._cache = cache

    @property
    def cache(self) -> ContextCache | None:
        """Injected context cache, if any."""
        return self._cache

    # =========================================================================
    # Timing
    # =========================================================================

    def calculate_smart_timing(
        self,
        event: Any,
        base_rule: ReminderRule,
        context: SmartReminderContext,
    ) -> ReminderTiming:
        """Return a new ReminderTiming adjusted for the given context.

        Args:
            event: CalendarEvent, RecurrentEvent or RecurringEventInstance;
                only its `location` is read.
            base_rule: Reminder whose timing is the starting point.
            context: Optional weather / traffic / location / user status.

        Returns:
            New timing in the base unit; value >= base value. Rules with
            is_smart=False are returned unchanged.
        """
        base = base_rule.timing
        if not base_rule.is_smart:
            return base

        location = getattr(event, "location", None)
        weather = context.get("weather")
        traffic = context.get("traffic")
        user_location = context.get("user_location")
        user_status = context.get("user_status")

        adjustments: list[Adjustment] = []
        if weather and location:
            adjustments.extend(self._adjust_for_weather(weather))
        if traffic and user_location and location:
            adjustments.extend(self._adjust_for_traffic(traffic))
        if user_location and location:
            adjustments.extend(self._adjust_for_travel(traffic))
        if user_status:
            adjustments.extend(self._adjust_for_user_status(user_status))

        if not adjustments:
            return base

        total_minutes = to_minutes(base.value, base.unit)
        description = base.description
        for minutes, fragment in adjustments:
            total_minutes += minutes
            description += fragment

        const.LOGGER.debug(
            "SmartReminderEngine: %s adjustment(s), +%s min over %s %s",
            len(adjustments),
            sum(minutes for minutes, _ in adjustments),
            base.value,
            base.unit,
        )
        return ReminderTiming(
            value=from_minutes(total_minutes, base.unit),
            unit=base.unit,
            description=description,
        )

    @staticmethod
    def convert_to_timing_unit(value: float, from_unit: str, to_unit: str) -> float:
        """Convert a lead time between units, pivoting through minutes."""
        return convert_to_timing_unit(value, from_unit, to_unit)

    @staticmethod
    def calculate_trigger_time(event_start: datetime, timing: ReminderTiming) -> datetime:
        """Instant at which a reminder with `timing` fires for an event."""
        return event_start - timedelta(minutes=float(to_minutes(timing.value, timing.unit)))

    # =========================================================================
    # Gating
    # =========================================================================

    def evaluate_smart_conditions(
        self,
        reminder: ScheduledReminder,
        context: SmartReminderContext,
        now_utc: datetime | None = None,
    ) -> SendDecision:
        """Decide whether a scheduled reminder should be sent.

        Severe weather suppresses sending. SEVERE congestion moves the
        reminder earlier, or sends it right away when the earlier time has
        already passed. Otherwise sending proceeds.
        """
        weather = context.get("weather")
        if weather:
            detail = self._severe_weather_detail(weather)
            if detail is not None:
                const.LOGGER.debug(
                    "SmartReminderEngine: Reminder %s suppressed: %s", reminder.id, detail
                )
                return SendDecision(
                    should_send=False,
                    reason=const.REASON_SEVERE_WEATHER.format(detail=detail),
                )

        traffic = context.get("traffic")
        if traffic and traffic.get("congestion_level") == const.CONGESTION_SEVERE:
            adjusted_time = as_utc(reminder.scheduled_for) - timedelta(
                minutes=const.SEVERE_TRAFFIC_ADVANCE_MINUTES
            )
            if adjusted_time < as_utc(now_utc or dt_now_utc()):
                return SendDecision(
                    should_send=True, reason=const.REASON_SEVERE_TRAFFIC_NOW
                )
            const.LOGGER.debug(
                "SmartReminderEngine: Reminder %s moved to %s", reminder.id, adjusted_time
            )
            return SendDecision(
                should_send=False,
                reason=const.REASON_SEVERE_TRAFFIC_RESCHEDULED,
                adjusted_time=adjusted_time,
            )

        return SendDecision(should_send=True)

    # =========================================================================
    # Recommendations
    # =========================================================================

    def generate_smart_recommendations(
        self,
        event: Any,
        user_location: LocationData | None = None,
        traffic: TrafficData | None = None,
    ) -> SmartRecommendations:
        """Suggest extra lead times for an event, each with its reason.

        Suggestions are not binding; callers decide whether to apply them.
        """
        timings: list[ReminderTiming] = []
        reasons: list[str] = []

        title = (getattr(event, "title", None) or "").lower()
        if any(keyword in title for keyword in const.MEETING_KEYWORDS):
            timings.append(
                ReminderTiming(
                    value=const.MEETING_LEAD_MINUTES,
                    unit=const.TIMING_UNIT_MINUTES,
                    description=const.RECOMMEND_MEETING.format(
                        minutes=const.MEETING_LEAD_MINUTES
                    ),
                )
            )
            reasons.append(const.RECOMMEND_MEETING_REASON)

        if getattr(event, "location", None) and user_location:
            travel = self._travel_time_minutes(traffic)
            if travel > const.RECOMMENDATION_TRAVEL_THRESHOLD_MINUTES:
                lead = ceil_minutes(travel + const.RECOMMENDATION_TRAVEL_BUFFER_MINUTES)
                timings.append(
                    ReminderTiming(
                        value=lead,
                        unit=const.TIMING_UNIT_MINUTES,
                        description=const.RECOMMEND_TRAVEL.format(minutes=lead),
                    )
                )
                reasons.append(
                    const.RECOMMEND_TRAVEL_REASON.format(minutes=ceil_minutes(travel))
                )

        start = _event_start(event)
        if start is not None and as_local(start).hour < const.EARLY_MORNING_HOUR:
            timings.append(
                ReminderTiming(
                    value=const.EARLY_MORNING_LEAD_HOURS,
                    unit=const.TIMING_UNIT_HOURS,
                    description=const.RECOMMEND_EARLY_MORNING.format(
                        hours=const.EARLY_MORNING_LEAD_HOURS
                    ),
                )
            )
            reasons.append(const.RECOMMEND_EARLY_MORNING_REASON)

        return SmartRecommendations(
            recommended_timings=tuple(timings), reasons=tuple(reasons)
        )

    # =========================================================================
    # Cache
    # =========================================================================

    def clear_old_cache(self) -> int:
        """Sweep expired context entries; returns how many were removed."""
        if self._cache is None:
            return 0
        return self._cache.clear_old_cache()

    # =========================================================================
    # Private: adjustments
    # =========================================================================

    @staticmethod
    def _adjust_for_weather(weather: WeatherData) -> list[Adjustment]:
        adjustments: list[Adjustment] = []

        if weather["condition"] in const.BAD_WEATHER_CONDITIONS:
            if weather["condition"] in const.HEAVY_WEATHER_CONDITIONS:
                minutes = const.WEATHER_BUFFER_HEAVY_MINUTES
            elif weather["precipitation"] > const.WEATHER_PRECIPITATION_THRESHOLD_MM:
                minutes = const.WEATHER_BUFFER_PRECIPITATION_MINUTES
            else:
                minutes = const.WEATHER_BUFFER_DEFAULT_MINUTES
            adjustments.append((minutes, const.ADJUSTMENT_WEATHER.format(minutes=minutes)))

        temperature = weather["temperature"]
        if (
            temperature < const.COMFORT_TEMPERATURE_MIN_C
            or temperature > const.COMFORT_TEMPERATURE_MAX_C
        ):
            minutes = const.TEMPERATURE_BUFFER_MINUTES
            adjustments.append(
                (minutes, const.ADJUSTMENT_TEMPERATURE.format(minutes=minutes))
            )

        return adjustments

    @staticmethod
    def _adjust_for_traffic(traffic: TrafficData) -> list[Adjustment]:
        estimated = traffic["estimated_travel_time"]
        normal = traffic["normal_travel_time"]
        if normal <= 0:
            const.LOGGER.debug(
                "SmartReminderEngine: Normal travel time %s, traffic ignored", normal
            )
            return []

        if estimated / normal <= const.TRAFFIC_DELAY_FACTOR_THRESHOLD:
            return []

        delay = Fraction(estimated) - Fraction(normal)
        minutes = min(
            ceil_minutes(delay / _SECONDS_PER_MINUTE), const.TRAFFIC_BUFFER_CAP_MINUTES
        )
        return [(minutes, const.ADJUSTMENT_TRAFFIC.format(minutes=minutes))]

    @staticmethod
    def _adjust_for_travel(traffic: TrafficData | None) -> list[Adjustment]:
        travel = SmartReminderEngine._travel_time_minutes(traffic)
        if travel <= const.TRAVEL_TIME_THRESHOLD_MINUTES:
            return []

        ratio = Fraction(str(const.TRAVEL_BUFFER_RATIO))
        minutes = min(ceil_minutes(travel * ratio), const.TRAVEL_BUFFER_CAP_MINUTES)
        return [(minutes, const.ADJUSTMENT_TRAVEL.format(minutes=minutes))]

    @staticmethod
    def _adjust_for_user_status(user_status: UserStatus) -> list[Adjustment]:
        adjustments: list[Adjustment] = []

        if not user_status["is_active"]:
            minutes = const.INACTIVE_USER_BUFFER_MINUTES
            adjustments.append(
                (minutes, const.ADJUSTMENT_USER_INACTIVE.format(minutes=minutes))
            )

        activity = user_status.get("current_activity")
        if activity and activity.lower() in const.BUSY_ACTIVITIES:
            minutes = const.BUSY_USER_BUFFER_MINUTES
            adjustments.append(
                (minutes, const.ADJUSTMENT_USER_BUSY.format(minutes=minutes))
            )

        return adjustments

    # =========================================================================
    # Private: helpers
    # =========================================================================

    @staticmethod
    def _travel_time_minutes(traffic: TrafficData | None) -> Fraction:
        """Travel time in minutes from traffic data, or the default estimate."""
        if not traffic:
            return Fraction(const.DEFAULT_TRAVEL_TIME_MINUTES)
        return Fraction(traffic["estimated_travel_time"]) / _SECONDS_PER_MINUTE

    @staticmethod
    def _severe_weather_detail(weather: WeatherData) -> str | None:
        """Why the weather forbids sending, or None when it does not."""
        if weather["condition"] == const.WEATHER_STORM:
            return const.DETAIL_STORM
        if (
            weather["temperature"] < const.SEVERE_TEMPERATURE_MIN_C
            or weather["temperature"] > const.SEVERE_TEMPERATURE_MAX_C
        ):
            return const.DETAIL_EXTREME_TEMPERATURE
        if weather["precipitation"] > const.SEVERE_PRECIPITATION_MM:
            return const.DETAIL_HEAVY_PRECIPITATION
        return None


def _event_start(event: Any) -> datetime | None:
    """Start of an event (start_time) or instance (start_date)."""
    start = getattr(event, "start_time", None)
    if start is None:
        start = getattr(event, "start_date", None)
    return start
