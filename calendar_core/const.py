# File: const.py
"""Constants for the calendar core.

This file centralizes tokens, thresholds, safety limits and localized labels
used by the recurrence, exception and smart reminder engines so that every
number the engines act on lives in one place.
"""

import logging

# ------------------------------------------------------------------------------------------------
# General
# ------------------------------------------------------------------------------------------------

# Logger
LOGGER = logging.getLogger(__package__)

# Default locale for human-readable rule descriptions
DEFAULT_LOCALE = "en"
LOCALE_EN = "en"
LOCALE_PT_BR = "pt-BR"

# ------------------------------------------------------------------------------------------------
# Recurrence Frequencies
# ------------------------------------------------------------------------------------------------
FREQUENCY_DAILY = "DAILY"
FREQUENCY_WEEKLY = "WEEKLY"
FREQUENCY_MONTHLY = "MONTHLY"
FREQUENCY_YEARLY = "YEARLY"
# Reserved, never generated
FREQUENCY_CUSTOM = "CUSTOM"

SUPPORTED_FREQUENCIES = (
    FREQUENCY_DAILY,
    FREQUENCY_WEEKLY,
    FREQUENCY_MONTHLY,
    FREQUENCY_YEARLY,
)

# ------------------------------------------------------------------------------------------------
# Weekday Tokens
# ------------------------------------------------------------------------------------------------
WEEKDAY_MO = "MO"
WEEKDAY_TU = "TU"
WEEKDAY_WE = "WE"
WEEKDAY_TH = "TH"
WEEKDAY_FR = "FR"
WEEKDAY_SA = "SA"
WEEKDAY_SU = "SU"

# Token -> datetime.weekday() index (0=Mon, 6=Sun)
WEEKDAY_INDEX: dict[str, int] = {
    WEEKDAY_MO: 0,
    WEEKDAY_TU: 1,
    WEEKDAY_WE: 2,
    WEEKDAY_TH: 3,
    WEEKDAY_FR: 4,
    WEEKDAY_SA: 5,
    WEEKDAY_SU: 6,
}

# ------------------------------------------------------------------------------------------------
# Recurrence Limits
# ------------------------------------------------------------------------------------------------
MIN_INTERVAL = 1
MAX_INTERVAL = 999
MIN_MONTH_DAY = 1
MAX_MONTH_DAY = 31
DAYS_PER_WEEK = 7
MONTHS_PER_YEAR = 12

# Safety cap on stepped periods inside the requested window
DEFAULT_MAX_INSTANCES = 1000

# Safety cap on stepping from the anchor up to the window start
MAX_FAST_FORWARD_ITERATIONS = 10000

# ------------------------------------------------------------------------------------------------
# Recurrence Exceptions
# ------------------------------------------------------------------------------------------------
EXCEPTION_TYPE_MODIFIED = "MODIFIED"
EXCEPTION_TYPE_DELETED = "DELETED"

# Default retention for cleanup_old_exceptions
DEFAULT_EXCEPTION_RETENTION_DAYS = 365

# Patch keys accepted on a MODIFIED exception
PATCH_TITLE = "title"
PATCH_DESCRIPTION = "description"
PATCH_START_TIME = "start_time"
PATCH_END_TIME = "end_time"
PATCH_LOCATION = "location"

# Date formats
EXCEPTION_ID_DATE_FORMAT = "%Y-%m-%d"
BULK_REPORT_DATE_FORMAT = "%m/%d/%Y"
BULK_REPORT_SUCCESS_MARK = "✓"
BULK_REPORT_FAILURE_MARK = "✗"

# ------------------------------------------------------------------------------------------------
# Reminder Timing Units
# ------------------------------------------------------------------------------------------------
TIMING_UNIT_MINUTES = "MINUTES"
TIMING_UNIT_HOURS = "HOURS"
TIMING_UNIT_DAYS = "DAYS"
TIMING_UNIT_WEEKS = "WEEKS"

MINUTES_PER_UNIT: dict[str, int] = {
    TIMING_UNIT_MINUTES: 1,
    TIMING_UNIT_HOURS: 60,
    TIMING_UNIT_DAYS: 60 * 24,
    TIMING_UNIT_WEEKS: 60 * 24 * 7,
}

# ------------------------------------------------------------------------------------------------
# Context Signals
# ------------------------------------------------------------------------------------------------
WEATHER_CLEAR = "CLEAR"
WEATHER_CLOUDY = "CLOUDY"
WEATHER_RAIN = "RAIN"
WEATHER_STORM = "STORM"
WEATHER_SNOW = "SNOW"
WEATHER_FOG = "FOG"

WEATHER_CONDITIONS = (
    WEATHER_CLEAR,
    WEATHER_CLOUDY,
    WEATHER_RAIN,
    WEATHER_STORM,
    WEATHER_SNOW,
    WEATHER_FOG,
)
BAD_WEATHER_CONDITIONS = frozenset(
    {WEATHER_RAIN, WEATHER_STORM, WEATHER_SNOW, WEATHER_FOG}
)
HEAVY_WEATHER_CONDITIONS = frozenset({WEATHER_STORM, WEATHER_SNOW})

CONGESTION_LOW = "LOW"
CONGESTION_MODERATE = "MODERATE"
CONGESTION_HIGH = "HIGH"
CONGESTION_SEVERE = "SEVERE"

CONGESTION_LEVELS = (
    CONGESTION_LOW,
    CONGESTION_MODERATE,
    CONGESTION_HIGH,
    CONGESTION_SEVERE,
)

BUSY_ACTIVITIES = frozenset({"meeting", "call", "driving", "workout"})

# ------------------------------------------------------------------------------------------------
# Smart Timing Adjustments (all in minutes)
# ------------------------------------------------------------------------------------------------
WEATHER_BUFFER_DEFAULT_MINUTES = 15
WEATHER_BUFFER_HEAVY_MINUTES = 30
WEATHER_BUFFER_PRECIPITATION_MINUTES = 20
WEATHER_PRECIPITATION_THRESHOLD_MM = 5
TEMPERATURE_BUFFER_MINUTES = 10
COMFORT_TEMPERATURE_MIN_C = 5
COMFORT_TEMPERATURE_MAX_C = 35

TRAFFIC_DELAY_FACTOR_THRESHOLD = 1.2
TRAFFIC_BUFFER_CAP_MINUTES = 60

TRAVEL_TIME_THRESHOLD_MINUTES = 30
TRAVEL_BUFFER_RATIO = 0.2
TRAVEL_BUFFER_CAP_MINUTES = 30
# Travel estimate used when no traffic data is available
DEFAULT_TRAVEL_TIME_MINUTES = 30

INACTIVE_USER_BUFFER_MINUTES = 10
BUSY_USER_BUFFER_MINUTES = 15

# ------------------------------------------------------------------------------------------------
# Smart Sending Conditions
# ------------------------------------------------------------------------------------------------
SEVERE_TEMPERATURE_MIN_C = -10
SEVERE_TEMPERATURE_MAX_C = 45
SEVERE_PRECIPITATION_MM = 20
SEVERE_TRAFFIC_ADVANCE_MINUTES = 30

# ------------------------------------------------------------------------------------------------
# Smart Recommendations
# ------------------------------------------------------------------------------------------------
MEETING_KEYWORDS = ("reunião", "meeting")
MEETING_LEAD_MINUTES = 15
RECOMMENDATION_TRAVEL_THRESHOLD_MINUTES = 15
RECOMMENDATION_TRAVEL_BUFFER_MINUTES = 15
EARLY_MORNING_HOUR = 9
EARLY_MORNING_LEAD_HOURS = 1

# ------------------------------------------------------------------------------------------------
# Context Cache
# ------------------------------------------------------------------------------------------------
CONTEXT_CACHE_TTL_MINUTES = 15

# ------------------------------------------------------------------------------------------------
# Rule Descriptions (per locale)
# ------------------------------------------------------------------------------------------------
RULE_TEXT: dict[str, dict[str, str]] = {
    LOCALE_EN: {
        "daily_one": "Daily",
        "daily_many": "Every {interval} days",
        "weekly_one": "Weekly",
        "weekly_many": "Every {interval} weeks",
        "monthly_one": "Monthly",
        "monthly_many": "Every {interval} months",
        "yearly_one": "Yearly",
        "yearly_many": "Every {interval} years",
        "on_days": " on {days}",
        "on_set_pos": " on the {positions} {days}",
        "on_month_days": " on day {days} of the month",
        "count": ", for {count} occurrences",
        "until": ", until {until}",
        "until_format": "%m/%d/%Y",
        "or": " or ",
    },
    LOCALE_PT_BR: {
        "daily_one": "Diariamente",
        "daily_many": "A cada {interval} dias",
        "weekly_one": "Semanalmente",
        "weekly_many": "A cada {interval} semanas",
        "monthly_one": "Mensalmente",
        "monthly_many": "A cada {interval} meses",
        "yearly_one": "Anualmente",
        "yearly_many": "A cada {interval} anos",
        "on_days": " em {days}",
        "on_set_pos": " na {positions} {days}",
        "on_month_days": " no dia {days} do mês",
        "count": ", por {count} ocorrências",
        "until": ", até {until}",
        "until_format": "%d/%m/%Y",
        "or": " ou ",
    },
}

WEEKDAY_NAMES: dict[str, dict[str, str]] = {
    LOCALE_EN: {
        WEEKDAY_MO: "Monday",
        WEEKDAY_TU: "Tuesday",
        WEEKDAY_WE: "Wednesday",
        WEEKDAY_TH: "Thursday",
        WEEKDAY_FR: "Friday",
        WEEKDAY_SA: "Saturday",
        WEEKDAY_SU: "Sunday",
    },
    LOCALE_PT_BR: {
        WEEKDAY_MO: "segunda-feira",
        WEEKDAY_TU: "terça-feira",
        WEEKDAY_WE: "quarta-feira",
        WEEKDAY_TH: "quinta-feira",
        WEEKDAY_FR: "sexta-feira",
        WEEKDAY_SA: "sábado",
        WEEKDAY_SU: "domingo",
    },
}

SET_POSITION_NAMES: dict[str, dict[int, str]] = {
    LOCALE_EN: {
        1: "first",
        2: "second",
        3: "third",
        4: "fourth",
        5: "fifth",
        -1: "last",
        -2: "second to last",
    },
    LOCALE_PT_BR: {
        1: "primeira",
        2: "segunda",
        3: "terceira",
        4: "quarta",
        5: "quinta",
        -1: "última",
        -2: "penúltima",
    },
}

# ------------------------------------------------------------------------------------------------
# Validation Messages
# ------------------------------------------------------------------------------------------------
ERROR_FREQUENCY_REQUIRED = "Frequency is required"
ERROR_FREQUENCY_UNSUPPORTED = "Unsupported frequency: {frequency}"
ERROR_INTERVAL_RANGE = "Interval must be between 1 and 999"
ERROR_COUNT_POSITIVE = "Count must be greater than 0"
ERROR_COUNT_AND_UNTIL = "Cannot specify both count and until"
ERROR_WEEKLY_BY_MONTH_DAY = "byMonthDay is not valid for weekly frequency"
ERROR_DAILY_BY_RULES = "byWeekDay and byMonthDay are not valid for daily frequency"
ERROR_INVALID_MONTH_DAY = "Invalid day of month: {day}"
ERROR_INVALID_WEEKDAY = "Invalid weekday: {day}"
ERROR_INVALID_SET_POS = "Invalid set position: {pos}"
ERROR_SET_POS_REQUIRES_WEEKDAY = "bySetPos requires byWeekDay"

# ------------------------------------------------------------------------------------------------
# Exception Manager Messages
# ------------------------------------------------------------------------------------------------
EXCEPTION_ID_FORMAT = "{event_id}_exception_{day}"
INDEPENDENT_EVENT_ID_FORMAT = "{event_id}_independent_{day}"

MSG_INSTANCE_MODIFIED = "Instance modified successfully"
MSG_INSTANCE_DELETED = "Instance deleted successfully"
MSG_EXCEPTION_REMOVED = "Exception removed successfully"
MSG_EXCEPTION_NOT_FOUND = "No exception found for this date"
MSG_INDEPENDENT_EVENT_CREATED = "Independent event created successfully"
MSG_BULK_MODIFY_REPORT = "Modifications applied:"
MSG_BULK_DELETE_REPORT = "Deletions applied:"
MSG_BULK_ITEM_MALFORMED = "Malformed bulk item: {error}"
MSG_EXCEPTIONS_CLEANED = "{count} old exception(s) removed"

ERROR_MODIFY_INSTANCE = "Error modifying instance: {error}"
ERROR_DELETE_INSTANCE = "Error deleting instance: {error}"
ERROR_REMOVE_EXCEPTION = "Error removing exception: {error}"
ERROR_CONVERT_INSTANCE = "Error converting instance: {error}"
ERROR_BULK_MODIFY = "Error in bulk modification: {error}"
ERROR_BULK_DELETE = "Error in bulk deletion: {error}"
ERROR_CLEANUP_EXCEPTIONS = "Error cleaning up exceptions: {error}"

REASON_PAST_DATE = "Date is in the past - modification allowed"
REASON_OUTSIDE_RECURRENCE = "Date is outside the recurrence period"
REASON_INVALID_DATE = "Invalid date: {error}"

# ------------------------------------------------------------------------------------------------
# Smart Reminder Texts
# ------------------------------------------------------------------------------------------------
ADJUSTMENT_WEATHER = " (+ {minutes}min due to weather)"
ADJUSTMENT_TEMPERATURE = " (+ {minutes}min due to temperature)"
ADJUSTMENT_TRAFFIC = " (+ {minutes}min due to traffic)"
ADJUSTMENT_TRAVEL = " (+ {minutes}min for travel)"
ADJUSTMENT_USER_INACTIVE = " (+ {minutes}min - user inactive)"
ADJUSTMENT_USER_BUSY = " (+ {minutes}min - user busy)"

REASON_SEVERE_WEATHER = "Unsuitable weather conditions: {detail}"
DETAIL_STORM = "Severe storm"
DETAIL_EXTREME_TEMPERATURE = "Extreme temperature"
DETAIL_HEAVY_PRECIPITATION = "Very heavy rain"
REASON_SEVERE_TRAFFIC_NOW = "Sending immediately due to severe traffic"
REASON_SEVERE_TRAFFIC_RESCHEDULED = "Rescheduled due to severe traffic"

RECOMMEND_MEETING = "{minutes} minutes before (meeting)"
RECOMMEND_MEETING_REASON = "Meetings usually need some preparation beforehand"
RECOMMEND_TRAVEL = "{minutes} minutes before (including travel)"
RECOMMEND_TRAVEL_REASON = "Estimated travel time: {minutes} minutes"
RECOMMEND_EARLY_MORNING = "{hours} hour(s) before (early morning event)"
RECOMMEND_EARLY_MORNING_REASON = "Early morning events may need more preparation time"
