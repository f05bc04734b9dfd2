# File: utils/dt_utils.py
"""Calendar arithmetic for the calendar core.

Pure, stateless date/time functions. This is the leaf of the package: the
engines build on it and it imports nothing from them.

Uses standard library datetime/zoneinfo plus dateutil.relativedelta for
month/year stepping with clamping (Jan 31 + 1 month = Feb 29/28).

Functions:
    - set_default_timezone / get_default_timezone: Configure naive-input zone
    - dt_now_utc: Current UTC datetime
    - as_utc / as_local: Timezone conversion
    - dt_parse_date / dt_parse / dt_coerce: Normalize date inputs
    - add_days / add_weeks / add_months / add_years / add_frequency_units
    - elapsed_days / elapsed_weeks / elapsed_months / elapsed_years
    - weekday_token / day_of_month / days_in_month / month_days
    - day_key / is_same_day / dt_format_date
"""

from __future__ import annotations

from calendar import monthrange
from datetime import UTC, date, datetime, timedelta
import logging
from zoneinfo import ZoneInfo

# Third-party date utilities
from dateutil.relativedelta import relativedelta

from .. import const

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# Default timezone for naive inputs and "local" calendar questions
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

_WEEKDAY_TOKENS = tuple(
    token for token, _ in sorted(const.WEEKDAY_INDEX.items(), key=lambda kv: kv[1])
)


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Args:
        tz: ZoneInfo object representing the default timezone
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC, treating naive input as DEFAULT_TIME_ZONE."""
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to the local timezone.

    Args:
        dt_obj: Datetime object; naive values are assumed to be UTC
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Datetime in local timezone
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz_info)


# ==============================================================================
# Parsing
# ==============================================================================


def dt_parse_date(date_str: str | None) -> date | None:
    """Safely parse a date string into a `datetime.date`.

    Accepts "2025-04-07" (ISO), "04/07/2025" (US) and "2025/04/07".

    Returns:
        datetime.date or None if parsing fails.
    """
    if not date_str or not isinstance(date_str, str):
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    for fmt in ("%m/%d/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    return None


def dt_parse(
    dt_input: str | date | datetime | None,
    default_tzinfo: ZoneInfo | None = None,
) -> datetime | None:
    """Normalize string, date or datetime input to an aware datetime.

    Dates become midnight. Naive values get `default_tzinfo` (or
    DEFAULT_TIME_ZONE).

    Returns:
        Aware datetime, or None if the input could not be parsed.

    Example:
        >>> dt_parse("2025-04-15")
        datetime.datetime(2025, 4, 15, 0, 0, tzinfo=zoneinfo.ZoneInfo(key='UTC'))
    """
    if not dt_input:
        return None

    tz_info = default_tzinfo or DEFAULT_TIME_ZONE
    result: datetime | None = None

    if isinstance(dt_input, datetime):
        result = dt_input
    elif isinstance(dt_input, date):
        result = datetime.combine(dt_input, datetime.min.time())
    elif isinstance(dt_input, str):
        try:
            result = datetime.fromisoformat(dt_input)
        except ValueError:
            parsed_date = dt_parse_date(dt_input)
            if not parsed_date:
                return None
            result = datetime.combine(parsed_date, datetime.min.time())
    else:
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=tz_info)
    return result


def dt_coerce(dt_input: str | date | datetime) -> datetime:
    """Strict variant of dt_parse() for operation boundaries.

    Raises:
        ValueError: If the input cannot be interpreted as a date.
    """
    result = dt_parse(dt_input)
    if result is None:
        raise ValueError(f"Invalid date value: {dt_input!r}")
    return result


# ==============================================================================
# Stepping
# ==============================================================================


def add_days(dt_obj: datetime, days: int) -> datetime:
    """Add whole days, keeping the wall-clock time."""
    return dt_obj + timedelta(days=days)


def add_weeks(dt_obj: datetime, weeks: int) -> datetime:
    """Add whole weeks, keeping the wall-clock time."""
    return dt_obj + timedelta(weeks=weeks)


def add_months(dt_obj: datetime, months: int) -> datetime:
    """Add calendar months, clamping to the end of shorter months."""
    return dt_obj + relativedelta(months=months)


def add_years(dt_obj: datetime, years: int) -> datetime:
    """Add calendar years, clamping Feb 29 to Feb 28 in common years."""
    return dt_obj + relativedelta(years=years)


def add_frequency_units(dt_obj: datetime, frequency: str, units: int) -> datetime:
    """Step a datetime by `units` natural units of a recurrence frequency.

    Unknown frequencies step by days.
    """
    if frequency == const.FREQUENCY_WEEKLY:
        return add_weeks(dt_obj, units)
    if frequency == const.FREQUENCY_MONTHLY:
        return add_months(dt_obj, units)
    if frequency == const.FREQUENCY_YEARLY:
        return add_years(dt_obj, units)
    if frequency != const.FREQUENCY_DAILY:
        _LOGGER.debug("add_frequency_units: Unknown frequency %s, using days", frequency)
    return add_days(dt_obj, units)


# ==============================================================================
# Distances
# ==============================================================================


def elapsed_days(start: datetime, end: datetime) -> int:
    """Whole days from start to end (floor division, negative if end < start)."""
    return (end - start) // timedelta(days=1)


def elapsed_weeks(start: datetime, end: datetime) -> int:
    """Whole weeks from start to end (floor division)."""
    return (end - start) // timedelta(weeks=1)


def elapsed_months(start: datetime, end: datetime) -> int:
    """Calendar months between the two dates, ignoring day and time."""
    return (end.year - start.year) * const.MONTHS_PER_YEAR + (end.month - start.month)


def elapsed_years(start: datetime, end: datetime) -> int:
    """Calendar years between the two dates, ignoring month, day and time."""
    return end.year - start.year


# ==============================================================================
# Field Extraction
# ==============================================================================


def weekday_token(dt_obj: date) -> str:
    """Return the weekday token ("MO".."SU") of a date or datetime."""
    return _WEEKDAY_TOKENS[dt_obj.weekday()]


def day_of_month(dt_obj: date) -> int:
    """Return the day-of-month (1..31)."""
    return dt_obj.day


def days_in_month(year: int, month: int) -> int:
    """Return the number of days in a month."""
    return monthrange(year, month)[1]


def month_days(dt_obj: datetime) -> list[datetime]:
    """Every day of dt_obj's month, ascending, at dt_obj's wall-clock time."""
    return [
        dt_obj.replace(day=day)
        for day in range(1, days_in_month(dt_obj.year, dt_obj.month) + 1)
    ]


def day_key(dt_input: date | datetime) -> date:
    """Calendar day used to correlate values "by day, not by instant".

    Datetimes are read in DEFAULT_TIME_ZONE; plain dates are returned as-is.
    """
    if isinstance(dt_input, datetime):
        return as_local(dt_input).date()
    return dt_input


def is_same_day(first: date | datetime, second: date | datetime) -> bool:
    """Return True when both values fall on the same calendar day."""
    return day_key(first) == day_key(second)


def dt_format_date(dt_input: date | datetime, fmt: str) -> str:
    """Format the calendar day of a date or datetime with strftime."""
    return day_key(dt_input).strftime(fmt)
