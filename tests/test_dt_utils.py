"""Unit tests for utils/dt_utils.py and utils/math_utils.py.

Pure Python tests for calendar arithmetic and timing-unit conversion.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from fractions import Fraction
from zoneinfo import ZoneInfo

from freezegun import freeze_time
import pytest

from calendar_core import const
from calendar_core.utils import dt_utils, math_utils


def make_utc_dt(year: int, month: int, day: int, hour: int = 12) -> datetime:
    """Create a UTC datetime for testing."""
    return datetime(year, month, day, hour, 0, 0, tzinfo=ZoneInfo("UTC"))


# =============================================================================
# Timezone configuration
# =============================================================================


class TestTimezone:
    """Default timezone handling."""

    def test_set_and_get_default_timezone(self) -> None:
        """The default timezone is module configuration."""
        berlin = ZoneInfo("Europe/Berlin")

        dt_utils.set_default_timezone(berlin)

        assert dt_utils.get_default_timezone() is berlin

    def test_naive_input_uses_default_timezone(self) -> None:
        """Naive values are read in the configured zone."""
        dt_utils.set_default_timezone(ZoneInfo("America/Sao_Paulo"))

        result = dt_utils.as_utc(datetime(2024, 5, 10, 9, 0))

        assert result == datetime(2024, 5, 10, 12, 0, tzinfo=UTC)

    @freeze_time("2024-05-10 12:34:56")
    def test_dt_now_utc_is_aware(self) -> None:
        """Current time is timezone-aware UTC."""
        now = dt_utils.dt_now_utc()

        assert now.tzinfo is not None
        assert now == make_utc_dt(2024, 5, 10, 12).replace(minute=34, second=56)

    def test_day_key_in_local_timezone(self) -> None:
        """The calendar day of an instant depends on the local zone."""
        late_evening_utc = make_utc_dt(2024, 5, 10, 23)

        assert dt_utils.day_key(late_evening_utc) == date(2024, 5, 10)

        dt_utils.set_default_timezone(ZoneInfo("Asia/Tokyo"))
        assert dt_utils.day_key(late_evening_utc) == date(2024, 5, 11)
        assert dt_utils.day_key(date(2024, 5, 10)) == date(2024, 5, 10)


# =============================================================================
# Parsing
# =============================================================================


class TestParsing:
    """dt_parse / dt_coerce."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("2024-05-10", make_utc_dt(2024, 5, 10, 0)),
            ("05/10/2024", make_utc_dt(2024, 5, 10, 0)),
            ("2024/05/10", make_utc_dt(2024, 5, 10, 0)),
            ("2024-05-10T09:30:00+00:00", make_utc_dt(2024, 5, 10, 9).replace(minute=30)),
            (date(2024, 5, 10), make_utc_dt(2024, 5, 10, 0)),
            (make_utc_dt(2024, 5, 10), make_utc_dt(2024, 5, 10)),
        ],
    )
    def test_dt_parse_formats(self, value, expected: datetime) -> None:
        """Strings, dates and datetimes become aware datetimes."""
        assert dt_utils.dt_parse(value) == expected

    @pytest.mark.parametrize("value", [None, "", "tomorrow", 42])
    def test_dt_parse_invalid(self, value) -> None:
        """Unparsable input returns None."""
        assert dt_utils.dt_parse(value) is None

    def test_dt_coerce_raises(self) -> None:
        """The strict variant raises ValueError."""
        with pytest.raises(ValueError, match="Invalid date value"):
            dt_utils.dt_coerce("tomorrow")


# =============================================================================
# Stepping & distances
# =============================================================================


class TestStepping:
    """Calendar stepping with clamping."""

    def test_add_months_clamps(self) -> None:
        """Jan 31 + 1 month is the last day of February."""
        assert dt_utils.add_months(make_utc_dt(2024, 1, 31), 1).day == 29
        assert dt_utils.add_months(make_utc_dt(2023, 1, 31), 1).day == 28

    def test_add_years_clamps_leap_day(self) -> None:
        """Feb 29 + 1 year is Feb 28."""
        result = dt_utils.add_years(make_utc_dt(2024, 2, 29), 1)

        assert (result.month, result.day) == (2, 28)

    @pytest.mark.parametrize(
        ("frequency", "expected"),
        [
            (const.FREQUENCY_DAILY, make_utc_dt(2024, 1, 4)),
            (const.FREQUENCY_WEEKLY, make_utc_dt(2024, 1, 22)),
            (const.FREQUENCY_MONTHLY, make_utc_dt(2024, 4, 1)),
            (const.FREQUENCY_YEARLY, make_utc_dt(2027, 1, 1)),
        ],
    )
    def test_add_frequency_units(self, frequency: str, expected: datetime) -> None:
        """Three natural units of each frequency."""
        assert dt_utils.add_frequency_units(make_utc_dt(2024, 1, 1), frequency, 3) == expected

    def test_elapsed_distances(self) -> None:
        """Days/weeks floor, months/years are calendar-aware."""
        start = make_utc_dt(2024, 1, 31)
        end = make_utc_dt(2024, 3, 1)

        assert dt_utils.elapsed_days(start, end) == 30
        assert dt_utils.elapsed_weeks(start, end) == 4
        assert dt_utils.elapsed_months(start, end) == 2
        assert dt_utils.elapsed_years(start, make_utc_dt(2026, 1, 1)) == 2
        assert dt_utils.elapsed_days(end, start) == -30


class TestFieldExtraction:
    """Weekday tokens and month days."""

    def test_weekday_token(self) -> None:
        """2024-01-01 is a Monday."""
        assert dt_utils.weekday_token(date(2024, 1, 1)) == const.WEEKDAY_MO
        assert dt_utils.weekday_token(date(2024, 1, 7)) == const.WEEKDAY_SU

    def test_month_days_keeps_time(self) -> None:
        """Every day of February 2024 at the same wall-clock time."""
        days = dt_utils.month_days(make_utc_dt(2024, 2, 10, 9))

        assert len(days) == 29
        assert days[0] == make_utc_dt(2024, 2, 1, 9)
        assert days[-1] == make_utc_dt(2024, 2, 29, 9)

    def test_format_and_same_day(self) -> None:
        """Formatting and day comparison use the calendar day."""
        assert dt_utils.dt_format_date(make_utc_dt(2024, 5, 10), "%m/%d/%Y") == "05/10/2024"
        assert dt_utils.is_same_day(make_utc_dt(2024, 5, 10, 1), make_utc_dt(2024, 5, 10, 23))
        assert not dt_utils.is_same_day(make_utc_dt(2024, 5, 10), date(2024, 5, 11))


# =============================================================================
# math_utils
# =============================================================================


class TestMathUtils:
    """Timing-unit arithmetic."""

    def test_to_minutes_is_exact(self) -> None:
        """Conversions to minutes return Fractions."""
        assert math_utils.to_minutes(2, const.TIMING_UNIT_HOURS) == Fraction(120)
        assert math_utils.to_minutes(0.5, const.TIMING_UNIT_DAYS) == Fraction(720)

    def test_repeated_additions_do_not_drift(self) -> None:
        """Thousands of one-minute steps in hours sum exactly."""
        total = sum(
            (math_utils.to_minutes(1, const.TIMING_UNIT_MINUTES) for _ in range(6000)),
            Fraction(0),
        )

        assert math_utils.from_minutes(total, const.TIMING_UNIT_HOURS) == 100.0

    def test_convert_round_trip_values(self) -> None:
        """A few representative conversions."""
        assert math_utils.convert_to_timing_unit(
            3, const.TIMING_UNIT_WEEKS, const.TIMING_UNIT_HOURS
        ) == 504.0
        assert math_utils.convert_to_timing_unit(
            45, const.TIMING_UNIT_MINUTES, const.TIMING_UNIT_HOURS
        ) == 0.75

    def test_unknown_unit(self) -> None:
        """Same-unit conversion still validates the unit."""
        with pytest.raises(ValueError, match="Unsupported timing unit"):
            math_utils.convert_to_timing_unit(1, "SECONDS", "SECONDS")

    def test_ceil_minutes(self) -> None:
        """Partial minutes round up."""
        assert math_utils.ceil_minutes(6.01) == 7
        assert math_utils.ceil_minutes(6) == 6
        assert math_utils.ceil_minutes(Fraction(361, 60)) == 7
        assert math_utils.ceil_minutes(Fraction(360, 60)) == 6
