# File: utils/math_utils.py
"""Lead-time arithmetic for the calendar core.

Pure Python functions; no engine imports.

Timing values pivot through minutes and are carried as exact Fractions while
a calculation is in progress, so repeated additions inside one pipeline run
never accumulate floating error. Only the final result is converted back to
a float in the caller's unit.

Functions:
    - to_minutes: Exact minutes for a value in a timing unit
    - from_minutes: Convert exact minutes to a float in a timing unit
    - convert_to_timing_unit: Unit-to-unit conversion through minutes
    - ceil_minutes: Round a positive duration up to whole minutes
"""

from __future__ import annotations

from fractions import Fraction
import logging
import math

from .. import const

# Module-level logger
_LOGGER = logging.getLogger(__name__)


def _minutes_per(unit: str) -> int:
    """Return the number of minutes in one `unit`.

    Raises:
        ValueError: If the unit is not a supported timing unit.
    """
    try:
        return const.MINUTES_PER_UNIT[unit]
    except KeyError as err:
        raise ValueError(f"Unsupported timing unit: {unit}") from err


def to_minutes(value: float, unit: str) -> Fraction:
    """Convert a value in `unit` to exact minutes.

    Examples:
        to_minutes(2, "HOURS") → Fraction(120, 1)
        to_minutes(0.5, "DAYS") → Fraction(720, 1)
    """
    return Fraction(value) * _minutes_per(unit)


def from_minutes(minutes: Fraction | float, unit: str) -> float:
    """Convert exact minutes to a float in `unit` (single rounding step)."""
    return float(Fraction(minutes) / _minutes_per(unit))


def convert_to_timing_unit(value: float, from_unit: str, to_unit: str) -> float:
    """Convert a lead time between timing units, pivoting through minutes.

    Examples:
        convert_to_timing_unit(90, "MINUTES", "HOURS") → 1.5
        convert_to_timing_unit(1, "WEEKS", "DAYS") → 7.0
    """
    if from_unit == to_unit:
        _minutes_per(from_unit)
        return float(value)
    return from_minutes(to_minutes(value, from_unit), to_unit)


def ceil_minutes(minutes: Fraction | float) -> int:
    """Round a duration in minutes up to a whole number of minutes.

    Exact Fractions are rounded without passing through float.
    """
    return math.ceil(minutes)
