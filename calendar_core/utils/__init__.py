"""Pure Python utilities for the calendar core.

Submodules:
    - dt_utils: Calendar arithmetic (stepping, distances, field extraction)
    - math_utils: Timing-unit conversion pivoting through minutes

Usage:
    from . import dt_utils
    from .math_utils import convert_to_timing_unit
"""

from . import dt_utils, math_utils

__all__ = ["dt_utils", "math_utils"]
