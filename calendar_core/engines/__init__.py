"""Engine modules for the calendar core.

Contains specialized computation engines:
- recurrence_engine: Rule expansion, validation and rendering
- exception_engine: Per-date overrides and reconciliation with raw instances
- reminder_engine: Context-adjusted reminder lead times and send gating
"""

# Use relative imports within package to avoid mypy module resolution issues
from .exception_engine import (
    RecurrenceExceptionManager,
    apply_exceptions,
    get_effective_instances,
)
from .recurrence_engine import RecurrenceEngine
from .reminder_engine import SmartReminderEngine

__all__ = [
    "RecurrenceEngine",
    "RecurrenceExceptionManager",
    "SmartReminderEngine",
    "apply_exceptions",
    "get_effective_instances",
]
