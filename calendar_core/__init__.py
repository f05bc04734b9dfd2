"""Recurrence and reminder computation core for calendar scheduling.

Pure, synchronous functions over plain values:
- RecurrenceEngine expands a rule into occurrences inside a window
- RecurrenceExceptionManager layers per-date overrides on a series
- SmartReminderEngine adjusts reminder lead times from context signals

Persistence, HTTP, notification delivery and context fetching stay with the
host application. The only shared state is the optional ContextCache.
"""

from .context_cache import ContextCache
from .engines import (
    RecurrenceEngine,
    RecurrenceExceptionManager,
    SmartReminderEngine,
    apply_exceptions,
    get_effective_instances,
)
from .schemas import rule_from_dict
from .type_defs import (
    CalendarEvent,
    RecurrenceException,
    RecurrenceRule,
    RecurrentEvent,
    RecurringEventInstance,
    ReminderRule,
    ReminderTiming,
    ScheduledReminder,
)

__version__ = "0.1.0"

__all__ = [
    "CalendarEvent",
    "ContextCache",
    "RecurrenceEngine",
    "RecurrenceException",
    "RecurrenceExceptionManager",
    "RecurrenceRule",
    "RecurrentEvent",
    "RecurringEventInstance",
    "ReminderRule",
    "ReminderTiming",
    "ScheduledReminder",
    "SmartReminderEngine",
    "apply_exceptions",
    "get_effective_instances",
    "rule_from_dict",
]
