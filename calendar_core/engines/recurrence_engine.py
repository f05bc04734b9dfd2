"""Recurrence Engine for the calendar core.

Expands a RecurrenceRule into concrete occurrences inside a half-open window
[range_start, range_end):
- Plain rules step `anchor + k * interval` natural units, always computed
  from the anchor so month/year clamping never drifts (Jan 31 monthly gives
  Feb 29, Mar 31, Apr 30, ...)
- Rules with by_week_day / by_month_day expand each stepped period (7-day
  block from the anchor, calendar month or calendar year) day by day and
  keep the days accepted by matches_rule()

ARCHITECTURE: Pure logic engine. All methods are static and operate only on
passed-in data. Callers must run validate_rule() before generate_instances();
an invalid rule produces unspecified (but non-crashing) output.

IMPORTANT: This module must NOT import from exception_engine.py or
reminder_engine.py. Only import from const.py, type_defs.py and utils.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, ClassVar

from .. import const
from ..type_defs import RecurringEventInstance, RuleValidationResult
from ..utils.dt_utils import (
    add_days,
    add_frequency_units,
    as_utc,
    dt_coerce,
    dt_parse,
    elapsed_days,
    elapsed_months,
    elapsed_weeks,
    elapsed_years,
    month_days,
    weekday_token,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import RecurrenceRule


class RecurrenceEngine:
    """Pure logic engine for recurrence expansion, validation and rendering.

    All methods are static - no instance state.
    """

    # Frequencies whose periods are expanded day by day when by-rules exist
    EXPANDABLE_FREQUENCIES: ClassVar[set[str]] = {
        const.FREQUENCY_WEEKLY,
        const.FREQUENCY_MONTHLY,
        const.FREQUENCY_YEARLY,
    }

    # RFC 5545 weekday order used when rendering BYDAY
    RRULE_WEEKDAY_ORDER: ClassVar[tuple[str, ...]] = (
        const.WEEKDAY_MO,
        const.WEEKDAY_TU,
        const.WEEKDAY_WE,
        const.WEEKDAY_TH,
        const.WEEKDAY_FR,
        const.WEEKDAY_SA,
        const.WEEKDAY_SU,
    )

    # =========================================================================
    # Generation
    # =========================================================================

    @staticmethod
    def generate_instances(
        rule: RecurrenceRule,
        anchor_start: datetime,
        range_start: datetime,
        range_end: datetime,
        event_duration_minutes: float = 0,
        max_instances: int = const.DEFAULT_MAX_INSTANCES,
    ) -> list[RecurringEventInstance]:
        """Generate the occurrences of a rule that start inside a window.

        Args:
            rule: Recurrence rule (must already pass validate_rule()).
            anchor_start: Series anchor; the first possible occurrence.
            range_start: Inclusive window start.
            range_end: Exclusive window end.
            event_duration_minutes: Duration applied to every instance.
            max_instances: Hard cap on stepped periods inside the window.

        Returns:
            Ascending list of instances with range_start <= start < range_end.

        Note:
            `count` counts occurrences of the whole series from the anchor,
            including those stepped over while fast-forwarding to the window.
            `until` is inclusive. Naive datetimes (anchor, window, until) are
            read in the default timezone.

            When the fast-forward ceiling is hit, generation resumes from the
            last stepped period; max_instances still bounds what follows.
        """
        anchor_start = dt_coerce(anchor_start)
        range_start = dt_coerce(range_start)
        range_end = dt_coerce(range_end)
        rule = RecurrenceEngine._localized_rule(rule)

        if range_start >= range_end:
            const.LOGGER.debug(
                "RecurrenceEngine: Empty window %s..%s, nothing to generate",
                range_start,
                range_end,
            )
            return []

        interval = RecurrenceEngine._effective_interval(rule)
        duration = timedelta(minutes=event_duration_minutes)
        instances: list[RecurringEventInstance] = []
        emitted = 0
        period = 0

        # Fast-forward by stepping (no closed-form jump) until the window
        skipped = 0
        while skipped < const.MAX_FAST_FORWARD_ITERATIONS:
            candidates = RecurrenceEngine._period_candidates(
                rule, anchor_start, period, interval
            )
            if candidates[-1] >= range_start:
                break
            if rule.until is not None and candidates[0] > rule.until:
                return []
            if rule.count is not None:
                emitted += sum(
                    1
                    for candidate in candidates
                    if RecurrenceEngine._is_emittable(rule, candidate, anchor_start)
                )
                if emitted >= rule.count:
                    return []
            period += 1
            skipped += 1
        else:
            const.LOGGER.warning(
                "RecurrenceEngine: Fast-forward ceiling (%s) reached before %s, "
                "resuming at step %s",
                const.MAX_FAST_FORWARD_ITERATIONS,
                range_start,
                period,
            )

        steps = 0
        finished = False
        while steps < max_instances and not finished:
            candidates = RecurrenceEngine._period_candidates(
                rule, anchor_start, period, interval
            )
            if candidates[0] >= range_end:
                break

            for candidate in candidates:
                if candidate < anchor_start:
                    continue
                if candidate >= range_end or (
                    rule.until is not None and candidate > rule.until
                ):
                    finished = True
                    break
                if not RecurrenceEngine.matches_rule(rule, candidate, anchor_start):
                    continue
                if rule.count is not None and emitted >= rule.count:
                    finished = True
                    break
                emitted += 1
                if candidate >= range_start:
                    instances.append(
                        RecurringEventInstance(
                            start_date=candidate,
                            end_date=candidate + duration,
                            original_start_date=anchor_start,
                            occurrence_date=candidate,
                        )
                    )

            period += 1
            steps += 1

        if steps >= max_instances and not finished:
            const.LOGGER.warning(
                "RecurrenceEngine: max_instances (%s) reached before window end %s",
                max_instances,
                range_end,
            )

        const.LOGGER.debug(
            "RecurrenceEngine: Generated %s instance(s) for %s rule in %s..%s",
            len(instances),
            rule.frequency,
            range_start,
            range_end,
        )
        return instances

    # =========================================================================
    # Matching
    # =========================================================================

    @staticmethod
    def matches_rule(
        rule: RecurrenceRule, candidate: datetime, anchor_start: datetime
    ) -> bool:
        """Check whether a candidate date is an occurrence of the rule.

        A candidate matches when its distance from the anchor is an exact
        multiple of the interval (elapsed days/weeks by division, months/years
        calendar-aware) and it satisfies every by-rule that is present.
        """
        candidate = dt_coerce(candidate)
        anchor_start = dt_coerce(anchor_start)
        if not RecurrenceEngine._is_valid_interval(rule, candidate, anchor_start):
            return False

        if rule.by_week_day and weekday_token(candidate) not in rule.by_week_day:
            return False

        if rule.by_month_day and candidate.day not in rule.by_month_day:
            return False

        if rule.by_set_pos:
            return RecurrenceEngine._matches_set_pos(rule, candidate)

        return True

    @staticmethod
    def set_pos_dates(rule: RecurrenceRule, month_reference: datetime) -> list[datetime]:
        """Return the dates of a month selected by by_set_pos, ascending.

        Every date of the month matching by_week_day is enumerated in order;
        position k > 0 picks the k-th, k < 0 the k-th from the end. Positions
        outside the month are ignored.
        """
        occurrences = [
            day
            for day in month_days(month_reference)
            if weekday_token(day) in rule.by_week_day
        ]
        selected: set[datetime] = set()
        for pos in rule.by_set_pos:
            index = pos - 1 if pos > 0 else len(occurrences) + pos
            if pos != 0 and 0 <= index < len(occurrences):
                selected.add(occurrences[index])
        return sorted(selected)

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def validate_rule(rule: RecurrenceRule) -> RuleValidationResult:
        """Validate a rule without side effects.

        Every broken invariant is reported as its own message; nothing is
        raised. Callers decide whether to block persistence.

        Returns:
            RuleValidationResult with valid == (no errors).
        """
        errors: list[str] = []

        if not rule.frequency:
            errors.append(const.ERROR_FREQUENCY_REQUIRED)
        elif rule.frequency not in const.SUPPORTED_FREQUENCIES:
            errors.append(
                const.ERROR_FREQUENCY_UNSUPPORTED.format(frequency=rule.frequency)
            )

        if (
            not isinstance(rule.interval, int)
            or not const.MIN_INTERVAL <= rule.interval <= const.MAX_INTERVAL
        ):
            errors.append(const.ERROR_INTERVAL_RANGE)

        if rule.count is not None and rule.count < 1:
            errors.append(const.ERROR_COUNT_POSITIVE)

        if rule.count is not None and rule.until is not None:
            errors.append(const.ERROR_COUNT_AND_UNTIL)

        if rule.frequency == const.FREQUENCY_WEEKLY and rule.by_month_day:
            errors.append(const.ERROR_WEEKLY_BY_MONTH_DAY)

        if rule.frequency == const.FREQUENCY_DAILY and (
            rule.by_week_day or rule.by_month_day
        ):
            errors.append(const.ERROR_DAILY_BY_RULES)

        errors.extend(
            const.ERROR_INVALID_MONTH_DAY.format(day=day)
            for day in rule.by_month_day
            if not const.MIN_MONTH_DAY <= day <= const.MAX_MONTH_DAY
        )
        errors.extend(
            const.ERROR_INVALID_WEEKDAY.format(day=token)
            for token in rule.by_week_day
            if token not in const.WEEKDAY_INDEX
        )
        errors.extend(
            const.ERROR_INVALID_SET_POS.format(pos=pos)
            for pos in rule.by_set_pos
            if pos == 0 or abs(pos) > const.MAX_MONTH_DAY
        )

        if rule.by_set_pos and not rule.by_week_day:
            errors.append(const.ERROR_SET_POS_REQUIRES_WEEKDAY)

        return RuleValidationResult(valid=not errors, errors=tuple(errors))

    # =========================================================================
    # Rendering
    # =========================================================================

    @staticmethod
    def rule_to_string(rule: RecurrenceRule, locale: str = const.DEFAULT_LOCALE) -> str:
        """Render a human-readable description of a rule.

        Locale changes wording only. Unknown locales fall back to English.

        Example:
            "Weekly on Monday, Wednesday, for 10 occurrences"
        """
        if locale not in const.RULE_TEXT:
            const.LOGGER.debug(
                "RecurrenceEngine: Unknown locale %s, using %s",
                locale,
                const.DEFAULT_LOCALE,
            )
            locale = const.DEFAULT_LOCALE

        texts = const.RULE_TEXT[locale]
        day_names = const.WEEKDAY_NAMES[locale]
        interval = rule.interval or 1

        plurality = "one" if interval == 1 else "many"
        template = texts.get(f"{(rule.frequency or '').lower()}_{plurality}", "")
        description = template.format(interval=interval)

        if rule.by_week_day:
            days = ", ".join(day_names.get(day, day) for day in rule.by_week_day)
            if rule.by_set_pos:
                position_names = const.SET_POSITION_NAMES[locale]
                positions = texts["or"].join(
                    position_names.get(pos, f"#{pos}") for pos in rule.by_set_pos
                )
                description += texts["on_set_pos"].format(
                    positions=positions, days=days
                )
            else:
                description += texts["on_days"].format(days=days)

        if rule.by_month_day:
            description += texts["on_month_days"].format(
                days=", ".join(str(day) for day in rule.by_month_day)
            )

        if rule.count:
            description += texts["count"].format(count=rule.count)
        elif rule.until:
            description += texts["until"].format(
                until=rule.until.strftime(texts["until_format"])
            )

        return description

    @staticmethod
    def to_rrule_string(rule: RecurrenceRule) -> str:
        """Generate an RFC 5545 RRULE string for iCalendar export.

        Returns:
            RRULE string (e.g., "FREQ=MONTHLY;INTERVAL=1;BYDAY=MO;BYSETPOS=-1")
            or empty string for frequencies without a standard representation.
        """
        if rule.frequency not in const.SUPPORTED_FREQUENCIES:
            return ""

        parts = [f"FREQ={rule.frequency}", f"INTERVAL={rule.interval or 1}"]
        if rule.by_week_day:
            ordered = sorted(
                rule.by_week_day,
                key=lambda day: const.WEEKDAY_INDEX.get(day, len(const.WEEKDAY_INDEX)),
            )
            parts.append(f"BYDAY={','.join(ordered)}")
        if rule.by_month_day:
            parts.append(f"BYMONTHDAY={_join_ints(rule.by_month_day)}")
        if rule.by_set_pos:
            parts.append(f"BYSETPOS={_join_ints(rule.by_set_pos)}")
        if rule.count is not None:
            parts.append(f"COUNT={rule.count}")
        elif rule.until is not None:
            parts.append(f"UNTIL={as_utc(rule.until).strftime('%Y%m%dT%H%M%SZ')}")
        return ";".join(parts)

    # =========================================================================
    # Private: candidate periods
    # =========================================================================

    @staticmethod
    def _localized_rule(rule: RecurrenceRule) -> RecurrenceRule:
        """Return the rule with a timezone-aware `until`.

        An `until` that is not a date at all is dropped with a debug log.
        """
        if rule.until is None or (
            isinstance(rule.until, datetime) and rule.until.tzinfo is not None
        ):
            return rule
        until = dt_parse(rule.until)
        if until is None:
            const.LOGGER.debug(
                "RecurrenceEngine: Ignoring unparsable until %r", rule.until
            )
        return replace(rule, until=until)

    @staticmethod
    def _effective_interval(rule: RecurrenceRule) -> int:
        """Interval used for stepping; invalid values are coerced to 1."""
        interval = rule.interval
        if not isinstance(interval, int) or interval < const.MIN_INTERVAL:
            return 1
        return interval

    @staticmethod
    def _expands_periods(rule: RecurrenceRule) -> bool:
        """Check if periods are expanded day by day instead of single steps."""
        return rule.frequency in RecurrenceEngine.EXPANDABLE_FREQUENCIES and bool(
            rule.by_week_day or rule.by_month_day
        )

    @staticmethod
    def _period_candidates(
        rule: RecurrenceRule, anchor_start: datetime, period: int, interval: int
    ) -> list[datetime]:
        """Return the ascending candidates of the period-th step (never empty).

        Plain rules yield the single stepped date. Expanded rules yield every
        day of the stepped week block, month or year at the anchor's time.
        """
        units = period * interval

        if not RecurrenceEngine._expands_periods(rule):
            return [add_frequency_units(anchor_start, rule.frequency, units)]

        if rule.frequency == const.FREQUENCY_WEEKLY:
            block_start = add_frequency_units(anchor_start, rule.frequency, units)
            return [add_days(block_start, offset) for offset in range(const.DAYS_PER_WEEK)]

        if rule.frequency == const.FREQUENCY_MONTHLY:
            month_start = add_frequency_units(
                anchor_start.replace(day=1), rule.frequency, units
            )
            return month_days(month_start)

        year_start = anchor_start.replace(year=anchor_start.year + units, month=1, day=1)
        days: list[datetime] = []
        for month in range(1, const.MONTHS_PER_YEAR + 1):
            days.extend(month_days(year_start.replace(month=month)))
        return days

    @staticmethod
    def _is_emittable(
        rule: RecurrenceRule, candidate: datetime, anchor_start: datetime
    ) -> bool:
        """Check if a stepped-over candidate counts toward rule.count."""
        if candidate < anchor_start:
            return False
        if rule.until is not None and candidate > rule.until:
            return False
        return RecurrenceEngine.matches_rule(rule, candidate, anchor_start)

    @staticmethod
    def _is_valid_interval(
        rule: RecurrenceRule, candidate: datetime, anchor_start: datetime
    ) -> bool:
        """Check the interval distance between candidate and anchor."""
        interval = RecurrenceEngine._effective_interval(rule)

        if rule.frequency == const.FREQUENCY_DAILY:
            distance = elapsed_days(anchor_start, candidate)
        elif rule.frequency == const.FREQUENCY_WEEKLY:
            distance = elapsed_weeks(anchor_start, candidate)
        elif rule.frequency == const.FREQUENCY_MONTHLY:
            distance = elapsed_months(anchor_start, candidate)
        elif rule.frequency == const.FREQUENCY_YEARLY:
            distance = elapsed_years(anchor_start, candidate)
        else:
            return False

        return distance >= 0 and distance % interval == 0

    @staticmethod
    def _matches_set_pos(rule: RecurrenceRule, candidate: datetime) -> bool:
        """Check if the candidate is one of the month's selected positions."""
        if not rule.by_set_pos or not rule.by_week_day:
            return True
        return any(
            selected.day == candidate.day
            for selected in RecurrenceEngine.set_pos_dates(rule, candidate)
        )


def _join_ints(values: Iterable[int]) -> str:
    """Join integers with commas for RRULE parts."""
    return ",".join(str(value) for value in values)
