"""Exception Manager for recurring series.

Layers per-date overrides (MODIFIED / DELETED) on top of a RecurrentEvent
without touching its rule. Every operation takes a series value and returns
a NEW value inside an ExceptionOperationResult envelope; inputs are never
mutated.

Exceptions are matched by calendar day (dt_utils.day_key), not by instant.
A series holds at most one exception per day: a later write replaces the
earlier one in place, keeping its position in the insertion order.

ERROR POLICY: operations catch every error at their boundary, log it and
return success=False with the cause in the message. Nothing is raised to
the caller.

Bulk operations are best-effort: each date is applied independently and a
failure never rolls back earlier successes. The per-date outcome is reported
in `items` and in the human-readable message.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..schemas import event_patch_from_dict
from ..type_defs import (
    BulkItemResult,
    CalendarEvent,
    ExceptionApplicability,
    ExceptionOperationResult,
    ExceptionSummary,
    RecurrenceException,
)
from ..utils.dt_utils import (
    day_key,
    dt_coerce,
    dt_format_date,
    dt_now_utc,
    dt_parse_date,
)
from .recurrence_engine import RecurrenceEngine

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from ..type_defs import (
        BulkModification,
        EventPatch,
        RecurrentEvent,
        RecurringEventInstance,
    )

DateInput = datetime | date | str


class RecurrenceExceptionManager:
    """Stateless operations over a series' exception set.

    All methods are static - no instance state.
    """

    # =========================================================================
    # Single-date operations
    # =========================================================================

    @staticmethod
    def modify_instance(
        event: RecurrentEvent, original_date: DateInput, modifications: EventPatch
    ) -> ExceptionOperationResult:
        """Upsert a MODIFIED exception for the day of `original_date`.

        Args:
            event: Series root.
            original_date: Day the instance would occur without the override.
            modifications: Partial event patch merged over the instance.

        Returns:
            Envelope with updated_event on success.
        """
        try:
            occurrence = _resolve_occurrence(event, original_date)
            patch = event_patch_from_dict(modifications)
            exception = RecurrenceException(
                id=_exception_id(event, occurrence),
                original_date=occurrence,
                type=const.EXCEPTION_TYPE_MODIFIED,
                created_at=dt_now_utc(),
                modified_event=patch,
            )
            updated = _upsert_exception(event, exception)
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error(
                "ExceptionManager: Failed to modify %s on %s: %s",
                _event_id(event),
                original_date,
                err,
            )
            return ExceptionOperationResult(
                success=False, message=const.ERROR_MODIFY_INSTANCE.format(error=err)
            )

        const.LOGGER.debug(
            "ExceptionManager: Modified %s on %s", event.id, day_key(occurrence)
        )
        return ExceptionOperationResult(
            success=True, message=const.MSG_INSTANCE_MODIFIED, updated_event=updated
        )

    @staticmethod
    def delete_instance(
        event: RecurrentEvent, original_date: DateInput
    ) -> ExceptionOperationResult:
        """Upsert a DELETED exception for the day of `original_date`."""
        try:
            occurrence = _resolve_occurrence(event, original_date)
            exception = RecurrenceException(
                id=_exception_id(event, occurrence),
                original_date=occurrence,
                type=const.EXCEPTION_TYPE_DELETED,
                created_at=dt_now_utc(),
            )
            updated = _upsert_exception(event, exception)
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error(
                "ExceptionManager: Failed to delete %s on %s: %s",
                _event_id(event),
                original_date,
                err,
            )
            return ExceptionOperationResult(
                success=False, message=const.ERROR_DELETE_INSTANCE.format(error=err)
            )

        const.LOGGER.debug(
            "ExceptionManager: Deleted %s on %s", event.id, day_key(occurrence)
        )
        return ExceptionOperationResult(
            success=True, message=const.MSG_INSTANCE_DELETED, updated_event=updated
        )

    @staticmethod
    def remove_exception(
        event: RecurrentEvent, original_date: DateInput
    ) -> ExceptionOperationResult:
        """Restore the raw instance of a day by dropping its exception.

        Fails (success=False) when the day carries no exception.
        """
        try:
            target_day = day_key(_resolve_occurrence(event, original_date))
            remaining = tuple(
                exception
                for exception in event.exceptions
                if day_key(exception.original_date) != target_day
            )
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error(
                "ExceptionManager: Failed to remove exception of %s on %s: %s",
                _event_id(event),
                original_date,
                err,
            )
            return ExceptionOperationResult(
                success=False, message=const.ERROR_REMOVE_EXCEPTION.format(error=err)
            )

        if len(remaining) == len(event.exceptions):
            const.LOGGER.debug(
                "ExceptionManager: No exception on %s for %s", target_day, event.id
            )
            return ExceptionOperationResult(
                success=False, message=const.MSG_EXCEPTION_NOT_FOUND
            )

        return ExceptionOperationResult(
            success=True,
            message=const.MSG_EXCEPTION_REMOVED,
            updated_event=replace(event, exceptions=remaining),
        )

    @staticmethod
    def convert_to_independent_event(
        event: RecurrentEvent,
        original_date: DateInput,
        new_event_data: EventPatch | None = None,
    ) -> ExceptionOperationResult:
        """Detach one occurrence into a standalone, non-recurring event.

        The day is deleted from the series and a CalendarEvent is built with
        the series' fields and duration anchored at the occurrence. Any field
        in `new_event_data` overrides the default.

        Returns:
            Envelope with updated_event (series) and new_event (detached).
        """
        try:
            occurrence = _resolve_occurrence(event, original_date)
            overrides = event_patch_from_dict(new_event_data or {})
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error(
                "ExceptionManager: Failed to convert %s on %s: %s",
                _event_id(event),
                original_date,
                err,
            )
            return ExceptionOperationResult(
                success=False, message=const.ERROR_CONVERT_INSTANCE.format(error=err)
            )

        deleted = RecurrenceExceptionManager.delete_instance(event, occurrence)
        if not deleted.success:
            return deleted

        now = dt_now_utc()
        new_event = CalendarEvent(
            id=const.INDEPENDENT_EVENT_ID_FORMAT.format(
                event_id=event.id,
                day=dt_format_date(occurrence, const.EXCEPTION_ID_DATE_FORMAT),
            ),
            title=overrides.get(const.PATCH_TITLE) or event.title,
            start_time=overrides.get(const.PATCH_START_TIME) or occurrence,
            end_time=overrides.get(const.PATCH_END_TIME) or occurrence + event.duration,
            description=overrides.get(const.PATCH_DESCRIPTION) or event.description,
            location=overrides.get(const.PATCH_LOCATION) or event.location,
            is_recurrent=False,
            created_by=event.created_by,
            created_at=now,
            updated_at=now,
        )

        const.LOGGER.debug(
            "ExceptionManager: Detached %s from %s", new_event.id, event.id
        )
        return ExceptionOperationResult(
            success=True,
            message=const.MSG_INDEPENDENT_EVENT_CREATED,
            updated_event=deleted.updated_event,
            new_event=new_event,
        )

    # =========================================================================
    # Bulk operations (best-effort)
    # =========================================================================

    @staticmethod
    def bulk_modify_instances(
        event: RecurrentEvent, modifications: Iterable[BulkModification]
    ) -> ExceptionOperationResult:
        """Fold modify_instance() over a list of {original_date, changes}.

        A failed item is reported and skipped; earlier successes are kept.
        """
        updated = event
        items: list[BulkItemResult] = []

        try:
            for modification in modifications:
                try:
                    original_date = modification["original_date"]
                    changes = modification.get("changes") or {}
                except (KeyError, TypeError, AttributeError) as err:
                    items.append(
                        BulkItemResult(
                            original_date=modification,
                            success=False,
                            message=const.MSG_BULK_ITEM_MALFORMED.format(error=err),
                        )
                    )
                    continue

                result = RecurrenceExceptionManager.modify_instance(
                    updated, original_date, changes
                )
                if result.success and result.updated_event is not None:
                    updated = result.updated_event
                items.append(
                    BulkItemResult(
                        original_date=original_date,
                        success=result.success,
                        message=result.message,
                    )
                )
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error(
                "ExceptionManager: Bulk modification of %s aborted: %s",
                _event_id(event),
                err,
            )
            return ExceptionOperationResult(
                success=False,
                message=const.ERROR_BULK_MODIFY.format(error=err),
                updated_event=updated,
                items=tuple(items),
            )

        return _bulk_result(const.MSG_BULK_MODIFY_REPORT, updated, items)

    @staticmethod
    def bulk_delete_instances(
        event: RecurrentEvent, original_dates: Iterable[DateInput]
    ) -> ExceptionOperationResult:
        """Fold delete_instance() over a list of dates (best-effort)."""
        updated = event
        items: list[BulkItemResult] = []

        try:
            for original_date in original_dates:
                result = RecurrenceExceptionManager.delete_instance(
                    updated, original_date
                )
                if result.success and result.updated_event is not None:
                    updated = result.updated_event
                items.append(
                    BulkItemResult(
                        original_date=original_date,
                        success=result.success,
                        message=result.message,
                    )
                )
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error(
                "ExceptionManager: Bulk deletion of %s aborted: %s",
                _event_id(event),
                err,
            )
            return ExceptionOperationResult(
                success=False,
                message=const.ERROR_BULK_DELETE.format(error=err),
                updated_event=updated,
                items=tuple(items),
            )

        return _bulk_result(const.MSG_BULK_DELETE_REPORT, updated, items)

    # =========================================================================
    # Queries
    # =========================================================================

    @staticmethod
    def can_apply_exception(
        event: RecurrentEvent,
        target_date: DateInput,
        now_utc: datetime | None = None,
    ) -> ExceptionApplicability:
        """Advisory check before offering an override for a date.

        Past dates are always allowed (retroactive corrections). Dates after
        the rule's `until` are refused. Naive `now_utc` and `until` values are
        read in the default timezone.
        """
        try:
            target = _resolve_occurrence(event, target_date)
            now = dt_coerce(now_utc or dt_now_utc())
            until = event.recurrence_rule.until
            if until is not None:
                until = dt_coerce(until)
        except (TypeError, ValueError) as err:
            return ExceptionApplicability(
                can_apply=False, reason=const.REASON_INVALID_DATE.format(error=err)
            )

        if target < now:
            return ExceptionApplicability(can_apply=True, reason=const.REASON_PAST_DATE)

        if until is not None and target > until:
            return ExceptionApplicability(
                can_apply=False, reason=const.REASON_OUTSIDE_RECURRENCE
            )

        return ExceptionApplicability(can_apply=True)

    @staticmethod
    def get_exception_info(
        event: RecurrentEvent, target_date: DateInput
    ) -> RecurrenceException | None:
        """Return the exception stored for a day, or None.

        An unparsable target_date is logged and also yields None.
        """
        try:
            target_day = day_key(_resolve_occurrence(event, target_date))
        except ValueError as err:
            const.LOGGER.warning(
                "ExceptionManager: Cannot look up exception of %s on %s: %s",
                _event_id(event),
                target_date,
                err,
            )
            return None
        return next(
            (
                exception
                for exception in event.exceptions
                if day_key(exception.original_date) == target_day
            ),
            None,
        )

    @staticmethod
    def list_exceptions(event: RecurrentEvent) -> ExceptionSummary:
        """Partition the series' exceptions into modified and deleted."""
        modified = tuple(
            exception
            for exception in event.exceptions
            if exception.type == const.EXCEPTION_TYPE_MODIFIED
        )
        deleted = tuple(
            exception
            for exception in event.exceptions
            if exception.type == const.EXCEPTION_TYPE_DELETED
        )
        return ExceptionSummary(
            modified=modified, deleted=deleted, total=len(event.exceptions)
        )

    # =========================================================================
    # Maintenance
    # =========================================================================

    @staticmethod
    def cleanup_old_exceptions(
        event: RecurrentEvent,
        older_than_days: int = const.DEFAULT_EXCEPTION_RETENTION_DAYS,
        now_utc: datetime | None = None,
    ) -> ExceptionOperationResult:
        """Drop exceptions whose date is older than the retention window."""
        try:
            cutoff = dt_coerce(now_utc or dt_now_utc()) - timedelta(
                days=older_than_days
            )
            kept = tuple(
                exception
                for exception in event.exceptions
                if exception.original_date >= cutoff
            )
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error(
                "ExceptionManager: Cleanup of %s failed: %s", _event_id(event), err
            )
            return ExceptionOperationResult(
                success=False, message=const.ERROR_CLEANUP_EXCEPTIONS.format(error=err)
            )

        removed = len(event.exceptions) - len(kept)
        if removed:
            const.LOGGER.debug(
                "ExceptionManager: Removed %s exception(s) before %s from %s",
                removed,
                cutoff,
                event.id,
            )
        return ExceptionOperationResult(
            success=True,
            message=const.MSG_EXCEPTIONS_CLEANED.format(count=removed),
            updated_event=replace(event, exceptions=kept),
        )


# =============================================================================
# Reconciliation
# =============================================================================


def apply_exceptions(
    instances: Iterable[RecurringEventInstance],
    exceptions: Iterable[RecurrenceException],
) -> list[RecurringEventInstance]:
    """Turn raw instances into effective instances.

    DELETED days are dropped, MODIFIED days get their patch merged over the
    instance, every other instance passes through unchanged. Order is kept.
    When two exceptions share a day the later one wins.
    """
    by_day = {day_key(exception.original_date): exception for exception in exceptions}
    if not by_day:
        return list(instances)

    effective: list[RecurringEventInstance] = []
    for instance in instances:
        exception = by_day.get(day_key(instance.occurrence_date))
        if exception is None:
            effective.append(instance)
        elif exception.type == const.EXCEPTION_TYPE_DELETED:
            continue
        elif exception.type == const.EXCEPTION_TYPE_MODIFIED:
            effective.append(_merge_patch(instance, exception.modified_event or {}))
        else:
            const.LOGGER.warning(
                "ExceptionManager: Unknown exception type %s on %s, ignored",
                exception.type,
                day_key(exception.original_date),
            )
            effective.append(instance)
    return effective


def get_effective_instances(
    event: RecurrentEvent,
    range_start: datetime,
    range_end: datetime,
    max_instances: int = const.DEFAULT_MAX_INSTANCES,
) -> list[RecurringEventInstance]:
    """Generate a series' instances in a window and apply its exceptions.

    Pure function of (rule, exceptions, window); nothing is cached.
    """
    raw = RecurrenceEngine.generate_instances(
        event.recurrence_rule,
        event.start_time,
        range_start,
        range_end,
        event_duration_minutes=event.duration / timedelta(minutes=1),
        max_instances=max_instances,
    )
    series_fields = [
        replace(
            instance,
            title=event.title,
            description=event.description,
            location=event.location,
        )
        for instance in raw
    ]
    return apply_exceptions(series_fields, event.exceptions)


# =============================================================================
# Private helpers
# =============================================================================


def _event_id(event: Any) -> Any:
    """Series id for log lines, tolerant of malformed input."""
    return getattr(event, "id", event)


def _resolve_occurrence(event: RecurrentEvent, original_date: DateInput) -> datetime:
    """Coerce a date input to the occurrence instant.

    Plain dates (and date-only strings) take the series' wall-clock time.

    Raises:
        ValueError: If the input cannot be interpreted as a date.
    """
    if isinstance(original_date, str):
        parsed_day = dt_parse_date(original_date)
        if parsed_day is not None:
            original_date = parsed_day
    if isinstance(original_date, date) and not isinstance(original_date, datetime):
        return dt_coerce(datetime.combine(original_date, event.start_time.timetz()))
    return dt_coerce(original_date)


def _exception_id(event: RecurrentEvent, occurrence: datetime) -> str:
    """Deterministic id of the exception stored for a day."""
    return const.EXCEPTION_ID_FORMAT.format(
        event_id=event.id,
        day=dt_format_date(occurrence, const.EXCEPTION_ID_DATE_FORMAT),
    )


def _upsert_exception(
    event: RecurrentEvent, exception: RecurrenceException
) -> RecurrentEvent:
    """Insert or replace (same position) the exception of a day."""
    by_day = {day_key(existing.original_date): existing for existing in event.exceptions}
    by_day[day_key(exception.original_date)] = exception
    return replace(event, exceptions=tuple(by_day.values()))


def _merge_patch(
    instance: RecurringEventInstance, patch: EventPatch
) -> RecurringEventInstance:
    """Merge a MODIFIED patch over an instance.

    A moved start without an explicit end keeps the instance's duration.
    """
    start = patch.get(const.PATCH_START_TIME, instance.start_date)
    end = patch.get(const.PATCH_END_TIME, start + (instance.end_date - instance.start_date))
    return replace(
        instance,
        start_date=start,
        end_date=end,
        title=patch.get(const.PATCH_TITLE, instance.title),
        description=patch.get(const.PATCH_DESCRIPTION, instance.description),
        location=patch.get(const.PATCH_LOCATION, instance.location),
        exception_type=const.EXCEPTION_TYPE_MODIFIED,
    )


def _report_label(original_date: Any) -> str:
    """Date label of a bulk report line."""
    try:
        return dt_format_date(dt_coerce(original_date), const.BULK_REPORT_DATE_FORMAT)
    except (TypeError, ValueError):
        return str(original_date)


def _bulk_result(
    header: str, updated: RecurrentEvent, items: Sequence[BulkItemResult]
) -> ExceptionOperationResult:
    """Build the envelope and report of a finished bulk operation."""
    lines = [header]
    for item in items:
        label = _report_label(item.original_date)
        if item.success:
            lines.append(f"{const.BULK_REPORT_SUCCESS_MARK} {label}")
        else:
            lines.append(f"{const.BULK_REPORT_FAILURE_MARK} {label}: {item.message}")

    const.LOGGER.debug(
        "ExceptionManager: Bulk operation on %s, %s/%s succeeded",
        updated.id,
        sum(1 for item in items if item.success),
        len(items),
    )
    return ExceptionOperationResult(
        success=True,
        message="\n".join(lines),
        updated_event=updated,
        items=tuple(items),
    )
