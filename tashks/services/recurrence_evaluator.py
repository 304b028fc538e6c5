"""Due-ness evaluation for clock-driven recurring tasks."""

from datetime import datetime
from typing import Optional

from dateutil.rrule import rrulestr

from tashks.models.task import Task, RecurrenceTrigger
from tashks.services.date_arithmetic import (
    ensure_utc,
    parse_iso_date,
    parse_iso_timestamp,
    utc_midnight,
)
from tashks.utils.errors import RecurrenceParseError
from tashks.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


def _naive_utc(value: datetime) -> datetime:
    return ensure_utc(value).replace(tzinfo=None)


def _next_occurrence_after(rule, watermark: datetime) -> Optional[datetime]:
    # Rules are seeded with a naive UTC anchor; a DTSTART/UNTIL carried inside
    # the rule string itself may make the rule timezone-aware instead.
    try:
        occurrence = rule.after(_naive_utc(watermark), inc=False)
    except TypeError:
        occurrence = rule.after(ensure_utc(watermark), inc=False)
    return ensure_utc(occurrence) if occurrence is not None else None


def _build_rule(recurrence: str, anchor: datetime):
    try:
        return rrulestr(recurrence, dtstart=_naive_utc(anchor), forceset=False)
    except ValueError:
        # UNTIL given in UTC requires a timezone-aware DTSTART
        return rrulestr(recurrence, dtstart=anchor, forceset=False)


def next_clock_occurrence(task: Task) -> Optional[datetime]:
    """
    First occurrence of the task's rule strictly after its watermark.

    The rule is anchored at the task's ``created`` date (UTC midnight). The
    watermark is ``recurrence_last_generated``, or the anchor when the lineage
    has never generated. Returns None for a non-recurring task or an
    exhausted rule (COUNT/UNTIL reached).
    """
    if task.recurrence is None:
        return None

    anchor = utc_midnight(parse_iso_date(task.created, "task created date"))
    watermark = (
        anchor
        if task.recurrence_last_generated is None
        else parse_iso_timestamp(task.recurrence_last_generated, "recurrence_last_generated")
    )

    try:
        rule = _build_rule(task.recurrence, anchor)
        return _next_occurrence_after(rule, watermark)
    except (ValueError, TypeError, KeyError, IndexError, AttributeError) as e:
        raise RecurrenceParseError(
            f"Failed to parse recurrence for {task.id}: {e}",
            task_id=task.id
        ) from e


def is_clock_recurrence_due(task: Task, now: datetime) -> bool:
    """True when a clock-driven task's next occurrence is at or before ``now``."""
    if task.recurrence is None or task.recurrence_trigger != RecurrenceTrigger.CLOCK.value:
        return False

    next_occurrence = next_clock_occurrence(task)
    due = next_occurrence is not None and next_occurrence <= ensure_utc(now)

    logger.debug(
        "Evaluated clock recurrence",
        task_id=task.id,
        recurrence=task.recurrence,
        watermark=task.recurrence_last_generated,
        next_occurrence=next_occurrence.isoformat() if next_occurrence else None,
        due=due
    )
    return due
