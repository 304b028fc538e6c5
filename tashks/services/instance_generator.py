"""Builds the next instance of a recurring task, and instances of templates."""

import re
import unicodedata
from datetime import datetime
from typing import Any, Optional

from ulid import ULID

from tashks.models.task import Task, TaskStatus, RecurrenceTrigger
from tashks.services.date_arithmetic import (
    parse_iso_timestamp,
    shift_calendar_date,
    shift_timestamp_to_calendar_date,
    to_iso_timestamp,
    utc_date_of,
)
from tashks.services.recurrence_parser import parse_completion_interval
from tashks.utils.errors import NotRecurring
from tashks.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

MAX_SLUG_LENGTH = 30
ID_SUFFIX_LENGTH = 6

# Reset on every generated instance
INSTANCE_RESET_FIELDS = {
    "status": TaskStatus.ACTIVE.value,
    "completed_at": None,
    "actual_minutes": None,
    "last_surfaced": None,
    "nudge_count": 0,
}


def slugify_title(title: str) -> str:
    normalized = unicodedata.normalize("NFKD", title.lower())
    ascii_only = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_only).strip("-")
    base = slug or "task"
    return base[:MAX_SLUG_LENGTH].rstrip("-")


def generate_task_id(title: str) -> str:
    """Generate a readable task ID: title slug plus a random ULID tail."""
    suffix = str(ULID())[-ID_SUFFIX_LENGTH:].lower()
    return f"{slugify_title(title)}-{suffix}"


def _derive(task: Task, **updates: Any) -> Task:
    """Copy a task with updates applied, re-validating the result."""
    return Task.model_validate({**task.model_dump(), **updates})


def build_completion_instance(completed_task: Task, completed_at: str) -> Optional[Task]:
    """
    Next instance of a completion-driven task, or None when there is nothing to do.

    The new instance is deferred until one interval after the completion
    instant, and its due date (if any) moves forward by one interval.
    """
    if not completed_task.is_recurring:
        return None
    if completed_task.recurrence_trigger != RecurrenceTrigger.COMPLETION.value:
        return None

    interval = parse_completion_interval(completed_task.recurrence)
    defer_until = shift_timestamp_to_calendar_date(completed_at, interval)
    due = None if completed_task.due is None else shift_calendar_date(completed_task.due, interval)
    completed_date = utc_date_of(parse_iso_timestamp(completed_at, "completed_at"))

    next_task = _derive(
        completed_task,
        **INSTANCE_RESET_FIELDS,
        id=generate_task_id(completed_task.title),
        created=completed_date,
        updated=completed_date,
        due=due,
        defer_until=defer_until,
        recurrence_last_generated=completed_at,
    )

    logger.info(
        "Built completion recurrence instance",
        task_id=completed_task.id,
        next_task_id=next_task.id,
        frequency=interval.frequency.value,
        interval=interval.interval,
        due=due,
        defer_until=defer_until
    )
    return next_task


def build_clock_instance(existing_task: Task, generated_at: datetime) -> Task:
    """Next instance of a clock-driven task, generated at ``generated_at``."""
    if not existing_task.is_recurring:
        raise NotRecurring(existing_task.id)

    generated_at_iso = to_iso_timestamp(generated_at)
    generated_date = utc_date_of(generated_at)

    next_task = _derive(
        existing_task,
        **INSTANCE_RESET_FIELDS,
        id=generate_task_id(existing_task.title),
        created=generated_date,
        updated=generated_date,
        defer_until=None,
        recurrence_last_generated=generated_at_iso,
    )

    logger.info(
        "Built clock recurrence instance",
        task_id=existing_task.id,
        next_task_id=next_task.id,
        generated_at=generated_at_iso
    )
    return next_task


def build_instance_from_template(template: Task, overrides: Optional[dict] = None) -> Task:
    """Instantiate a template task. Overrides are applied last."""
    instance = {
        **template.model_dump(),
        **INSTANCE_RESET_FIELDS,
        "id": generate_task_id(template.title),
        "status": TaskStatus.BACKLOG.value,
        "is_template": False,
        "from_template": template.id,
        "subtasks": [{**subtask.model_dump(), "done": False} for subtask in template.subtasks],
        "blocked_by": [],
        "due": None,
        "defer_until": None,
        "recurrence": None,
        "recurrence_last_generated": None,
    }
    instance.update(overrides or {})
    return Task.model_validate(instance)
