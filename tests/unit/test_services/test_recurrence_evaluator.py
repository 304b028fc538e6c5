"""Tests for clock recurrence due-ness."""

import pytest
from datetime import datetime, timedelta, timezone

from tashks.services.recurrence_evaluator import is_clock_recurrence_due, next_clock_occurrence
from tashks.utils.errors import RecurrenceParseError
from tests.utils.factories import make_clock_task, make_completion_task, make_task


@pytest.mark.unit
def test_next_occurrence_anchored_at_created():
    """Test that a fresh lineage's first occurrence is one step after its created date."""
    task = make_clock_task("FREQ=DAILY", created="2026-02-01")

    assert next_clock_occurrence(task) == datetime(2026, 2, 2, tzinfo=timezone.utc)


@pytest.mark.unit
def test_next_occurrence_after_watermark():
    task = make_clock_task(
        "FREQ=WEEKLY",
        created="2026-02-02",
        recurrence_last_generated="2026-02-10T08:00:00Z"
    )

    assert next_clock_occurrence(task) == datetime(2026, 2, 16, tzinfo=timezone.utc)


@pytest.mark.unit
def test_next_occurrence_non_recurring():
    assert next_clock_occurrence(make_task()) is None


@pytest.mark.unit
def test_due_when_occurrence_reached(now):
    task = make_clock_task("FREQ=DAILY", created="2026-02-01")

    assert is_clock_recurrence_due(task, now) is True


@pytest.mark.unit
def test_due_at_exact_occurrence():
    task = make_clock_task("FREQ=DAILY", created="2026-02-01")

    assert is_clock_recurrence_due(task, datetime(2026, 2, 2, tzinfo=timezone.utc)) is True
    assert is_clock_recurrence_due(task, datetime(2026, 2, 2, tzinfo=timezone.utc) - timedelta(seconds=1)) is False


@pytest.mark.unit
def test_not_due_after_generation_at_now(now):
    """Test that a watermark at ``now`` makes the task not due at the same instant."""
    task = make_clock_task("FREQ=DAILY", created="2026-02-01", recurrence_last_generated="2026-03-01T09:00:00Z")

    assert is_clock_recurrence_due(task, now) is False


@pytest.mark.unit
def test_complex_rules_supported_for_clock(now):
    """Test that BY* rules are evaluated in full on the clock path."""
    task = make_clock_task(
        "FREQ=WEEKLY;BYDAY=MO,TH",
        created="2026-02-01",
        recurrence_last_generated="2026-02-23T00:00:00Z"
    )

    # 2026-02-26 is a Thursday
    assert next_clock_occurrence(task) == datetime(2026, 2, 26, tzinfo=timezone.utc)
    assert is_clock_recurrence_due(task, now) is True


@pytest.mark.unit
def test_exhausted_rule_never_due(now):
    task = make_clock_task("FREQ=DAILY;COUNT=1", created="2026-02-01")

    assert next_clock_occurrence(task) is None
    assert is_clock_recurrence_due(task, now) is False


@pytest.mark.unit
def test_until_in_utc(now):
    task = make_clock_task("FREQ=DAILY;UNTIL=20260205T000000Z", created="2026-02-01")

    assert next_clock_occurrence(task) == datetime(2026, 2, 2, tzinfo=timezone.utc)

    exhausted = task.model_copy(update={"recurrence_last_generated": "2026-02-05T00:00:00Z"})
    assert is_clock_recurrence_due(exhausted, now) is False


@pytest.mark.unit
def test_completion_trigger_never_clock_due(now):
    task = make_completion_task("FREQ=DAILY", created="2026-02-01")

    assert is_clock_recurrence_due(task, now) is False


@pytest.mark.unit
def test_non_recurring_never_due(now):
    assert is_clock_recurrence_due(make_task(), now) is False


@pytest.mark.unit
def test_unparseable_rule_raises(now):
    task = make_clock_task("FREQ=FORTNIGHTLY", id="broken-rule-abc123")

    with pytest.raises(RecurrenceParseError) as exc_info:
        is_clock_recurrence_due(task, now)

    assert exc_info.value.task_id == "broken-rule-abc123"


@pytest.mark.unit
def test_naive_now_treated_as_utc():
    task = make_clock_task("FREQ=DAILY", created="2026-02-01")

    assert is_clock_recurrence_due(task, datetime(2026, 2, 2, 0, 0)) is True
