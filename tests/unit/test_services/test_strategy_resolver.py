"""Tests for replace/accumulate strategy resolution."""

import pytest

from tashks.services.instance_generator import build_clock_instance
from tashks.services.strategy_resolver import resolve_strategy
from tests.utils.factories import make_clock_task


@pytest.mark.unit
def test_replace_drops_open_current(now):
    current = make_clock_task("FREQ=DAILY", recurrence_strategy="replace", status="active")
    next_task = build_clock_instance(current, now)

    resolution = resolve_strategy(current, next_task)

    assert resolution.should_replace_current is True
    assert resolution.updated_current.id == current.id
    assert resolution.updated_current.status == "dropped"
    assert resolution.updated_current.updated == next_task.created
    assert resolution.updated_current.recurrence_last_generated == next_task.recurrence_last_generated


@pytest.mark.unit
@pytest.mark.parametrize("status", ["done", "dropped"])
def test_replace_leaves_terminal_current(now, status):
    current = make_clock_task("FREQ=DAILY", recurrence_strategy="replace", status=status)
    next_task = build_clock_instance(current, now)

    resolution = resolve_strategy(current, next_task)

    assert resolution.should_replace_current is False
    assert resolution.updated_current is None


@pytest.mark.unit
def test_accumulate_keeps_current_open(now):
    current = make_clock_task("FREQ=DAILY", recurrence_strategy="accumulate", status="blocked")
    next_task = build_clock_instance(current, now)

    resolution = resolve_strategy(current, next_task)

    assert resolution.should_replace_current is False
    assert resolution.updated_current.status == "blocked"
    assert resolution.updated_current.updated == next_task.created
    assert resolution.updated_current.recurrence_last_generated == "2026-03-01T09:00:00Z"


@pytest.mark.unit
def test_unknown_strategy_leaves_current(now):
    current = make_clock_task("FREQ=DAILY", recurrence_strategy="merge")
    next_task = build_clock_instance(current, now)

    resolution = resolve_strategy(current, next_task)

    assert resolution.updated_current is None
    assert resolution.should_replace_current is False
