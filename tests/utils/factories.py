"""Test data factories using Faker."""

from faker import Faker
from typing import Any

from tashks.models.task import Task

fake = Faker()


def create_task_data(**overrides: Any) -> dict:
    """Create test task data."""
    data = {
        "id": f"{fake.slug()}-{fake.lexify(text='??????').lower()}",
        "title": fake.sentence(nb_words=4).rstrip("."),
        "description": fake.text(max_nb_chars=120),
        "status": "active",
        "area": fake.random_element(elements=("personal", "work", "health")),
        "tags": fake.words(nb=2, unique=True),
        "created": "2026-02-01",
        "updated": "2026-02-01",
        "urgency": "medium",
        "energy": "low",
    }
    data.update(overrides)
    return data


def make_task(**overrides: Any) -> Task:
    return Task.model_validate(create_task_data(**overrides))


def make_clock_task(recurrence: str = "FREQ=DAILY", **overrides: Any) -> Task:
    """Clock-driven recurring task."""
    return make_task(recurrence=recurrence, recurrence_trigger="clock", **overrides)


def make_completion_task(recurrence: str = "FREQ=WEEKLY;INTERVAL=2", **overrides: Any) -> Task:
    """Completion-driven recurring task."""
    return make_task(recurrence=recurrence, recurrence_trigger="completion", **overrides)


def make_template(**overrides: Any) -> Task:
    defaults = {
        "is_template": True,
        "status": "backlog",
        "subtasks": [{"text": fake.sentence(nb_words=3), "done": True}, {"text": "Check in", "done": False}],
        "blocked_by": ["some-blocker-abc123"],
        "due": "2026-03-10",
    }
    defaults.update(overrides)
    return make_task(**defaults)
