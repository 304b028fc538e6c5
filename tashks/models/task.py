"""Task models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Statuses the engine gives meaning to. Other status strings are stored as-is."""
    ACTIVE = "active"
    BACKLOG = "backlog"
    BLOCKED = "blocked"
    DONE = "done"
    DROPPED = "dropped"


TERMINAL_STATUSES = frozenset({TaskStatus.DONE.value, TaskStatus.DROPPED.value})


class RecurrenceTrigger(str, Enum):
    """What spawns the next instance of a recurring task."""
    CLOCK = "clock"
    COMPLETION = "completion"


class RecurrenceStrategy(str, Enum):
    """What happens to the current instance when a new one is generated."""
    REPLACE = "replace"
    ACCUMULATE = "accumulate"


class Subtask(BaseModel):
    text: str
    done: bool = False


class Comment(BaseModel):
    text: str
    author: str = ""
    created: str = Field(..., description="ISO date (YYYY-MM-DD)")


class Task(BaseModel):
    """Task record as persisted by the store and exchanged with hooks."""
    id: str = Field(..., description="Opaque, globally unique task ID")
    title: str = Field(..., description="Task title")
    description: str = ""
    status: str = Field(default=TaskStatus.ACTIVE.value, description="active, backlog, blocked, done, dropped, ...")
    area: str = "personal"
    projects: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    created: str = Field(..., description="ISO date (YYYY-MM-DD)")
    updated: str = Field(..., description="ISO date (YYYY-MM-DD)")
    urgency: str = "medium"
    energy: str = "medium"
    due: Optional[str] = Field(None, description="ISO date")
    context: str = ""
    subtasks: list[Subtask] = Field(default_factory=list)
    blocked_by: list[str] = Field(default_factory=list)
    estimated_minutes: Optional[float] = None
    actual_minutes: Optional[float] = None
    completed_at: Optional[str] = Field(None, description="ISO timestamp")
    last_surfaced: Optional[str] = None
    defer_until: Optional[str] = Field(None, description="ISO date; hidden from ready views until then")
    nudge_count: int = 0
    recurrence: Optional[str] = Field(None, description="Recurrence rule (RRULE syntax)")
    recurrence_trigger: str = Field(default=RecurrenceTrigger.CLOCK.value, description="clock or completion")
    recurrence_strategy: str = Field(default=RecurrenceStrategy.REPLACE.value, description="replace or accumulate")
    recurrence_last_generated: Optional[str] = Field(
        None,
        description="Watermark: timestamp of the last occurrence this lineage produced"
    )
    related: list[str] = Field(default_factory=list)
    is_template: bool = False
    from_template: Optional[str] = None
    priority: Optional[float] = None
    type: str = "task"
    assignee: Optional[str] = None
    parent: Optional[str] = None
    close_reason: Optional[str] = None
    comments: list[Comment] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    def to_payload(self) -> dict:
        """JSON-compatible dict, as written to the store and to hook stdin."""
        return self.model_dump(mode="json")


class TaskCreateInput(BaseModel):
    """Input for creating a task; everything except the title has a default."""
    title: str
    description: str = ""
    status: str = TaskStatus.ACTIVE.value
    area: str = "personal"
    projects: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    created: Optional[str] = Field(None, description="Defaults to today")
    updated: Optional[str] = Field(None, description="Defaults to today")
    urgency: str = "medium"
    energy: str = "medium"
    due: Optional[str] = None
    context: str = ""
    subtasks: list[Subtask] = Field(default_factory=list)
    blocked_by: list[str] = Field(default_factory=list)
    estimated_minutes: Optional[float] = None
    actual_minutes: Optional[float] = None
    completed_at: Optional[str] = None
    last_surfaced: Optional[str] = None
    defer_until: Optional[str] = None
    nudge_count: int = 0
    recurrence: Optional[str] = None
    recurrence_trigger: str = RecurrenceTrigger.CLOCK.value
    recurrence_strategy: str = RecurrenceStrategy.REPLACE.value
    recurrence_last_generated: Optional[str] = None
    related: list[str] = Field(default_factory=list)
    is_template: bool = False
    from_template: Optional[str] = None
    priority: Optional[float] = None
    type: str = "task"
    assignee: Optional[str] = None
    parent: Optional[str] = None
    close_reason: Optional[str] = None
    comments: list[Comment] = Field(default_factory=list)


class TaskPatch(BaseModel):
    """Partial update. Only fields that were explicitly supplied are applied."""
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    area: Optional[str] = None
    projects: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    created: Optional[str] = None
    updated: Optional[str] = None
    urgency: Optional[str] = None
    energy: Optional[str] = None
    due: Optional[str] = None
    context: Optional[str] = None
    subtasks: Optional[list[Subtask]] = None
    blocked_by: Optional[list[str]] = None
    estimated_minutes: Optional[float] = None
    actual_minutes: Optional[float] = None
    completed_at: Optional[str] = None
    last_surfaced: Optional[str] = None
    defer_until: Optional[str] = None
    nudge_count: Optional[int] = None
    recurrence: Optional[str] = None
    recurrence_trigger: Optional[str] = None
    recurrence_strategy: Optional[str] = None
    recurrence_last_generated: Optional[str] = None
    related: Optional[list[str]] = None
    is_template: Optional[bool] = None
    from_template: Optional[str] = None
    priority: Optional[float] = None
    type: Optional[str] = None
    assignee: Optional[str] = None
    parent: Optional[str] = None
    close_reason: Optional[str] = None
    comments: Optional[list[Comment]] = None

    def supplied_fields(self) -> dict:
        """Fields the caller set explicitly (an explicit None clears a nullable field)."""
        return self.model_dump(exclude_unset=True)
