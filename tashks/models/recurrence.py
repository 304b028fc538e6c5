"""Recurrence models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from tashks.models.task import Task


class Frequency(str, Enum):
    """Frequencies a completion-driven rule may step by."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class RecurrenceInterval(BaseModel):
    """Fixed step derived from a recurrence rule. Computed on demand, never persisted."""
    model_config = ConfigDict(frozen=True)

    frequency: Frequency
    interval: int = Field(..., ge=1, description="Positive multiplier of the frequency")


class StrategyResolution(BaseModel):
    """Fate of the current instance once a new one has been generated."""
    updated_current: Optional[Task] = Field(
        None,
        description="Rewritten current instance to persist, or None when current is left alone"
    )
    should_replace_current: bool = False


class SweepResult(BaseModel):
    """Outcome of one due-recurrence sweep."""
    created: list[Task] = Field(default_factory=list)
    replaced: list[str] = Field(default_factory=list, description="IDs of instances retired under replace")
    failed: list[str] = Field(default_factory=list, description="IDs skipped under the skip failure policy")


class CompletionResult(BaseModel):
    """A completed task and, for completion-driven recurrence, its next instance."""
    completed: Task
    next_task: Optional[Task] = None
