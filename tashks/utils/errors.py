"""Error handling utilities."""

from typing import Optional


class TashksError(Exception):
    """Base exception for the tashks engine."""
    pass


class InvalidDate(TashksError):
    """A calendar date or timestamp could not be parsed."""
    pass


class UnsupportedRecurrence(TashksError):
    """Recurrence rule cannot be expressed as a fixed frequency/interval step."""
    pass


class RecurrenceParseError(TashksError):
    """Recurrence rule could not be parsed for due-ness evaluation."""

    def __init__(self, message: str, task_id: Optional[str] = None):
        super().__init__(message)
        self.task_id = task_id


class NotRecurring(TashksError):
    """Next-instance generation was requested for a non-recurring task."""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} is not recurring")
        self.task_id = task_id


class HookError(TashksError):
    """Base for hook pipeline failures."""

    def __init__(self, message: str, hook_path: Optional[str] = None):
        super().__init__(message)
        self.hook_path = hook_path


class HookExecutionFailure(HookError):
    """Hook process could not be spawned, exited non-zero, or was killed."""
    pass


class HookContractViolation(HookError):
    """An on-modify hook changed the identity of the task."""
    pass


class HookOutputInvalid(HookError):
    """Hook stdout is not a well-formed task record."""
    pass


class TaskNotFound(TashksError):
    """Task id is not present in the store."""

    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class StoreError(TashksError):
    """Task store read/write error."""
    pass


class TemplateError(TashksError):
    """Template instantiation error."""
    pass
