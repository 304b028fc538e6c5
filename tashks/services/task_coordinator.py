"""Task mutation coordinator.

Wraps every mutating operation with the hook pipeline and the recurrence
engine. Hooks and recurrence parsing run before the write they guard, so a
failing create/modify hook or a bad completion rule leaves the store
untouched. This is the only layer that reads the wall clock, through the
injectable ``clock``.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from tashks.models.hook import HookEvent
from tashks.models.recurrence import CompletionResult, SweepResult
from tashks.models.task import Task, TaskCreateInput, TaskPatch, TaskStatus
from tashks.services import recurrence_sweep
from tashks.services.date_arithmetic import to_iso_timestamp, utc_date_of
from tashks.services.hooks import HookPipeline
from tashks.services.instance_generator import (
    build_completion_instance,
    build_instance_from_template,
    generate_task_id,
)
from tashks.services.task_store import FileTaskStore, TaskStore
from tashks.utils.config import SWEEP_POLICY_ABORT, TashksConfig
from tashks.utils.errors import TemplateError
from tashks.utils.logging import correlation_context, get_structured_logger

logger = get_structured_logger(__name__)

# Fields a patch may not overwrite
READ_ONLY_PATCH_FIELDS = ("id", "from_template")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_task_from_input(task_input: Union[TaskCreateInput, dict], today: str) -> Task:
    """Apply create defaults and assign a fresh id."""
    if isinstance(task_input, dict):
        task_input = TaskCreateInput.model_validate(task_input)

    fields = task_input.model_dump()
    fields["created"] = fields["created"] or today
    fields["updated"] = fields["updated"] or today
    return Task.model_validate({**fields, "id": generate_task_id(task_input.title)})


def apply_task_patch(task: Task, patch: Union[TaskPatch, dict], today: str) -> Task:
    """Merge explicitly supplied patch fields; ``updated`` always becomes today."""
    if isinstance(patch, dict):
        patch = TaskPatch.model_validate(patch)

    changes = {
        key: value for key, value in patch.supplied_fields().items()
        if key not in READ_ONLY_PATCH_FIELDS
    }
    return Task.model_validate({**task.model_dump(), **changes, "updated": today})


class TaskMutationCoordinator:
    """Create, update, complete and delete tasks with hooks and recurrence applied."""

    def __init__(
        self,
        store: TaskStore,
        hooks: HookPipeline,
        clock: Callable[[], datetime] = utc_now,
        sweep_failure_policy: str = SWEEP_POLICY_ABORT,
    ):
        self.store = store
        self.hooks = hooks
        self.clock = clock
        self.sweep_failure_policy = sweep_failure_policy

    @classmethod
    def from_config(cls, config: TashksConfig) -> "TaskMutationCoordinator":
        return cls(
            store=FileTaskStore(config.data_dir),
            hooks=HookPipeline.from_config(config),
            sweep_failure_policy=config.sweep_failure_policy,
        )

    def _today(self) -> str:
        return utc_date_of(self.clock())

    def create_task(self, task_input: Union[TaskCreateInput, dict]) -> Task:
        with correlation_context(prefix="create"):
            created = create_task_from_input(task_input, self._today())
            task = self.hooks.run_create_hooks(created)
            self.store.save(task)
            logger.info("Task created", task_id=task.id, recurrence=task.recurrence)
            return task

    def update_task(self, task_id: str, patch: Union[TaskPatch, dict]) -> Task:
        with correlation_context(prefix="modify"):
            existing = self.store.load(task_id)
            updated = apply_task_patch(existing, patch, self._today())
            task = self.hooks.run_modify_hooks(existing, updated)
            self.store.save(task)
            logger.info("Task updated", task_id=task.id)
            return task

    def complete_task(self, task_id: str) -> CompletionResult:
        """
        Mark a task done and, for completion-driven recurrence, create its next instance.

        The next instance is built before anything is written, so an
        unsupported rule fails the completion as a whole.
        """
        with correlation_context(prefix="complete"):
            existing = self.store.load(task_id)
            now = self.clock()
            completed_at = to_iso_timestamp(now)

            completed = Task.model_validate({
                **existing.model_dump(),
                "status": TaskStatus.DONE.value,
                "updated": utc_date_of(now),
                "completed_at": completed_at,
            })
            next_task = build_completion_instance(completed, completed_at)

            self.store.save(completed)
            if next_task is not None:
                self.store.save(next_task)

            self.hooks.run_non_mutating_hooks(HookEvent.COMPLETE, completed)

            logger.info(
                "Task completed",
                task_id=task_id,
                completed_at=completed_at,
                next_task_id=next_task.id if next_task else None
            )
            return CompletionResult(completed=completed, next_task=next_task)

    def delete_task(self, task_id: str) -> Task:
        with correlation_context(prefix="delete"):
            existing = self.store.load(task_id)
            self.store.delete(task_id)
            self.hooks.run_non_mutating_hooks(HookEvent.DELETE, existing)
            logger.info("Task deleted", task_id=task_id)
            return existing

    def generate_next_recurrence(self, task_id: str) -> Task:
        return recurrence_sweep.generate_next_recurrence(self.store, task_id, self.clock())

    def process_due_recurrences(self, now: Optional[datetime] = None) -> SweepResult:
        return recurrence_sweep.process_due_recurrences(
            self.store,
            now if now is not None else self.clock(),
            failure_policy=self.sweep_failure_policy,
        )

    def instantiate_template(self, template_id: str, overrides: Optional[dict[str, Any]] = None) -> Task:
        with correlation_context(prefix="create"):
            template = self.store.load(template_id)
            if not template.is_template:
                raise TemplateError(f"Task {template_id} is not a template")

            instance = build_instance_from_template(template, overrides)
            task = self.hooks.run_create_hooks(instance)
            self.store.save(task)
            logger.info("Template instantiated", task_id=task.id, template_id=template_id)
            return task
