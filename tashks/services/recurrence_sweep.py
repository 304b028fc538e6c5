"""Due-recurrence sweep for clock-driven tasks.

Run by an external trigger (cron handler) with an explicit ``now``. Each
generation advances the lineage's watermark to ``now`` on both the new
instance and the rewritten current instance, so a second sweep with the same
``now`` finds nothing due. Callers must not run two sweeps against the same
store concurrently.
"""

from datetime import datetime

from tashks.models.recurrence import SweepResult
from tashks.models.task import Task, RecurrenceTrigger
from tashks.services.instance_generator import build_clock_instance
from tashks.services.recurrence_evaluator import is_clock_recurrence_due
from tashks.services.strategy_resolver import resolve_strategy
from tashks.services.task_store import TaskStore
from tashks.utils.config import SWEEP_POLICY_ABORT, SWEEP_POLICY_SKIP, SWEEP_POLICIES
from tashks.utils.errors import TashksError
from tashks.utils.logging import correlation_context, get_structured_logger, log_timing

logger = get_structured_logger(__name__)


def is_sweep_candidate(task: Task) -> bool:
    return (
        task.recurrence is not None
        and task.recurrence_trigger == RecurrenceTrigger.CLOCK.value
        and not task.is_terminal
    )


def generate_and_persist(store: TaskStore, task: Task, now: datetime) -> tuple[Task, bool]:
    """Generate the next instance of ``task``, persist both records, return (new, replaced)."""
    next_task = build_clock_instance(task, now)
    resolution = resolve_strategy(task, next_task)

    # New instance first: a failure before the current one is rewritten leaves
    # the lineage due again rather than without an open instance
    store.save(next_task)
    if resolution.updated_current is not None:
        store.save(resolution.updated_current)

    return next_task, resolution.should_replace_current


def generate_next_recurrence(store: TaskStore, task_id: str, now: datetime) -> Task:
    """Generate the next instance of one recurring task on demand, regardless of due-ness."""
    with correlation_context(prefix="generate"):
        existing = store.load(task_id)
        next_task, replaced = generate_and_persist(store, existing, now)
        logger.info(
            "Generated next recurrence",
            task_id=task_id,
            next_task_id=next_task.id,
            replaced=replaced
        )
        return next_task


def process_due_recurrences(
    store: TaskStore,
    now: datetime,
    failure_policy: str = SWEEP_POLICY_ABORT,
) -> SweepResult:
    """
    Generate the next instance of every clock-driven task that is due at ``now``.

    With the ``abort`` policy the first failing task (bad rule, bad date)
    propagates and stops the sweep; instances already generated for earlier
    tasks stay persisted, and an unreadable store record aborts before any
    generation. With ``skip`` the failing task (or unreadable record) is
    logged, listed in ``failed``, and the sweep moves on.
    """
    if failure_policy not in SWEEP_POLICIES:
        raise ValueError(f"Unknown sweep failure policy: {failure_policy!r}")

    result = SweepResult()

    with correlation_context(prefix="sweep"), log_timing("process_due_recurrences", logger=logger):
        if failure_policy == SWEEP_POLICY_SKIP:
            tasks, unreadable = store.load_all_readable()
            result.failed.extend(unreadable)
        else:
            tasks = store.load_all()

        candidates = [task for task in tasks if is_sweep_candidate(task)]
        logger.info(
            "Starting recurrence sweep",
            now=now.isoformat(),
            candidate_count=len(candidates),
            failure_policy=failure_policy
        )

        for task in candidates:
            try:
                if not is_clock_recurrence_due(task, now):
                    continue
                next_task, replaced = generate_and_persist(store, task, now)
            except TashksError as e:
                if failure_policy != SWEEP_POLICY_SKIP:
                    logger.error("Recurrence sweep aborted", task_id=task.id, error=str(e))
                    raise
                logger.warning("Skipping task in recurrence sweep", task_id=task.id, error=str(e))
                result.failed.append(task.id)
                continue

            result.created.append(next_task)
            if replaced:
                result.replaced.append(task.id)

        logger.info(
            "Recurrence sweep finished",
            created_count=len(result.created),
            replaced_count=len(result.replaced),
            failed_count=len(result.failed)
        )

    return result
