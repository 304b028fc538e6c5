"""Decides what happens to the current instance when a new one is generated."""

from tashks.models.recurrence import StrategyResolution
from tashks.models.task import Task, TaskStatus, RecurrenceStrategy
from tashks.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


def resolve_strategy(existing_task: Task, next_task: Task) -> StrategyResolution:
    """
    Resolve replace vs accumulate for ``existing_task``.

    - replace, current not terminal: current is dropped and its watermark
      advanced to the new instance's.
    - accumulate: current keeps its status; ``updated`` and the watermark
      advance so later sweeps do not see it as due again.
    - anything else: current is left untouched.
    """
    watermark = next_task.recurrence_last_generated
    updated = next_task.created
    strategy = existing_task.recurrence_strategy

    if strategy == RecurrenceStrategy.REPLACE.value and not existing_task.is_terminal:
        updated_current = Task.model_validate({
            **existing_task.model_dump(),
            "status": TaskStatus.DROPPED.value,
            "updated": updated,
            "recurrence_last_generated": watermark,
        })
        logger.info(
            "Replacing current instance",
            task_id=existing_task.id,
            next_task_id=next_task.id
        )
        return StrategyResolution(updated_current=updated_current, should_replace_current=True)

    if strategy == RecurrenceStrategy.ACCUMULATE.value:
        updated_current = Task.model_validate({
            **existing_task.model_dump(),
            "updated": updated,
            "recurrence_last_generated": watermark,
        })
        logger.info(
            "Accumulating alongside current instance",
            task_id=existing_task.id,
            next_task_id=next_task.id,
            status=existing_task.status
        )
        return StrategyResolution(updated_current=updated_current, should_replace_current=False)

    logger.debug(
        "Current instance left unchanged",
        task_id=existing_task.id,
        strategy=strategy,
        status=existing_task.status
    )
    return StrategyResolution()
