"""Lifecycle hook pipeline.

Hooks are executables in the hooks directory named ``on-<event>`` with an
optional ``.suffix`` (``on-create``, ``on-create.10-tags``, ...). For one
event they run one at a time in lexicographic filename order, so a hook can
rely on what the previous one did.

Contract per hook: JSON on stdin, ``TASHKS_EVENT`` / ``TASHKS_ID`` /
``TASHKS_DATA_DIR`` in the environment, exit status 0 for success. For
create/modify, non-empty stdout replaces the task; a failure aborts the
mutation. For complete/delete, stdout is ignored and failures are only
logged.
"""

import json
import os
import re
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from tashks.models.hook import MUTATING_EVENTS, HookEvent, HookInvocation, HookResult
from tashks.models.task import Task
from tashks.utils.config import TashksConfig
from tashks.utils.errors import (
    HookContractViolation,
    HookError,
    HookExecutionFailure,
    HookOutputInvalid,
)
from tashks.utils.logging import (
    correlation_context,
    get_structured_logger,
    log_timing,
    sanitize_hook_output,
)

logger = get_structured_logger(__name__)

ENV_EVENT = "TASHKS_EVENT"
ENV_TASK_ID = "TASHKS_ID"
ENV_DATA_DIR = "TASHKS_DATA_DIR"


def hook_name_pattern(event: HookEvent) -> re.Pattern:
    return re.compile(rf"^on-{re.escape(HookEvent(event).value)}(?:\..+)?$")


def is_hook_candidate(event: HookEvent, file_name: str) -> bool:
    return hook_name_pattern(event).match(file_name) is not None


class HookExecutor(Protocol):
    """Finds and runs hooks. Swap this out to sandbox or remote hook execution."""

    def discover(self, event: HookEvent) -> list[str]:
        ...

    def invoke(self, hook_path: str, invocation: HookInvocation) -> HookResult:
        ...


class SubprocessHookExecutor:
    """Runs hooks as local child processes, blocking until each exits."""

    def __init__(self, hooks_dir: Union[str, Path], timeout_seconds: Optional[float] = None):
        self.hooks_dir = Path(hooks_dir)
        self.timeout_seconds = timeout_seconds

    def discover(self, event: HookEvent) -> list[str]:
        """Executable regular files or symlinks matching ``on-<event>``, sorted by name."""
        try:
            entries = list(os.scandir(self.hooks_dir))
        except FileNotFoundError:
            return []
        except OSError as e:
            raise HookExecutionFailure(f"Failed to read hooks directory {self.hooks_dir}: {e}") from e

        candidates = sorted(
            (
                entry for entry in entries
                if (entry.is_file(follow_symlinks=False) or entry.is_symlink())
                and is_hook_candidate(event, entry.name)
            ),
            key=lambda entry: entry.name,
        )

        # os.access follows symlinks; a dangling link is simply not executable
        return [entry.path for entry in candidates if os.access(entry.path, os.X_OK)]

    def invoke(self, hook_path: str, invocation: HookInvocation) -> HookResult:
        try:
            completed = subprocess.run(
                [hook_path],
                input=invocation.stdin_payload.encode("utf-8"),
                capture_output=True,
                env=invocation.env,
                timeout=self.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise HookExecutionFailure(
                f"Hook {hook_path} timed out after {self.timeout_seconds}s",
                hook_path=hook_path
            ) from e
        except OSError as e:
            raise HookExecutionFailure(f"Failed to execute hook {hook_path}: {e}", hook_path=hook_path) from e

        stderr = (completed.stderr or b"").decode("utf-8", errors="replace")

        if completed.returncode != 0:
            message = stderr.strip()
            if completed.returncode < 0:
                status = f"terminated by signal {-completed.returncode}"
            else:
                status = f"exited with code {completed.returncode}"
            raise HookExecutionFailure(
                f"Hook {hook_path} failed: {message or status}",
                hook_path=hook_path
            )

        try:
            stdout = (completed.stdout or b"").decode("utf-8")
        except UnicodeDecodeError as e:
            raise HookOutputInvalid(f"Hook {hook_path} wrote non-UTF-8 output: {e}", hook_path=hook_path) from e

        return HookResult(hook_path=hook_path, stdout=stdout, stderr=stderr)


def parse_hook_task(event: HookEvent, hook_path: str, stdout: str) -> Task:
    try:
        return Task.model_validate(json.loads(stdout))
    except (json.JSONDecodeError, ValidationError) as e:
        raise HookOutputInvalid(
            f"Hook {hook_path} returned invalid task JSON for on-{HookEvent(event).value}: {e}",
            hook_path=hook_path
        ) from e


class HookPipeline:
    """Runs the hooks for each lifecycle event around a task mutation."""

    def __init__(
        self,
        executor: HookExecutor,
        data_dir: Union[str, Path],
        extra_env: Optional[Mapping[str, str]] = None,
    ):
        self.executor = executor
        self.data_dir = str(data_dir)
        self.extra_env = dict(extra_env or {})

    @classmethod
    def from_config(cls, config: TashksConfig) -> "HookPipeline":
        executor = SubprocessHookExecutor(config.hooks_dir, timeout_seconds=config.hook_timeout_seconds)
        return cls(executor, data_dir=config.data_dir)

    def build_env(self, event: HookEvent, task_id: str) -> dict[str, str]:
        return {
            **os.environ,
            **self.extra_env,
            ENV_EVENT: HookEvent(event).value,
            ENV_TASK_ID: task_id,
            ENV_DATA_DIR: self.data_dir,
        }

    def _invoke(self, event: HookEvent, hook_path: str, task_id: str, payload: object) -> HookResult:
        invocation = HookInvocation(
            event=event,
            task_id=task_id,
            stdin_payload=json.dumps(payload),
            env=self.build_env(event, task_id),
        )
        with log_timing("hook", logger=logger, hook_path=hook_path, event=HookEvent(event).value, task_id=task_id):
            result = self.executor.invoke(hook_path, invocation)

        if result.stderr:
            logger.debug(
                "Hook wrote to stderr",
                hook_path=hook_path,
                stderr=sanitize_hook_output(result.stderr)
            )
        return result

    def run_create_hooks(self, task: Task) -> Task:
        """Run on-create hooks in order; each may replace the task."""
        with correlation_context(prefix="create"):
            current = task
            for hook_path in self.executor.discover(HookEvent.CREATE):
                result = self._invoke(HookEvent.CREATE, hook_path, current.id, current.to_payload())
                if not result.has_replacement:
                    continue
                current = parse_hook_task(HookEvent.CREATE, hook_path, result.stdout)
                logger.info("on-create hook replaced task", hook_path=hook_path, task_id=current.id)
            return current

    def run_modify_hooks(self, old_task: Task, new_task: Task) -> Task:
        """Run on-modify hooks in order over the accumulated new task; the id must not change."""
        with correlation_context(prefix="modify"):
            current = new_task
            for hook_path in self.executor.discover(HookEvent.MODIFY):
                payload = {"old": old_task.to_payload(), "new": current.to_payload()}
                result = self._invoke(HookEvent.MODIFY, hook_path, current.id, payload)
                if not result.has_replacement:
                    continue

                hooked = parse_hook_task(HookEvent.MODIFY, hook_path, result.stdout)
                if hooked.id != old_task.id:
                    logger.warning(
                        "on-modify hook changed task id",
                        hook_path=hook_path,
                        task_id=old_task.id,
                        returned_id=hooked.id
                    )
                    raise HookContractViolation(
                        f"Hook {hook_path} failed: on-modify hooks cannot change task id "
                        f"({old_task.id!r} -> {hooked.id!r})",
                        hook_path=hook_path
                    )
                current = hooked
                logger.info("on-modify hook replaced task", hook_path=hook_path, task_id=current.id)
            return current

    def run_non_mutating_hooks(self, event: HookEvent, task: Task) -> None:
        """Run on-complete / on-delete hooks for side effects. Never raises for hook failures."""
        event = HookEvent(event)
        if event in MUTATING_EVENTS:
            raise ValueError(f"{event.value} hooks can mutate the task; use run_create_hooks/run_modify_hooks")

        with correlation_context(prefix=event.value):
            try:
                hooks = self.executor.discover(event)
            except HookError as e:
                logger.warning("Hook discovery failed", event=event.value, task_id=task.id, error=str(e))
                return

            for hook_path in hooks:
                try:
                    self._invoke(event, hook_path, task.id, task.to_payload())
                except HookError as e:
                    logger.warning(
                        "Non-blocking hook failed",
                        event=event.value,
                        hook_path=hook_path,
                        task_id=task.id,
                        error=str(e)
                    )
