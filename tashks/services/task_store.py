"""Task store: the persistence collaborator consumed by the engine.

The engine only needs ``load``, ``load_all``, ``save`` and ``delete``. The
file-backed store keeps one JSON document per task and replaces each record
atomically (write to a temp file in the same directory, then rename).
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol, Union

from pydantic import ValidationError

from tashks.models.task import Task
from tashks.utils.errors import StoreError, TaskNotFound
from tashks.utils.logging import get_structured_logger, timed

logger = get_structured_logger(__name__)


class TaskStore(Protocol):
    """Storage interface the engine reads from and writes to."""

    def load(self, task_id: str) -> Task:
        ...

    def load_all(self) -> list[Task]:
        ...

    def load_all_readable(self) -> tuple[list[Task], list[str]]:
        """Tasks that could be read, plus the ids of records that could not."""
        ...

    def save(self, task: Task) -> None:
        ...

    def delete(self, task_id: str) -> None:
        ...


class InMemoryTaskStore:
    """Dict-backed store. Returns copies so callers never share state with the store."""

    def __init__(self, tasks: Union[list[Task], None] = None):
        self._tasks: dict[str, Task] = {}
        for task in tasks or []:
            self.save(task)

    def load(self, task_id: str) -> Task:
        if task_id not in self._tasks:
            raise TaskNotFound(task_id)
        return self._tasks[task_id].model_copy(deep=True)

    def load_all(self) -> list[Task]:
        return [self._tasks[task_id].model_copy(deep=True) for task_id in sorted(self._tasks)]

    def load_all_readable(self) -> tuple[list[Task], list[str]]:
        return self.load_all(), []

    def save(self, task: Task) -> None:
        self._tasks[task.id] = task.model_copy(deep=True)

    def delete(self, task_id: str) -> None:
        if task_id not in self._tasks:
            raise TaskNotFound(task_id)
        del self._tasks[task_id]


class FileTaskStore:
    """One ``<id>.json`` file per task under ``<data_dir>/tasks``."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        self.tasks_dir = self.data_dir / "tasks"

    def _path_for(self, task_id: str) -> Path:
        if not task_id or "/" in task_id or "\\" in task_id or task_id in (".", ".."):
            raise StoreError(f"Invalid task id for file store: {task_id!r}")
        return self.tasks_dir / f"{task_id}.json"

    def _read(self, path: Path) -> Task:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return Task.model_validate(json.load(f))
        except (json.JSONDecodeError, ValidationError) as e:
            raise StoreError(f"Corrupt task record {path}: {e}") from e
        except OSError as e:
            raise StoreError(f"Failed to read task record {path}: {e}") from e

    def load(self, task_id: str) -> Task:
        path = self._path_for(task_id)
        if not path.is_file():
            raise TaskNotFound(task_id)
        return self._read(path)

    @timed("file_store.load_all", logger=logger)
    def load_all(self) -> list[Task]:
        if not self.tasks_dir.is_dir():
            return []
        return [self._read(path) for path in sorted(self.tasks_dir.glob("*.json"))]

    def load_all_readable(self) -> tuple[list[Task], list[str]]:
        if not self.tasks_dir.is_dir():
            return [], []

        tasks, unreadable = [], []
        for path in sorted(self.tasks_dir.glob("*.json")):
            try:
                tasks.append(self._read(path))
            except StoreError as e:
                logger.warning("Skipping unreadable task record", task_id=path.stem, error=str(e))
                unreadable.append(path.stem)
        return tasks, unreadable

    def save(self, task: Task) -> None:
        path = self._path_for(task.id)
        try:
            self.tasks_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.tasks_dir, prefix=f".{task.id}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(task.to_payload(), f, indent=2, ensure_ascii=False)
                    f.write("\n")
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StoreError(f"Failed to write task {task.id}: {e}") from e

        logger.debug("Task saved", task_id=task.id, status=task.status)

    def delete(self, task_id: str) -> None:
        path = self._path_for(task_id)
        try:
            path.unlink()
        except FileNotFoundError:
            raise TaskNotFound(task_id)
        except OSError as e:
            raise StoreError(f"Failed to delete task {task_id}: {e}") from e

        logger.debug("Task deleted", task_id=task_id)
