from __future__ import annotations

from collections.abc import Iterable

from tasksync.core.logging import get_logger
from tasksync.domain.models import Task, TaskChanges, apply_changes

logger = get_logger("tasksync.store.task_store")


class TaskNotFoundError(LookupError):
    """Raised when a change targets a task id the store does not hold."""


class DuplicateTaskError(ValueError):
    """Raised when adding a task whose id is already present."""


class InMemoryTaskStore:
    """Ordered in-memory task list.

    Every write swaps whole records, so a list returned by ``list_tasks`` is a
    stable snapshot that later writes never touch.
    """

    def __init__(self, tasks: Iterable[Task] | None = None) -> None:
        self._tasks: list[Task] = []
        for task in tasks or ():
            self.add(task)

    def list_tasks(self) -> list[Task]:
        return list(self._tasks)

    def snapshot(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    def get(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def require(self, task_id: str) -> Task:
        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(f"task '{task_id}' not found")
        return task

    def add(self, task: Task) -> Task:
        if self.get(task.id) is not None:
            raise DuplicateTaskError(f"task '{task.id}' already exists")
        self._tasks = [*self._tasks, task]
        logger.debug("task_store.added", task_id=task.id, status=task.status.value)
        return task

    def remove(self, task_id: str) -> Task:
        task = self.require(task_id)
        self._tasks = [item for item in self._tasks if item.id != task_id]
        logger.debug("task_store.removed", task_id=task_id)
        return task

    def apply_task_change(self, task_id: str, changes: TaskChanges) -> None:
        current = self.require(task_id)
        updated = apply_changes(current, changes)
        self._tasks = [updated if item.id == task_id else item for item in self._tasks]
        logger.debug("task_store.changed", task_id=task_id, fields=sorted(changes))

    def replace_all(self, tasks: Iterable[Task]) -> None:
        self._tasks = list(tasks)
        logger.debug("task_store.replaced", count=len(self._tasks))

    def __len__(self) -> int:
        return len(self._tasks)
