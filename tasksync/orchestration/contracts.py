from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from tasksync.domain.enums import TaskStatus
from tasksync.domain.models import Task, TaskChanges


class TaskAccessor(Protocol):
    def list_tasks(self) -> Sequence[Task]: ...


class TaskMutator(Protocol):
    def apply_task_change(self, task_id: str, changes: TaskChanges) -> None: ...


class TaskStoreLike(TaskAccessor, TaskMutator, Protocol):
    pass


class NotificationSink(Protocol):
    def notify_info(self, text: str) -> None: ...

    def notify_warning(self, text: str) -> None: ...


class BoardNotificationSink(NotificationSink, Protocol):
    def notify_success(self, text: str) -> None: ...

    def notify_error(self, text: str) -> None: ...


class TaskReorderApi(Protocol):
    async def reorder_task(
        self,
        task_id: str,
        status: TaskStatus,
        order: int,
    ) -> Mapping[str, Any]: ...
