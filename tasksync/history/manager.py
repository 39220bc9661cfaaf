from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from tasksync.core.logging import get_logger
from tasksync.domain.enums import TaskStatus
from tasksync.domain.models import TIMESTAMP_FIELD, Task
from tasksync.history.actions import (
    CreateTaskAction,
    DeleteTaskAction,
    HistoryAction,
    ReorderTaskAction,
    UpdateTaskAction,
)

DEFAULT_MAX_HISTORY_SIZE = 50
logger = get_logger("tasksync.history.manager")


class HistoryManager:
    """
    Bounded undo/redo stacks for user-initiated task mutations.

    ``past`` is most-recent-last and never longer than ``max_size``; the
    oldest entry is evicted first. ``future`` is most-recent-first and is
    emptied by every new recording. Recording is suppressed while a replay
    is applied inside ``replaying()``.
    """

    def __init__(self, *, max_size: int = DEFAULT_MAX_HISTORY_SIZE) -> None:
        if max_size < 1:
            raise ValueError("max_size must be greater than 0")
        self._max_size = max_size
        self._past: list[HistoryAction] = []
        self._future: list[HistoryAction] = []
        self._replay_depth = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def past(self) -> tuple[HistoryAction, ...]:
        return tuple(self._past)

    @property
    def future(self) -> tuple[HistoryAction, ...]:
        return tuple(self._future)

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    @property
    def history_size(self) -> int:
        return len(self._past)

    @property
    def is_replaying(self) -> bool:
        return self._replay_depth > 0

    @contextmanager
    def replaying(self) -> Iterator[None]:
        """Apply an undo/redo inside this block so it is not recorded again."""
        self._replay_depth += 1
        try:
            yield
        finally:
            self._replay_depth -= 1

    def add_to_history(self, action: HistoryAction) -> bool:
        if self.is_replaying:
            logger.debug("history.skipped_during_replay", action_id=action.id, kind=action.kind.value)
            return False

        self._past.append(action)
        while len(self._past) > self._max_size:
            evicted = self._past.pop(0)
            logger.debug("history.evicted", action_id=evicted.id)
        self._future.clear()
        logger.debug("history.recorded", action_id=action.id, kind=action.kind.value)
        return True

    def record_create(self, task: Task) -> CreateTaskAction:
        action = CreateTaskAction(description=f"Created task: {task.title}", task=task)
        self.add_to_history(action)
        return action

    def record_update(
        self,
        task_id: str,
        previous_state: Mapping[str, Any],
        new_state: Mapping[str, Any],
        task_title: str | None = None,
    ) -> UpdateTaskAction:
        changed_fields = [name for name in new_state if name != TIMESTAMP_FIELD]
        action = UpdateTaskAction(
            description=f"Updated {task_title or 'task'}: {', '.join(changed_fields)}",
            task_id=task_id,
            previous_state=dict(previous_state),
            new_state=dict(new_state),
        )
        self.add_to_history(action)
        return action

    def record_delete(self, task: Task) -> DeleteTaskAction:
        action = DeleteTaskAction(description=f"Deleted task: {task.title}", task=task)
        self.add_to_history(action)
        return action

    def record_reorder(
        self,
        task_id: str,
        previous_status: TaskStatus,
        new_status: TaskStatus,
        previous_order: int,
        new_order: int,
        task_title: str | None = None,
    ) -> ReorderTaskAction:
        action = ReorderTaskAction(
            description=(
                f"Moved {task_title or 'task'} from {previous_status.value} to {new_status.value}"
            ),
            task_id=task_id,
            previous_status=previous_status,
            new_status=new_status,
            previous_order=previous_order,
            new_order=new_order,
        )
        self.add_to_history(action)
        return action

    def undo(self) -> HistoryAction | None:
        if not self._past:
            return None
        action = self._past.pop()
        self._future.insert(0, action)
        logger.debug("history.undo", action_id=action.id, kind=action.kind.value)
        return action

    def redo(self) -> HistoryAction | None:
        if not self._future:
            return None
        action = self._future.pop(0)
        self._past.append(action)
        logger.debug("history.redo", action_id=action.id, kind=action.kind.value)
        return action

    def clear_history(self) -> None:
        self._past.clear()
        self._future.clear()

    def undo_description(self) -> str | None:
        return self._past[-1].description if self._past else None

    def redo_description(self) -> str | None:
        return self._future[0].description if self._future else None
