from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from tasksync.core.logging import get_logger, log_context
from tasksync.domain.enums import TaskPriority, TaskStatus
from tasksync.domain.models import (
    TIMESTAMP_FIELD,
    Task,
    TaskChanges,
    generate_task_id,
    next_order_for_status,
    normalize_task_orders,
    should_normalize_orders,
    snapshot_fields,
    utc_now,
)
from tasksync.history.actions import (
    CreateTaskAction,
    DeleteTaskAction,
    HistoryAction,
    ReorderTaskAction,
    UpdateTaskAction,
)
from tasksync.history.manager import HistoryManager
from tasksync.orchestration.contracts import BoardNotificationSink, TaskReorderApi
from tasksync.orchestration.optimistic import KeyedOptimisticCoordinator
from tasksync.runtime.task_api import TaskApiError
from tasksync.store.task_store import InMemoryTaskStore, TaskNotFoundError

logger = get_logger("tasksync.orchestration.task_board")


class TaskBoardService:
    """User-facing mutation path for the board.

    Every user mutation is recorded once in history. Undo and redo run the
    same mutation path inside ``history.replaying()`` so the replay is never
    recorded again.
    """

    def __init__(
        self,
        *,
        store: InMemoryTaskStore,
        api: TaskReorderApi,
        history: HistoryManager,
        notifier: BoardNotificationSink,
        tracker: KeyedOptimisticCoordinator[Any] | None = None,
        now_factory: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._api = api
        self._history = history
        self._notifier = notifier
        self._tracker: KeyedOptimisticCoordinator[Any] = (
            tracker or KeyedOptimisticCoordinator()
        )
        self._now_factory = now_factory
        self._reorder_origins: dict[str, Task] = {}

    @property
    def history(self) -> HistoryManager:
        return self._history

    @property
    def loading_tasks(self) -> frozenset[str]:
        return self._tracker.loading_items

    def is_task_loading(self, task_id: str) -> bool:
        return self._tracker.is_loading(task_id)

    def add_task(
        self,
        *,
        title: str,
        description: str = "",
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority = TaskPriority.MEDIUM,
        assignee: str | None = None,
        tags: Iterable[str] = (),
        due_date: datetime | None = None,
    ) -> Task:
        now = self._now_factory()
        task = Task(
            id=generate_task_id(),
            title=title,
            description=description,
            status=status,
            priority=priority,
            assignee=assignee,
            tags=frozenset(tags),
            order=next_order_for_status(self._store.list_tasks(), status),
            due_date=due_date,
            created_at=now,
            updated_at=now,
        )
        self._insert(task)
        return task

    def update_task(self, task_id: str, changes: TaskChanges) -> Task:
        task = self._store.require(task_id)
        new_state = {name: value for name, value in changes.items() if name != TIMESTAMP_FIELD}
        if not new_state:
            logger.debug("task_board.empty_update_skipped", task_id=task_id)
            return task
        previous_state = snapshot_fields(task, new_state)
        self._store.apply_task_change(
            task_id,
            {**new_state, TIMESTAMP_FIELD: self._now_factory()},
        )
        self._history.record_update(task_id, previous_state, new_state, task.title)
        return self._store.require(task_id)

    def move_task(self, task_id: str, status: TaskStatus) -> Task:
        return self.update_task(task_id, {"status": status})

    def delete_task(self, task_id: str) -> Task:
        task = self._store.remove(task_id)
        self._history.record_delete(task)
        return task

    async def reorder_task(self, task_id: str, status: TaskStatus, order: int) -> bool:
        """
        Move a task to ``status``/``order`` immediately and confirm remotely.

        While reorders of the same task overlap, the placement recorded on
        success and restored on failure is the one from before the first of
        them. Rollback only touches the reordered task, so changes made to
        other tasks meanwhile are kept.

        Returns:
            bool: True when the backend confirmed this reorder. False when it
            was rejected (the task is put back) or when a newer reorder of the
            same task superseded it.
        """
        task = self._store.require(task_id)
        confirmed = False

        with log_context(task_id=task_id):
            self._place(task_id, status, order)
            origin = self._reorder_origins.setdefault(task_id, task)

            def _on_success(_: Any) -> None:
                nonlocal confirmed
                confirmed = True
                self._history.record_reorder(
                    task_id,
                    origin.status,
                    status,
                    origin.order,
                    order,
                    origin.title,
                )

            def _on_error(error: Exception) -> None:
                message = error.message if isinstance(error, TaskApiError) else str(error)
                self._notifier.notify_error(message or "Failed to reorder task")

            try:
                await self._tracker.execute(
                    task_id,
                    self._api.reorder_task(task_id, status, order),
                    on_success=_on_success,
                    on_error=_on_error,
                    on_rollback=lambda: self._restore_placement(origin),
                )
            finally:
                if not self._tracker.is_loading(task_id):
                    self._reorder_origins.pop(task_id, None)
        return confirmed

    def undo(self) -> HistoryAction | None:
        action = self._history.undo()
        if action is None:
            return None
        logger.info("task_board.undo", action_id=action.id, kind=action.kind.value)
        with self._history.replaying():
            self._replay(action, reverse=True)
        return action

    def redo(self) -> HistoryAction | None:
        action = self._history.redo()
        if action is None:
            return None
        logger.info("task_board.redo", action_id=action.id, kind=action.kind.value)
        with self._history.replaying():
            self._replay(action, reverse=False)
        return action

    def _replay(self, action: HistoryAction, *, reverse: bool) -> None:
        try:
            if isinstance(action, CreateTaskAction):
                if reverse:
                    self.delete_task(action.task.id)
                else:
                    self._insert(action.task)
            elif isinstance(action, DeleteTaskAction):
                if reverse:
                    self._insert(action.task)
                else:
                    self.delete_task(action.task.id)
            elif isinstance(action, UpdateTaskAction):
                state = action.previous_state if reverse else action.new_state
                self.update_task(action.task_id, state)
            elif isinstance(action, ReorderTaskAction):
                if reverse:
                    self._place(action.task_id, action.previous_status, action.previous_order)
                else:
                    self._place(action.task_id, action.new_status, action.new_order)
        except TaskNotFoundError:
            logger.warning(
                "task_board.replay_target_missing",
                action_id=action.id,
                kind=action.kind.value,
            )

    def _insert(self, task: Task) -> None:
        self._store.add(task)
        self._history.record_create(task)

    def _place(self, task_id: str, status: TaskStatus, order: int) -> None:
        self._store.apply_task_change(
            task_id,
            {"status": status, "order": order, TIMESTAMP_FIELD: self._now_factory()},
        )
        tasks = self._store.list_tasks()
        if should_normalize_orders(tasks):
            logger.debug("task_board.normalizing_orders", task_id=task_id)
            self._store.replace_all(normalize_task_orders(tasks, prefer_task_id=task_id))

    def _restore_placement(self, origin: Task) -> None:
        if self._store.get(origin.id) is None:
            logger.warning("task_board.rollback_target_missing", task_id=origin.id)
            return
        self._store.apply_task_change(
            origin.id,
            {
                "status": origin.status,
                "order": origin.order,
                TIMESTAMP_FIELD: self._now_factory(),
            },
        )
        # Renumber so the column the task left has no gap.
        self._store.replace_all(
            normalize_task_orders(self._store.list_tasks(), prefer_task_id=origin.id)
        )
        logger.warning(
            "task_board.reorder_rolled_back",
            task_id=origin.id,
            status=origin.status.value,
            order=origin.order,
        )
