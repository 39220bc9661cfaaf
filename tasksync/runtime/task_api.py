from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from enum import StrEnum
from typing import Any

from tasksync.core.logging import get_logger
from tasksync.domain.enums import TaskStatus
from tasksync.domain.models import Task, TaskChanges, utc_now

DEFAULT_LATENCY_MS = 2000
DEFAULT_FAILURE_RATE = 0.1
logger = get_logger("tasksync.runtime.task_api")

SleepFn = Callable[[float], Awaitable[None]]


class TaskApiErrorCode(StrEnum):
    UPDATE_FAILED = "UPDATE_FAILED"
    MOVE_FAILED = "MOVE_FAILED"
    REORDER_FAILED = "REORDER_FAILED"
    CREATE_FAILED = "CREATE_FAILED"
    DELETE_FAILED = "DELETE_FAILED"
    BATCH_UPDATE_FAILED = "BATCH_UPDATE_FAILED"


_ERROR_MESSAGES: dict[TaskApiErrorCode, str] = {
    TaskApiErrorCode.UPDATE_FAILED: "Failed to update task. Please try again.",
    TaskApiErrorCode.MOVE_FAILED: "Failed to move task. The task has been restored.",
    TaskApiErrorCode.REORDER_FAILED: "Failed to reorder task. Changes have been reverted.",
    TaskApiErrorCode.CREATE_FAILED: "Failed to create task. Please try again.",
    TaskApiErrorCode.DELETE_FAILED: "Failed to delete task. Please try again.",
    TaskApiErrorCode.BATCH_UPDATE_FAILED: (
        "Failed to sync tasks. Some changes may not have been saved."
    ),
}


class TaskApiError(Exception):
    """Rejection from the simulated task backend. Always recoverable."""

    def __init__(
        self,
        *,
        code: TaskApiErrorCode,
        message: str,
        status_code: int = 500,
        retryable: bool = True,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


def _to_api_error(code: TaskApiErrorCode) -> TaskApiError:
    return TaskApiError(code=code, message=_ERROR_MESSAGES[code])


class SimulatedTaskApi:
    """Stand-in for the remote task service.

    Every call suspends for ``latency_ms`` and then fails with probability
    ``failure_rate`` by raising ``TaskApiError``.
    """

    def __init__(
        self,
        *,
        latency_ms: int = DEFAULT_LATENCY_MS,
        failure_rate: float = DEFAULT_FAILURE_RATE,
        rng: random.Random | None = None,
        sleep: SleepFn | None = None,
        now_factory: Callable[[], datetime] = utc_now,
    ) -> None:
        if latency_ms < 0:
            raise ValueError("latency_ms cannot be negative")
        if failure_rate < 0 or failure_rate > 1:
            raise ValueError("failure_rate must be between 0 and 1")
        self._latency_ms = latency_ms
        self._failure_rate = failure_rate
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep
        self._now_factory = now_factory
        self._calls_by_operation: dict[str, int] = {}

    @property
    def latency_ms(self) -> int:
        return self._latency_ms

    @property
    def failure_rate(self) -> float:
        return self._failure_rate

    def call_count(self, *, operation: str) -> int:
        return self._calls_by_operation.get(operation, 0)

    async def _roundtrip(self, *, operation: str, code: TaskApiErrorCode, **context: Any) -> None:
        self._calls_by_operation[operation] = self._calls_by_operation.get(operation, 0) + 1
        logger.debug("task_api.request", operation=operation, **context)
        await self._sleep(self._latency_ms / 1000)
        if self._rng.random() < self._failure_rate:
            logger.warning("task_api.failed", operation=operation, code=code.value, **context)
            raise _to_api_error(code)
        logger.debug("task_api.succeeded", operation=operation, **context)

    async def update_task(self, task_id: str, changes: TaskChanges) -> dict[str, Any]:
        await self._roundtrip(
            operation="update_task",
            code=TaskApiErrorCode.UPDATE_FAILED,
            task_id=task_id,
        )
        return {**dict(changes), "id": task_id, "updated_at": self._now_factory()}

    async def move_task(self, task_id: str, status: TaskStatus) -> dict[str, Any]:
        await self._roundtrip(
            operation="move_task",
            code=TaskApiErrorCode.MOVE_FAILED,
            task_id=task_id,
            status=status.value,
        )
        return {"id": task_id, "status": status, "updated_at": self._now_factory()}

    async def reorder_task(self, task_id: str, status: TaskStatus, order: int) -> dict[str, Any]:
        await self._roundtrip(
            operation="reorder_task",
            code=TaskApiErrorCode.REORDER_FAILED,
            task_id=task_id,
            status=status.value,
            order=order,
        )
        return {
            "id": task_id,
            "status": status,
            "order": order,
            "updated_at": self._now_factory(),
        }

    async def create_task(self, task: Task) -> Task:
        await self._roundtrip(
            operation="create_task",
            code=TaskApiErrorCode.CREATE_FAILED,
            task_id=task.id,
        )
        now = self._now_factory()
        return task.model_copy(update={"created_at": now, "updated_at": now})

    async def delete_task(self, task_id: str) -> None:
        await self._roundtrip(
            operation="delete_task",
            code=TaskApiErrorCode.DELETE_FAILED,
            task_id=task_id,
        )

    async def batch_update_tasks(self, updates: Sequence[TaskChanges]) -> list[dict[str, Any]]:
        await self._roundtrip(
            operation="batch_update_tasks",
            code=TaskApiErrorCode.BATCH_UPDATE_FAILED,
            count=len(updates),
        )
        now = self._now_factory()
        return [{**dict(update), "updated_at": now} for update in updates]
