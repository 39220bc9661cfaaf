from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable, Mapping, Sequence
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tasksync.core.logging import get_logger
from tasksync.domain.enums import ExternalUpdateType, TaskPriority, TaskStatus
from tasksync.domain.models import TIMESTAMP_FIELD, Task, utc_now

EXTERNAL_ACTORS: tuple[str, ...] = (
    "Nikhil Nagar",
    "Sangamesh Sangalad",
    "Shirsha Chaudhuri",
    "Bob Johnson",
    "David Brown",
)
DEFAULT_MIN_DELAY_MS = 15000
DEFAULT_MAX_DELAY_MS = 20000
logger = get_logger("tasksync.runtime.external_changes")

SleepFn = Callable[[float], Awaitable[None]]
TaskListFn = Callable[[], Sequence[Task]]


@dataclass(frozen=True, slots=True)
class ExternalUpdate:
    task_id: str
    changes: Mapping[str, Any]
    actor: str
    update_type: ExternalUpdateType
    created_at: datetime = field(default_factory=utc_now)


ExternalUpdateCallback = Callable[[ExternalUpdate], None]


def _pick_other(rng: random.Random, options: Sequence[Any], current: Any) -> Any:
    candidates = [option for option in options if option != current]
    return rng.choice(candidates)


def generate_random_update(
    tasks: Sequence[Task],
    *,
    rng: random.Random,
    now: datetime,
    actors: Sequence[str] = EXTERNAL_ACTORS,
) -> ExternalUpdate | None:
    """
    Build one non-destructive change from a simulated collaborator.

    Args:
        tasks: Current task list.
        rng: Randomness source.
        now: Timestamp stamped into the change.
        actors: Pool of simulated collaborator names.

    Returns:
        ExternalUpdate | None: The change, or None when there are no tasks.
    """
    if not tasks:
        return None

    task = rng.choice(list(tasks))
    update_type = rng.choice(list(ExternalUpdateType))
    actor = _pick_other(rng, actors, task.assignee)

    changes: dict[str, Any] = {TIMESTAMP_FIELD: now}
    if update_type == ExternalUpdateType.STATUS_CHANGE:
        changes["status"] = _pick_other(rng, list(TaskStatus), task.status)
    elif update_type == ExternalUpdateType.PRIORITY_CHANGE:
        changes["priority"] = _pick_other(rng, list(TaskPriority), task.priority)
    else:
        changes["assignee"] = actor

    return ExternalUpdate(
        task_id=task.id,
        changes=changes,
        actor=actor,
        update_type=update_type,
        created_at=now,
    )


def _display(value: Any) -> str:
    return value.value if isinstance(value, (TaskStatus, TaskPriority)) else str(value)


def describe_update(update: ExternalUpdate) -> str:
    if update.update_type == ExternalUpdateType.STATUS_CHANGE:
        return f"{update.actor} moved a task to {_display(update.changes.get('status'))}"
    if update.update_type == ExternalUpdateType.PRIORITY_CHANGE:
        return f"{update.actor} changed task priority to {_display(update.changes.get('priority'))}"
    if update.update_type == ExternalUpdateType.ASSIGNEE_CHANGE:
        return f"{update.actor} reassigned a task to {update.changes.get('assignee')}"
    return f"{update.actor} made changes to a task"


class ExternalChangeGenerator:
    """Simulated collaborator that edits a random task every few seconds.

    The loop is one ``asyncio`` task owned by this object. Only one firing is
    ever pending; each firing reads the task list fresh through the accessor
    given to ``start``.
    """

    def __init__(
        self,
        *,
        min_delay_ms: int = DEFAULT_MIN_DELAY_MS,
        max_delay_ms: int = DEFAULT_MAX_DELAY_MS,
        rng: random.Random | None = None,
        sleep: SleepFn | None = None,
        now_factory: Callable[[], datetime] = utc_now,
        actors: Sequence[str] = EXTERNAL_ACTORS,
    ) -> None:
        if len(set(actors)) < 2:
            raise ValueError("actors must contain at least two distinct names")
        self._min_delay_ms = 0
        self._max_delay_ms = 0
        self.set_timing(min_delay_ms, max_delay_ms)
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep
        self._now_factory = now_factory
        self._actors = tuple(actors)
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._fired_count = 0

    @property
    def fired_count(self) -> int:
        return self._fired_count

    @property
    def timing(self) -> tuple[int, int]:
        return self._min_delay_ms, self._max_delay_ms

    def set_timing(self, min_delay_ms: int, max_delay_ms: int) -> None:
        if min_delay_ms < 0:
            raise ValueError("min_delay_ms cannot be negative")
        if max_delay_ms < min_delay_ms:
            raise ValueError("max_delay_ms must be >= min_delay_ms")
        self._min_delay_ms = min_delay_ms
        self._max_delay_ms = max_delay_ms

    def is_active(self) -> bool:
        return self._running

    def next_delay_seconds(self) -> float:
        return self._rng.randint(self._min_delay_ms, self._max_delay_ms) / 1000

    def start(self, list_tasks: TaskListFn, on_update: ExternalUpdateCallback) -> None:
        """Arm the loop on the running event loop. No-op when already active."""
        if self._running:
            logger.warning("external_changes.already_running")
            return
        self._running = True
        self._task = asyncio.get_running_loop().create_task(
            self._run(list_tasks, on_update),
            name="tasksync-external-changes",
        )
        logger.info(
            "external_changes.started",
            min_delay_ms=self._min_delay_ms,
            max_delay_ms=self._max_delay_ms,
        )

    def stop(self) -> None:
        """Cancel the pending firing and stop rescheduling. Idempotent."""
        task = self._task
        was_running = self._running
        self._running = False
        self._task = None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
        if was_running:
            logger.info("external_changes.stopped", fired_count=self._fired_count)

    async def aclose(self) -> None:
        task = self._task
        self.stop()
        if task is None or task is _current_task():
            return
        with suppress(asyncio.CancelledError):
            await task

    def fire_once(
        self,
        list_tasks: TaskListFn,
        on_update: ExternalUpdateCallback,
    ) -> ExternalUpdate | None:
        update = generate_random_update(
            list_tasks(),
            rng=self._rng,
            now=self._now_factory(),
            actors=self._actors,
        )
        if update is None:
            logger.debug("external_changes.no_tasks")
            return None
        self._fired_count += 1
        logger.info(
            "external_changes.fired",
            task_id=update.task_id,
            actor=update.actor,
            update_type=update.update_type.value,
        )
        on_update(update)
        return update

    async def _run(self, list_tasks: TaskListFn, on_update: ExternalUpdateCallback) -> None:
        me = _current_task()
        try:
            while self._running and self._task is me:
                delay = self.next_delay_seconds()
                logger.debug("external_changes.scheduled", delay_ms=int(delay * 1000))
                await self._sleep(delay)
                if not self._running or self._task is not me:
                    break
                try:
                    self.fire_once(list_tasks, on_update)
                except Exception:
                    logger.exception("external_changes.callback_failed")
        except Exception:
            logger.exception("external_changes.loop_failed")
        finally:
            if self._task is me:
                self._running = False
                self._task = None


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
