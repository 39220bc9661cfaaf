from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tasksync.core.logging import get_logger
from tasksync.domain.models import TaskChanges, utc_now
from tasksync.orchestration.conflicts import detect_conflict, merge_changes, overlapping_fields
from tasksync.orchestration.contracts import NotificationSink, TaskStoreLike
from tasksync.runtime.external_changes import (
    ExternalChangeGenerator,
    ExternalUpdate,
    describe_update,
)

logger = get_logger("tasksync.orchestration.sync")

ConflictCallback = Callable[[str, Mapping[str, Any], Mapping[str, Any]], None]


@dataclass(frozen=True, slots=True)
class EditSession:
    task_id: str
    changes: Mapping[str, Any]
    started_at: datetime = field(default_factory=utc_now)


def conflict_message(update: ExternalUpdate) -> str:
    return f"Conflict: {update.actor} also edited this task. External changes applied."


class SyncOrchestrator:
    """Feeds simulated external changes into the store.

    Keeps the single active edit session so incoming changes can be checked
    for field overlap. Overlapping changes are merged with the external side
    winning; everything else is applied as-is.
    """

    def __init__(
        self,
        *,
        store: TaskStoreLike,
        notifier: NotificationSink,
        generator: ExternalChangeGenerator | None = None,
        on_conflict: ConflictCallback | None = None,
        now_factory: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._generator = generator or ExternalChangeGenerator()
        self._on_conflict = on_conflict
        self._now_factory = now_factory
        self._edit_session: EditSession | None = None

    @property
    def generator(self) -> ExternalChangeGenerator:
        return self._generator

    @property
    def edit_session(self) -> EditSession | None:
        return self._edit_session

    @property
    def editing_task_id(self) -> str | None:
        return self._edit_session.task_id if self._edit_session is not None else None

    def start_editing(self, task_id: str, changes: TaskChanges) -> EditSession:
        self._edit_session = EditSession(
            task_id=task_id,
            changes=dict(changes),
            started_at=self._now_factory(),
        )
        logger.debug("sync.edit_started", task_id=task_id, fields=sorted(changes))
        return self._edit_session

    def stop_editing(self) -> None:
        if self._edit_session is not None:
            logger.debug("sync.edit_stopped", task_id=self._edit_session.task_id)
        self._edit_session = None

    def start(self) -> None:
        self._generator.start(self._store.list_tasks, self.handle_external_update)

    def stop(self) -> None:
        self._generator.stop()

    async def aclose(self) -> None:
        await self._generator.aclose()

    def is_active(self) -> bool:
        return self._generator.is_active()

    def handle_external_update(self, update: ExternalUpdate) -> bool:
        """
        Apply one external change.

        Args:
            update: The change produced by the external actor.

        Returns:
            bool: True when the change conflicted with the local edit and was merged.
        """
        task = next((item for item in self._store.list_tasks() if item.id == update.task_id), None)
        if task is None:
            logger.warning("sync.task_not_found", task_id=update.task_id, actor=update.actor)
            return False

        session = self._edit_session
        local_changes = session.changes if session is not None else None
        active_task_id = session.task_id if session is not None else None

        if local_changes is not None and detect_conflict(
            update.task_id,
            update.changes,
            active_task_id,
            local_changes,
        ):
            logger.warning(
                "sync.conflict_detected",
                task_id=update.task_id,
                actor=update.actor,
                fields=sorted(overlapping_fields(update.changes, local_changes)),
            )
            merged = merge_changes(
                task,
                update.changes,
                local_changes,
                now_factory=self._now_factory,
            )
            self._store.apply_task_change(update.task_id, merged.model_dump(exclude={"id"}))
            self._edit_session = None
            self._notifier.notify_warning(conflict_message(update))
            if self._on_conflict is not None:
                self._on_conflict(update.task_id, update.changes, local_changes)
            return True

        logger.info(
            "sync.external_applied",
            task_id=update.task_id,
            actor=update.actor,
            update_type=update.update_type.value,
        )
        self._store.apply_task_change(update.task_id, update.changes)
        self._notifier.notify_info(describe_update(update))
        return False
