from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from tasksync.domain.models import (
    TIMESTAMP_FIELD,
    Task,
    TaskChanges,
    apply_changes,
    changed_field_names,
    normalize_utc_datetime,
    utc_now,
)

_MIN_TIMESTAMP_STEP = timedelta(microseconds=1)


def overlapping_fields(external_change: TaskChanges, local_change: TaskChanges) -> set[str]:
    return changed_field_names(external_change) & changed_field_names(local_change)


def detect_conflict(
    task_id: str,
    external_change: TaskChanges,
    active_edit_task_id: str | None,
    active_edit_change: TaskChanges | None,
) -> bool:
    """
    Decide whether an incoming external change collides with the local edit.

    Args:
        task_id: Task targeted by the external change.
        external_change: Fields the external actor changed.
        active_edit_task_id: Task currently edited locally, if any.
        active_edit_change: Unconfirmed local change set, if any.

    Returns:
        bool: True when both sides touch the same task and share at least one
        field other than ``updated_at``.
    """
    if active_edit_task_id is None or active_edit_change is None:
        return False
    if task_id != active_edit_task_id:
        return False
    return bool(overlapping_fields(external_change, active_edit_change))


def merge_changes(
    original: Task,
    external_change: TaskChanges,
    local_change: TaskChanges,
    *,
    now_factory: Callable[[], datetime] = utc_now,
) -> Task:
    """
    Last-write-wins merge where the external actor committed first.

    Local fields are laid over the original, then external fields over that,
    so the external value wins on every shared field. The result carries an
    ``updated_at`` strictly newer than the original's.
    """
    merged = apply_changes(original, {**dict(local_change), **dict(external_change)})
    stamp = max(normalize_utc_datetime(now_factory()), original.updated_at + _MIN_TIMESTAMP_STEP)
    return merged.model_copy(update={TIMESTAMP_FIELD: stamp})
