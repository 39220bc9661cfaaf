from tasksync.orchestration.conflicts import detect_conflict, merge_changes, overlapping_fields
from tasksync.orchestration.engine import SyncEngine, build_sync_engine
from tasksync.orchestration.optimistic import (
    KeyedOptimisticCoordinator,
    OptimisticUpdateCoordinator,
)
from tasksync.orchestration.sync import EditSession, SyncOrchestrator
from tasksync.orchestration.task_board import TaskBoardService

__all__ = [
    "EditSession",
    "KeyedOptimisticCoordinator",
    "OptimisticUpdateCoordinator",
    "SyncEngine",
    "SyncOrchestrator",
    "TaskBoardService",
    "build_sync_engine",
    "detect_conflict",
    "merge_changes",
    "overlapping_fields",
]
