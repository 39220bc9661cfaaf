from __future__ import annotations

import random
from dataclasses import dataclass

from tasksync.core.config import Settings, get_settings
from tasksync.core.logging import get_logger
from tasksync.events.notifications import InMemoryNotificationSink
from tasksync.history.manager import HistoryManager
from tasksync.orchestration.sync import SyncOrchestrator
from tasksync.orchestration.task_board import TaskBoardService
from tasksync.runtime.external_changes import ExternalChangeGenerator, SleepFn
from tasksync.runtime.task_api import SimulatedTaskApi
from tasksync.store.task_store import InMemoryTaskStore

logger = get_logger("tasksync.orchestration.engine")


@dataclass(frozen=True, slots=True)
class SyncEngine:
    settings: Settings
    store: InMemoryTaskStore
    notifier: InMemoryNotificationSink
    api: SimulatedTaskApi
    history: HistoryManager
    board: TaskBoardService
    sync: SyncOrchestrator

    def start(self) -> None:
        if not self.settings.sync_enabled:
            logger.info("engine.sync_disabled")
            return
        self.sync.start()

    async def aclose(self) -> None:
        await self.sync.aclose()


def build_sync_engine(
    settings: Settings | None = None,
    store: InMemoryTaskStore | None = None,
    notifier: InMemoryNotificationSink | None = None,
    *,
    rng: random.Random | None = None,
    sleep: SleepFn | None = None,
) -> SyncEngine:
    active_settings = settings or get_settings()
    active_store = store if store is not None else InMemoryTaskStore()
    active_notifier = notifier if notifier is not None else InMemoryNotificationSink()
    active_rng = rng or random.Random()

    api = SimulatedTaskApi(
        latency_ms=active_settings.task_api_latency_ms,
        failure_rate=active_settings.task_api_failure_rate,
        rng=active_rng,
        sleep=sleep,
    )
    history = HistoryManager(max_size=active_settings.history_max_size)
    generator = ExternalChangeGenerator(
        min_delay_ms=active_settings.sync_min_delay_ms,
        max_delay_ms=active_settings.sync_max_delay_ms,
        rng=active_rng,
        sleep=sleep,
    )
    logger.debug(
        "engine.built",
        latency_ms=active_settings.task_api_latency_ms,
        failure_rate=active_settings.task_api_failure_rate,
        sync_enabled=active_settings.sync_enabled,
    )
    return SyncEngine(
        settings=active_settings,
        store=active_store,
        notifier=active_notifier,
        api=api,
        history=history,
        board=TaskBoardService(
            store=active_store,
            api=api,
            history=history,
            notifier=active_notifier,
        ),
        sync=SyncOrchestrator(
            store=active_store,
            notifier=active_notifier,
            generator=generator,
        ),
    )
