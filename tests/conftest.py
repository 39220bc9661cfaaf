from __future__ import annotations

from collections.abc import Iterator

import pytest
from pytest import MonkeyPatch

from tasksync.core.config import get_settings
from tests.shared import FakeSleep

_SETTINGS_ENV = (
    "APP_NAME",
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FILE",
    "TASK_API_LATENCY_MS",
    "TASK_API_FAILURE_RATE",
    "SYNC_ENABLED",
    "SYNC_MIN_DELAY_MS",
    "SYNC_MAX_DELAY_MS",
    "HISTORY_MAX_SIZE",
)


@pytest.fixture(autouse=True)
def _reset_settings_env(monkeypatch: MonkeyPatch) -> Iterator[None]:
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()
