from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator


class ConfigurationError(Exception):
    """Raised when environment settings parse but violate their constraints."""


Environment = Literal["development", "test", "production"]
LogFormat = Literal["json", "console"]


class Settings(BaseModel):
    app_name: str = Field(default="tasksync")
    app_env: Environment = Field(default="development")
    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default="console")
    log_file: str | None = Field(default=None)
    task_api_latency_ms: int = Field(default=2000, ge=0)
    task_api_failure_rate: float = Field(default=0.1, ge=0, le=1)
    sync_enabled: bool = Field(default=True)
    sync_min_delay_ms: int = Field(default=15000, ge=0)
    sync_max_delay_ms: int = Field(default=20000, ge=0)
    history_max_size: int = Field(default=50, ge=1)

    @model_validator(mode="after")
    def _check_sync_window(self) -> Settings:
        if self.sync_max_delay_ms < self.sync_min_delay_ms:
            raise ValueError("sync_max_delay_ms must be >= sync_min_delay_ms")
        return self


def _load_env_file(directory: Path) -> None:
    env_file = directory / ".env"
    if env_file.is_file():
        load_dotenv(env_file, override=False)


def _to_bool(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _to_int(value: str | None, *, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _to_float(value: str | None, *, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value.strip())
    except ValueError:
        return default


def _normalize_env(value: str | None) -> Environment:
    if value is None:
        return "development"
    lowered = value.strip().lower()
    if lowered == "test":
        return "test"
    if lowered == "production":
        return "production"
    return "development"


def _normalize_log_format(value: str | None, app_env: Environment) -> LogFormat:
    if value is not None:
        lowered = value.strip().lower()
        if lowered == "console":
            return "console"
        if lowered == "json":
            return "json"
    return "console" if app_env == "development" else "json"


def load_settings() -> Settings:
    _load_env_file(Path.cwd())
    app_env = _normalize_env(os.getenv("APP_ENV"))

    try:
        return Settings(
            app_name=os.getenv("APP_NAME", "tasksync"),
            app_env=app_env,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=_normalize_log_format(os.getenv("LOG_FORMAT"), app_env),
            log_file=os.getenv("LOG_FILE") or None,
            task_api_latency_ms=_to_int(os.getenv("TASK_API_LATENCY_MS"), default=2000),
            task_api_failure_rate=_to_float(os.getenv("TASK_API_FAILURE_RATE"), default=0.1),
            sync_enabled=_to_bool(os.getenv("SYNC_ENABLED"), default=True),
            sync_min_delay_ms=_to_int(os.getenv("SYNC_MIN_DELAY_MS"), default=15000),
            sync_max_delay_ms=_to_int(os.getenv("SYNC_MAX_DELAY_MS"), default=20000),
            history_max_size=_to_int(os.getenv("HISTORY_MAX_SIZE"), default=50),
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid tasksync settings: {exc}") from exc


@lru_cache
def get_settings() -> Settings:
    return load_settings()
