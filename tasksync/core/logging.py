from __future__ import annotations

import logging
import logging.config
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from tasksync.core.config import Settings


def _normalize_optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized if normalized else None


def _context_payload(
    *,
    task_id: str | None,
    request_id: int | None,
    actor: str | None,
) -> dict[str, object]:
    payload: dict[str, object] = {}
    normalized_task_id = _normalize_optional_text(task_id)
    if normalized_task_id is not None:
        payload["task_id"] = normalized_task_id
    if request_id is not None and request_id > 0:
        payload["request_id"] = request_id
    normalized_actor = _normalize_optional_text(actor)
    if normalized_actor is not None:
        payload["actor"] = normalized_actor
    return payload


def bind_log_context(
    *,
    task_id: str | None = None,
    request_id: int | None = None,
    actor: str | None = None,
) -> None:
    payload = _context_payload(task_id=task_id, request_id=request_id, actor=actor)
    if payload:
        structlog.contextvars.bind_contextvars(**payload)


@contextmanager
def log_context(
    *,
    task_id: str | None = None,
    request_id: int | None = None,
    actor: str | None = None,
) -> Iterator[None]:
    """Bind context for the block only; values bound by the caller are restored on exit."""
    payload = _context_payload(task_id=task_id, request_id=request_id, actor=actor)
    with structlog.contextvars.bound_contextvars(**payload):
        yield


def clear_log_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)


def configure_logging(settings: Settings) -> None:
    level = settings.log_level.upper()
    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    shared_processors: list[object] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        timestamper,
    ]

    renderer: object
    if settings.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    handlers: dict[str, dict[str, object]] = {
        "stdout": {
            "class": "logging.StreamHandler",
            "formatter": "structured",
            "level": level,
        }
    }
    if settings.log_file is not None:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "structured",
            "level": level,
            "filename": settings.log_file,
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "encoding": "utf-8",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        structlog.processors.format_exc_info,
                        structlog.processors.EventRenamer("message"),
                        renderer,
                    ],
                }
            },
            "handlers": handlers,
            "loggers": {
                "": {
                    "handlers": list(handlers),
                    "level": level,
                },
                "asyncio": {
                    "handlers": list(handlers),
                    "level": "WARNING",
                    "propagate": False,
                },
            },
        }
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
