from __future__ import annotations

from tasksync.core.logging import get_logger
from tasksync.events.schemas import Notification, NotificationLevel

logger = get_logger("tasksync.events.notifications")


class InMemoryNotificationSink:
    """Collects notifications for whoever renders them (toasts, tests, logs)."""

    def __init__(self) -> None:
        self._items: list[Notification] = []

    @property
    def items(self) -> tuple[Notification, ...]:
        return tuple(self._items)

    def messages(self, level: NotificationLevel | None = None) -> list[str]:
        return [item.message for item in self._items if level is None or item.level == level]

    def clear(self) -> None:
        self._items.clear()

    def notify(self, level: NotificationLevel, text: str) -> None:
        self._items.append(Notification(level=level, message=text))
        logger.info("notification.emitted", notification_level=level.value, text=text)

    def notify_info(self, text: str) -> None:
        self.notify(NotificationLevel.INFO, text)

    def notify_success(self, text: str) -> None:
        self.notify(NotificationLevel.SUCCESS, text)

    def notify_warning(self, text: str) -> None:
        self.notify(NotificationLevel.WARNING, text)

    def notify_error(self, text: str) -> None:
        self.notify(NotificationLevel.ERROR, text)
