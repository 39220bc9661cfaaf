from tasksync.events.notifications import InMemoryNotificationSink
from tasksync.events.schemas import Notification, NotificationLevel

__all__ = [
    "InMemoryNotificationSink",
    "Notification",
    "NotificationLevel",
]
