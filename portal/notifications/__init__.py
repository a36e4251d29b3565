"""In-app notifications for challenge workflow events."""

from portal.notifications.producers import build_notification
from portal.notifications.service import (
    NotificationDispatcher,
    NotificationService,
    NotificationSink,
)

__all__ = [
    "NotificationDispatcher",
    "NotificationService",
    "NotificationSink",
    "build_notification",
]
