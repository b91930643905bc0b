"""Outbound notifications."""
from healthsync_compliance.notifications.dispatcher import (
    InMemoryNotificationDispatcher,
    NotificationDispatcher,
)

__all__ = ["InMemoryNotificationDispatcher", "NotificationDispatcher"]
