"""Notification dispatcher boundary."""
from abc import ABC, abstractmethod
from typing import Any


class NotificationDispatcher(ABC):
    """Delivers notification payloads (email, in-app, webhook...)."""
    
    @abstractmethod
    async def send(self, notification: dict[str, Any]) -> None:
        """Deliver one notification. Raises on delivery failure."""


class InMemoryNotificationDispatcher(NotificationDispatcher):
    """Collects notifications in memory for development and tests."""
    
    def __init__(self):
        self.sent: list[dict[str, Any]] = []
    
    async def send(self, notification: dict[str, Any]) -> None:
        self.sent.append(dict(notification))
