"""
Transient user notifications.

Stands in for toast messages: each notification is logged, kept in a short
history, and handed to any subscribed listener (a UI, the CLI, a test).
"""

from collections import deque
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, List

from convert.utils.logging_config import get_logger

logger = get_logger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class Notification:
    def __init__(self, level: NotificationLevel, message: str):
        self.level = level
        self.message = message
        self.created_at = datetime.now()

    def __repr__(self):
        return f"Notification({self.level.value}: {self.message!r})"


Listener = Callable[[Notification], None]


class Notifier:
    def __init__(self, history_size: int = 100):
        self.history: Deque[Notification] = deque(maxlen=history_size)
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level, message)
        self.history.append(notification)

        if level is NotificationLevel.ERROR:
            logger.warning(message)
        else:
            logger.info(message)

        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"Notification listener failed: {e}")

        return notification

    def success(self, message: str) -> Notification:
        return self.notify(NotificationLevel.SUCCESS, message)

    def error(self, message: str) -> Notification:
        return self.notify(NotificationLevel.ERROR, message)

    def messages(self, level: NotificationLevel = None) -> List[str]:
        return [n.message for n in self.history if level is None or n.level is level]
