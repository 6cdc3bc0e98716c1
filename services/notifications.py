"""User-facing notification channel for warnings and errors."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Protocol

LOGGER = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Fire-and-forget channel; return values are never consumed."""

    def warn(self, text: str) -> None:
        ...

    def error(self, text: str) -> None:
        ...


@dataclass
class Notification:
    """One message shown to the user."""

    level: str
    text: str
    created_at: float = field(default_factory=lambda: time.time())


class LoggingNotificationSink:
    """Log notifications and keep the most recent ones for the presentation layer."""

    def __init__(self, history: int = 100) -> None:
        self._items: Deque[Notification] = deque(maxlen=history)

    def warn(self, text: str) -> None:
        LOGGER.warning(text)
        self._items.append(Notification(level="warning", text=text))

    def error(self, text: str) -> None:
        LOGGER.error(text)
        self._items.append(Notification(level="error", text=text))

    def recent(self) -> List[Notification]:
        return list(self._items)

    def drain(self) -> List[Notification]:
        """Return and forget all pending notifications."""
        items = list(self._items)
        self._items.clear()
        return items
